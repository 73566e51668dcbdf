# clinic_core/medical_files/services.py
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from clinic_core.audit.services import AuditService
from clinic_core.common.api.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from clinic_core.iam.directory import Actor, find_laborant
from clinic_core.iam.roles import Role
from clinic_core.lab_requests.models import LabRequest
from clinic_core.lab_requests.services import LabRequestService
from clinic_core.medical_files.models import MedicalFile
from clinic_core.medical_files.selectors import files_for_patient, files_uploaded_by, get_medical_file
from clinic_core.patients.selectors import find_patient

logger = logging.getLogger(__name__)

ENTITY_TYPE = "MedicalFile"

DEFAULT_ALLOWED_TYPES = ("application/pdf", "image/jpeg", "image/png")
DEFAULT_MAX_SIZE_KB = 3072


def _allowed_types() -> tuple[str, ...]:
    return tuple(getattr(settings, "MEDICAL_FILES_ALLOWED_TYPES", DEFAULT_ALLOWED_TYPES))


def _max_size_kb() -> Decimal:
    return Decimal(str(getattr(settings, "MEDICAL_FILES_MAX_SIZE_KB", DEFAULT_MAX_SIZE_KB)))


def _require_roles(actor: Actor, roles: set[str], *, message: str) -> None:
    if actor.role not in roles:
        raise ForbiddenError(message, context={"role": actor.role})


def _load(file_id, *, include_deleted: bool = False) -> MedicalFile:
    medical_file = get_medical_file(file_id, include_deleted=include_deleted)
    if medical_file is None:
        raise NotFoundError("Medical file not found.", context={"medical_file_id": file_id})
    return medical_file


class MedicalFileService:
    """
    Upload descriptors for stored test results.

    Binary content is handled by the file store; this service records the descriptor,
    enforces who may see or remove it, and hands request completion to the lab request
    engine.
    """

    # ----------------------------
    # Register upload
    # ----------------------------
    @staticmethod
    @transaction.atomic
    def register_upload(
        *,
        actor: Actor,
        patient_id,
        file_name: str,
        file_url: str,
        file_type: str,
        file_size_kb,
        test_name: str,
        test_date: date,
        description: str | None = None,
        request_id=None,
    ) -> MedicalFile:
        _require_roles(actor, {Role.LABORANT.value, Role.ADMIN.value}, message="Only laborants can upload medical files.")

        patient = find_patient(patient_id)
        if patient is None:
            raise NotFoundError("Patient not found.", context={"patient_id": patient_id})

        if file_type not in _allowed_types():
            raise BadRequestError(
                "File type not allowed.",
                context={"file_type": file_type, "allowed": list(_allowed_types())},
            )

        try:
            size = Decimal(str(file_size_kb))
        except (InvalidOperation, ValueError):
            raise BadRequestError("file_size_kb must be a number.", context={"file_size_kb": file_size_kb})
        if size <= 0 or size > _max_size_kb():
            raise BadRequestError(
                "File size out of range.",
                context={"file_size_kb": str(size), "max_size_kb": str(_max_size_kb())},
            )

        medical_file = MedicalFile.objects.create(
            patient=patient,
            laborant_id=actor.laborant_id,
            file_name=file_name,
            file_url=file_url,
            file_type=file_type,
            file_size_kb=size,
            test_name=test_name,
            test_date=test_date,
            description=description or None,
        )

        AuditService.log(
            event_code="medical_file.uploaded",
            entity_type=ENTITY_TYPE,
            entity_id=medical_file.id,
            actor_user_id=actor.user_id,
            metadata={"patient_id": patient.id, "file_type": file_type, "request_id": request_id},
        )
        logger.info(
            "Medical file %s registered for patient %s by user %s",
            medical_file.id,
            patient.id,
            actor.user_id,
        )

        if request_id not in (None, ""):
            # Upload-and-complete: a failed confirm rolls the upload back too
            LabRequestService.confirm_with_file(actor=actor, request_id=request_id, medical_file_id=medical_file.id)

        return _load(medical_file.id)

    # ----------------------------
    # Reads
    # ----------------------------
    @staticmethod
    def get_file(*, actor: Actor, file_id) -> MedicalFile:
        medical_file = _load(file_id)

        if actor.role in (Role.ADMIN, Role.DOCTOR):
            return medical_file
        if actor.role == Role.PATIENT and actor.patient_id and medical_file.patient_id == actor.patient_id:
            return medical_file
        if actor.role == Role.LABORANT and actor.laborant_id and medical_file.laborant_id == actor.laborant_id:
            return medical_file

        raise ForbiddenError("Access denied.", context={"medical_file_id": medical_file.id})

    @staticmethod
    def list_for_patient(*, actor: Actor, patient_id) -> QuerySet[MedicalFile]:
        _require_roles(actor, {Role.DOCTOR.value, Role.ADMIN.value}, message="Only doctors and admins can list patient files.")
        patient = find_patient(patient_id)
        if patient is None:
            raise NotFoundError("Patient not found.", context={"patient_id": patient_id})
        return files_for_patient(patient.id)

    @staticmethod
    def list_mine(*, actor: Actor) -> QuerySet[MedicalFile]:
        _require_roles(actor, {Role.PATIENT.value}, message="Only patients have own medical files.")
        if not actor.patient_id:
            return MedicalFile.objects.none()
        return files_for_patient(actor.patient_id)

    @staticmethod
    def list_uploads(*, actor: Actor) -> QuerySet[MedicalFile]:
        _require_roles(actor, {Role.LABORANT.value}, message="Only laborants have uploads.")
        if not actor.laborant_id:
            return MedicalFile.objects.none()
        return files_uploaded_by(actor.laborant_id)

    @staticmethod
    def list_by_laborant(*, actor: Actor, laborant_id) -> QuerySet[MedicalFile]:
        _require_roles(actor, {Role.ADMIN.value}, message="Only admins can list another laborant's uploads.")
        laborant = find_laborant(laborant_id)
        if laborant is None:
            raise NotFoundError("Laborant not found.", context={"laborant_id": laborant_id})
        return files_uploaded_by(laborant.id)

    # ----------------------------
    # Deletes
    # ----------------------------
    @staticmethod
    @transaction.atomic
    def soft_delete(*, actor: Actor, file_id) -> MedicalFile:
        """
        Tombstones the file. A LabRequest completed with it keeps pointing to it.
        """
        medical_file = _load(file_id)

        if not actor.is_admin:
            own_upload = (
                actor.role == Role.LABORANT
                and actor.laborant_id is not None
                and medical_file.laborant_id == actor.laborant_id
            )
            if not own_upload:
                raise ForbiddenError(
                    "Only the uploading laborant or an admin can delete this file.",
                    context={"medical_file_id": medical_file.id},
                )

        updated = MedicalFile.objects.filter(id=medical_file.id, deleted_at__isnull=True).update(
            deleted_at=timezone.now(),
            updated_at=timezone.now(),
        )
        if updated != 1:
            raise NotFoundError("Medical file not found.", context={"medical_file_id": medical_file.id})

        AuditService.log(
            event_code="medical_file.deleted",
            entity_type=ENTITY_TYPE,
            entity_id=medical_file.id,
            actor_user_id=actor.user_id,
            metadata={"request_id": medical_file.request_id},
        )
        logger.info("Medical file %s soft-deleted by user %s", medical_file.id, actor.user_id)

        medical_file.refresh_from_db()
        return medical_file

    @staticmethod
    @transaction.atomic
    def hard_delete(*, actor: Actor, file_id) -> None:
        if not actor.is_admin:
            raise ForbiddenError("Only admins can purge medical files.", context={"medical_file_id": file_id})

        medical_file = _load(file_id, include_deleted=True)
        medical_file = MedicalFile.objects.select_for_update().get(id=medical_file.id)

        linked = medical_file.request_id is not None or LabRequest.objects.filter(medical_file_id=medical_file.id).exists()
        if linked:
            raise ConflictError(
                "Medical file completes a lab request and cannot be purged.",
                context={"medical_file_id": medical_file.id, "request_id": medical_file.request_id},
            )

        file_pk = medical_file.id
        medical_file.delete()

        AuditService.log(
            event_code="medical_file.purged",
            entity_type=ENTITY_TYPE,
            entity_id=file_pk,
            actor_user_id=actor.user_id,
            metadata={"patient_id": medical_file.patient_id, "file_name": medical_file.file_name},
        )
        logger.warning("Medical file %s purged by user %s", file_pk, actor.user_id)
