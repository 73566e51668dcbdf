# clinic_core/lab_requests/linking.py
from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from clinic_core.common.api.exceptions import BadRequestError, ConflictError, NotFoundError
from clinic_core.lab_requests.models import LabRequest, LabRequestStatus
from clinic_core.medical_files.models import MedicalFile

logger = logging.getLogger(__name__)


class MedicalFileLinker:
    """
    Binds exactly one MedicalFile to exactly one LabRequest.

    Both rows are locked and re-checked inside one transaction, then written with
    conditional updates: the file's back-reference and the request's completion either
    commit together or not at all. Zero rows affected on either write means another
    transaction got there first.

    Callers (the lab request engine) are expected to have put the request in ASSIGNED
    before linking; the linker itself never assigns.
    """

    @staticmethod
    def attach(*, request_id: int, medical_file_id: int) -> tuple[LabRequest, bool]:
        """
        Returns (lab_request, linked_now). linked_now is False for an idempotent
        re-link of the same file.
        """
        try:
            with transaction.atomic():
                return MedicalFileLinker._attach_locked(request_id=request_id, medical_file_id=medical_file_id)
        except IntegrityError as exc:
            logger.warning(
                "Unique violation linking medical file %s to lab request %s: %s",
                medical_file_id,
                request_id,
                exc,
            )
            raise ConflictError(
                "Medical file could not be linked (possible race, retry).",
                context={"request_id": request_id, "medical_file_id": medical_file_id, "transition": "confirm"},
            ) from exc

    @staticmethod
    def _attach_locked(*, request_id: int, medical_file_id: int) -> tuple[LabRequest, bool]:
        ctx = {"request_id": request_id, "medical_file_id": medical_file_id, "transition": "confirm"}

        lab_request = LabRequest.objects.select_for_update().filter(id=request_id).first()
        if lab_request is None:
            raise NotFoundError("Lab request not found.", context=ctx)

        medical_file = MedicalFile.objects.select_for_update().filter(id=medical_file_id).first()
        if medical_file is None or medical_file.is_deleted:
            raise NotFoundError("Medical file not found.", context=ctx)

        if medical_file.request_id is not None and medical_file.request_id != lab_request.id:
            raise ConflictError(
                "Medical file is already attached to another request.",
                context={**ctx, "attached_request_id": medical_file.request_id},
            )

        if lab_request.medical_file_id is not None:
            if lab_request.medical_file_id == medical_file.id:
                return lab_request, False
            raise ConflictError(
                "Request already completed with another file.",
                context={**ctx, "current_medical_file_id": lab_request.medical_file_id},
            )

        if lab_request.status != LabRequestStatus.ASSIGNED:
            raise ConflictError(
                f"Request cannot be completed from status {lab_request.status}.",
                context={**ctx, "status": lab_request.status},
            )

        if medical_file.patient_id != lab_request.patient_id:
            raise BadRequestError(
                "Medical file belongs to a different patient than the request.",
                context={**ctx, "file_patient_id": medical_file.patient_id, "request_patient_id": lab_request.patient_id},
            )

        ts = timezone.now()

        file_rows = (
            MedicalFile.objects.filter(id=medical_file.id, deleted_at__isnull=True)
            .filter(Q(request__isnull=True) | Q(request_id=lab_request.id))
            .update(request_id=lab_request.id, updated_at=ts)
        )
        if file_rows != 1:
            raise ConflictError("Medical file was attached concurrently (retry).", context=ctx)

        request_rows = LabRequest.objects.filter(
            id=lab_request.id,
            status=LabRequestStatus.ASSIGNED,
            medical_file__isnull=True,
        ).update(
            medical_file_id=medical_file.id,
            status=LabRequestStatus.COMPLETED,
            completed_at=ts,
            updated_at=ts,
        )
        if request_rows != 1:
            # Raising inside the atomic block also rolls back the file-side write
            raise ConflictError("Request changed concurrently (retry).", context=ctx)

        lab_request.refresh_from_db()
        return lab_request, True
