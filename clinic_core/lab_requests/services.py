# clinic_core/lab_requests/services.py
from __future__ import annotations

import functools
import logging
from typing import Any, Dict

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from clinic_core.audit.services import AuditService
from clinic_core.common.api.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
)
from clinic_core.iam.directory import Actor, find_laborant
from clinic_core.lab_requests.linking import MedicalFileLinker
from clinic_core.lab_requests.models import OPEN_STATUSES, LabRequest, LabRequestStatus
from clinic_core.lab_requests.permissions import (
    Capability,
    ensure_can_view,
    ensure_creator_or_admin,
    require_capability,
    require_laborant,
)
from clinic_core.lab_requests.selectors import get_lab_request, list_lab_requests
from clinic_core.notifications.services import Notifier
from clinic_core.patients.selectors import find_patient

logger = logging.getLogger(__name__)

ENTITY_TYPE = "LabRequest"


def _transition(fn):
    """
    Logs rejected transitions and surfaces unexpected database failures as InternalError.
    Must wrap outside transaction.atomic so the rollback has already happened.
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except ConflictError as exc:
            logger.warning("%s rejected: %s (details=%s)", fn.__name__, exc.message, exc.context)
            raise
        except DatabaseError as exc:
            logger.exception("Store failure in %s", fn.__name__)
            raise InternalError("Unexpected store failure.", context={"operation": fn.__name__}) from exc

    return wrapper


def _as_id(value, field: str) -> int:
    if value is None or value == "":
        raise BadRequestError(f"{field} is required.", context={"field": field})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequestError(f"{field} must be an integer.", context={"field": field, "value": value})


def _payload(lab_request: LabRequest) -> Dict[str, Any]:
    return {
        "request_id": lab_request.id,
        "status": lab_request.status,
        "patient_id": lab_request.patient_id,
        "created_by_user_id": lab_request.created_by_user_id,
        "assignee_laborant_id": lab_request.assignee_laborant_id,
        "medical_file_id": lab_request.medical_file_id,
        "file_title": lab_request.file_title,
    }


def _record(event_code: str, lab_request: LabRequest, actor: Actor, **metadata) -> None:
    AuditService.log(
        event_code=event_code,
        entity_type=ENTITY_TYPE,
        entity_id=lab_request.id,
        actor_user_id=actor.user_id,
        metadata={"status": lab_request.status, **metadata},
    )
    Notifier.notify(event_code, _payload(lab_request))


def _lock(request_id: int, *, transition: str) -> LabRequest:
    lab_request = LabRequest.objects.select_for_update().filter(id=request_id).first()
    if lab_request is None:
        raise NotFoundError("Lab request not found.", context={"request_id": request_id, "transition": transition})
    return lab_request


def _reload(request_id: int) -> LabRequest:
    lab_request = get_lab_request(request_id)
    if lab_request is None:
        raise NotFoundError("Lab request not found.", context={"request_id": request_id})
    return lab_request


def _claim_pending(*, request_id: int, laborant_id: int) -> int:
    """
    PENDING and unassigned -> ASSIGNED to laborant_id, as a single conditional update.
    Returns rows affected; 0 means the request was not claimable (or someone else won).
    """
    ts = timezone.now()
    return LabRequest.objects.filter(
        id=request_id,
        status=LabRequestStatus.PENDING,
        assignee_laborant__isnull=True,
    ).update(
        assignee_laborant_id=laborant_id,
        status=LabRequestStatus.ASSIGNED,
        assigned_at=ts,
        updated_at=ts,
    )


class LabRequestService:
    """
    Lab request state machine.

      PENDING --assign/claim--> ASSIGNED --confirm--> COMPLETED
      PENDING|ASSIGNED --cancel--> CANCELED

    Every transition runs in one transaction, re-reads current state under lock and
    writes with a status-conditional update. Audit rows share the transaction;
    notifications go out on commit.
    """

    # ----------------------------
    # Create
    # ----------------------------
    @staticmethod
    @_transition
    @transaction.atomic
    def create_request(
        *,
        actor: Actor,
        patient_id,
        file_title: str | None,
        notes: str | None = None,
        assignee_laborant_id=None,
    ) -> LabRequest:
        require_capability(actor, Capability.CREATE)

        pid = _as_id(patient_id, "patient_id")
        title = (file_title or "").strip()
        if not title:
            raise BadRequestError("file_title is required.", context={"field": "file_title"})

        patient = find_patient(pid)
        if patient is None:
            raise NotFoundError("Patient not found.", context={"patient_id": pid})

        laborant = None
        if assignee_laborant_id not in (None, ""):
            laborant = find_laborant(assignee_laborant_id)
            if laborant is None:
                raise NotFoundError("Laborant not found.", context={"assignee_laborant_id": assignee_laborant_id})

        now = timezone.now()
        lab_request = LabRequest.objects.create(
            patient=patient,
            created_by_user_id=actor.user_id,
            assignee_laborant=laborant,
            file_title=title,
            notes=notes or None,
            status=LabRequestStatus.ASSIGNED if laborant else LabRequestStatus.PENDING,
            requested_at=now,
            assigned_at=now if laborant else None,
        )

        logger.info(
            "Lab request %s created by user %s for patient %s (status=%s)",
            lab_request.id,
            actor.user_id,
            patient.id,
            lab_request.status,
        )
        _record("lab_request.created", lab_request, actor, patient_id=patient.id)
        if laborant is not None:
            _record("lab_request.assigned", lab_request, actor, assignee_laborant_id=laborant.id)

        return _reload(lab_request.id)

    # ----------------------------
    # Read
    # ----------------------------
    @staticmethod
    def get_request(*, actor: Actor, request_id) -> LabRequest:
        rid = _as_id(request_id, "request_id")
        lab_request = get_lab_request(rid)
        if lab_request is None:
            raise NotFoundError("Lab request not found.", context={"request_id": rid})
        ensure_can_view(actor, lab_request)
        return lab_request

    @staticmethod
    def list_requests(*, actor: Actor, params):
        require_capability(actor, Capability.VIEW)
        return list_lab_requests(actor=actor, params=params)

    # ----------------------------
    # Assign
    # ----------------------------
    @staticmethod
    @_transition
    @transaction.atomic
    def assign_request(*, actor: Actor, request_id, assignee_laborant_id) -> LabRequest:
        rid = _as_id(request_id, "request_id")
        require_capability(actor, Capability.ASSIGN, request_id=rid)
        if assignee_laborant_id in (None, ""):
            raise BadRequestError("assignee_laborant_id is required.", context={"field": "assignee_laborant_id"})

        lab_request = _lock(rid, transition="assign")
        ensure_creator_or_admin(actor, lab_request, transition="assign")

        if lab_request.is_terminal:
            raise ConflictError(
                f"Cannot assign a {lab_request.status.lower()} request.",
                context={"request_id": rid, "transition": "assign", "status": lab_request.status},
            )

        laborant = find_laborant(assignee_laborant_id)
        if laborant is None:
            raise NotFoundError(
                "Laborant not found.",
                context={"request_id": rid, "assignee_laborant_id": assignee_laborant_id},
            )

        previous = lab_request.assignee_laborant_id
        if lab_request.status == LabRequestStatus.ASSIGNED and previous is not None:
            if previous == laborant.id:
                return _reload(rid)
            if not getattr(settings, "LAB_REQUESTS_ALLOW_REASSIGN", True):
                raise ConflictError(
                    "Request is already assigned to another laborant.",
                    context={"request_id": rid, "transition": "assign", "assignee_laborant_id": previous},
                )
            logger.warning(
                "Lab request %s reassigned from laborant %s to %s by user %s",
                rid,
                previous,
                laborant.id,
                actor.user_id,
            )

        ts = timezone.now()
        updated = LabRequest.objects.filter(id=rid, status__in=OPEN_STATUSES).update(
            assignee_laborant_id=laborant.id,
            status=LabRequestStatus.ASSIGNED,
            assigned_at=ts,
            updated_at=ts,
        )
        if updated != 1:
            raise ConflictError("Request changed concurrently (retry).", context={"request_id": rid, "transition": "assign"})

        lab_request.refresh_from_db()
        logger.info("Lab request %s assigned to laborant %s by user %s", rid, laborant.id, actor.user_id)
        _record(
            "lab_request.assigned",
            lab_request,
            actor,
            assignee_laborant_id=laborant.id,
            previous_assignee_laborant_id=previous,
        )
        return _reload(rid)

    # ----------------------------
    # Claim
    # ----------------------------
    @staticmethod
    @_transition
    @transaction.atomic
    def claim_request(*, actor: Actor, request_id) -> LabRequest:
        rid = _as_id(request_id, "request_id")
        require_capability(actor, Capability.CLAIM, request_id=rid)
        laborant_id = require_laborant(actor, transition="claim", request_id=rid)

        if _claim_pending(request_id=rid, laborant_id=laborant_id) != 1:
            current = LabRequest.objects.filter(id=rid).first()
            if current is None:
                raise NotFoundError("Lab request not found.", context={"request_id": rid, "transition": "claim"})
            raise ConflictError(
                "Request is not available to claim.",
                context={
                    "request_id": rid,
                    "transition": "claim",
                    "status": current.status,
                    "assignee_laborant_id": current.assignee_laborant_id,
                },
            )

        lab_request = _reload(rid)
        logger.info("Lab request %s claimed by laborant %s", rid, laborant_id)
        _record("lab_request.claimed", lab_request, actor, assignee_laborant_id=laborant_id)
        return lab_request

    # ----------------------------
    # Confirm (complete with an uploaded file)
    # ----------------------------
    @staticmethod
    @_transition
    @transaction.atomic
    def confirm_with_file(*, actor: Actor, request_id, medical_file_id) -> LabRequest:
        rid = _as_id(request_id, "request_id")
        require_capability(actor, Capability.CONFIRM, request_id=rid)
        laborant_id = require_laborant(actor, transition="confirm", request_id=rid)

        lab_request = _lock(rid, transition="confirm")

        if lab_request.status == LabRequestStatus.CANCELED:
            raise ConflictError(
                "Cannot confirm a canceled request.",
                context={"request_id": rid, "transition": "confirm", "status": lab_request.status},
            )
        if lab_request.status == LabRequestStatus.COMPLETED and lab_request.assignee_laborant_id != laborant_id:
            # Only the laborant who completed it may re-confirm
            raise ForbiddenError(
                "Request was completed by another laborant.",
                context={"request_id": rid, "transition": "confirm", "status": lab_request.status},
            )

        if medical_file_id in (None, ""):
            # Re-confirming a finished request needs no file
            if lab_request.status == LabRequestStatus.COMPLETED:
                return _reload(rid)
            raise BadRequestError(
                "medical_file_id is required.",
                context={"request_id": rid, "field": "medical_file_id"},
            )
        fid = _as_id(medical_file_id, "medical_file_id")

        if lab_request.status == LabRequestStatus.COMPLETED:
            if lab_request.medical_file_id == fid:
                return _reload(rid)
            raise ConflictError(
                "Request already completed with another file.",
                context={"request_id": rid, "transition": "confirm", "medical_file_id": lab_request.medical_file_id},
            )

        claimed_now = False
        if lab_request.assignee_laborant_id is None:
            if _claim_pending(request_id=rid, laborant_id=laborant_id) != 1:
                raise ConflictError(
                    "Request was claimed concurrently (retry).",
                    context={"request_id": rid, "transition": "confirm"},
                )
            claimed_now = True
        elif lab_request.assignee_laborant_id != laborant_id:
            raise ForbiddenError(
                "Request is assigned to another laborant.",
                context={"request_id": rid, "transition": "confirm"},
            )

        lab_request, linked = MedicalFileLinker.attach(request_id=rid, medical_file_id=fid)

        if claimed_now:
            _record("lab_request.claimed", lab_request, actor, assignee_laborant_id=laborant_id, implicit=True)
        if linked:
            logger.info("Lab request %s completed by laborant %s with file %s", rid, laborant_id, fid)
            _record("lab_request.completed", lab_request, actor, medical_file_id=fid)

        return _reload(rid)

    # ----------------------------
    # Cancel
    # ----------------------------
    @staticmethod
    @_transition
    @transaction.atomic
    def cancel_request(*, actor: Actor, request_id) -> LabRequest:
        rid = _as_id(request_id, "request_id")
        require_capability(actor, Capability.CANCEL, request_id=rid)

        lab_request = _lock(rid, transition="cancel")
        ensure_creator_or_admin(actor, lab_request, transition="cancel")

        if lab_request.status == LabRequestStatus.COMPLETED:
            raise ConflictError(
                "Cannot cancel a completed request.",
                context={"request_id": rid, "transition": "cancel", "status": lab_request.status},
            )
        if lab_request.status == LabRequestStatus.CANCELED:
            return _reload(rid)

        ts = timezone.now()
        updated = LabRequest.objects.filter(id=rid, status__in=OPEN_STATUSES).update(
            status=LabRequestStatus.CANCELED,
            canceled_at=ts,
            updated_at=ts,
        )
        if updated != 1:
            raise ConflictError("Request changed concurrently (retry).", context={"request_id": rid, "transition": "cancel"})

        lab_request.refresh_from_db()
        logger.info("Lab request %s canceled by user %s", rid, actor.user_id)
        _record("lab_request.canceled", lab_request, actor)
        return _reload(rid)
