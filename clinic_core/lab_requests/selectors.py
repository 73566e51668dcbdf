# clinic_core/lab_requests/selectors.py
from __future__ import annotations

from typing import Any

from django.db.models import QuerySet

from clinic_core.common.api.exceptions import BadRequestError
from clinic_core.iam.directory import Actor
from clinic_core.iam.roles import Role
from clinic_core.lab_requests.filters import LabRequestFilter
from clinic_core.lab_requests.models import LabRequest

# Any of these in the query turns off the laborant's "my assignments" default
_LABORANT_EXPLICIT_FILTERS = ("assignee_laborant_id", "assigned_laborant_id", "status")


def lab_request_queryset() -> QuerySet[LabRequest]:
    return LabRequest.objects.select_related(
        "patient__user",
        "created_by_user",
        "assignee_laborant__user",
    )


def get_lab_request(request_id) -> LabRequest | None:
    try:
        rid = int(request_id)
    except (TypeError, ValueError):
        return None
    return lab_request_queryset().filter(id=rid).first()


def list_lab_requests(*, actor: Actor, params: Any) -> QuerySet[LabRequest]:
    """
    Role scoped list, newest first.

      - DOCTOR / ADMIN: unrestricted, narrowed only by the supplied filters
      - LABORANT: own assignments unless an assignee or status filter is given
      - PATIENT: always pinned to their own patient id
    """
    data = params.copy() if params is not None else {}
    qs = lab_request_queryset()

    if actor.role == Role.PATIENT:
        if not actor.patient_id:
            return qs.none()
        data["patient_id"] = str(actor.patient_id)

    elif actor.role == Role.LABORANT:
        explicit = any(data.get(key) not in (None, "") for key in _LABORANT_EXPLICIT_FILTERS)
        if not explicit:
            if not actor.laborant_id:
                return qs.none()
            qs = qs.filter(assignee_laborant_id=actor.laborant_id)

    filterset = LabRequestFilter(data=data, queryset=qs)
    if not filterset.is_valid():
        raise BadRequestError("Invalid filters.", context={"fields": filterset.errors.get_json_data()})

    return filterset.qs.order_by("-requested_at", "-id")
