# clinic_core/lab_requests/filters.py
from __future__ import annotations

import django_filters

from clinic_core.common.api.exceptions import BadRequestError
from clinic_core.lab_requests.models import LabRequest, LabRequestStatus


class LabRequestFilter(django_filters.FilterSet):
    """
    Query filters for the lab request list.

    `status` accepts a comma separated list (e.g. PENDING,ASSIGNED).
    `assigned_laborant_id` is kept as an alias of `assignee_laborant_id`.
    """

    status = django_filters.CharFilter(method="filter_status")
    patient_id = django_filters.NumberFilter(field_name="patient_id")
    assignee_laborant_id = django_filters.NumberFilter(field_name="assignee_laborant_id")
    assigned_laborant_id = django_filters.NumberFilter(field_name="assignee_laborant_id")
    created_by_user_id = django_filters.NumberFilter(field_name="created_by_user_id")

    class Meta:
        model = LabRequest
        fields: list[str] = []

    def filter_status(self, queryset, name, value):
        statuses = [s.strip().upper() for s in (value or "").split(",") if s.strip()]
        if not statuses:
            return queryset

        unknown = [s for s in statuses if s not in LabRequestStatus.values]
        if unknown:
            raise BadRequestError(
                "Invalid status filter.",
                context={"status": unknown, "allowed": list(LabRequestStatus.values)},
            )
        return queryset.filter(status__in=statuses)
