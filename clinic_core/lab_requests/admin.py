# clinic_core/lab_requests/admin.py
from __future__ import annotations

from django.contrib import admin

from clinic_core.lab_requests.models import LabRequest


@admin.register(LabRequest)
class LabRequestAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "file_title",
        "patient",
        "status",
        "assignee_laborant",
        "medical_file",
        "requested_at",
        "completed_at",
    )
    list_filter = ("status", "requested_at")
    search_fields = ("id", "file_title", "patient__user__username", "patient__user__last_name")
    raw_id_fields = ("patient", "created_by_user", "assignee_laborant")
    # Lifecycle columns move only through LabRequestService
    readonly_fields = (
        "status",
        "medical_file",
        "assigned_at",
        "completed_at",
        "canceled_at",
        "created_at",
        "updated_at",
    )
    ordering = ("-requested_at",)
