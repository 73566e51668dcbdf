# clinic_core/medical_files/admin.py
from __future__ import annotations

from django.contrib import admin

from clinic_core.medical_files.models import MedicalFile


@admin.register(MedicalFile)
class MedicalFileAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "file_name",
        "test_name",
        "patient",
        "laborant",
        "request",
        "deleted_at",
        "created_at",
    )
    list_filter = ("file_type", "test_date", "deleted_at")
    search_fields = ("id", "file_name", "test_name", "patient__user__username")
    raw_id_fields = ("patient", "laborant")
    readonly_fields = ("request", "deleted_at", "created_at", "updated_at")
    ordering = ("-created_at",)
