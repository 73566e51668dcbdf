from django.contrib import admin

from clinic_core.patients.models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "phone", "blood_type", "date_of_birth", "created_at")
    list_filter = ("blood_type", "gender")
    search_fields = ("user__first_name", "user__last_name", "user__email", "phone")
    ordering = ("-created_at",)
