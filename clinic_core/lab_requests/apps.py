from django.apps import AppConfig


class LabRequestsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "clinic_core.lab_requests"
