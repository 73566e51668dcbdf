from django.apps import AppConfig


class MedicalFilesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "clinic_core.medical_files"
