# clinic_core/medical_files/models.py
from django.db import models

from clinic_core.common.models import SoftDeleteModel
from clinic_core.iam.models import Laborant
from clinic_core.patients.models import Patient


class MedicalFile(SoftDeleteModel):
    """
    Stored test-result artifact (PDF/image). Binary content lives in the file store;
    this row only keeps the stored-file descriptor.

    `request` is the back-reference to the LabRequest this file completes. It is written
    only by the lab request linker and never moves to another request once set.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="medical_files")
    # Null for orphaned files whose uploader account is gone
    laborant = models.ForeignKey(
        Laborant,
        on_delete=models.SET_NULL,
        related_name="uploaded_files",
        null=True,
        blank=True,
    )

    file_name = models.CharField(max_length=255)
    file_url = models.CharField(max_length=512)
    file_type = models.CharField(max_length=128)
    file_size_kb = models.DecimalField(max_digits=12, decimal_places=2)

    test_name = models.CharField(max_length=255)
    test_date = models.DateField()
    description = models.TextField(null=True, blank=True)

    request = models.OneToOneField(
        "lab_requests.LabRequest",
        on_delete=models.PROTECT,
        related_name="attached_file",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "medical_files_medical_file"
        indexes = [
            models.Index(fields=["patient", "deleted_at"], name="mf_patient_deleted_idx"),
            models.Index(fields=["laborant", "deleted_at"], name="mf_laborant_deleted_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.file_name} ({self.test_name})"
