# clinic_core/patients/models.py
from django.conf import settings
from django.db import models

from clinic_core.common.models import TimeStampedModel


class BloodType(models.TextChoices):
    A_POS = "A+", "A+"
    A_NEG = "A-", "A-"
    B_POS = "B+", "B+"
    B_NEG = "B-", "B-"
    AB_POS = "AB+", "AB+"
    AB_NEG = "AB-", "AB-"
    O_POS = "O+", "O+"
    O_NEG = "O-", "O-"


class Patient(TimeStampedModel):
    """
    Patient profile. Display names come from the linked account.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="patient_profile")

    phone = models.CharField(max_length=32, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=32, blank=True)
    blood_type = models.CharField(max_length=3, choices=BloodType.choices, blank=True)
    address = models.CharField(max_length=255, blank=True)

    class Meta:
        db_table = "patients_patient"
        indexes = [
            models.Index(fields=["phone"], name="patients_phone_idx"),
        ]

    @property
    def full_name(self) -> str:
        return self.user.get_full_name() or self.user.username

    def __str__(self) -> str:
        return self.full_name
