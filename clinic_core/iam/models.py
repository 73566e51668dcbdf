# clinic_core/iam/models.py
from django.conf import settings
from django.db import models

from clinic_core.common.models import TimeStampedModel
from clinic_core.iam.roles import Role


class UserProfile(TimeStampedModel):
    """
    Account role anchored to Django's AUTH_USER_MODEL.
    Per-role profile rows (Doctor, Administrator, Laborant, Patient) hang off the same user.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="clinic_profile")
    role = models.CharField(max_length=16, choices=Role.choices, db_index=True)
    phone = models.CharField(max_length=32, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "iam_user_profile"
        indexes = [
            models.Index(fields=["role", "is_active"], name="iam_profile_role_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user.username} ({self.role})"


class Doctor(TimeStampedModel):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="doctor_profile")
    specialization = models.CharField(max_length=128, blank=True)

    class Meta:
        db_table = "iam_doctor"

    def __str__(self) -> str:
        return self.user.get_full_name() or self.user.username


class Administrator(TimeStampedModel):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="admin_profile")

    class Meta:
        db_table = "iam_administrator"

    def __str__(self) -> str:
        return self.user.get_full_name() or self.user.username


class Laborant(TimeStampedModel):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="laborant_profile")
    lab_section = models.CharField(max_length=128, blank=True)

    class Meta:
        db_table = "iam_laborant"

    @property
    def full_name(self) -> str:
        return self.user.get_full_name() or self.user.username

    def __str__(self) -> str:
        return self.full_name
