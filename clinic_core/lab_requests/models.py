# clinic_core/lab_requests/models.py
from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from clinic_core.common.models import TimeStampedModel
from clinic_core.iam.models import Laborant
from clinic_core.patients.models import Patient


class LabRequestStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    ASSIGNED = "ASSIGNED", "Assigned"
    COMPLETED = "COMPLETED", "Completed"
    CANCELED = "CANCELED", "Canceled"


TERMINAL_STATUSES = frozenset({LabRequestStatus.COMPLETED.value, LabRequestStatus.CANCELED.value})
OPEN_STATUSES = frozenset({LabRequestStatus.PENDING.value, LabRequestStatus.ASSIGNED.value})


class LabRequest(TimeStampedModel):
    """
    A doctor's/admin's ask for a laboratory result to be uploaded for a patient.

    Lifecycle: PENDING -> ASSIGNED -> COMPLETED, PENDING|ASSIGNED -> CANCELED.
    Rows are never deleted. Status, assignment and the file link are written only by
    clinic_core.lab_requests.services / linking.
    """
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="lab_requests")
    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_lab_requests",
    )
    assignee_laborant = models.ForeignKey(
        Laborant,
        on_delete=models.PROTECT,
        related_name="assigned_lab_requests",
        null=True,
        blank=True,
    )

    file_title = models.CharField(max_length=255)
    notes = models.TextField(null=True, blank=True)

    status = models.CharField(
        max_length=16,
        choices=LabRequestStatus.choices,
        default=LabRequestStatus.PENDING,
        db_index=True,
    )

    medical_file = models.OneToOneField(
        "medical_files.MedicalFile",
        on_delete=models.PROTECT,
        related_name="completed_request",
        null=True,
        blank=True,
    )

    requested_at = models.DateTimeField(default=timezone.now, db_index=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "lab_requests_lab_request"
        indexes = [
            models.Index(fields=["status", "requested_at"], name="lr_status_requested_idx"),
            models.Index(fields=["assignee_laborant", "status"], name="lr_assignee_status_idx"),
            models.Index(fields=["patient", "requested_at"], name="lr_patient_requested_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(status=LabRequestStatus.PENDING) | Q(assignee_laborant__isnull=True),
                name="ck_lab_request_pending_unassigned",
            ),
            models.CheckConstraint(
                condition=~Q(status__in=[LabRequestStatus.ASSIGNED, LabRequestStatus.COMPLETED])
                | Q(assignee_laborant__isnull=False),
                name="ck_lab_request_assigned_has_assignee",
            ),
            models.CheckConstraint(
                condition=(Q(status=LabRequestStatus.COMPLETED) & Q(medical_file__isnull=False))
                | (~Q(status=LabRequestStatus.COMPLETED) & Q(medical_file__isnull=True)),
                name="ck_lab_request_completed_iff_file",
            ),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __str__(self) -> str:
        return f"LabRequest#{self.pk} {self.file_title} [{self.status}]"
