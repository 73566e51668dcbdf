import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("iam", "0001_initial"),
        ("medical_files", "0001_initial"),
        ("patients", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="LabRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("file_title", models.CharField(max_length=255)),
                ("notes", models.TextField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("ASSIGNED", "Assigned"),
                            ("COMPLETED", "Completed"),
                            ("CANCELED", "Canceled"),
                        ],
                        db_index=True,
                        default="PENDING",
                        max_length=16,
                    ),
                ),
                ("requested_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("assigned_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "assignee_laborant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="assigned_lab_requests",
                        to="iam.laborant",
                    ),
                ),
                (
                    "created_by_user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="created_lab_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "medical_file",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="completed_request",
                        to="medical_files.medicalfile",
                    ),
                ),
                (
                    "patient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lab_requests",
                        to="patients.patient",
                    ),
                ),
            ],
            options={
                "db_table": "lab_requests_lab_request",
                "indexes": [
                    models.Index(fields=["status", "requested_at"], name="lr_status_requested_idx"),
                    models.Index(fields=["assignee_laborant", "status"], name="lr_assignee_status_idx"),
                    models.Index(fields=["patient", "requested_at"], name="lr_patient_requested_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("status", "PENDING"), _negated=True)
                        | models.Q(("assignee_laborant__isnull", True)),
                        name="ck_lab_request_pending_unassigned",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("status__in", ["ASSIGNED", "COMPLETED"]), _negated=True)
                        | models.Q(("assignee_laborant__isnull", False)),
                        name="ck_lab_request_assigned_has_assignee",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("status", "COMPLETED"), ("medical_file__isnull", False)),
                            models.Q(models.Q(("status", "COMPLETED"), _negated=True), ("medical_file__isnull", True)),
                            _connector="OR",
                        ),
                        name="ck_lab_request_completed_iff_file",
                    ),
                ],
            },
        ),
    ]
