import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("iam", "0001_initial"),
        ("patients", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="MedicalFile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("file_name", models.CharField(max_length=255)),
                ("file_url", models.CharField(max_length=512)),
                ("file_type", models.CharField(max_length=128)),
                ("file_size_kb", models.DecimalField(decimal_places=2, max_digits=12)),
                ("test_name", models.CharField(max_length=255)),
                ("test_date", models.DateField()),
                ("description", models.TextField(blank=True, null=True)),
                ("deleted_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                (
                    "laborant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="uploaded_files",
                        to="iam.laborant",
                    ),
                ),
                (
                    "patient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="medical_files",
                        to="patients.patient",
                    ),
                ),
            ],
            options={
                "db_table": "medical_files_medical_file",
                "indexes": [
                    models.Index(fields=["patient", "deleted_at"], name="mf_patient_deleted_idx"),
                    models.Index(fields=["laborant", "deleted_at"], name="mf_laborant_deleted_idx"),
                ],
            },
        ),
    ]
