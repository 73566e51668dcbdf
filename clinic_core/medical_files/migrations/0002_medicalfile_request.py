import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("lab_requests", "0001_initial"),
        ("medical_files", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="medicalfile",
            name="request",
            field=models.OneToOneField(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="attached_file",
                to="lab_requests.labrequest",
            ),
        ),
    ]
