# clinic_core/medical_files/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.medical_files.models import MedicalFile


class MedicalFileSerializer(serializers.ModelSerializer):
    patient_id = serializers.IntegerField(read_only=True)
    laborant_id = serializers.IntegerField(read_only=True, allow_null=True)
    request_id = serializers.IntegerField(read_only=True, allow_null=True)
    uploaded_by_name = serializers.SerializerMethodField()

    class Meta:
        model = MedicalFile
        fields = [
            "id",
            "patient_id",
            "laborant_id",
            "uploaded_by_name",
            "file_name",
            "file_url",
            "file_type",
            "file_size_kb",
            "test_name",
            "test_date",
            "description",
            "request_id",
            "deleted_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_uploaded_by_name(self, obj: MedicalFile) -> str | None:
        if obj.laborant_id is None:
            return None
        return obj.laborant.full_name


class MedicalFileCreateSerializer(serializers.Serializer):
    """
    Descriptor of a file already stored by the file store.
    Passing request_id completes that lab request with the new file in the same transaction.
    """
    patient_id = serializers.IntegerField()
    file_name = serializers.CharField(max_length=255)
    file_url = serializers.CharField(max_length=512)
    file_type = serializers.CharField(max_length=128)
    file_size_kb = serializers.DecimalField(max_digits=12, decimal_places=2)
    test_name = serializers.CharField(max_length=255)
    test_date = serializers.DateField()
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    request_id = serializers.IntegerField(required=False, allow_null=True)
