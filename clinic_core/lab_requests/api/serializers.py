# clinic_core/lab_requests/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from clinic_core.lab_requests.models import LabRequest


def _display_name(user) -> str | None:
    if user is None:
        return None
    return user.get_full_name() or user.get_username()


class LabRequestSerializer(serializers.ModelSerializer):
    """Full request projection plus display names for patient, creator and assignee."""

    patient_id = serializers.IntegerField(read_only=True)
    created_by_user_id = serializers.IntegerField(read_only=True)
    assignee_laborant_id = serializers.IntegerField(read_only=True, allow_null=True)
    medical_file_id = serializers.IntegerField(read_only=True, allow_null=True)

    patient_name = serializers.SerializerMethodField()
    created_by_name = serializers.SerializerMethodField()
    assignee_name = serializers.SerializerMethodField()

    class Meta:
        model = LabRequest
        fields = [
            "id",
            "patient_id",
            "patient_name",
            "created_by_user_id",
            "created_by_name",
            "assignee_laborant_id",
            "assignee_name",
            "file_title",
            "notes",
            "status",
            "medical_file_id",
            "requested_at",
            "assigned_at",
            "completed_at",
            "canceled_at",
        ]
        read_only_fields = fields

    def get_patient_name(self, obj: LabRequest) -> str | None:
        return _display_name(obj.patient.user)

    def get_created_by_name(self, obj: LabRequest) -> str | None:
        return _display_name(obj.created_by_user)

    def get_assignee_name(self, obj: LabRequest) -> str | None:
        if obj.assignee_laborant_id is None:
            return None
        return _display_name(obj.assignee_laborant.user)


class LabRequestCreateSerializer(serializers.Serializer):
    patient_id = serializers.IntegerField()
    file_title = serializers.CharField(max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    assignee_laborant_id = serializers.IntegerField(
        required=False,
        allow_null=True,
        help_text="Laborant profile id or the laborant's user id.",
    )


class LabRequestAssignSerializer(serializers.Serializer):
    assignee_laborant_id = serializers.IntegerField(help_text="Laborant profile id or the laborant's user id.")


class LabRequestConfirmSerializer(serializers.Serializer):
    medical_file_id = serializers.IntegerField(
        required=False,
        allow_null=True,
        help_text="Uploaded file to attach. May be omitted only when re-confirming a completed request.",
    )
