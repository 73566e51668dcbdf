# clinic_core/audit/api/serializers.py
from rest_framework import serializers

from clinic_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    timestamp = serializers.DateTimeField(source="occurred_at", read_only=True)
    actor_user_id = serializers.IntegerField(read_only=True, allow_null=True)
    actor_name = serializers.SerializerMethodField()

    class Meta:
        model = AuditEvent
        fields = ["id", "event_code", "entity_type", "entity_id", "actor_user_id", "actor_name", "timestamp", "metadata"]
        read_only_fields = fields

    def get_actor_name(self, obj: AuditEvent) -> str | None:
        user = obj.actor_user
        if user is None:
            return None
        return user.get_full_name() or user.get_username()
