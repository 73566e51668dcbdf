# clinic_core/audit/services.py
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from clinic_core.audit.models import AuditEvent


def _json_safe(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    # Decimals, dates and enum members become plain JSON values
    return json.loads(json.dumps(metadata or {}, cls=DjangoJSONEncoder))


class AuditService:
    """
    Writes immutable AuditEvent rows.

    Rows are created inside the caller's transaction, so a transition that rolls back
    leaves no trace here.
    """

    @staticmethod
    @transaction.atomic
    def log(
        *,
        event_code: str,
        entity_type: str,
        entity_id: int,
        actor_user_id: int | None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        return AuditEvent.objects.create(
            event_code=event_code,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_user_id=actor_user_id,
            metadata=_json_safe(metadata),
        )
