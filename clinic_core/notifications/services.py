# clinic_core/notifications/services.py
from __future__ import annotations

import logging
from typing import Any, Dict

from django.db import transaction

from clinic_core.common.events import handlers_for

logger = logging.getLogger(__name__)


class Notifier:
    """
    Fire-and-forget notification sink.

    Events are dispatched only after the surrounding transaction commits; a rolled back
    transition never notifies. Handler failures are logged and dropped so they can never
    undo or fail the transition that triggered them.
    """

    @staticmethod
    def notify(event_kind: str, payload: Dict[str, Any]) -> None:
        data = dict(payload)
        transaction.on_commit(lambda: Notifier.dispatch(event_kind, data))

    @staticmethod
    def dispatch(event_kind: str, payload: Dict[str, Any]) -> int:
        delivered = 0
        for handler in handlers_for(event_kind):
            try:
                handler(payload)
            except Exception:
                logger.exception(
                    "Notification handler %s failed for %s (payload=%s)",
                    getattr(handler, "__name__", repr(handler)),
                    event_kind,
                    payload,
                )
                continue
            delivered += 1
        logger.debug("Dispatched %s to %d handler(s)", event_kind, delivered)
        return delivered
