# clinic_core/notifications/subscribers.py
from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail

from clinic_core.common.events import subscribe
from clinic_core.iam.models import Laborant

logger = logging.getLogger(__name__)


def _email_enabled() -> bool:
    return bool(getattr(settings, "LAB_REQUESTS_EMAIL_NOTIFICATIONS", False))


def _send(recipient: str | None, subject: str, body: str) -> bool:
    if not recipient:
        return False
    send_mail(
        subject=subject,
        message=body,
        from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
        recipient_list=[recipient],
    )
    logger.info("Notification e-mail '%s' sent to %s", subject, recipient)
    return True


def _laborant_email(laborant_id) -> str | None:
    if not laborant_id:
        return None
    return Laborant.objects.filter(id=laborant_id).values_list("user__email", flat=True).first()


def _user_email(user_id) -> str | None:
    if not user_id:
        return None
    return get_user_model().objects.filter(id=user_id).values_list("email", flat=True).first()


@subscribe("lab_request.assigned")
@subscribe("lab_request.claimed")
def on_lab_request_assigned(payload: dict) -> None:
    if not _email_enabled():
        return
    _send(
        _laborant_email(payload.get("assignee_laborant_id")),
        f"Lab request #{payload['request_id']} assigned to you",
        f"Lab request \"{payload.get('file_title', '')}\" is waiting for a result upload.",
    )


@subscribe("lab_request.completed")
def on_lab_request_completed(payload: dict) -> None:
    if not _email_enabled():
        return
    _send(
        _user_email(payload.get("created_by_user_id")),
        f"Lab request #{payload['request_id']} completed",
        f"A result file has been attached to lab request \"{payload.get('file_title', '')}\".",
    )


@subscribe("lab_request.canceled")
def on_lab_request_canceled(payload: dict) -> None:
    if not _email_enabled():
        return
    _send(
        _laborant_email(payload.get("assignee_laborant_id")),
        f"Lab request #{payload['request_id']} canceled",
        f"Lab request \"{payload.get('file_title', '')}\" was canceled; no upload is needed.",
    )
