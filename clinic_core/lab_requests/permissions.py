# clinic_core/lab_requests/permissions.py

from __future__ import annotations

from rest_framework.permissions import BasePermission

from clinic_core.common.api.exceptions import ForbiddenError
from clinic_core.iam.directory import Actor, get_request_actor
from clinic_core.iam.roles import Role


class Capability:
    CREATE = "create"
    VIEW = "view"
    ASSIGN = "assign"
    CLAIM = "claim"
    CONFIRM = "confirm"
    CANCEL = "cancel"


# Role -> what it may do with lab requests. Ownership (creator-or-admin) and
# laborant identity are checked on top of this by the guards below.
ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    Role.ADMIN.value: frozenset({Capability.CREATE, Capability.VIEW, Capability.ASSIGN, Capability.CANCEL}),
    Role.DOCTOR.value: frozenset({Capability.CREATE, Capability.VIEW, Capability.ASSIGN, Capability.CANCEL}),
    Role.LABORANT.value: frozenset({Capability.VIEW, Capability.CLAIM, Capability.CONFIRM}),
    Role.PATIENT.value: frozenset({Capability.VIEW}),
    Role.CASHIER.value: frozenset(),
    Role.CLEANER.value: frozenset(),
}


def has_capability(actor: Actor, capability: str) -> bool:
    return capability in ROLE_CAPABILITIES.get(actor.role, frozenset())


def require_capability(actor: Actor, capability: str, *, request_id: int | None = None) -> None:
    if not has_capability(actor, capability):
        raise ForbiddenError(
            f"Role {actor.role or 'NONE'} cannot {capability} lab requests.",
            context={"request_id": request_id, "transition": capability, "role": actor.role},
        )


def ensure_creator_or_admin(actor: Actor, lab_request, *, transition: str) -> None:
    if actor.is_admin:
        return
    if lab_request.created_by_user_id != actor.user_id:
        raise ForbiddenError(
            "Only the creator or an admin can perform this action.",
            context={"request_id": lab_request.id, "transition": transition},
        )


def require_laborant(actor: Actor, *, transition: str, request_id: int | None = None) -> int:
    if not actor.laborant_id:
        raise ForbiddenError(
            f"Only laborants can {transition} requests.",
            context={"request_id": request_id, "transition": transition},
        )
    return actor.laborant_id


def ensure_can_view(actor: Actor, lab_request) -> None:
    require_capability(actor, Capability.VIEW, request_id=lab_request.id)
    if actor.role == Role.PATIENT and lab_request.patient_id != actor.patient_id:
        raise ForbiddenError("Access denied.", context={"request_id": lab_request.id})


class LabRequestPermission(BasePermission):
    """
    Gate every LabRequestViewSet action through the role-capability table.
    Object-level rules (creator-or-admin, assigned laborant, patient ownership)
    are enforced by the service layer.
    """

    message = "You do not have permission to perform this action."

    ACTION_CAPABILITIES = {
        "list": Capability.VIEW,
        "retrieve": Capability.VIEW,
        "create": Capability.CREATE,
        "assign": Capability.ASSIGN,
        "claim": Capability.CLAIM,
        "confirm": Capability.CONFIRM,
        "cancel": Capability.CANCEL,
    }

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        action = getattr(view, "action", None)
        if action is None:
            # Method not routed for this endpoint; the view answers 405
            return True

        capability = self.ACTION_CAPABILITIES.get(action)
        if capability is None:
            return False

        return has_capability(get_request_actor(request), capability)
