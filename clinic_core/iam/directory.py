# clinic_core/iam/directory.py
from __future__ import annotations

from dataclasses import dataclass

from django.contrib.auth import get_user_model

from clinic_core.common.api.exceptions import NotFoundError
from clinic_core.common.permissions import ROLE_ADMIN, user_roles
from clinic_core.iam.models import Administrator, Doctor, Laborant
from clinic_core.iam.roles import Role
from clinic_core.patients.selectors import patient_id_for_user

# When an account carries several roles (profile + groups), the strongest one wins.
_ROLE_PRECEDENCE = (
    Role.ADMIN,
    Role.DOCTOR,
    Role.LABORANT,
    Role.CASHIER,
    Role.CLEANER,
    Role.PATIENT,
)


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: str | None
    doctor_id: int | None = None
    admin_id: int | None = None
    laborant_id: int | None = None
    patient_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _primary_role(roles: set[str]) -> str | None:
    for role in _ROLE_PRECEDENCE:
        if role.value in roles:
            return role.value
    return None


def _profile_id(model, user_id: int) -> int | None:
    return model.objects.filter(user_id=user_id).values_list("id", flat=True).first()


def actor_for_user(user) -> Actor:
    """
    Build the Actor for an already-loaded user (e.g. request.user).
    """
    uid = user.id
    return Actor(
        user_id=uid,
        role=_primary_role(user_roles(user)),
        doctor_id=_profile_id(Doctor, uid),
        admin_id=_profile_id(Administrator, uid),
        laborant_id=_profile_id(Laborant, uid),
        patient_id=patient_id_for_user(uid),
    )


def resolve_actor(*, user_id: int) -> Actor:
    User = get_user_model()
    user = User.objects.select_related("clinic_profile").filter(id=user_id).first()
    if user is None:
        raise NotFoundError("User not found.", context={"user_id": user_id})
    return actor_for_user(user)


def find_laborant(id_or_user_id) -> Laborant | None:
    """
    Accepts either a laborant-profile id or the laborant's account user id.
    The profile id is tried first.
    """
    try:
        raw = int(id_or_user_id)
    except (TypeError, ValueError):
        return None

    laborant = Laborant.objects.select_related("user").filter(id=raw).first()
    if laborant is not None:
        return laborant
    return Laborant.objects.select_related("user").filter(user_id=raw).first()


def get_request_actor(request) -> Actor:
    """Actor for the authenticated user, cached on the request."""
    actor = getattr(request, "actor", None)
    if actor is None:
        actor = actor_for_user(request.user)
        setattr(request, "actor", actor)
    return actor
