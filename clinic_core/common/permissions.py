# clinic_core/common/permissions.py

from __future__ import annotations

from typing import Set

from rest_framework.permissions import BasePermission

from clinic_core.iam.roles import Role

ROLE_PATIENT = Role.PATIENT.value
ROLE_DOCTOR = Role.DOCTOR.value
ROLE_ADMIN = Role.ADMIN.value
ROLE_CASHIER = Role.CASHIER.value
ROLE_LABORANT = Role.LABORANT.value
ROLE_CLEANER = Role.CLEANER.value

ALL_ROLES = frozenset({ROLE_PATIENT, ROLE_DOCTOR, ROLE_ADMIN, ROLE_CASHIER, ROLE_LABORANT, ROLE_CLEANER})


def user_roles(user) -> Set[str]:
    """
    Resolve roles from:
    1) the account role on user.clinic_profile
    2) Django groups named after a role
    Superusers are treated as ADMIN.
    """
    roles: Set[str] = set()

    if not user or not getattr(user, "is_authenticated", False):
        return roles

    if getattr(user, "is_superuser", False):
        roles.add(ROLE_ADMIN)
        return roles

    profile = getattr(user, "clinic_profile", None)
    if profile is not None and profile.role:
        roles.add(str(profile.role))

    if hasattr(user, "groups"):
        roles.update(name for name in user.groups.values_list("name", flat=True) if name in ALL_ROLES)

    return roles


class BaseRolePermission(BasePermission):
    """
    Role gate for ViewSets. Subclasses map each routed action to the roles allowed
    to call it; actions missing from the map are denied. ADMIN passes everywhere.
    Ownership rules live in the services, not here.
    """
    message = "You do not have permission to perform this action."

    allowed_roles_per_action: dict[str, set[str]] = {}

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        action = getattr(view, "action", None)
        if action is None:
            # Method not routed for this endpoint; the view answers 405
            return True

        roles = user_roles(user)
        if ROLE_ADMIN in roles:
            return True
        return bool(roles & self.allowed_roles_per_action.get(action, set()))

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)
