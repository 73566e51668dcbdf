# clinic_core/medical_files/permissions.py
from __future__ import annotations

from clinic_core.common.permissions import (
    ROLE_ADMIN,
    ROLE_DOCTOR,
    ROLE_LABORANT,
    ROLE_PATIENT,
    BaseRolePermission,
)


class MedicalFilePermission(BaseRolePermission):
    """
    Coarse role gate for MedicalFileViewSet (ADMIN always passes).
    Ownership rules (own files, own uploads) are enforced in MedicalFileService.
    """
    allowed_roles_per_action = {
        "list": {ROLE_DOCTOR},
        "retrieve": {ROLE_DOCTOR, ROLE_LABORANT, ROLE_PATIENT},
        "create": {ROLE_LABORANT},
        "destroy": {ROLE_LABORANT},
        "mine": {ROLE_PATIENT},
        "uploads": {ROLE_LABORANT},
        "purge": {ROLE_ADMIN},
    }
