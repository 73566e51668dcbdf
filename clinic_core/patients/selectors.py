# clinic_core/patients/selectors.py
from __future__ import annotations

from clinic_core.patients.models import Patient


def find_patient(patient_id) -> Patient | None:
    """Patient directory lookup; None for unknown or malformed ids."""
    try:
        pid = int(patient_id)
    except (TypeError, ValueError):
        return None
    return Patient.objects.select_related("user").filter(id=pid).first()


def patient_id_for_user(user_id: int) -> int | None:
    return Patient.objects.filter(user_id=user_id).values_list("id", flat=True).first()
