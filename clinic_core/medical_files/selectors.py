# clinic_core/medical_files/selectors.py
from __future__ import annotations

from django.db.models import QuerySet

from clinic_core.medical_files.models import MedicalFile


def _base() -> QuerySet[MedicalFile]:
    return MedicalFile.objects.select_related("patient__user", "laborant__user")


def get_medical_file(file_id, *, include_deleted: bool = False) -> MedicalFile | None:
    try:
        fid = int(file_id)
    except (TypeError, ValueError):
        return None
    qs = _base() if include_deleted else _base().alive()
    return qs.filter(id=fid).first()


def files_for_patient(patient_id: int) -> QuerySet[MedicalFile]:
    return _base().alive().filter(patient_id=patient_id).order_by("-created_at", "-id")


def files_uploaded_by(laborant_id: int) -> QuerySet[MedicalFile]:
    return _base().alive().filter(laborant_id=laborant_id).order_by("-created_at", "-id")
