# clinic_core/conftest.py
import datetime
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from clinic_core.iam.directory import actor_for_user
from clinic_core.iam.models import Administrator, Doctor, Laborant, UserProfile
from clinic_core.iam.roles import Role
from clinic_core.lab_requests.services import LabRequestService
from clinic_core.medical_files.models import MedicalFile
from clinic_core.patients.models import Patient

_ROLE_PROFILES = {
    Role.DOCTOR.value: Doctor,
    Role.ADMIN.value: Administrator,
    Role.LABORANT.value: Laborant,
    Role.PATIENT.value: Patient,
}


@pytest.fixture
def make_user(db):
    """
    Create an account with its UserProfile role and the matching per-role profile row
    (Doctor / Administrator / Laborant / Patient).
    """
    User = get_user_model()

    def _make(username: str, role: str, *, email: str | None = None, first_name: str = "", last_name: str = ""):
        user = User.objects.create_user(
            username=username,
            password="testpass",
            email=email or f"{username}@clinic.test",
            first_name=first_name,
            last_name=last_name,
        )
        UserProfile.objects.create(user=user, role=role)
        profile_model = _ROLE_PROFILES.get(Role(role).value)
        if profile_model is not None:
            profile_model.objects.create(user=user)
        return user

    return _make


@pytest.fixture
def doctor_user(make_user):
    return make_user("dr_house", Role.DOCTOR, first_name="Greg", last_name="House")


@pytest.fixture
def other_doctor_user(make_user):
    return make_user("dr_wilson", Role.DOCTOR)


@pytest.fixture
def admin_user(make_user):
    return make_user("admin", Role.ADMIN)


@pytest.fixture
def laborant_user(make_user):
    return make_user("lab_anna", Role.LABORANT, first_name="Anna", last_name="Lab")


@pytest.fixture
def other_laborant_user(make_user):
    return make_user("lab_boris", Role.LABORANT)


@pytest.fixture
def patient_user(make_user):
    return make_user("pat_john", Role.PATIENT, first_name="John", last_name="Doe")


@pytest.fixture
def other_patient_user(make_user):
    return make_user("pat_jane", Role.PATIENT)


@pytest.fixture
def cashier_user(make_user):
    return make_user("cash_carl", Role.CASHIER)


@pytest.fixture
def patient(patient_user):
    return Patient.objects.get(user=patient_user)


@pytest.fixture
def other_patient(other_patient_user):
    return Patient.objects.get(user=other_patient_user)


@pytest.fixture
def laborant(laborant_user):
    return Laborant.objects.get(user=laborant_user)


@pytest.fixture
def other_laborant(other_laborant_user):
    return Laborant.objects.get(user=other_laborant_user)


@pytest.fixture
def actor():
    """actor(user) -> Actor"""
    return actor_for_user


@pytest.fixture
def client_for(db):
    def _client(user):
        c = APIClient()
        c.force_authenticate(user=user)
        return c

    return _client


@pytest.fixture
def make_request(doctor_user, patient):
    """Create a lab request through the engine (doctor as creator by default)."""

    def _make(*, by=None, for_patient=None, title: str = "Complete blood count", assignee=None, notes=None):
        return LabRequestService.create_request(
            actor=actor_for_user(by or doctor_user),
            patient_id=(for_patient or patient).id,
            file_title=title,
            notes=notes,
            assignee_laborant_id=assignee,
        )

    return _make


@pytest.fixture
def make_file(patient, laborant):
    """Create a stored-file descriptor row directly."""

    def _make(*, for_patient=None, uploaded_by=None, name: str = "cbc.pdf"):
        return MedicalFile.objects.create(
            patient=for_patient or patient,
            laborant=uploaded_by if uploaded_by is not None else laborant,
            file_name=name,
            file_url=f"/media/results/{name}",
            file_type="application/pdf",
            file_size_kb=Decimal("120.50"),
            test_name="CBC",
            test_date=datetime.date(2024, 5, 2),
        )

    return _make
