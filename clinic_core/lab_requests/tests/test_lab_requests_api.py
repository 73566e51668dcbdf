import pytest
from rest_framework.test import APIClient

from clinic_core.lab_requests.models import LabRequestStatus


pytestmark = pytest.mark.django_db

BASE = "/api/v1/lab-requests/"


def test_unauthenticated_is_rejected_with_envelope(db):
    res = APIClient().get(BASE)

    assert res.status_code in (401, 403)
    assert res.data["error"]["code"] == "not_authenticated"
    assert res.data["error"]["request_id"]


def test_doctor_creates_and_reads_projection(client_for, doctor_user, patient, laborant):
    api = client_for(doctor_user)

    res = api.post(
        BASE,
        {"patient_id": patient.id, "file_title": "Lipid panel", "notes": "fasting", "assignee_laborant_id": laborant.id},
        format="json",
    )
    assert res.status_code == 201, res.data
    body = res.data
    assert body["status"] == LabRequestStatus.ASSIGNED
    assert body["patient_id"] == patient.id
    assert body["patient_name"] == "John Doe"
    assert body["created_by_user_id"] == doctor_user.id
    assert body["created_by_name"] == "Greg House"
    assert body["assignee_laborant_id"] == laborant.id
    assert body["assignee_name"] == "Anna Lab"
    assert body["medical_file_id"] is None
    for key in ("requested_at", "assigned_at", "completed_at", "canceled_at"):
        assert key in body

    res = api.get(f"{BASE}{body['id']}/")
    assert res.status_code == 200
    assert res.data["id"] == body["id"]


def test_create_validation_error_uses_envelope(client_for, doctor_user):
    res = client_for(doctor_user).post(BASE, {"file_title": "CBC"}, format="json")

    assert res.status_code == 400
    assert res.data["error"]["code"] == "validation_error"
    assert "patient_id" in res.data["error"]["details"]


def test_laborant_cannot_create(client_for, laborant_user, patient):
    res = client_for(laborant_user).post(BASE, {"patient_id": patient.id, "file_title": "CBC"}, format="json")

    assert res.status_code == 403
    assert res.data["error"]["code"] == "permission_denied"


@pytest.mark.parametrize("method", ["put", "post"])
def test_claim_then_confirm_flow(method, client_for, make_request, make_file, laborant_user, laborant):
    lr = make_request()
    mf = make_file()
    api = client_for(laborant_user)

    res = getattr(api, method)(f"{BASE}{lr.id}/claim/", {}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["status"] == LabRequestStatus.ASSIGNED
    assert res.data["assignee_laborant_id"] == laborant.id

    res = getattr(api, method)(f"{BASE}{lr.id}/confirm/", {"medical_file_id": mf.id}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["status"] == LabRequestStatus.COMPLETED
    assert res.data["medical_file_id"] == mf.id
    assert res.data["completed_at"] is not None


def test_lost_claim_is_409_with_details(client_for, make_request, laborant, other_laborant_user):
    lr = make_request(assignee=laborant.id)

    res = client_for(other_laborant_user).post(f"{BASE}{lr.id}/claim/")

    assert res.status_code == 409
    err = res.data["error"]
    assert err["code"] == "conflict"
    assert err["details"]["request_id"] == lr.id
    assert err["details"]["transition"] == "claim"
    assert err["details"]["status"] == LabRequestStatus.ASSIGNED


def test_assign_via_put(client_for, make_request, doctor_user, laborant_user, laborant):
    lr = make_request()

    res = client_for(doctor_user).put(
        f"{BASE}{lr.id}/assign/",
        {"assignee_laborant_id": laborant_user.id},
        format="json",
    )

    assert res.status_code == 200, res.data
    assert res.data["assignee_laborant_id"] == laborant.id


def test_cancel_only_via_post(client_for, make_request, doctor_user):
    lr = make_request()
    api = client_for(doctor_user)

    assert api.put(f"{BASE}{lr.id}/cancel/").status_code == 405

    res = api.post(f"{BASE}{lr.id}/cancel/")
    assert res.status_code == 200
    assert res.data["status"] == LabRequestStatus.CANCELED


def test_confirm_missing_file_is_400(client_for, make_request, laborant_user):
    lr = make_request()

    res = client_for(laborant_user).post(f"{BASE}{lr.id}/confirm/", {}, format="json")

    assert res.status_code == 400
    assert res.data["error"]["code"] == "bad_request"


def test_unknown_request_is_404(client_for, doctor_user):
    res = client_for(doctor_user).get(f"{BASE}999999/")

    assert res.status_code == 404
    assert res.data["error"]["code"] == "not_found"


def test_list_is_paginated_and_scoped_for_patient(client_for, make_request, other_patient, patient_user):
    for i in range(3):
        make_request(title=f"own-{i}")
    make_request(title="foreign", for_patient=other_patient)

    res = client_for(patient_user).get(BASE, {"page_size": 2})

    assert res.status_code == 200
    assert res.data["count"] == 3
    assert len(res.data["results"]) == 2
    assert res.data["next"] is not None
    assert all(r["file_title"].startswith("own-") for r in res.data["results"])


def test_request_id_header_is_echoed_in_errors(client_for, doctor_user):
    res = client_for(doctor_user).get(f"{BASE}999999/", HTTP_X_REQUEST_ID="trace-123")

    assert res.data["error"]["request_id"] == "trace-123"
