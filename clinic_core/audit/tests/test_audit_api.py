import pytest

from clinic_core.lab_requests.services import LabRequestService


pytestmark = pytest.mark.django_db

URL = "/api/v1/audit/events/"


def test_admin_lists_lab_request_trail(client_for, admin_user, make_request, laborant_user, actor):
    lr = make_request()
    LabRequestService.claim_request(actor=actor(laborant_user), request_id=lr.id)
    make_request(title="unrelated")

    res = client_for(admin_user).get(URL, {"entity_type": "LabRequest", "entity_id": lr.id})

    assert res.status_code == 200
    codes = [row["event_code"] for row in res.data]
    assert codes == ["lab_request.claimed", "lab_request.created"]
    assert res.data[0]["actor_user_id"] == laborant_user.id
    assert res.data[0]["actor_name"] == "Anna Lab"
    assert res.data[0]["metadata"]["status"] == "ASSIGNED"
    assert "timestamp" in res.data[0]


def test_filter_by_event_code_and_limit(client_for, admin_user, make_request):
    for i in range(3):
        make_request(title=f"r{i}")

    res = client_for(admin_user).get(URL, {"event_code": "lab_request.created", "limit": 2})

    assert res.status_code == 200
    assert len(res.data) == 2
    assert {row["event_code"] for row in res.data} == {"lab_request.created"}


def test_non_admin_is_forbidden(client_for, doctor_user):
    res = client_for(doctor_user).get(URL)

    assert res.status_code == 403
    assert res.data["error"]["code"] == "permission_denied"


def test_bad_int_param_is_bad_request(client_for, admin_user):
    res = client_for(admin_user).get(URL, {"entity_id": "x"})

    assert res.status_code == 400
    assert res.data["error"]["code"] == "bad_request"
    assert res.data["error"]["details"]["param"] == "entity_id"
