import pytest
from django.http import QueryDict

from clinic_core.common.api.exceptions import BadRequestError, ForbiddenError
from clinic_core.lab_requests.models import LabRequestStatus
from clinic_core.lab_requests.services import LabRequestService


pytestmark = pytest.mark.django_db


def _ids(qs):
    return [lr.id for lr in qs]


@pytest.fixture
def spread(make_request, other_patient, laborant, other_laborant, other_doctor_user):
    """
    pending      - patient, unassigned
    mine         - patient, assigned to laborant
    theirs       - other patient, assigned to other laborant
    by_other_doc - other patient, created by another doctor
    """
    return {
        "pending": make_request(title="pending"),
        "mine": make_request(title="mine", assignee=laborant.id),
        "theirs": make_request(title="theirs", for_patient=other_patient, assignee=other_laborant.id),
        "by_other_doc": make_request(title="by_other_doc", by=other_doctor_user, for_patient=other_patient),
    }


def test_doctor_sees_everything_newest_first(spread, doctor_user, actor):
    qs = LabRequestService.list_requests(actor=actor(doctor_user), params={})

    assert _ids(qs) == [
        spread["by_other_doc"].id,
        spread["theirs"].id,
        spread["mine"].id,
        spread["pending"].id,
    ]


def test_doctor_filters_combine(spread, doctor_user, patient, laborant, other_doctor_user, actor):
    by_patient = LabRequestService.list_requests(actor=actor(doctor_user), params={"patient_id": str(patient.id)})
    assert set(_ids(by_patient)) == {spread["pending"].id, spread["mine"].id}

    by_assignee = LabRequestService.list_requests(
        actor=actor(doctor_user),
        params={"assigned_laborant_id": str(laborant.id)},
    )
    assert _ids(by_assignee) == [spread["mine"].id]

    by_creator = LabRequestService.list_requests(
        actor=actor(doctor_user),
        params={"created_by_user_id": str(other_doctor_user.id)},
    )
    assert _ids(by_creator) == [spread["by_other_doc"].id]


def test_status_filter_accepts_comma_list(spread, doctor_user, actor):
    qs = LabRequestService.list_requests(actor=actor(doctor_user), params=QueryDict("status=pending,ASSIGNED"))
    assert {lr.status for lr in qs} == {LabRequestStatus.PENDING, LabRequestStatus.ASSIGNED}
    assert len(_ids(qs)) == 4

    only_pending = LabRequestService.list_requests(actor=actor(doctor_user), params={"status": "PENDING"})
    assert set(_ids(only_pending)) == {spread["pending"].id, spread["by_other_doc"].id}


def test_unknown_status_is_bad_request(spread, doctor_user, actor):
    with pytest.raises(BadRequestError):
        list(LabRequestService.list_requests(actor=actor(doctor_user), params={"status": "DONE"}))


def test_non_numeric_filter_is_bad_request(spread, doctor_user, actor):
    with pytest.raises(BadRequestError):
        LabRequestService.list_requests(actor=actor(doctor_user), params={"patient_id": "abc"})


def test_laborant_defaults_to_own_assignments(spread, laborant_user, actor):
    qs = LabRequestService.list_requests(actor=actor(laborant_user), params={})
    assert _ids(qs) == [spread["mine"].id]


def test_laborant_with_status_filter_sees_queue(spread, laborant_user, actor):
    qs = LabRequestService.list_requests(actor=actor(laborant_user), params={"status": "PENDING"})
    assert set(_ids(qs)) == {spread["pending"].id, spread["by_other_doc"].id}


def test_laborant_with_assignee_filter(spread, laborant_user, other_laborant, actor):
    qs = LabRequestService.list_requests(
        actor=actor(laborant_user),
        params={"assignee_laborant_id": str(other_laborant.id)},
    )
    assert _ids(qs) == [spread["theirs"].id]


def test_patient_is_pinned_to_own_requests(spread, patient_user, other_patient, actor):
    own = LabRequestService.list_requests(actor=actor(patient_user), params={})
    assert set(_ids(own)) == {spread["pending"].id, spread["mine"].id}

    # Asking for someone else's patient id still returns only own rows
    spoofed = LabRequestService.list_requests(
        actor=actor(patient_user),
        params=QueryDict(f"patient_id={other_patient.id}"),
    )
    assert set(_ids(spoofed)) == {spread["pending"].id, spread["mine"].id}


def test_cashier_cannot_list(spread, cashier_user, actor):
    with pytest.raises(ForbiddenError):
        LabRequestService.list_requests(actor=actor(cashier_user), params={})
