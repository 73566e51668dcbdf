import pytest
from django.utils import timezone

from clinic_core.common.api.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from clinic_core.lab_requests.models import LabRequest, LabRequestStatus
from clinic_core.lab_requests.services import LabRequestService


pytestmark = pytest.mark.django_db


def _complete(lr, make_file, laborant_user, actor):
    mf = make_file(name=f"req-{lr.id}.pdf")
    return LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=lr.id, medical_file_id=mf.id), mf


# ----------------------------
# create
# ----------------------------
@pytest.mark.parametrize("creator", ["laborant_user", "patient_user", "cashier_user"])
def test_create_requires_doctor_or_admin(creator, request, patient, actor):
    user = request.getfixturevalue(creator)
    with pytest.raises(ForbiddenError):
        LabRequestService.create_request(actor=actor(user), patient_id=patient.id, file_title="CBC")


def test_create_unknown_patient_is_not_found(doctor_user, actor):
    with pytest.raises(NotFoundError):
        LabRequestService.create_request(actor=actor(doctor_user), patient_id=999999, file_title="CBC")


@pytest.mark.parametrize("title", ["", "   ", None])
def test_create_blank_title_is_bad_request(title, doctor_user, patient, actor):
    with pytest.raises(BadRequestError):
        LabRequestService.create_request(actor=actor(doctor_user), patient_id=patient.id, file_title=title)


def test_create_unknown_assignee_is_not_found(doctor_user, patient, actor):
    with pytest.raises(NotFoundError):
        LabRequestService.create_request(
            actor=actor(doctor_user),
            patient_id=patient.id,
            file_title="CBC",
            assignee_laborant_id=999999,
        )
    assert LabRequest.objects.count() == 0


# ----------------------------
# assign
# ----------------------------
def test_assign_by_other_doctor_is_forbidden(make_request, other_doctor_user, laborant, actor):
    lr = make_request()
    with pytest.raises(ForbiddenError):
        LabRequestService.assign_request(actor=actor(other_doctor_user), request_id=lr.id, assignee_laborant_id=laborant.id)


def test_assign_unknown_laborant_is_not_found(make_request, doctor_user, actor):
    lr = make_request()
    with pytest.raises(NotFoundError):
        LabRequestService.assign_request(actor=actor(doctor_user), request_id=lr.id, assignee_laborant_id=999999)


def test_assign_unknown_request_is_not_found(doctor_user, laborant, actor):
    with pytest.raises(NotFoundError):
        LabRequestService.assign_request(actor=actor(doctor_user), request_id=999999, assignee_laborant_id=laborant.id)


def test_assign_terminal_request_is_conflict(make_request, make_file, doctor_user, laborant, laborant_user, actor):
    canceled = make_request()
    LabRequestService.cancel_request(actor=actor(doctor_user), request_id=canceled.id)
    completed, _ = _complete(make_request(), make_file, laborant_user, actor)

    for lr in (canceled, completed):
        with pytest.raises(ConflictError) as exc:
            LabRequestService.assign_request(actor=actor(doctor_user), request_id=lr.id, assignee_laborant_id=laborant.id)
        assert exc.value.context["transition"] == "assign"


def test_assign_terminal_request_to_unknown_laborant_is_conflict(make_request, doctor_user, actor):
    lr = make_request()
    LabRequestService.cancel_request(actor=actor(doctor_user), request_id=lr.id)

    with pytest.raises(ConflictError) as exc:
        LabRequestService.assign_request(actor=actor(doctor_user), request_id=lr.id, assignee_laborant_id=999999)
    assert exc.value.context["status"] == LabRequestStatus.CANCELED


def test_reassign_refused_when_disabled(settings, make_request, doctor_user, laborant, other_laborant, actor):
    settings.LAB_REQUESTS_ALLOW_REASSIGN = False
    lr = make_request(assignee=laborant.id)

    with pytest.raises(ConflictError):
        LabRequestService.assign_request(
            actor=actor(doctor_user),
            request_id=lr.id,
            assignee_laborant_id=other_laborant.id,
        )

    lr.refresh_from_db()
    assert lr.assignee_laborant_id == laborant.id


# ----------------------------
# claim
# ----------------------------
def test_claim_by_non_laborant_is_forbidden(make_request, doctor_user, actor):
    lr = make_request()
    with pytest.raises(ForbiddenError):
        LabRequestService.claim_request(actor=actor(doctor_user), request_id=lr.id)


def test_claim_assigned_request_is_conflict(make_request, laborant, other_laborant_user, actor):
    lr = make_request(assignee=laborant.id)

    with pytest.raises(ConflictError) as exc:
        LabRequestService.claim_request(actor=actor(other_laborant_user), request_id=lr.id)

    assert exc.value.context["status"] == LabRequestStatus.ASSIGNED
    lr.refresh_from_db()
    assert lr.assignee_laborant_id == laborant.id


def test_claim_canceled_request_is_conflict(make_request, doctor_user, laborant_user, actor):
    lr = make_request()
    LabRequestService.cancel_request(actor=actor(doctor_user), request_id=lr.id)

    with pytest.raises(ConflictError):
        LabRequestService.claim_request(actor=actor(laborant_user), request_id=lr.id)


def test_claim_unknown_request_is_not_found(laborant_user, actor):
    with pytest.raises(NotFoundError):
        LabRequestService.claim_request(actor=actor(laborant_user), request_id=999999)


# ----------------------------
# confirm
# ----------------------------
def test_confirm_by_other_laborant_is_forbidden(make_request, make_file, laborant, other_laborant_user, actor):
    lr = make_request(assignee=laborant.id)
    mf = make_file()

    with pytest.raises(ForbiddenError):
        LabRequestService.confirm_with_file(actor=actor(other_laborant_user), request_id=lr.id, medical_file_id=mf.id)

    mf.refresh_from_db()
    assert mf.request_id is None


def test_confirm_canceled_request_is_conflict(make_request, make_file, doctor_user, laborant_user, actor):
    lr = make_request()
    LabRequestService.cancel_request(actor=actor(doctor_user), request_id=lr.id)
    mf = make_file()

    with pytest.raises(ConflictError):
        LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=lr.id, medical_file_id=mf.id)

    mf.refresh_from_db()
    assert mf.request_id is None


def test_confirm_canceled_request_without_file_is_conflict(make_request, doctor_user, laborant_user, actor):
    lr = make_request()
    LabRequestService.cancel_request(actor=actor(doctor_user), request_id=lr.id)

    with pytest.raises(ConflictError) as exc:
        LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=lr.id, medical_file_id=None)
    assert exc.value.context["status"] == LabRequestStatus.CANCELED


@pytest.mark.parametrize("file_arg", ["same", None])
def test_reconfirm_by_other_laborant_is_forbidden(file_arg, make_request, make_file, laborant_user, other_laborant_user, actor):
    lr, mf = _complete(make_request(), make_file, laborant_user, actor)
    fid = mf.id if file_arg == "same" else None

    with pytest.raises(ForbiddenError):
        LabRequestService.confirm_with_file(actor=actor(other_laborant_user), request_id=lr.id, medical_file_id=fid)

    again = LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=lr.id, medical_file_id=fid)
    assert again.status == LabRequestStatus.COMPLETED
    assert again.medical_file_id == mf.id


def test_confirm_completed_with_other_file_is_conflict(make_request, make_file, laborant_user, actor):
    lr, first = _complete(make_request(), make_file, laborant_user, actor)
    second = make_file(name="second.pdf")

    with pytest.raises(ConflictError):
        LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=lr.id, medical_file_id=second.id)

    lr.refresh_from_db()
    assert lr.medical_file_id == first.id


def test_confirm_without_file_on_open_request_is_bad_request(make_request, laborant_user, actor):
    lr = make_request()
    with pytest.raises(BadRequestError):
        LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=lr.id, medical_file_id=None)


def test_confirm_file_already_linked_elsewhere_is_conflict(make_request, make_file, laborant_user, actor):
    first, mf = _complete(make_request(), make_file, laborant_user, actor)
    other = make_request(title="Lipid panel")

    with pytest.raises(ConflictError):
        LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=other.id, medical_file_id=mf.id)

    other.refresh_from_db()
    # The implicit claim is rolled back with the failed link
    assert other.status == LabRequestStatus.PENDING
    assert other.assignee_laborant_id is None
    mf.refresh_from_db()
    assert mf.request_id == first.id


def test_confirm_with_other_patients_file_is_bad_request(make_request, make_file, other_patient, laborant_user, actor):
    lr = make_request()
    foreign = make_file(for_patient=other_patient)

    with pytest.raises(BadRequestError):
        LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=lr.id, medical_file_id=foreign.id)

    lr.refresh_from_db()
    assert lr.status == LabRequestStatus.PENDING


def test_confirm_with_deleted_file_is_not_found(make_request, make_file, laborant_user, actor):
    lr = make_request()
    mf = make_file()
    mf.deleted_at = timezone.now()
    mf.save(update_fields=["deleted_at"])

    with pytest.raises(NotFoundError):
        LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=lr.id, medical_file_id=mf.id)


def test_confirm_with_unknown_file_is_not_found(make_request, laborant_user, actor):
    lr = make_request()
    with pytest.raises(NotFoundError):
        LabRequestService.confirm_with_file(actor=actor(laborant_user), request_id=lr.id, medical_file_id=999999)


# ----------------------------
# cancel
# ----------------------------
def test_cancel_completed_is_conflict(make_request, make_file, doctor_user, laborant_user, actor):
    lr, mf = _complete(make_request(), make_file, laborant_user, actor)

    with pytest.raises(ConflictError):
        LabRequestService.cancel_request(actor=actor(doctor_user), request_id=lr.id)

    lr.refresh_from_db()
    assert lr.status == LabRequestStatus.COMPLETED
    assert lr.medical_file_id == mf.id


@pytest.mark.parametrize("caller", ["other_doctor_user", "laborant_user", "patient_user"])
def test_cancel_by_non_owner_is_forbidden(caller, request, make_request, actor):
    lr = make_request()
    user = request.getfixturevalue(caller)

    with pytest.raises(ForbiddenError):
        LabRequestService.cancel_request(actor=actor(user), request_id=lr.id)


# ----------------------------
# get
# ----------------------------
def test_patient_sees_only_own_request(make_request, patient_user, other_patient_user, actor):
    lr = make_request()

    assert LabRequestService.get_request(actor=actor(patient_user), request_id=lr.id).id == lr.id
    with pytest.raises(ForbiddenError):
        LabRequestService.get_request(actor=actor(other_patient_user), request_id=lr.id)


def test_get_by_cashier_is_forbidden(make_request, cashier_user, actor):
    lr = make_request()
    with pytest.raises(ForbiddenError):
        LabRequestService.get_request(actor=actor(cashier_user), request_id=lr.id)


def test_get_unknown_is_not_found(doctor_user, actor):
    with pytest.raises(NotFoundError):
        LabRequestService.get_request(actor=actor(doctor_user), request_id=999999)


# ----------------------------
# invariants across a mixed workload
# ----------------------------
def test_state_invariants_hold_after_mixed_transitions(
    make_request, make_file, doctor_user, laborant, laborant_user, other_laborant_user, actor
):
    a = make_request(title="A")
    b = make_request(title="B", assignee=laborant.id)
    c = make_request(title="C")
    d = make_request(title="D")

    LabRequestService.claim_request(actor=actor(other_laborant_user), request_id=a.id)
    _complete(b, make_file, laborant_user, actor)
    LabRequestService.cancel_request(actor=actor(doctor_user), request_id=c.id)
    with pytest.raises(ConflictError):
        LabRequestService.claim_request(actor=actor(laborant_user), request_id=a.id)
    _complete(d, make_file, laborant_user, actor)

    for lr in LabRequest.objects.all():
        if lr.status == LabRequestStatus.PENDING:
            assert lr.assignee_laborant_id is None
        if lr.status in (LabRequestStatus.ASSIGNED, LabRequestStatus.COMPLETED):
            assert lr.assignee_laborant_id is not None
        assert (lr.status == LabRequestStatus.COMPLETED) == (lr.medical_file_id is not None)
        if lr.medical_file_id is not None:
            assert lr.medical_file.request_id == lr.id

    linked = [lr.medical_file_id for lr in LabRequest.objects.exclude(medical_file__isnull=True)]
    assert len(linked) == len(set(linked)) == 2
