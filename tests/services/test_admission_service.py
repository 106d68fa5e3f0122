"""
Admission state engine tests
"""
import pytest

from conftest import ACTOR_ID, HOTEL_ID, OTHER_HOTEL_ID, PROFILE_ID
from hotelpms.domain.enums import HotelRole, JoinRequestStatus, MembershipStatus
from hotelpms.engine.events import EventType
from hotelpms.engine.state_machine import APPROVED, NO_REQUEST, PENDING, REJECTED
from hotelpms.errors import (
    DuplicateRequestError, InvalidStateTransitionError, MembershipConsistencyError,
    MembershipNotFoundError, NetworkError, NotAuthenticatedError, PartialFailureError,
    RequestNotFoundError,
)
from hotelpms.store.base import JOIN_REQUESTS, MEMBERSHIPS, StoreError


def fail_on(monkeypatch, store, method, collection, calls=None):
    """Make ``store.<method>`` raise StoreError for one collection"""
    original = getattr(store, method)

    def wrapper(coll, *args, **kwargs):
        if coll == collection and (calls is None or calls.pop(0)):
            raise StoreError(f"{method} rejected", coll)
        return original(coll, *args, **kwargs)

    monkeypatch.setattr(store, method, wrapper)


def vanish_before_update(monkeypatch, store, collection):
    """Delete the record just before ``store.update`` writes it"""
    original = store.update

    def wrapper(coll, record_id, values):
        if coll == collection:
            store.delete(coll, record_id)
        return original(coll, record_id, values)

    monkeypatch.setattr(store, "update", wrapper)


@pytest.fixture
def join_request(admission_service):
    return admission_service.create_join_request(PROFILE_ID, HOTEL_ID)


class TestCreateJoinRequest:

    def test_creates_request_and_pending_membership(self, admission_service, notifier, publisher):
        request = admission_service.create_join_request(PROFILE_ID, HOTEL_ID)

        assert request.status == JoinRequestStatus.PENDING
        memberships = admission_service.memberships_for(PROFILE_ID, HOTEL_ID)
        assert len(memberships) == 1
        assert memberships[0].status == MembershipStatus.PENDING
        assert memberships[0].role == HotelRole.HOUSEKEEPING
        assert memberships[0].is_active
        notifier.notify_join_request.assert_called_once_with(request.id)
        assert publisher.call_args.args[0].event_type == EventType.JOIN_REQUEST_CREATED
        assert admission_service.admission_state(PROFILE_ID, HOTEL_ID) == PENDING

    def test_second_request_is_duplicate(self, admission_service, join_request, store):
        with pytest.raises(DuplicateRequestError):
            admission_service.create_join_request(PROFILE_ID, HOTEL_ID)
        assert store.count(JOIN_REQUESTS) == 1
        assert store.count(MEMBERSHIPS) == 1

    def test_other_hotel_is_independent(self, admission_service, join_request):
        admission_service.create_join_request(PROFILE_ID, OTHER_HOTEL_ID)
        assert admission_service.admission_state(PROFILE_ID, OTHER_HOTEL_ID) == PENDING

    def test_approved_member_cannot_request_again(self, admission_service, join_request):
        admission_service.approve_join_request(join_request.id, HotelRole.MANAGER, ACTOR_ID)
        with pytest.raises(DuplicateRequestError):
            admission_service.create_join_request(PROFILE_ID, HOTEL_ID)

    def test_rejected_profile_may_request_again(self, admission_service, join_request):
        admission_service.reject_join_request(join_request.id, ACTOR_ID)
        again = admission_service.create_join_request(PROFILE_ID, HOTEL_ID)
        assert again.is_pending

    def test_requires_profile(self, admission_service):
        with pytest.raises(NotAuthenticatedError):
            admission_service.create_join_request(None, HOTEL_ID)

    def test_notification_failure_is_ignored(self, admission_service, notifier, store):
        notifier.notify_join_request.side_effect = RuntimeError("smtp down")
        request = admission_service.create_join_request(PROFILE_ID, HOTEL_ID)
        assert store.get(JOIN_REQUESTS, request.id) is not None

    def test_membership_failure_removes_request(self, admission_service, store, monkeypatch, notifier):
        fail_on(monkeypatch, store, "insert", MEMBERSHIPS)
        with pytest.raises(NetworkError) as exc_info:
            admission_service.create_join_request(PROFILE_ID, HOTEL_ID)

        assert not isinstance(exc_info.value, PartialFailureError)
        assert store.count(JOIN_REQUESTS) == 0
        assert store.count(MEMBERSHIPS) == 0
        notifier.notify_join_request.assert_not_called()

    def test_failed_compensation_is_partial(self, admission_service, store, monkeypatch):
        fail_on(monkeypatch, store, "insert", MEMBERSHIPS)
        fail_on(monkeypatch, store, "delete", JOIN_REQUESTS)
        with pytest.raises(PartialFailureError) as exc_info:
            admission_service.create_join_request(PROFILE_ID, HOTEL_ID)
        assert exc_info.value.committed_step == "create join request"
        assert store.count(JOIN_REQUESTS) == 1


class TestDecisions:

    def test_approve(self, admission_service, join_request, publisher):
        outcome = admission_service.approve_join_request(join_request.id, HotelRole.FRONT_DESK, ACTOR_ID)

        assert outcome.request.status == JoinRequestStatus.ACCEPTED
        assert outcome.membership.status == MembershipStatus.APPROVED
        assert outcome.membership.role == HotelRole.FRONT_DESK
        assert admission_service.pending_requests(HOTEL_ID) == []
        assert admission_service.admission_state(PROFILE_ID, HOTEL_ID) == APPROVED
        assert publisher.call_args.args[0].event_type == EventType.JOIN_REQUEST_APPROVED

    def test_reject_leaves_role(self, admission_service, join_request):
        outcome = admission_service.reject_join_request(join_request.id, ACTOR_ID)
        assert outcome.request.status == JoinRequestStatus.REJECTED
        assert outcome.membership.status == MembershipStatus.REJECTED
        assert outcome.membership.role == HotelRole.HOUSEKEEPING
        assert not outcome.membership.is_active
        assert admission_service.admission_state(PROFILE_ID, HOTEL_ID) == REJECTED

    @pytest.mark.parametrize("first", ["approve", "reject"])
    def test_decided_request_cannot_be_decided_again(self, admission_service, join_request, first, store):
        if first == "approve":
            admission_service.approve_join_request(join_request.id, HotelRole.MANAGER, ACTOR_ID)
        else:
            admission_service.reject_join_request(join_request.id, ACTOR_ID)
        before = store.get(MEMBERSHIPS, admission_service.memberships_for(PROFILE_ID, HOTEL_ID)[0].id)

        with pytest.raises(InvalidStateTransitionError):
            admission_service.approve_join_request(join_request.id, HotelRole.ADMIN, ACTOR_ID)
        with pytest.raises(InvalidStateTransitionError):
            admission_service.reject_join_request(join_request.id, ACTOR_ID)
        assert store.get(MEMBERSHIPS, before["id"]) == before

    def test_unknown_request(self, admission_service):
        with pytest.raises(RequestNotFoundError):
            admission_service.approve_join_request("missing", HotelRole.MANAGER, ACTOR_ID)

    def test_missing_membership_is_reported_before_any_write(self, admission_service, join_request, store):
        membership = admission_service.memberships_for(PROFILE_ID, HOTEL_ID)[0]
        store.delete(MEMBERSHIPS, membership.id)

        with pytest.raises(MembershipConsistencyError):
            admission_service.approve_join_request(join_request.id, HotelRole.MANAGER, ACTOR_ID)
        assert admission_service.get_join_request(join_request.id).is_pending

    def test_request_deleted_meanwhile_is_not_found(self, admission_service, join_request, store, monkeypatch):
        vanish_before_update(monkeypatch, store, JOIN_REQUESTS)
        with pytest.raises(RequestNotFoundError):
            admission_service.approve_join_request(join_request.id, HotelRole.MANAGER, ACTOR_ID)
        assert admission_service.memberships_for(PROFILE_ID, HOTEL_ID)[0].status == MembershipStatus.PENDING

    def test_membership_deleted_meanwhile_restores_pending(self, admission_service, join_request, store, monkeypatch):
        vanish_before_update(monkeypatch, store, MEMBERSHIPS)
        with pytest.raises(MembershipConsistencyError):
            admission_service.approve_join_request(join_request.id, HotelRole.MANAGER, ACTOR_ID)
        assert admission_service.get_join_request(join_request.id).is_pending

    def test_membership_failure_restores_pending(self, admission_service, join_request, store, monkeypatch):
        fail_on(monkeypatch, store, "update", MEMBERSHIPS)
        with pytest.raises(NetworkError):
            admission_service.approve_join_request(join_request.id, HotelRole.MANAGER, ACTOR_ID)

        assert admission_service.get_join_request(join_request.id).is_pending
        assert admission_service.memberships_for(PROFILE_ID, HOTEL_ID)[0].status == MembershipStatus.PENDING

    def test_failed_restore_is_partial(self, admission_service, join_request, store, monkeypatch):
        fail_on(monkeypatch, store, "update", MEMBERSHIPS)
        # first request update succeeds, the compensating one fails
        fail_on(monkeypatch, store, "update", JOIN_REQUESTS, calls=[False, True])
        with pytest.raises(PartialFailureError) as exc_info:
            admission_service.reject_join_request(join_request.id, ACTOR_ID)
        assert exc_info.value.committed_step == "reject join request"
        assert admission_service.get_join_request(join_request.id).status == JoinRequestStatus.REJECTED


class TestEmployees:

    @pytest.fixture
    def employee(self, admission_service, join_request):
        return admission_service.approve_join_request(join_request.id, HotelRole.HOUSEKEEPING, ACTOR_ID).membership

    def test_employees_are_approved_memberships(self, admission_service, employee):
        admission_service.create_join_request("profile-2", HOTEL_ID)
        assert [m.id for m in admission_service.get_employees(HOTEL_ID)] == [employee.id]

    def test_update_role_returns_fresh_record(self, admission_service, employee, publisher):
        updated = admission_service.update_employee_role(employee.id, "maintenance", ACTOR_ID)
        assert updated.role == HotelRole.MAINTENANCE
        assert publisher.call_args.args[0].event_type == EventType.MEMBERSHIP_ROLE_CHANGED

    def test_update_role_of_pending_membership(self, admission_service, join_request):
        pending = admission_service.memberships_for(PROFILE_ID, HOTEL_ID)[0]
        with pytest.raises(MembershipNotFoundError):
            admission_service.update_employee_role(pending.id, HotelRole.ADMIN, ACTOR_ID)

    def test_remove_employee(self, admission_service, employee, store):
        assert admission_service.remove_employee(employee.id, ACTOR_ID) is True
        assert admission_service.get_employees(HOTEL_ID) == []
        with pytest.raises(MembershipNotFoundError):
            admission_service.remove_employee(employee.id, ACTOR_ID)

    def test_no_request_state(self, admission_service):
        assert admission_service.admission_state("stranger", HOTEL_ID) == NO_REQUEST
