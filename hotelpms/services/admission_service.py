"""
Admission service - the join request / membership state machine

Per (profile, hotel) pair: no_request -> pending -> approved | rejected.
A join request and its paired membership always move together; when the
second write of a pair fails the first one is compensated, and when the
compensation fails too a PartialFailureError names the committed step.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
import logging

from hotelpms.domain.enums import (
    ACTIVE_MEMBERSHIP_STATUSES, DEFAULT_PENDING_ROLE, HotelRole, JoinRequestStatus,
    MembershipStatus, membership_status_for,
)
from hotelpms.domain.membership import JoinRequest, Membership
from hotelpms.domain.room import utcnow
from hotelpms.engine.event_bus import Event, EventPublisher, discard_event
from hotelpms.engine.events import EventType, JoinRequestData, MembershipChangedData
from hotelpms.engine.state_machine import (
    ADMISSION_MACHINE, APPROVED, NO_REQUEST, PENDING, REJECTED, StateMachine,
)
from hotelpms.errors import (
    DuplicateRequestError, InvalidStateTransitionError, MembershipConsistencyError,
    MembershipNotFoundError, NetworkError, PartialFailureError, RequestNotFoundError,
)
from hotelpms.services.base import network_errors, require_actor
from hotelpms.services.notification import AdminNotifier, NullAdminNotifier
from hotelpms.store.base import Filter, JOIN_REQUESTS, MEMBERSHIPS, RecordStore, StoreError

logger = logging.getLogger(__name__)

_MACHINE_STATE = {
    JoinRequestStatus.PENDING: PENDING,
    JoinRequestStatus.ACCEPTED: APPROVED,
    JoinRequestStatus.REJECTED: REJECTED,
}


@dataclass(frozen=True)
class AdmissionOutcome:
    """A join request and its paired membership after a decision"""
    request: JoinRequest
    membership: Membership


class AdmissionService:
    """
    Admission state engine

    Supports dependency injection for testing:
    - notifier: admin notification channel
    - event_publisher: event publisher
    """

    def __init__(
        self,
        store: RecordStore,
        notifier: AdminNotifier = None,
        event_publisher: EventPublisher = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.notifier = notifier or NullAdminNotifier()
        self._publish_event = event_publisher or discard_event
        self._clock = clock

    # ============== Queries ==============

    def get_join_request(self, request_id: str) -> JoinRequest:
        with network_errors("get join request"):
            row = self.store.get(JOIN_REQUESTS, request_id)
        if row is None:
            raise RequestNotFoundError(context={"request_id": request_id})
        return JoinRequest.from_record(row)

    def pending_requests(self, hotel_id: str) -> List[JoinRequest]:
        """Pending requests of a hotel, newest first"""
        with network_errors("get pending join requests"):
            rows = self.store.select(
                JOIN_REQUESTS,
                [Filter.eq("hotel_id", hotel_id), Filter.eq("status", JoinRequestStatus.PENDING.value)],
                order_by="created_at", descending=True,
            )
        return [JoinRequest.from_record(r) for r in rows]

    def requests_for_profile(self, profile_id: str) -> List[JoinRequest]:
        with network_errors("get join requests"):
            rows = self.store.select(
                JOIN_REQUESTS, [Filter.eq("profile_id", profile_id)],
                order_by="created_at", descending=True,
            )
        return [JoinRequest.from_record(r) for r in rows]

    def has_pending_request(self, profile_id: str, hotel_id: str) -> bool:
        with network_errors("check pending join requests"):
            return self.store.count(JOIN_REQUESTS, [
                Filter.eq("profile_id", profile_id),
                Filter.eq("hotel_id", hotel_id),
                Filter.eq("status", JoinRequestStatus.PENDING.value),
            ]) > 0

    def memberships_for(self, profile_id: str, hotel_id: str) -> List[Membership]:
        with network_errors("get memberships"):
            rows = self.store.select(
                MEMBERSHIPS,
                [Filter.eq("profile_id", profile_id), Filter.eq("hotel_id", hotel_id)],
                order_by="created_at", descending=True,
            )
        return [Membership.from_record(r) for r in rows]

    def get_membership(self, membership_id: str) -> Membership:
        with network_errors("get membership"):
            row = self.store.get(MEMBERSHIPS, membership_id)
        if row is None:
            raise MembershipNotFoundError(context={"membership_id": membership_id})
        return Membership.from_record(row)

    def get_employees(self, hotel_id: str) -> List[Membership]:
        """Approved memberships of a hotel, newest first"""
        with network_errors("get employees"):
            rows = self.store.select(
                MEMBERSHIPS,
                [Filter.eq("hotel_id", hotel_id), Filter.eq("status", MembershipStatus.APPROVED.value)],
                order_by="created_at", descending=True,
            )
        return [Membership.from_record(r) for r in rows]

    def admission_state(self, profile_id: str, hotel_id: str) -> str:
        """Current state of the pair: no_request, pending, approved or rejected"""
        requests = [r for r in self.requests_for_profile(profile_id) if r.hotel_id == hotel_id]
        if not requests:
            return NO_REQUEST
        return _MACHINE_STATE[requests[0].status]

    # ============== Request lifecycle ==============

    def create_join_request(self, profile_id: str, hotel_id: str) -> JoinRequest:
        """
        Create a pending join request together with a pending membership

        Raises:
            NotAuthenticatedError: missing profile id
            DuplicateRequestError: a pending request or an active membership exists
            NetworkError / PartialFailureError: store failure
        """
        profile_id = require_actor(profile_id)
        self._check_duplicate(profile_id, hotel_id)
        StateMachine(ADMISSION_MACHINE).fire("request")

        now = self._clock()
        with network_errors("create join request"):
            request_row = self.store.insert(JOIN_REQUESTS, {
                "profile_id": profile_id,
                "hotel_id": hotel_id,
                "status": JoinRequestStatus.PENDING.value,
                "created_at": now,
            })
        request = JoinRequest.from_record(request_row)

        try:
            membership_row = self.store.insert(MEMBERSHIPS, {
                "profile_id": profile_id,
                "hotel_id": hotel_id,
                "role": DEFAULT_PENDING_ROLE.value,
                "status": membership_status_for(request.status).value,
                "created_at": now,
            })
        except StoreError as e:
            logger.warning(f"Membership insert for join request {request.id} failed, compensating: {e}")
            self._compensate(
                "create join request",
                lambda: self.store.delete(JOIN_REQUESTS, request.id),
                e,
            )
            raise NetworkError(f"Failed to create join request: {e}") from e

        self._notify_admin(request.id)
        self._publish_event(Event(
            event_type=EventType.JOIN_REQUEST_CREATED,
            data=JoinRequestData(
                request_id=request.id, profile_id=profile_id, hotel_id=hotel_id,
                membership_id=membership_row["id"], status=request.status.value,
                role=DEFAULT_PENDING_ROLE.value, changed_by=profile_id,
            ).to_dict(),
            source="admission_service",
        ))
        logger.info(f"Join request {request.id} created for profile {profile_id} at hotel {hotel_id}")
        return request

    def approve_join_request(self, request_id: str, role: HotelRole, actor_id: str) -> AdmissionOutcome:
        """accepted request + approved membership carrying ``role``"""
        actor = require_actor(actor_id)
        return self._decide(request_id, "approve", JoinRequestStatus.ACCEPTED, HotelRole(role), actor)

    def reject_join_request(self, request_id: str, actor_id: str) -> AdmissionOutcome:
        """rejected request + rejected membership; the role is left untouched"""
        actor = require_actor(actor_id)
        return self._decide(request_id, "reject", JoinRequestStatus.REJECTED, None, actor)

    # ============== Employees ==============

    def update_employee_role(self, membership_id: str, role: HotelRole, actor_id: str) -> Membership:
        """Change the role of an approved membership, returning the re-fetched record"""
        actor = require_actor(actor_id)
        role = HotelRole(role)
        before = self.get_membership(membership_id)
        with network_errors("update role"):
            changed = self.store.update_where(
                MEMBERSHIPS,
                [Filter.eq("id", membership_id), Filter.eq("status", MembershipStatus.APPROVED.value)],
                {"role": role.value},
            )
        if changed == 0:
            raise MembershipNotFoundError(
                "No approved membership with this id",
                context={"membership_id": membership_id},
            )
        after = self.get_membership(membership_id)
        self._publish_event(Event(
            event_type=EventType.MEMBERSHIP_ROLE_CHANGED,
            data=MembershipChangedData(
                membership_id=membership_id, profile_id=after.profile_id, hotel_id=after.hotel_id,
                old_role=before.role.value, new_role=after.role.value, changed_by=actor,
            ).to_dict(),
            source="admission_service",
        ))
        logger.info(f"Membership {membership_id} role {before.role.value} -> {after.role.value}")
        return after

    def remove_employee(self, membership_id: str, actor_id: str) -> bool:
        actor = require_actor(actor_id)
        membership = self.get_membership(membership_id)
        with network_errors("remove employee"):
            deleted = self.store.delete(MEMBERSHIPS, membership_id)
        if not deleted:
            raise MembershipNotFoundError(context={"membership_id": membership_id})
        self._publish_event(Event(
            event_type=EventType.MEMBERSHIP_REMOVED,
            data=MembershipChangedData(
                membership_id=membership_id, profile_id=membership.profile_id,
                hotel_id=membership.hotel_id, old_role=membership.role.value, changed_by=actor,
            ).to_dict(),
            source="admission_service",
        ))
        logger.info(f"Membership {membership_id} removed by {actor}")
        return True

    # ============== Internals ==============

    def _check_duplicate(self, profile_id: str, hotel_id: str) -> None:
        if self.has_pending_request(profile_id, hotel_id):
            logger.warning(f"Duplicate join request from {profile_id} for hotel {hotel_id}")
            raise DuplicateRequestError(context={"profile_id": profile_id, "hotel_id": hotel_id})
        with network_errors("check memberships"):
            active = self.store.count(MEMBERSHIPS, [
                Filter.eq("profile_id", profile_id),
                Filter.eq("hotel_id", hotel_id),
                Filter.in_("status", [s.value for s in ACTIVE_MEMBERSHIP_STATUSES]),
            ])
        if active:
            raise DuplicateRequestError(
                "You already have an active membership at this hotel",
                context={"profile_id": profile_id, "hotel_id": hotel_id},
            )

    def _pending_membership(self, request: JoinRequest) -> Membership:
        with network_errors("get membership"):
            rows = self.store.select(MEMBERSHIPS, [
                Filter.eq("profile_id", request.profile_id),
                Filter.eq("hotel_id", request.hotel_id),
                Filter.eq("status", MembershipStatus.PENDING.value),
            ], limit=1)
        if not rows:
            logger.error(f"Join request {request.id} has no paired pending membership")
            raise MembershipConsistencyError(context={"request_id": request.id})
        return Membership.from_record(rows[0])

    def _decide(self, request_id: str, trigger: str, new_status: JoinRequestStatus,
                role: Optional[HotelRole], actor: str) -> AdmissionOutcome:
        request = self.get_join_request(request_id)
        machine = StateMachine(ADMISSION_MACHINE, current_state=_MACHINE_STATE[request.status])
        if not machine.can_fire(trigger):
            raise InvalidStateTransitionError(
                f"Join request is already {request.status.value}",
                context={"request_id": request_id, "status": request.status.value},
            )
        membership = self._pending_membership(request)

        with network_errors(f"{trigger} join request"):
            request_row = self.store.update(JOIN_REQUESTS, request.id, {"status": new_status.value})
        if request_row is None:
            raise RequestNotFoundError(context={"request_id": request_id})

        def restore_pending():
            return self.store.update(
                JOIN_REQUESTS, request.id, {"status": JoinRequestStatus.PENDING.value}
            )

        membership_values = {"status": membership_status_for(new_status).value}
        if role is not None:
            membership_values["role"] = role.value
        try:
            membership_row = self.store.update(MEMBERSHIPS, membership.id, membership_values)
        except StoreError as e:
            logger.warning(f"Membership update for join request {request.id} failed, compensating: {e}")
            self._compensate(f"{trigger} join request", restore_pending, e)
            raise NetworkError(f"Failed to {trigger} join request: {e}") from e
        if membership_row is None:
            logger.error(f"Membership {membership.id} vanished during {trigger}, compensating")
            error = MembershipConsistencyError(
                context={"request_id": request.id, "membership_id": membership.id}
            )
            self._compensate(f"{trigger} join request", restore_pending, error)
            raise error

        machine.fire(trigger)
        outcome = AdmissionOutcome(
            request=JoinRequest.from_record(request_row),
            membership=Membership.from_record(membership_row),
        )
        event_type = (
            EventType.JOIN_REQUEST_APPROVED if trigger == "approve" else EventType.JOIN_REQUEST_REJECTED
        )
        self._publish_event(Event(
            event_type=event_type,
            data=JoinRequestData(
                request_id=request.id, profile_id=request.profile_id, hotel_id=request.hotel_id,
                membership_id=membership.id, status=new_status.value,
                role=outcome.membership.role.value, changed_by=actor,
            ).to_dict(),
            source="admission_service",
        ))
        logger.info(f"Join request {request.id} {new_status.value} by {actor}")
        return outcome

    def _compensate(self, committed_step: str, undo: Callable[[], object], cause: Exception) -> None:
        try:
            undo()
        except StoreError as e:
            logger.error(f"Compensation of '{committed_step}' failed: {e}")
            raise PartialFailureError(
                f"{committed_step} is partially applied: {cause}; compensation failed: {e}",
                committed_step=committed_step,
            ) from e
        logger.info(f"Compensated '{committed_step}'")

    def _notify_admin(self, request_id: str) -> None:
        try:
            self.notifier.notify_join_request(request_id)
        except Exception as e:
            logger.warning(f"Admin notification for join request {request_id} failed: {e}")
