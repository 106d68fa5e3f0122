"""
Client-side state owners

RoomBoard and StaffRoster each own one in-memory copy (the rooms of a
hotel, the staff of a hotel) and are its only writer. Every mutation goes
through the OptimisticCoordinator; loads fan out concurrently.
"""
import asyncio
from dataclasses import replace
from typing import Dict, List, Optional
import logging

from hotelpms.domain.audit import AuditEntry
from hotelpms.domain.enums import CleaningStatus, HotelRole, OccupancyStatus, RoomFlag
from hotelpms.domain.membership import JoinRequest, Membership
from hotelpms.domain.room import Room
from hotelpms.engine.event_bus import Event, EventPublisher, discard_event
from hotelpms.engine.events import EventType, OperationUndoneData
from hotelpms.errors import PartialFailureError, RoomNotFoundError
from hotelpms.services.admission_service import AdmissionOutcome, AdmissionService
from hotelpms.services.audit_service import AuditRecorder
from hotelpms.services.notes_service import NotesService
from hotelpms.services.optimistic import OptimisticCoordinator, PendingUndo, UndoWindow
from hotelpms.services.room_service import RoomService

logger = logging.getLogger(__name__)


class RoomBoard:
    """Rooms and recent activity of one hotel"""

    def __init__(
        self,
        hotel_id: str,
        actor_id: str,
        rooms: RoomService,
        audit: AuditRecorder,
        notes: NotesService,
        coordinator: OptimisticCoordinator = None,
        undo_window: UndoWindow = None,
        event_publisher: EventPublisher = None,
    ):
        self.hotel_id = hotel_id
        self.actor_id = actor_id
        self.room_service = rooms
        self.audit = audit
        self.notes = notes
        self.coordinator = coordinator or OptimisticCoordinator()
        self.undo_window = undo_window or UndoWindow()
        self._publish_event = event_publisher or discard_event
        self.rooms: Dict[str, Room] = {}
        self.activity: List[AuditEntry] = []

    # ============== Loading ==============

    async def load(self) -> None:
        """Fetch rooms and recent activity concurrently"""
        rooms, activity = await asyncio.gather(
            asyncio.to_thread(self.room_service.get_rooms, self.hotel_id),
            asyncio.to_thread(self.audit.hotel_activity, self.hotel_id),
        )
        self.rooms = {r.id: r for r in rooms}
        self.activity = activity
        logger.info(f"Board loaded {len(rooms)} rooms, {len(activity)} activity entries")

    def room(self, room_id: str) -> Room:
        try:
            return self.rooms[room_id]
        except KeyError:
            raise RoomNotFoundError(context={"room_id": room_id})

    def sorted_rooms(self) -> List[Room]:
        return sorted(self.rooms.values(), key=lambda r: r.room_number)

    @property
    def pending_confirmation(self) -> List[str]:
        """Rooms with an open undo window"""
        return self.undo_window.pending_ids

    async def note_counts(self) -> Dict[str, int]:
        """Per-room note counts; a failed lookup is left out of the result"""
        room_ids = list(self.rooms)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.notes.note_count, room_id) for room_id in room_ids),
            return_exceptions=True,
        )
        counts = {}
        for room_id, result in zip(room_ids, results):
            if isinstance(result, Exception):
                logger.warning(f"Note count for room {room_id} failed: {result}")
                continue
            counts[room_id] = result
        return counts

    # ============== Mutations ==============

    async def _mutate(self, room_id: str, optimistic: Room, mutation) -> Room:
        before = self.room(room_id)

        def apply():
            self.rooms[room_id] = optimistic

        def revert():
            self.rooms[room_id] = before

        def reconcile(result: Optional[Room]) -> Room:
            # after a partial failure the store holds the committed value
            return result if result is not None else self.room_service.get_room(room_id)

        def adopt(room: Room):
            self.rooms[room_id] = room

        return await self.coordinator.run(
            apply, revert, lambda: mutation(before), reconcile=reconcile, adopt=adopt,
        )

    async def _change_status(self, room_id: str, field: str, value, undoable: bool = True) -> Room:
        """Occupancy or cleaning change; a change that alters the value opens an undo window"""
        current = self.room(room_id)
        setter = (
            self.room_service.set_occupancy if field == "occupancy_status"
            else self.room_service.set_cleaning
        )
        result = await self._mutate(
            room_id, replace(current, **{field: value}),
            lambda room: setter(room, value, self.actor_id),
        )
        if undoable and getattr(result, field) != getattr(current, field):
            self.undo_window.open(room_id, current, result, field=field)
        return result

    async def set_occupancy(self, room_id: str, status: OccupancyStatus) -> Room:
        return await self._change_status(room_id, "occupancy_status", OccupancyStatus(status))

    async def set_cleaning(self, room_id: str, status: CleaningStatus) -> Room:
        return await self._change_status(room_id, "cleaning_status", CleaningStatus(status))

    async def toggle_flag(self, room_id: str, flag: RoomFlag) -> Room:
        current = self.room(room_id)
        return await self._mutate(
            room_id, current.with_flag_toggled(flag),
            lambda room: self.room_service.toggle_flag(room, flag, self.actor_id),
        )

    async def start_cleaning(self, room_id: str) -> Room:
        return await self.set_cleaning(room_id, CleaningStatus.CLEANING_IN_PROGRESS)

    async def mark_ready(self, room_id: str) -> Room:
        return await self.set_cleaning(room_id, CleaningStatus.READY)

    async def undo(self, room_id: str) -> Optional[Room]:
        """
        Restore the field changed by the last undoable change

        The reversal is persisted and audited. The window stays open when
        the reversal fails. Returns None when no window is open for the room.
        """
        pending: Optional[PendingUndo] = self.undo_window.take(room_id)
        if pending is None:
            return None
        field = pending.field
        previous_value = getattr(pending.previous_snapshot, field)
        try:
            restored = await self._change_status(room_id, field, previous_value, undoable=False)
        except PartialFailureError:
            raise
        except Exception:
            self.undo_window.reopen(pending)
            raise
        self._publish_event(Event(
            event_type=EventType.OPERATION_UNDONE,
            data=OperationUndoneData(
                entity_id=room_id,
                field=field,
                restored_value=previous_value.value,
                undone_by=self.actor_id,
            ).to_dict(),
            source="room_board",
        ))
        logger.info(f"Undid {field} change on room {restored.room_number}")
        return restored

    def close(self) -> None:
        self.undo_window.cancel_all()


class StaffRoster:
    """Employees and pending join requests of one hotel"""

    def __init__(
        self,
        hotel_id: str,
        actor_id: str,
        admission: AdmissionService,
        coordinator: OptimisticCoordinator = None,
    ):
        self.hotel_id = hotel_id
        self.actor_id = actor_id
        self.admission = admission
        self.coordinator = coordinator or OptimisticCoordinator()
        self.employees: List[Membership] = []
        self.pending: List[JoinRequest] = []

    async def load(self) -> None:
        self.employees, self.pending = await asyncio.gather(
            asyncio.to_thread(self.admission.get_employees, self.hotel_id),
            asyncio.to_thread(self.admission.pending_requests, self.hotel_id),
        )

    def _fetch_employees(self, _result=None) -> List[Membership]:
        return self.admission.get_employees(self.hotel_id)

    def _adopt_employees(self, employees: List[Membership]) -> None:
        self.employees = employees

    async def update_role(self, membership_id: str, role: HotelRole) -> Membership:
        """Optimistic role change, then re-fetch to reconcile"""
        role = HotelRole(role)
        before = list(self.employees)

        def apply():
            self.employees = [
                replace(m, role=role) if m.id == membership_id else m for m in before
            ]

        def revert():
            self.employees = before

        return await self.coordinator.run(
            apply, revert,
            lambda: self.admission.update_employee_role(membership_id, role, self.actor_id),
            reconcile=self._fetch_employees, adopt=self._adopt_employees,
        )

    async def remove_employee(self, membership_id: str) -> bool:
        before = list(self.employees)

        def apply():
            self.employees = [m for m in before if m.id != membership_id]

        def revert():
            self.employees = before

        return await self.coordinator.run(
            apply, revert,
            lambda: self.admission.remove_employee(membership_id, self.actor_id),
        )

    async def _decide(self, request_id: str, mutation) -> AdmissionOutcome:
        before = list(self.pending)

        def apply():
            self.pending = [r for r in before if r.id != request_id]

        def revert():
            self.pending = before

        return await self.coordinator.run(
            apply, revert, mutation,
            reconcile=self._fetch_employees, adopt=self._adopt_employees,
        )

    async def approve(self, request_id: str, role: HotelRole) -> AdmissionOutcome:
        return await self._decide(
            request_id,
            lambda: self.admission.approve_join_request(request_id, role, self.actor_id),
        )

    async def reject(self, request_id: str) -> AdmissionOutcome:
        return await self._decide(
            request_id,
            lambda: self.admission.reject_join_request(request_id, self.actor_id),
        )
