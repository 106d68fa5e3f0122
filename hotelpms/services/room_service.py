"""
Room service - the room state engine

Occupancy and cleaning transitions are unconditional (any value may follow
any other); flags toggle in and out of a set. Every committed change is
persisted first and audited second, one audit entry per changed field.
Unchanged values are a no-op: no write, no audit, no event.
"""
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
import logging

from hotelpms.domain.audit import AuditEntry
from hotelpms.domain.enums import (
    AuditChangeType, CleaningStatus, OccupancyStatus, RoomFlag,
    next_cleaning_status, next_occupancy_status,
)
from hotelpms.domain.patch import RoomPatch
from hotelpms.domain.room import (
    Room, RoomRange, calculate_floor, encode_flags, room_numbers_for, utcnow,
)
from hotelpms.domain.settings import HotelSettings
from hotelpms.engine.event_bus import Event, EventPublisher, discard_event
from hotelpms.engine.events import EventType, RoomChangedData, RoomsCreatedData
from hotelpms.errors import (
    DuplicateRoomError, InvalidRoomRangeError, NetworkError, PartialFailureError,
    RoomNotFoundError, WorkflowRuleViolation,
)
from hotelpms.services.audit_service import AuditRecorder, created_entry, flag_entry
from hotelpms.services.base import network_errors, require_actor
from hotelpms.store.base import Filter, RecordStore, ROOMS

logger = logging.getLogger(__name__)


class RoomService:
    """
    Room state engine

    Supports dependency injection for testing:
    - event_publisher: event publisher
    - hotel_settings: resolves the workflow rules of a hotel
    - clock: timestamp source
    """

    def __init__(
        self,
        store: RecordStore,
        audit: AuditRecorder,
        event_publisher: EventPublisher = None,
        hotel_settings: Callable[[str], HotelSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.audit = audit
        self._publish_event = event_publisher or discard_event
        self._hotel_settings = hotel_settings or (lambda hotel_id: HotelSettings.defaults())
        self._clock = clock

    # ============== Queries ==============

    def get_room(self, room_id: str) -> Room:
        with network_errors("get room"):
            record = self.store.get(ROOMS, room_id)
        if record is None:
            raise RoomNotFoundError(f"Room {room_id} not found", context={"room_id": room_id})
        return Room.from_record(record)

    def get_rooms(self, hotel_id: str, floor: Optional[int] = None,
                  occupancy: Optional[OccupancyStatus] = None,
                  cleaning: Optional[CleaningStatus] = None) -> List[Room]:
        """Rooms of a hotel ordered by number"""
        filters = [Filter.eq("hotel_id", hotel_id)]
        if floor is not None:
            filters.append(Filter.eq("floor_number", floor))
        if occupancy is not None:
            filters.append(Filter.eq("occupancy_status", OccupancyStatus(occupancy).value))
        if cleaning is not None:
            filters.append(Filter.eq("cleaning_status", CleaningStatus(cleaning).value))
        with network_errors("get rooms"):
            rows = self.store.select(ROOMS, filters, order_by="room_number")
        return [Room.from_record(r) for r in rows]

    def rooms_on_floor(self, hotel_id: str, floor: int) -> List[Room]:
        return self.get_rooms(hotel_id, floor=floor)

    def rooms_by_occupancy(self, hotel_id: str, status: OccupancyStatus) -> List[Room]:
        return self.get_rooms(hotel_id, occupancy=status)

    def rooms_by_cleaning(self, hotel_id: str, status: CleaningStatus) -> List[Room]:
        return self.get_rooms(hotel_id, cleaning=status)

    def rooms_with_flags(self, hotel_id: str, flags: Iterable[RoomFlag]) -> List[Room]:
        """Rooms carrying any of the given flags"""
        wanted = {RoomFlag(f) for f in flags}
        return [r for r in self.get_rooms(hotel_id) if r.flags & wanted]

    def search_rooms(self, hotel_id: str, query: str) -> List[Room]:
        """Rooms whose number contains the query"""
        query = (query or "").strip()
        rooms = self.get_rooms(hotel_id)
        if not query:
            return rooms
        return [r for r in rooms if query in str(r.room_number)]

    def housekeeping_queue(self, hotel_id: str) -> List[Room]:
        """Rooms needing cleaning, most urgent first then by number"""
        rooms = [r for r in self.get_rooms(hotel_id) if r.needs_cleaning]
        return sorted(rooms, key=lambda r: (-r.cleaning_priority, r.room_number))

    def rooms_in_progress(self, hotel_id: str) -> List[Room]:
        return self.get_rooms(hotel_id, cleaning=CleaningStatus.CLEANING_IN_PROGRESS)

    def room_stats(self, hotel_id: str) -> Dict[str, Any]:
        """Totals and breakdowns of a hotel's rooms"""
        rooms = self.get_rooms(hotel_id)
        occupancy = Counter(r.occupancy_status.value for r in rooms)
        cleaning = Counter(r.cleaning_status.value for r in rooms)
        return {
            "total": len(rooms),
            "occupancy": {s.value: occupancy.get(s.value, 0) for s in OccupancyStatus},
            "cleaning": {s.value: cleaning.get(s.value, 0) for s in CleaningStatus},
            "flagged": sum(1 for r in rooms if r.has_flags),
            "needs_attention": sum(1 for r in rooms if r.needs_attention),
            "available": sum(1 for r in rooms if r.is_available),
        }

    # ============== Creation ==============

    def _existing_numbers(self, hotel_id: str) -> set:
        with network_errors("get rooms"):
            rows = self.store.select(ROOMS, [Filter.eq("hotel_id", hotel_id)])
        return {int(r["room_number"]) for r in rows}

    def _new_room_values(self, hotel_id: str, number: int, actor: str,
                         floor_number: Optional[int] = None) -> Dict[str, Any]:
        now = self._clock()
        return {
            "hotel_id": hotel_id,
            "room_number": number,
            "floor_number": calculate_floor(number) if floor_number is None else floor_number,
            "occupancy_status": OccupancyStatus.VACANT.value,
            "cleaning_status": CleaningStatus.DIRTY.value,
            "flags": [],
            "notes": None,
            "updated_by": actor,
            "created_at": now,
            "updated_at": now,
        }

    def create_room(self, hotel_id: str, room_number: int, actor_id: str,
                    floor_number: Optional[int] = None) -> Room:
        """
        Add a single room

        Raises:
            InvalidRoomRangeError: non-positive room number
            DuplicateRoomError: the number already exists in the hotel
        """
        actor = require_actor(actor_id)
        if room_number is None or int(room_number) <= 0:
            raise InvalidRoomRangeError(f"Room number must be positive: {room_number}")
        room_number = int(room_number)
        if room_number in self._existing_numbers(hotel_id):
            raise DuplicateRoomError(
                f"Room {room_number} already exists",
                context={"hotel_id": hotel_id, "room_number": room_number},
            )

        with network_errors("create room"):
            row = self.store.insert(
                ROOMS, self._new_room_values(hotel_id, room_number, actor, floor_number)
            )
        room = Room.from_record(row)
        self._record_after_commit([created_entry(room.id, actor, room.room_number)], "create room")
        self._publish_created(hotel_id, [room], actor)
        logger.info(f"Room {room_number} created in hotel {hotel_id}")
        return room

    def create_rooms_from_ranges(self, hotel_id: str, ranges: Sequence[RoomRange],
                                 actor_id: str) -> List[Room]:
        """
        Batch room creation from inclusive number ranges

        All-or-nothing: ranges are validated, and checked against numbers
        already in the hotel, before the single batch insert.

        Raises:
            InvalidRoomRangeError: empty, inverted, non-positive or overlapping ranges
            DuplicateRoomError: a number already exists in the hotel
        """
        actor = require_actor(actor_id)
        numbers = room_numbers_for(list(ranges))

        taken = sorted(self._existing_numbers(hotel_id).intersection(numbers))
        if taken:
            raise DuplicateRoomError(
                f"Rooms already exist: {', '.join(str(n) for n in taken)}",
                context={"hotel_id": hotel_id, "room_numbers": taken},
            )

        with network_errors("create rooms"):
            rows = self.store.insert_many(
                ROOMS, [self._new_room_values(hotel_id, n, actor) for n in numbers]
            )
        rooms = [Room.from_record(r) for r in rows]
        self._record_after_commit(
            [created_entry(r.id, actor, r.room_number) for r in rooms], "create rooms"
        )
        self._publish_created(hotel_id, rooms, actor)
        logger.info(f"Created {len(rooms)} rooms in hotel {hotel_id}")
        return rooms

    def delete_room(self, room_id: str, actor_id: str) -> bool:
        """Administrative delete; the room's history is kept"""
        actor = require_actor(actor_id)
        room = self.get_room(room_id)
        with network_errors("delete room"):
            deleted = self.store.delete(ROOMS, room_id)
        if not deleted:
            raise RoomNotFoundError(f"Room {room_id} not found", context={"room_id": room_id})
        self._publish_event(Event(
            event_type=EventType.ROOM_DELETED,
            data=RoomChangedData(
                room_id=room.id, hotel_id=room.hotel_id, room_number=room.room_number,
                changed_by=actor,
            ).to_dict(),
            source="room_service",
        ))
        logger.info(f"Room {room.room_number} deleted by {actor}")
        return True

    # ============== Transitions ==============

    def set_occupancy(self, room: Room, status: OccupancyStatus, actor_id: str,
                      reason: Optional[str] = None) -> Room:
        """Set occupancy; unchanged status is a no-op"""
        actor = require_actor(actor_id)
        status = OccupancyStatus(status)
        if status == room.occupancy_status:
            return room
        return self._commit(room, RoomPatch(occupancy_status=status), actor, reason)

    def set_cleaning(self, room: Room, status: CleaningStatus, actor_id: str,
                     reason: Optional[str] = None) -> Room:
        """
        Set cleaning status; unchanged status is a no-op

        Raises:
            WorkflowRuleViolation: the room is flagged dnd and the hotel
                prevents cleaning with dnd
        """
        actor = require_actor(actor_id)
        status = CleaningStatus(status)
        if status == room.cleaning_status:
            return room
        self._check_dnd_rule(room.hotel_id, room.flags, room)
        return self._commit(room, RoomPatch(cleaning_status=status), actor, reason)

    def cycle_occupancy(self, room: Room, actor_id: str) -> Room:
        return self.set_occupancy(room, next_occupancy_status(room.occupancy_status), actor_id)

    def cycle_cleaning(self, room: Room, actor_id: str) -> Room:
        return self.set_cleaning(room, next_cleaning_status(room.cleaning_status), actor_id)

    def start_cleaning(self, room: Room, actor_id: str) -> Room:
        return self.set_cleaning(room, CleaningStatus.CLEANING_IN_PROGRESS, actor_id)

    def mark_ready(self, room: Room, actor_id: str) -> Room:
        return self.set_cleaning(room, CleaningStatus.READY, actor_id)

    def toggle_flag(self, room: Room, flag: RoomFlag, actor_id: str,
                    reason: Optional[str] = None) -> Room:
        """Flip one flag in or out of the room's flag set"""
        actor = require_actor(actor_id)
        toggled = room.with_flag_toggled(flag)
        return self._commit(room, RoomPatch(flags=toggled.flags), actor, reason)

    def add_flag(self, room: Room, flag: RoomFlag, actor_id: str,
                 reason: Optional[str] = None) -> Room:
        actor = require_actor(actor_id)
        if room.has_flag(flag):
            return room
        return self._commit(room, RoomPatch(flags=room.flags | {RoomFlag(flag)}), actor, reason)

    def remove_flag(self, room: Room, flag: RoomFlag, actor_id: str,
                    reason: Optional[str] = None) -> Room:
        actor = require_actor(actor_id)
        if not room.has_flag(flag):
            return room
        return self._commit(room, RoomPatch(flags=room.flags - {RoomFlag(flag)}), actor, reason)

    def set_flags(self, room: Room, flags: Iterable[RoomFlag], actor_id: str,
                  reason: Optional[str] = None) -> Room:
        """Replace the flag set; one audit entry per added or removed flag"""
        actor = require_actor(actor_id)
        flags = frozenset(RoomFlag(f) for f in flags)
        if flags == room.flags:
            return room
        return self._commit(room, RoomPatch(flags=flags), actor, reason)

    def apply_patch(self, room: Room, patch: RoomPatch, actor_id: str,
                    reason: Optional[str] = None) -> Room:
        """
        Compound update

        Raises:
            EmptyPatchError: the patch sets no field
            WorkflowRuleViolation: cleaning change blocked by the dnd rule
        """
        actor = require_actor(actor_id)
        patch.validate()
        changed = self._changed_fields(room, patch)
        if not changed:
            return room
        if "cleaning_status" in changed:
            flags_after = patch.flags if patch.flags is not None else room.flags
            self._check_dnd_rule(room.hotel_id, flags_after, room)
        return self._commit(room, patch, actor, reason)

    # ============== Internals ==============

    def _check_dnd_rule(self, hotel_id: str, flags, room: Room) -> None:
        if RoomFlag.DND in flags and self._hotel_settings(hotel_id).prevent_cleaning_with_dnd:
            logger.warning(f"Cleaning change on room {room.room_number} blocked by DND")
            raise WorkflowRuleViolation(
                f"Room {room.room_number} is marked Do Not Disturb",
                context={"room_id": room.id, "rule": "prevent_cleaning_with_dnd"},
            )

    @staticmethod
    def _changed_fields(room: Room, patch: RoomPatch) -> Dict[str, Any]:
        values = patch.to_values()
        current = {
            "occupancy_status": room.occupancy_status.value,
            "cleaning_status": room.cleaning_status.value,
            "flags": encode_flags(room.flags),
            "notes": room.notes.strip() if room.notes and room.notes.strip() else None,
        }
        return {k: v for k, v in values.items() if current[k] != v}

    @staticmethod
    def _audit_entries(room: Room, changed: Dict[str, Any], actor: str,
                       reason: Optional[str]) -> List[AuditEntry]:
        entries: List[AuditEntry] = []
        if "occupancy_status" in changed:
            entries.append(AuditEntry(
                room_id=room.id, actor_id=actor, change_type=AuditChangeType.OCCUPANCY_STATUS,
                old_value=room.occupancy_status.value, new_value=changed["occupancy_status"],
                note=reason,
            ))
        if "cleaning_status" in changed:
            entries.append(AuditEntry(
                room_id=room.id, actor_id=actor, change_type=AuditChangeType.CLEANING_STATUS,
                old_value=room.cleaning_status.value, new_value=changed["cleaning_status"],
                note=reason,
            ))
        if "flags" in changed:
            after = {RoomFlag(f) for f in changed["flags"]}
            for flag in sorted(after - room.flags, key=lambda f: f.value):
                entries.append(flag_entry(room.id, actor, flag, added=True, reason=reason))
            for flag in sorted(room.flags - after, key=lambda f: f.value):
                entries.append(flag_entry(room.id, actor, flag, added=False, reason=reason))
        if "notes" in changed:
            old, new = room.notes, changed["notes"]
            default = "Note deleted" if new is None else ("Note updated" if old else "Note added")
            entries.append(AuditEntry(
                room_id=room.id, actor_id=actor, change_type=AuditChangeType.NOTES,
                old_value=old, new_value=new, note=reason or default,
            ))
        return entries

    def _commit(self, room: Room, patch: RoomPatch, actor: str,
                reason: Optional[str]) -> Room:
        """Persist the changed fields, then audit them, then publish"""
        changed = self._changed_fields(room, patch)
        if not changed:
            return room
        values = dict(changed)
        values["updated_by"] = actor
        values["updated_at"] = self._clock()

        with network_errors("update room"):
            row = self.store.update(ROOMS, room.id, values)
        if row is None:
            raise RoomNotFoundError(f"Room {room.id} not found", context={"room_id": room.id})
        updated = Room.from_record(row)

        self._record_after_commit(self._audit_entries(room, changed, actor, reason), "update room")
        self._publish_changes(room, changed, actor)
        logger.info(
            f"Room {room.room_number} updated by {actor}: {', '.join(sorted(changed))}"
        )
        return updated

    def _record_after_commit(self, entries: List[AuditEntry], committed_step: str) -> None:
        try:
            self.audit.record_many(entries)
        except NetworkError as e:
            logger.error(f"Audit after '{committed_step}' failed: {e.message}")
            raise PartialFailureError(
                f"{committed_step} succeeded but its audit entries were not recorded: {e.message}",
                committed_step=committed_step,
            ) from e

    def _publish_created(self, hotel_id: str, rooms: List[Room], actor: str) -> None:
        self._publish_event(Event(
            event_type=EventType.ROOM_CREATED,
            data=RoomsCreatedData(
                hotel_id=hotel_id,
                room_ids=[r.id for r in rooms],
                room_numbers=[r.room_number for r in rooms],
                created_by=actor,
            ).to_dict(),
            source="room_service",
        ))

    _FIELD_EVENTS = {
        "occupancy_status": EventType.ROOM_OCCUPANCY_CHANGED,
        "cleaning_status": EventType.ROOM_CLEANING_CHANGED,
        "flags": EventType.ROOM_FLAG_TOGGLED,
        "notes": EventType.ROOM_NOTE_CHANGED,
    }

    def _publish_changes(self, room: Room, changed: Dict[str, Any], actor: str) -> None:
        before = room.to_dict()
        for name, event_type in self._FIELD_EVENTS.items():
            if name not in changed:
                continue
            self._publish_event(Event(
                event_type=event_type,
                data=RoomChangedData(
                    room_id=room.id,
                    hotel_id=room.hotel_id,
                    room_number=room.room_number,
                    field=name,
                    old_value=_as_text(before[name]),
                    new_value=_as_text(changed[name]),
                    changed_by=actor,
                ).to_dict(),
                source="room_service",
            ))


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        return ",".join(value)
    return str(value)
