"""
Audit trail recorder - append-only room history

Every committed room change is recorded here, one entry per field that
actually changed. Entries are never updated or deleted.
"""
from datetime import datetime
from typing import Callable, List, Optional, Sequence
import logging

from hotelpms.config import settings
from hotelpms.domain.audit import AuditEntry, flag_added_value, flag_removed_value
from hotelpms.domain.enums import (
    AuditChangeType, CleaningStatus, OccupancyStatus, RoomFlag
)
from hotelpms.domain.room import utcnow
from hotelpms.errors import InvalidEventTypeError
from hotelpms.services.base import network_errors
from hotelpms.store.base import Filter, RecordStore, ROOM_HISTORY, ROOMS

logger = logging.getLogger(__name__)

UNKNOWN_ACTOR = "unknown"


class AuditRecorder:
    """
    Room history recorder

    Args:
        store: record store
        clock: timestamp source for entries without created_at
        actor_lookup: optional callable resolving an actor id to a display
            name, returning None for a deleted profile
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], datetime] = utcnow,
        actor_lookup: Optional[Callable[[str], Optional[str]]] = None,
    ):
        self.store = store
        self._clock = clock
        self._actor_lookup = actor_lookup

    # ============== Write ==============

    def _validated(self, entry: AuditEntry) -> AuditEntry:
        if not AuditChangeType.is_known(entry.change_type):
            raise InvalidEventTypeError(
                f"Invalid event type: {entry.change_type}",
                context={"change_type": str(entry.change_type)},
            )
        return AuditEntry(
            room_id=entry.room_id,
            change_type=AuditChangeType(entry.change_type),
            actor_id=entry.actor_id,
            old_value=entry.old_value,
            new_value=entry.new_value,
            note=entry.note,
            created_at=entry.created_at or self._clock(),
        )

    def record(self, entry: AuditEntry) -> AuditEntry:
        """
        Append one entry

        Raises:
            InvalidEventTypeError: unknown change type, nothing is written
            NetworkError: the store failed
        """
        entry = self._validated(entry)
        with network_errors("create audit record"):
            row = self.store.insert(ROOM_HISTORY, entry.to_record())
        logger.info(f"Audit: {entry.change_type.value} on room {entry.room_id} by {entry.actor_id}")
        return AuditEntry.from_record(row)

    def record_many(self, entries: Sequence[AuditEntry]) -> List[AuditEntry]:
        """Validate every entry first, then append all of them or none"""
        if not entries:
            return []
        validated = [self._validated(e) for e in entries]
        with network_errors("create bulk audit records"):
            rows = self.store.insert_many(ROOM_HISTORY, [e.to_record() for e in validated])
        logger.info(f"Audit: {len(rows)} entries recorded")
        return [AuditEntry.from_record(r) for r in rows]

    # ---------- convenience recorders ----------

    def log_occupancy_change(self, room_id: str, actor_id: str, old: OccupancyStatus,
                             new: OccupancyStatus, reason: str = None) -> AuditEntry:
        return self.record(AuditEntry(
            room_id=room_id, actor_id=actor_id,
            change_type=AuditChangeType.OCCUPANCY_STATUS,
            old_value=OccupancyStatus(old).value, new_value=OccupancyStatus(new).value,
            note=reason,
        ))

    def log_cleaning_change(self, room_id: str, actor_id: str, old: CleaningStatus,
                            new: CleaningStatus, reason: str = None) -> AuditEntry:
        return self.record(AuditEntry(
            room_id=room_id, actor_id=actor_id,
            change_type=AuditChangeType.CLEANING_STATUS,
            old_value=CleaningStatus(old).value, new_value=CleaningStatus(new).value,
            note=reason,
        ))

    def log_flag_added(self, room_id: str, actor_id: str, flag: RoomFlag,
                       reason: str = None) -> AuditEntry:
        return self.record(flag_entry(room_id, actor_id, flag, added=True, reason=reason))

    def log_flag_removed(self, room_id: str, actor_id: str, flag: RoomFlag,
                         reason: str = None) -> AuditEntry:
        return self.record(flag_entry(room_id, actor_id, flag, added=False, reason=reason))

    def log_note_added(self, room_id: str, actor_id: str, text: str,
                       reason: str = None) -> AuditEntry:
        return self.record(AuditEntry(
            room_id=room_id, actor_id=actor_id, change_type=AuditChangeType.NOTES,
            new_value=text, note=reason or "Note added",
        ))

    def log_note_updated(self, room_id: str, actor_id: str, old_text: str, new_text: str,
                         reason: str = None) -> AuditEntry:
        return self.record(AuditEntry(
            room_id=room_id, actor_id=actor_id, change_type=AuditChangeType.NOTES,
            old_value=old_text, new_value=new_text, note=reason or "Note updated",
        ))

    def log_note_deleted(self, room_id: str, actor_id: str, text: str,
                         reason: str = None) -> AuditEntry:
        return self.record(AuditEntry(
            room_id=room_id, actor_id=actor_id, change_type=AuditChangeType.NOTES,
            old_value=text, note=reason or "Note deleted",
        ))

    def log_room_created(self, room_id: str, actor_id: str, room_number: int) -> AuditEntry:
        return self.record(created_entry(room_id, actor_id, room_number))

    # ============== Read ==============

    def _select(self, action: str, filters, limit: int, offset: int = 0) -> List[AuditEntry]:
        with network_errors(action):
            rows = self.store.select(
                ROOM_HISTORY, filters, order_by="created_at", descending=True,
                limit=limit, offset=offset,
            )
        return [AuditEntry.from_record(r) for r in rows]

    def room_history(self, room_id: str, limit: Optional[int] = None, offset: int = 0) -> List[AuditEntry]:
        """One page of a room's history, newest first"""
        return self._select(
            "get room history", [Filter.eq("room_id", room_id)],
            limit or settings.HISTORY_PAGE_SIZE, offset,
        )

    def hotel_activity(self, hotel_id: str, limit: Optional[int] = None) -> List[AuditEntry]:
        """Most recent entries across every room of a hotel"""
        with network_errors("get hotel activity"):
            rooms = self.store.select(ROOMS, [Filter.eq("hotel_id", hotel_id)])
        room_ids = [r["id"] for r in rooms]
        if not room_ids:
            return []
        return self._select(
            "get hotel activity", [Filter.in_("room_id", room_ids)],
            limit or settings.ACTIVITY_LIMIT,
        )

    def activity_by_type(self, change_type, limit: int = 50,
                         hotel_id: Optional[str] = None) -> List[AuditEntry]:
        if not AuditChangeType.is_known(change_type):
            raise InvalidEventTypeError(f"Invalid event type: {change_type}")
        filters = [Filter.eq("change_type", AuditChangeType(change_type).value)]
        filters.extend(self._hotel_scope(hotel_id))
        return self._select("get activity by type", filters, limit)

    def activity_by_actor(self, actor_id: str, limit: int = 50,
                          hotel_id: Optional[str] = None) -> List[AuditEntry]:
        filters = [Filter.eq("changed_by", actor_id)]
        filters.extend(self._hotel_scope(hotel_id))
        return self._select("get activity by actor", filters, limit)

    def _hotel_scope(self, hotel_id: Optional[str]) -> List[Filter]:
        if hotel_id is None:
            return []
        with network_errors("get hotel rooms"):
            rooms = self.store.select(ROOMS, [Filter.eq("hotel_id", hotel_id)])
        return [Filter.in_("room_id", [r["id"] for r in rooms])]

    # ============== Presentation ==============

    def actor_label(self, actor_id: Optional[str]) -> str:
        """Display name of an actor; 'unknown' for system actions and deleted profiles"""
        if actor_id is None:
            return UNKNOWN_ACTOR
        if self._actor_lookup is None:
            return str(actor_id)
        return self._actor_lookup(actor_id) or UNKNOWN_ACTOR


def flag_entry(room_id: str, actor_id: Optional[str], flag: RoomFlag,
               added: bool, reason: str = None) -> AuditEntry:
    """Added flags populate new_value only, removed flags old_value only"""
    raw = RoomFlag(flag).value
    if added:
        return AuditEntry(room_id=room_id, actor_id=actor_id, change_type=AuditChangeType.FLAGS,
                          new_value=flag_added_value(raw), note=reason)
    return AuditEntry(room_id=room_id, actor_id=actor_id, change_type=AuditChangeType.FLAGS,
                      old_value=flag_removed_value(raw), note=reason)


def created_entry(room_id: str, actor_id: Optional[str], room_number: int) -> AuditEntry:
    return AuditEntry(
        room_id=room_id, actor_id=actor_id, change_type=AuditChangeType.CREATED,
        new_value=str(room_number), note="Room created",
    )


def _status_label(change_type: AuditChangeType, raw: str) -> str:
    try:
        if change_type == AuditChangeType.OCCUPANCY_STATUS:
            return OccupancyStatus(raw).display_name
        return CleaningStatus(raw).display_name
    except ValueError:
        return raw.replace("_", " ").title()


def describe(entry: AuditEntry, room_label: str = "Room") -> str:
    """Activity feed sentence of one entry"""
    change_type = entry.change_type
    if change_type in (AuditChangeType.OCCUPANCY_STATUS, AuditChangeType.CLEANING_STATUS):
        if entry.old_value and entry.new_value:
            return (
                f"Set {room_label} from {_status_label(change_type, entry.old_value)}"
                f" → {_status_label(change_type, entry.new_value)}"
            )
        kind = "occupancy" if change_type == AuditChangeType.OCCUPANCY_STATUS else "cleaning status"
        return f"Updated {kind} for {room_label}"
    if change_type == AuditChangeType.FLAGS:
        if entry.is_flag_added:
            return f"Added flag to {room_label}: {entry.new_value}"
        if entry.is_flag_removed:
            return f"Removed flag from {room_label}: {entry.old_value}"
        return f"Updated flags for {room_label}"
    if change_type == AuditChangeType.NOTES:
        if entry.old_value and entry.new_value:
            return f"Updated note on {room_label}"
        if entry.old_value:
            return f"Deleted note from {room_label}"
        return f"Added note to {room_label}"
    if change_type == AuditChangeType.CREATED:
        return f"Created {room_label}"
    return f"Updated {room_label}"
