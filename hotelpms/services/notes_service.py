"""
Notes service - free-text notes attached to rooms

Note text is trimmed; empty text is rejected before any store call.
Every mutation is followed by one ``notes`` audit entry.
"""
from datetime import datetime, timedelta
from typing import Callable, List, Optional
import logging

from hotelpms.config import settings
from hotelpms.domain.audit import RoomNote
from hotelpms.domain.room import utcnow
from hotelpms.engine.event_bus import Event, EventPublisher, discard_event
from hotelpms.engine.events import EventType, RoomChangedData
from hotelpms.errors import EmptyNoteError, NetworkError, NoteNotFoundError, PartialFailureError
from hotelpms.services.audit_service import AuditRecorder
from hotelpms.services.base import network_errors, require_actor
from hotelpms.store.base import Filter, RecordStore, ROOM_NOTES, ROOMS

logger = logging.getLogger(__name__)


def clean_note(text: Optional[str]) -> str:
    """Trimmed note text; EmptyNoteError when nothing is left"""
    body = (text or "").strip()
    if not body:
        raise EmptyNoteError()
    return body


class NotesService:
    """Room notes"""

    def __init__(
        self,
        store: RecordStore,
        audit: AuditRecorder,
        event_publisher: EventPublisher = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.audit = audit
        self._publish_event = event_publisher or discard_event
        self._clock = clock

    # ============== Mutations ==============

    def add_note(self, room_id: str, actor_id: str, text: str) -> RoomNote:
        actor = require_actor(actor_id)
        body = clean_note(text)
        with network_errors("create note"):
            row = self.store.insert(ROOM_NOTES, {
                "room_id": room_id,
                "author_id": actor,
                "note": body,
                "created_at": self._clock(),
            })
        note = RoomNote.from_record(row)
        self._audit("create note", lambda: self.audit.log_note_added(room_id, actor, body))
        self._publish(room_id, None, body, actor)
        logger.info(f"Note {note.id} added to room {room_id}")
        return note

    def update_note(self, note_id: str, actor_id: str, text: str) -> RoomNote:
        actor = require_actor(actor_id)
        body = clean_note(text)
        old = self.get_note(note_id)
        if old.note == body:
            return old
        with network_errors("update note"):
            row = self.store.update(ROOM_NOTES, note_id, {"note": body})
        if row is None:
            raise NoteNotFoundError(context={"note_id": note_id})
        note = RoomNote.from_record(row)
        self._audit(
            "update note",
            lambda: self.audit.log_note_updated(old.room_id, actor, old.note, body),
        )
        self._publish(old.room_id, old.note, body, actor)
        return note

    def delete_note(self, note_id: str, actor_id: str) -> RoomNote:
        """Delete a note, returning what was deleted"""
        actor = require_actor(actor_id)
        old = self.get_note(note_id)
        with network_errors("delete note"):
            deleted = self.store.delete(ROOM_NOTES, note_id)
        if not deleted:
            raise NoteNotFoundError(context={"note_id": note_id})
        self._audit(
            "delete note",
            lambda: self.audit.log_note_deleted(old.room_id, actor, old.note),
        )
        self._publish(old.room_id, old.note, None, actor)
        return old

    # ============== Queries ==============

    def get_note(self, note_id: str) -> RoomNote:
        with network_errors("get note"):
            row = self.store.get(ROOM_NOTES, note_id)
        if row is None:
            raise NoteNotFoundError(context={"note_id": note_id})
        return RoomNote.from_record(row)

    def get_notes(self, room_id: str, limit: int = 50) -> List[RoomNote]:
        """Notes of a room, newest first"""
        with network_errors("get notes"):
            rows = self.store.select(
                ROOM_NOTES, [Filter.eq("room_id", room_id)],
                order_by="created_at", descending=True, limit=limit,
            )
        return [RoomNote.from_record(r) for r in rows]

    def note_count(self, room_id: str) -> int:
        with network_errors("count notes"):
            return self.store.count(ROOM_NOTES, [Filter.eq("room_id", room_id)])

    def recent_notes(self, hotel_id: str, hours: Optional[int] = None) -> List[RoomNote]:
        """Notes written in the hotel during the last ``hours`` hours"""
        hours = settings.RECENT_NOTES_HOURS if hours is None else hours
        since = self._clock() - timedelta(hours=hours)
        with network_errors("get recent notes"):
            rooms = self.store.select(ROOMS, [Filter.eq("hotel_id", hotel_id)])
            if not rooms:
                return []
            rows = self.store.select(
                ROOM_NOTES,
                [Filter.in_("room_id", [r["id"] for r in rooms]), Filter.gte("created_at", since)],
                order_by="created_at", descending=True,
            )
        return [RoomNote.from_record(r) for r in rows]

    def search_notes(self, query: str, room_id: Optional[str] = None) -> List[RoomNote]:
        """Case-insensitive substring search"""
        filters = [Filter.ilike("note", f"%{query}%")]
        if room_id is not None:
            filters.append(Filter.eq("room_id", room_id))
        with network_errors("search notes"):
            rows = self.store.select(ROOM_NOTES, filters, order_by="created_at", descending=True)
        return [RoomNote.from_record(r) for r in rows]

    # ============== Internals ==============

    def _audit(self, committed_step: str, record: Callable[[], object]) -> None:
        try:
            record()
        except NetworkError as e:
            raise PartialFailureError(
                f"{committed_step} succeeded but its audit entry was not recorded: {e.message}",
                committed_step=committed_step,
            ) from e

    def _publish(self, room_id: str, old: Optional[str], new: Optional[str], actor: str) -> None:
        self._publish_event(Event(
            event_type=EventType.ROOM_NOTE_CHANGED,
            data=RoomChangedData(
                room_id=room_id, field="notes", old_value=old, new_value=new, changed_by=actor,
            ).to_dict(),
            source="notes_service",
        ))
