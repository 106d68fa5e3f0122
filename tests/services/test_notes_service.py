"""
Room notes tests
"""
import pytest
from datetime import datetime, timedelta, timezone

from conftest import ACTOR_ID, HOTEL_ID
from hotelpms.domain.enums import AuditChangeType
from hotelpms.engine.events import EventType
from hotelpms.errors import EmptyNoteError, NetworkError, NoteNotFoundError, PartialFailureError
from hotelpms.services.notes_service import NotesService, clean_note
from hotelpms.store.base import ROOM_NOTES


def test_clean_note():
    assert clean_note("  Broken lamp \n") == "Broken lamp"
    for blank in ("", "   ", None):
        with pytest.raises(EmptyNoteError):
            clean_note(blank)


class TestNoteMutations:

    def test_add_note_is_trimmed_and_audited(self, notes_service, sample_room, audit, publisher):
        note = notes_service.add_note(sample_room.id, ACTOR_ID, "  Broken lamp  ")
        assert note.note == "Broken lamp"
        assert note.author_id == ACTOR_ID

        latest = audit.room_history(sample_room.id)[0]
        assert latest.change_type == AuditChangeType.NOTES
        assert latest.new_value == "Broken lamp"
        assert publisher.call_args.args[0].event_type == EventType.ROOM_NOTE_CHANGED

    def test_blank_note_never_reaches_the_store(self, notes_service, sample_room, store):
        with pytest.raises(EmptyNoteError):
            notes_service.add_note(sample_room.id, ACTOR_ID, "   ")
        assert store.count(ROOM_NOTES) == 0

    def test_update_note(self, notes_service, sample_room, audit):
        note = notes_service.add_note(sample_room.id, ACTOR_ID, "Broken lamp")
        updated = notes_service.update_note(note.id, ACTOR_ID, "Lamp replaced")
        assert updated.note == "Lamp replaced"

        latest = audit.room_history(sample_room.id)[0]
        assert (latest.old_value, latest.new_value, latest.note) == (
            "Broken lamp", "Lamp replaced", "Note updated"
        )

    def test_update_with_same_text_is_a_no_op(self, notes_service, sample_room, audit):
        note = notes_service.add_note(sample_room.id, ACTOR_ID, "Broken lamp")
        before = len(audit.room_history(sample_room.id))
        notes_service.update_note(note.id, ACTOR_ID, " Broken lamp ")
        assert len(audit.room_history(sample_room.id)) == before

    def test_update_of_note_deleted_meanwhile_is_not_found(self, notes_service, sample_room, store, monkeypatch):
        note = notes_service.add_note(sample_room.id, ACTOR_ID, "Broken lamp")
        original = store.update

        def update_after_delete(collection, record_id, values):
            store.delete(collection, record_id)
            return original(collection, record_id, values)

        monkeypatch.setattr(store, "update", update_after_delete)
        with pytest.raises(NoteNotFoundError):
            notes_service.update_note(note.id, ACTOR_ID, "Lamp replaced")

    def test_delete_note(self, notes_service, sample_room, audit):
        note = notes_service.add_note(sample_room.id, ACTOR_ID, "Broken lamp")
        deleted = notes_service.delete_note(note.id, ACTOR_ID)
        assert deleted.id == note.id
        assert notes_service.get_notes(sample_room.id) == []
        assert audit.room_history(sample_room.id)[0].note == "Note deleted"
        with pytest.raises(NoteNotFoundError):
            notes_service.delete_note(note.id, ACTOR_ID)

    def test_audit_failure_is_partial(self, notes_service, sample_room, audit, monkeypatch):
        def failing(*args, **kwargs):
            raise NetworkError("offline")

        monkeypatch.setattr(audit, "log_note_added", failing)
        with pytest.raises(PartialFailureError):
            notes_service.add_note(sample_room.id, ACTOR_ID, "Broken lamp")
        assert notes_service.note_count(sample_room.id) == 1


class TestNoteQueries:

    def test_recent_and_search(self, store, audit, sample_rooms):
        now = datetime(2026, 3, 1, 12, tzinfo=timezone.utc)
        service = NotesService(store, audit, clock=lambda: now)
        service.add_note(sample_rooms[0].id, ACTOR_ID, "Broken LAMP")
        service.add_note(sample_rooms[1].id, ACTOR_ID, "Extra towels")

        later = NotesService(store, audit, clock=lambda: now + timedelta(hours=49))
        assert later.recent_notes(HOTEL_ID) == []
        assert len(later.recent_notes(HOTEL_ID, hours=72)) == 2
        assert later.recent_notes("empty-hotel") == []

        assert [n.note for n in service.search_notes("lamp")] == ["Broken LAMP"]
        assert service.search_notes("lamp", room_id=sample_rooms[1].id) == []
        assert service.note_count(sample_rooms[0].id) == 1
