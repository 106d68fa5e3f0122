"""
Audit trail recorder tests
"""
import pytest
from datetime import datetime, timedelta, timezone

from conftest import ACTOR_ID, HOTEL_ID, OTHER_HOTEL_ID
from hotelpms.domain.audit import AuditEntry
from hotelpms.domain.enums import AuditChangeType, CleaningStatus, OccupancyStatus, RoomFlag
from hotelpms.domain.room import RoomRange
from hotelpms.errors import InvalidEventTypeError, NetworkError
from hotelpms.services.audit_service import AuditRecorder, describe, flag_entry
from hotelpms.store.base import ROOM_HISTORY, StoreError


class TestRecord:

    def test_record_assigns_timestamp(self, audit):
        entry = audit.record(AuditEntry(room_id="r1", change_type="cleaning_status",
                                        actor_id=ACTOR_ID, old_value="dirty", new_value="ready"))
        assert entry.id
        assert entry.change_type == AuditChangeType.CLEANING_STATUS
        assert entry.created_at.tzinfo is not None

    def test_unknown_change_type_writes_nothing(self, audit, store):
        with pytest.raises(InvalidEventTypeError):
            audit.record(AuditEntry(room_id="r1", change_type="price_changed"))
        assert store.count(ROOM_HISTORY) == 0

    def test_record_many_validates_before_writing(self, audit, store):
        entries = [
            AuditEntry(room_id="r1", change_type="notes", new_value="a"),
            AuditEntry(room_id="r1", change_type="bogus"),
        ]
        with pytest.raises(InvalidEventTypeError):
            audit.record_many(entries)
        assert store.count(ROOM_HISTORY) == 0

    def test_record_many_empty(self, audit):
        assert audit.record_many([]) == []

    def test_store_failure_is_network_error(self, store, monkeypatch):
        def failing(collection, values):
            raise StoreError("timeout", collection)

        monkeypatch.setattr(store, "insert", failing)
        with pytest.raises(NetworkError):
            AuditRecorder(store).log_room_created("r1", ACTOR_ID, 101)

    def test_convenience_recorders(self, audit):
        audit.log_occupancy_change("r1", ACTOR_ID, OccupancyStatus.VACANT, OccupancyStatus.OCCUPIED)
        audit.log_cleaning_change("r1", ACTOR_ID, CleaningStatus.DIRTY, CleaningStatus.READY)
        audit.log_flag_added("r1", ACTOR_ID, RoomFlag.DND)
        audit.log_flag_removed("r1", ACTOR_ID, RoomFlag.DND)
        added = audit.log_note_added("r1", ACTOR_ID, "Broken lamp")
        deleted = audit.log_note_deleted("r1", ACTOR_ID, "Broken lamp")

        assert added.note == "Note added" and added.new_value == "Broken lamp"
        assert deleted.note == "Note deleted" and deleted.old_value == "Broken lamp"
        assert len(audit.room_history("r1")) == 6


class TestQueries:

    def test_history_is_newest_first_and_paged(self, store):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        ticks = iter(start + timedelta(minutes=i) for i in range(10))
        recorder = AuditRecorder(store, clock=lambda: next(ticks))
        for value in ["a", "b", "c", "d"]:
            recorder.log_note_added("r1", ACTOR_ID, value)

        assert [e.new_value for e in recorder.room_history("r1")] == ["d", "c", "b", "a"]
        assert [e.new_value for e in recorder.room_history("r1", limit=2, offset=1)] == ["c", "b"]

    def test_hotel_activity_is_scoped(self, room_service, audit):
        own = room_service.create_rooms_from_ranges(HOTEL_ID, [RoomRange(1, 2)], ACTOR_ID)
        room_service.create_rooms_from_ranges(OTHER_HOTEL_ID, [RoomRange(1, 3)], ACTOR_ID)
        room_service.set_cleaning(own[0], CleaningStatus.READY, "housekeeper-1")

        activity = audit.hotel_activity(HOTEL_ID)
        assert len(activity) == 3
        assert activity[0].change_type == AuditChangeType.CLEANING_STATUS
        assert audit.hotel_activity("empty-hotel") == []

        assert len(audit.activity_by_type("created", hotel_id=HOTEL_ID)) == 2
        assert len(audit.activity_by_type(AuditChangeType.CREATED)) == 5
        assert [e.actor_id for e in audit.activity_by_actor("housekeeper-1")] == ["housekeeper-1"]

    def test_activity_by_unknown_type(self, audit):
        with pytest.raises(InvalidEventTypeError):
            audit.activity_by_type("checked_in")


class TestPresentation:

    def test_actor_label(self, store):
        names = {"u1": "Maria"}
        recorder = AuditRecorder(store, actor_lookup=names.get)
        assert recorder.actor_label("u1") == "Maria"
        assert recorder.actor_label("deleted-user") == "unknown"
        assert recorder.actor_label(None) == "unknown"
        assert AuditRecorder(store).actor_label("u1") == "u1"

    @pytest.mark.parametrize("entry,sentence", [
        (AuditEntry(room_id="r", change_type=AuditChangeType.OCCUPANCY_STATUS,
                    old_value="vacant", new_value="occupied"),
         "Set Room 101 from Vacant → Occupied"),
        (AuditEntry(room_id="r", change_type=AuditChangeType.CLEANING_STATUS,
                    old_value="cleaning_in_progress", new_value="ready"),
         "Set Room 101 from Cleaning In Progress → Ready"),
        (flag_entry("r", None, RoomFlag.DND, added=True),
         "Added flag to Room 101: added: dnd"),
        (flag_entry("r", None, RoomFlag.DND, added=False),
         "Removed flag from Room 101: removed: dnd"),
        (AuditEntry(room_id="r", change_type=AuditChangeType.NOTES, new_value="x"),
         "Added note to Room 101"),
        (AuditEntry(room_id="r", change_type=AuditChangeType.NOTES, old_value="x"),
         "Deleted note from Room 101"),
        (AuditEntry(room_id="r", change_type=AuditChangeType.CREATED, new_value="101"),
         "Created Room 101"),
    ])
    def test_describe(self, entry, sentence):
        assert describe(entry, "Room 101") == sentence

    def test_flag_entry_populates_one_side(self):
        added = flag_entry("r", ACTOR_ID, RoomFlag.OUT_OF_ORDER, added=True)
        assert added.is_flag_added and not added.is_flag_removed
        assert added.old_value is None
        removed = flag_entry("r", ACTOR_ID, RoomFlag.OUT_OF_ORDER, added=False)
        assert removed.is_flag_removed and removed.new_value is None
