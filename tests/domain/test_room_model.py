"""
Room value type tests
"""
import pytest
from dataclasses import replace

from hotelpms.domain.enums import (
    CleaningPriority, CleaningStatus, OccupancyStatus, RoomFlag,
    next_cleaning_status, next_occupancy_status,
)
from hotelpms.domain.room import Room, calculate_floor


def make_room(**overrides) -> Room:
    values = dict(
        id="room-101", hotel_id="hotel-1", room_number=101, floor_number=1,
        occupancy_status=OccupancyStatus.VACANT, cleaning_status=CleaningStatus.DIRTY,
    )
    values.update(overrides)
    return Room(**values)


class TestFloorConvention:

    @pytest.mark.parametrize("number,floor", [(205, 2), (101, 1), (99, 0), (1, 0), (1210, 12)])
    def test_floor_is_number_div_100(self, number, floor):
        assert calculate_floor(number) == floor


class TestFlags:

    @pytest.mark.parametrize("flag", list(RoomFlag))
    def test_toggle_twice_is_identity(self, flag):
        room = make_room(flags=frozenset({RoomFlag.DND}))
        assert room.with_flag_toggled(flag).with_flag_toggled(flag) == room

    def test_toggle_adds_then_removes(self):
        room = make_room()
        flagged = room.with_flag_toggled(RoomFlag.OUT_OF_ORDER)
        assert flagged.flags == {RoomFlag.OUT_OF_ORDER}
        assert flagged.is_out_of_service
        assert flagged.with_flag_toggled(RoomFlag.OUT_OF_ORDER).flags == frozenset()

    def test_maintenance_flags_exclude_dnd(self):
        room = make_room(flags=frozenset({RoomFlag.DND, RoomFlag.MAINTENANCE_REQUIRED}))
        assert room.maintenance_flags == [RoomFlag.MAINTENANCE_REQUIRED]
        assert room.has_maintenance_flag


class TestWorkflowPredicates:

    def test_in_progress_room_can_be_marked_ready(self):
        room = make_room(cleaning_status=CleaningStatus.CLEANING_IN_PROGRESS)
        assert room.can_mark_ready() is True
        assert room.can_start_cleaning() is False

    def test_dirty_room_can_start_cleaning(self):
        room = make_room()
        assert room.can_start_cleaning() is True
        assert room.can_mark_ready() is False

    def test_checked_out_room_can_start_cleaning_even_if_ready(self):
        room = make_room(occupancy_status=OccupancyStatus.CHECKED_OUT,
                         cleaning_status=CleaningStatus.READY)
        assert room.can_start_cleaning() is True
        assert room.cleaning_priority == CleaningPriority.HIGH

    def test_dnd_alone_does_not_need_attention(self):
        room = make_room(cleaning_status=CleaningStatus.READY, flags=frozenset({RoomFlag.DND}))
        assert room.needs_attention is False

    @pytest.mark.parametrize("flag", [
        RoomFlag.MAINTENANCE_REQUIRED, RoomFlag.OUT_OF_ORDER, RoomFlag.OUT_OF_SERVICE,
    ])
    def test_maintenance_flags_need_attention(self, flag):
        room = make_room(cleaning_status=CleaningStatus.READY, flags=frozenset({flag}))
        assert room.needs_attention is True

    def test_dirty_room_needs_attention(self):
        assert make_room().needs_attention is True

    def test_cleaning_priority(self):
        assert make_room().cleaning_priority == CleaningPriority.MEDIUM
        assert make_room(cleaning_status=CleaningStatus.CLEANING_IN_PROGRESS).cleaning_priority == CleaningPriority.LOW
        assert make_room(cleaning_status=CleaningStatus.READY).cleaning_priority == CleaningPriority.NONE

    def test_availability_and_check_in_out(self):
        ready = make_room(cleaning_status=CleaningStatus.READY)
        assert ready.is_available and ready.can_check_in
        assigned = replace(ready, occupancy_status=OccupancyStatus.ASSIGNED)
        assert not assigned.is_available and assigned.can_check_in
        occupied = replace(ready, occupancy_status=OccupancyStatus.OCCUPIED)
        assert occupied.can_check_out and not occupied.can_check_in
        assert replace(ready, occupancy_status=OccupancyStatus.STAYOVER).can_check_out
        assert not make_room().can_check_in


class TestNotesPreview:

    def test_short_note_is_shown_whole(self):
        assert make_room(notes="  Extra towels ").notes_preview == "Extra towels"

    def test_long_note_is_cut(self):
        assert make_room(notes="Guest requested late checkout").notes_preview == "Guest reques..."

    def test_blank_note_has_no_preview(self):
        room = make_room(notes="   ")
        assert room.has_notes is False
        assert room.notes_preview is None


class TestCycles:

    def test_cleaning_cycle(self):
        assert next_cleaning_status(CleaningStatus.DIRTY) == CleaningStatus.CLEANING_IN_PROGRESS
        assert next_cleaning_status(CleaningStatus.CLEANING_IN_PROGRESS) == CleaningStatus.READY
        assert next_cleaning_status(CleaningStatus.READY) == CleaningStatus.DIRTY

    def test_occupancy_cycle(self):
        assert next_occupancy_status(OccupancyStatus.VACANT) == OccupancyStatus.ASSIGNED
        assert next_occupancy_status(OccupancyStatus.ASSIGNED) == OccupancyStatus.OCCUPIED
        assert next_occupancy_status(OccupancyStatus.OCCUPIED) == OccupancyStatus.VACANT
        assert next_occupancy_status(OccupancyStatus.STAYOVER) == OccupancyStatus.VACANT
        assert next_occupancy_status(OccupancyStatus.CHECKED_OUT) == OccupancyStatus.VACANT


class TestRecordMapping:

    def test_from_record_uses_snake_case_keys(self):
        room = Room.from_record({
            "id": "r1", "hotel_id": "h1", "room_number": 305, "floor_number": 3,
            "occupancy_status": "checked_out", "cleaning_status": "cleaning_in_progress",
            "flags": ["dnd", "out_of_order"], "notes": None,
        })
        assert room.occupancy_status == OccupancyStatus.CHECKED_OUT
        assert room.cleaning_status == CleaningStatus.CLEANING_IN_PROGRESS
        assert room.flags == {RoomFlag.DND, RoomFlag.OUT_OF_ORDER}
        assert room.to_dict()["flags"] == ["dnd", "out_of_order"]
