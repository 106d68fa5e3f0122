"""
hotelpms/domain/room.py

Room value type, derived predicates and room-range generation.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence

from hotelpms.domain.enums import (
    CleaningPriority,
    CleaningStatus,
    MAINTENANCE_FLAGS,
    OccupancyStatus,
    RoomFlag,
)
from hotelpms.errors import InvalidRoomRangeError

NOTES_PREVIEW_LIMIT = 15
NOTES_PREVIEW_CUT = 12


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calculate_floor(room_number: int) -> int:
    """Floor by convention: 205 -> 2, 101 -> 1, 99 -> 0"""
    return room_number // 100


@dataclass(frozen=True)
class Room:
    """
    Immutable room snapshot.

    Every mutation produces a new Room through ``replace``; the store
    record is the durable copy.
    """
    id: str
    hotel_id: str
    room_number: int
    floor_number: int
    occupancy_status: OccupancyStatus = OccupancyStatus.VACANT
    cleaning_status: CleaningStatus = CleaningStatus.DIRTY
    flags: FrozenSet[RoomFlag] = field(default_factory=frozenset)
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    # ---------- flags ----------

    def has_flag(self, flag: RoomFlag) -> bool:
        return RoomFlag(flag) in self.flags

    def with_flag_toggled(self, flag: RoomFlag) -> "Room":
        flag = RoomFlag(flag)
        flags = self.flags - {flag} if flag in self.flags else self.flags | {flag}
        return replace(self, flags=frozenset(flags))

    @property
    def has_flags(self) -> bool:
        return bool(self.flags)

    @property
    def has_maintenance_flag(self) -> bool:
        return bool(self.maintenance_flags)

    @property
    def maintenance_flags(self) -> List[RoomFlag]:
        return [f for f in MAINTENANCE_FLAGS if f in self.flags]

    @property
    def is_out_of_service(self) -> bool:
        return RoomFlag.OUT_OF_ORDER in self.flags or RoomFlag.OUT_OF_SERVICE in self.flags

    # ---------- workflow predicates ----------

    @property
    def needs_attention(self) -> bool:
        # dnd alone never needs attention
        return self.has_maintenance_flag or self.cleaning_status == CleaningStatus.DIRTY

    @property
    def needs_cleaning(self) -> bool:
        return (
            self.cleaning_status == CleaningStatus.DIRTY
            or self.occupancy_status == OccupancyStatus.CHECKED_OUT
        )

    def can_start_cleaning(self) -> bool:
        return self.needs_cleaning

    def can_mark_ready(self) -> bool:
        return self.cleaning_status == CleaningStatus.CLEANING_IN_PROGRESS

    @property
    def cleaning_priority(self) -> CleaningPriority:
        if self.occupancy_status == OccupancyStatus.CHECKED_OUT:
            return CleaningPriority.HIGH
        if self.cleaning_status == CleaningStatus.DIRTY:
            return CleaningPriority.MEDIUM
        if self.cleaning_status == CleaningStatus.CLEANING_IN_PROGRESS:
            return CleaningPriority.LOW
        return CleaningPriority.NONE

    @property
    def is_available(self) -> bool:
        return (
            self.occupancy_status == OccupancyStatus.VACANT
            and self.cleaning_status == CleaningStatus.READY
        )

    @property
    def can_check_in(self) -> bool:
        return (
            self.occupancy_status in (OccupancyStatus.VACANT, OccupancyStatus.ASSIGNED)
            and self.cleaning_status == CleaningStatus.READY
        )

    @property
    def can_check_out(self) -> bool:
        return self.occupancy_status in (OccupancyStatus.OCCUPIED, OccupancyStatus.STAYOVER)

    # ---------- notes ----------

    @property
    def has_notes(self) -> bool:
        return bool(self.notes and self.notes.strip())

    @property
    def notes_preview(self) -> Optional[str]:
        if not self.has_notes:
            return None
        text = self.notes.strip()
        if len(text) > NOTES_PREVIEW_LIMIT:
            return text[:NOTES_PREVIEW_CUT] + "..."
        return text

    @property
    def display_name(self) -> str:
        return f"Room {self.room_number}"

    # ---------- record mapping ----------

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Room":
        return cls(
            id=record["id"],
            hotel_id=record["hotel_id"],
            room_number=int(record["room_number"]),
            floor_number=int(record["floor_number"]),
            occupancy_status=OccupancyStatus(record["occupancy_status"]),
            cleaning_status=CleaningStatus(record["cleaning_status"]),
            flags=frozenset(RoomFlag(f) for f in (record.get("flags") or [])),
            notes=record.get("notes"),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
            updated_by=record.get("updated_by"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hotel_id": self.hotel_id,
            "room_number": self.room_number,
            "floor_number": self.floor_number,
            "occupancy_status": self.occupancy_status.value,
            "cleaning_status": self.cleaning_status.value,
            "flags": encode_flags(self.flags),
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "updated_by": self.updated_by,
        }


def encode_flags(flags: Iterable[RoomFlag]) -> List[str]:
    """Stable, sorted raw values of a flag set"""
    return sorted(RoomFlag(f).value for f in flags)


# ============== Room ranges ==============

@dataclass(frozen=True)
class RoomRange:
    """Inclusive range of room numbers"""
    start: int
    end: int

    @classmethod
    def parse(cls, start: Any, end: Any) -> "RoomRange":
        """Build from raw input such as ("101", "105")"""
        try:
            return cls(int(str(start).strip()), int(str(end).strip()))
        except (TypeError, ValueError):
            raise InvalidRoomRangeError(
                f"Room range bounds must be integers: {start!r}-{end!r}"
            )

    @property
    def is_valid(self) -> bool:
        return 0 < self.start <= self.end

    def overlaps(self, other: "RoomRange") -> bool:
        return self.start <= other.end and other.start <= self.end

    def numbers(self) -> range:
        return range(self.start, self.end + 1)

    def __len__(self) -> int:
        return self.end - self.start + 1 if self.is_valid else 0


def validate_room_ranges(ranges: Sequence[RoomRange]) -> None:
    """
    Validate a batch of ranges before anything is created.

    Raises:
        InvalidRoomRangeError: empty batch, a range with start > end or a
            non-positive bound, or two overlapping ranges
    """
    if not ranges:
        raise InvalidRoomRangeError("At least one room range is required")

    for r in ranges:
        if not r.is_valid:
            raise InvalidRoomRangeError(
                f"Invalid room range {r.start}-{r.end}",
                context={"start": r.start, "end": r.end},
            )

    for i, a in enumerate(ranges):
        for b in ranges[i + 1:]:
            if a.overlaps(b):
                raise InvalidRoomRangeError(
                    f"Room ranges {a.start}-{a.end} and {b.start}-{b.end} overlap",
                    context={"first": [a.start, a.end], "second": [b.start, b.end]},
                )


def room_numbers_for(ranges: Sequence[RoomRange]) -> List[int]:
    """Validated, ascending room numbers covered by the ranges"""
    validate_room_ranges(ranges)
    return sorted(n for r in ranges for n in r.numbers())
