"""
hotelpms/domain/patch.py

Strongly-typed partial update of a room.
"""
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Optional

from hotelpms.domain.enums import CleaningStatus, OccupancyStatus, RoomFlag
from hotelpms.domain.room import encode_flags
from hotelpms.errors import EmptyPatchError


@dataclass(frozen=True)
class RoomPatch:
    """
    Partial update of the mutable room attributes.

    A field left as None is not touched. ``notes=""`` clears the notes.
    """
    occupancy_status: Optional[OccupancyStatus] = None
    cleaning_status: Optional[CleaningStatus] = None
    flags: Optional[FrozenSet[RoomFlag]] = None
    notes: Optional[str] = None

    def __post_init__(self):
        # raw values are accepted and normalised
        if self.occupancy_status is not None:
            object.__setattr__(self, "occupancy_status", OccupancyStatus(self.occupancy_status))
        if self.cleaning_status is not None:
            object.__setattr__(self, "cleaning_status", CleaningStatus(self.cleaning_status))
        if self.flags is not None:
            object.__setattr__(self, "flags", frozenset(RoomFlag(f) for f in self.flags))

    @property
    def is_empty(self) -> bool:
        return (
            self.occupancy_status is None
            and self.cleaning_status is None
            and self.flags is None
            and self.notes is None
        )

    def validate(self) -> "RoomPatch":
        if self.is_empty:
            raise EmptyPatchError()
        return self

    def to_values(self) -> Dict[str, Any]:
        """Persisted field names of the set fields"""
        values: Dict[str, Any] = {}
        if self.occupancy_status is not None:
            values["occupancy_status"] = self.occupancy_status.value
        if self.cleaning_status is not None:
            values["cleaning_status"] = self.cleaning_status.value
        if self.flags is not None:
            values["flags"] = encode_flags(self.flags)
        if self.notes is not None:
            values["notes"] = self.notes.strip() or None
        return values

    # ---------- shortcuts ----------

    @classmethod
    def occupancy(cls, status: OccupancyStatus) -> "RoomPatch":
        return cls(occupancy_status=status)

    @classmethod
    def cleaning(cls, status: CleaningStatus) -> "RoomPatch":
        return cls(cleaning_status=status)

    @classmethod
    def with_flags(cls, flags: Iterable[RoomFlag]) -> "RoomPatch":
        return cls(flags=frozenset(flags))
