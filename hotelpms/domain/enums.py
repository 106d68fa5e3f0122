"""
hotelpms/domain/enums.py

Closed enumerations of the room and admission state machines, plus the
explicit translation functions between them.
"""
from enum import Enum, IntEnum
from typing import Dict, List


# ============== Room ==============

class OccupancyStatus(str, Enum):
    """Guest-presence state of a room"""
    VACANT = "vacant"
    ASSIGNED = "assigned"
    OCCUPIED = "occupied"
    STAYOVER = "stayover"
    CHECKED_OUT = "checked_out"

    @property
    def display_name(self) -> str:
        return _OCCUPANCY_NAMES[self]


class CleaningStatus(str, Enum):
    """Housekeeping workflow state"""
    DIRTY = "dirty"
    CLEANING_IN_PROGRESS = "cleaning_in_progress"
    READY = "ready"

    @property
    def display_name(self) -> str:
        return _CLEANING_NAMES[self]


class RoomFlag(str, Enum):
    """Exceptional room conditions"""
    MAINTENANCE_REQUIRED = "maintenance_required"
    OUT_OF_ORDER = "out_of_order"
    OUT_OF_SERVICE = "out_of_service"
    DND = "dnd"

    @property
    def display_name(self) -> str:
        return _FLAG_NAMES[self]


MAINTENANCE_FLAGS = (
    RoomFlag.MAINTENANCE_REQUIRED,
    RoomFlag.OUT_OF_ORDER,
    RoomFlag.OUT_OF_SERVICE,
)


class CleaningPriority(IntEnum):
    """Housekeeping queue priority, higher is more urgent"""
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


_OCCUPANCY_NAMES = {
    OccupancyStatus.VACANT: "Vacant",
    OccupancyStatus.ASSIGNED: "Assigned",
    OccupancyStatus.OCCUPIED: "Occupied",
    OccupancyStatus.STAYOVER: "Stayover",
    OccupancyStatus.CHECKED_OUT: "Checked Out",
}

_CLEANING_NAMES = {
    CleaningStatus.DIRTY: "Dirty",
    CleaningStatus.CLEANING_IN_PROGRESS: "Cleaning In Progress",
    CleaningStatus.READY: "Ready",
}

_FLAG_NAMES = {
    RoomFlag.MAINTENANCE_REQUIRED: "Maintenance",
    RoomFlag.OUT_OF_ORDER: "OOO",
    RoomFlag.OUT_OF_SERVICE: "OOS",
    RoomFlag.DND: "DND",
}

# One-tap cycling order; not a constraint on direct transitions.
_CLEANING_CYCLE: Dict[CleaningStatus, CleaningStatus] = {
    CleaningStatus.DIRTY: CleaningStatus.CLEANING_IN_PROGRESS,
    CleaningStatus.CLEANING_IN_PROGRESS: CleaningStatus.READY,
    CleaningStatus.READY: CleaningStatus.DIRTY,
}

_OCCUPANCY_CYCLE: Dict[OccupancyStatus, OccupancyStatus] = {
    OccupancyStatus.VACANT: OccupancyStatus.ASSIGNED,
    OccupancyStatus.ASSIGNED: OccupancyStatus.OCCUPIED,
    OccupancyStatus.OCCUPIED: OccupancyStatus.VACANT,
    OccupancyStatus.STAYOVER: OccupancyStatus.VACANT,
    OccupancyStatus.CHECKED_OUT: OccupancyStatus.VACANT,
}


def next_cleaning_status(status: CleaningStatus) -> CleaningStatus:
    """dirty -> cleaning_in_progress -> ready -> dirty"""
    return _CLEANING_CYCLE[CleaningStatus(status)]


def next_occupancy_status(status: OccupancyStatus) -> OccupancyStatus:
    """vacant -> assigned -> occupied -> vacant; stayover and checked_out -> vacant"""
    return _OCCUPANCY_CYCLE[OccupancyStatus(status)]


# ============== Admission ==============

class HotelRole(str, Enum):
    """Staff roles"""
    ADMIN = "admin"
    MANAGER = "manager"
    FRONT_DESK = "front_desk"
    HOUSEKEEPING = "housekeeping"
    MAINTENANCE = "maintenance"


# Role a pending membership carries until approval assigns the real one
DEFAULT_PENDING_ROLE = HotelRole.HOUSEKEEPING


class MembershipStatus(str, Enum):
    """Membership status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


ACTIVE_MEMBERSHIP_STATUSES: List[MembershipStatus] = [
    MembershipStatus.PENDING,
    MembershipStatus.APPROVED,
]


class JoinRequestStatus(str, Enum):
    """Join request status; there is no 'approved' here, see membership_status_for"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not JoinRequestStatus.PENDING


_MEMBERSHIP_FOR_REQUEST = {
    JoinRequestStatus.PENDING: MembershipStatus.PENDING,
    JoinRequestStatus.ACCEPTED: MembershipStatus.APPROVED,
    JoinRequestStatus.REJECTED: MembershipStatus.REJECTED,
}


def membership_status_for(status: JoinRequestStatus) -> MembershipStatus:
    """
    Translate a join request status into the paired membership status.

    accepted -> approved, rejected -> rejected, pending -> pending
    """
    return _MEMBERSHIP_FOR_REQUEST[JoinRequestStatus(status)]


# ============== Audit ==============

class AuditChangeType(str, Enum):
    """Kinds of room history entries"""
    OCCUPANCY_STATUS = "occupancy_status"
    CLEANING_STATUS = "cleaning_status"
    FLAGS = "flags"
    NOTES = "notes"
    CREATED = "created"

    @classmethod
    def is_known(cls, value) -> bool:
        try:
            cls(value)
        except ValueError:
            return False
        return True


__all__ = [
    "OccupancyStatus",
    "CleaningStatus",
    "RoomFlag",
    "MAINTENANCE_FLAGS",
    "CleaningPriority",
    "next_cleaning_status",
    "next_occupancy_status",
    "HotelRole",
    "DEFAULT_PENDING_ROLE",
    "MembershipStatus",
    "ACTIVE_MEMBERSHIP_STATUSES",
    "JoinRequestStatus",
    "membership_status_for",
    "AuditChangeType",
]
