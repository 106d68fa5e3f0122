"""
Domain model - immutable value types, enums and pure transition helpers
"""
from hotelpms.domain.enums import (
    ACTIVE_MEMBERSHIP_STATUSES,
    AuditChangeType,
    CleaningPriority,
    CleaningStatus,
    DEFAULT_PENDING_ROLE,
    HotelRole,
    JoinRequestStatus,
    MAINTENANCE_FLAGS,
    MembershipStatus,
    OccupancyStatus,
    RoomFlag,
    membership_status_for,
    next_cleaning_status,
    next_occupancy_status,
)
from hotelpms.domain.room import (
    Room,
    RoomRange,
    calculate_floor,
    encode_flags,
    room_numbers_for,
    utcnow,
    validate_room_ranges,
)
from hotelpms.domain.membership import JoinRequest, Membership
from hotelpms.domain.audit import (
    AuditEntry,
    RoomNote,
    flag_added_value,
    flag_removed_value,
)
from hotelpms.domain.patch import RoomPatch
from hotelpms.domain.settings import HotelSettings

__all__ = [
    "ACTIVE_MEMBERSHIP_STATUSES",
    "AuditChangeType",
    "CleaningPriority",
    "CleaningStatus",
    "DEFAULT_PENDING_ROLE",
    "HotelRole",
    "JoinRequestStatus",
    "MAINTENANCE_FLAGS",
    "MembershipStatus",
    "OccupancyStatus",
    "RoomFlag",
    "membership_status_for",
    "next_cleaning_status",
    "next_occupancy_status",
    "Room",
    "RoomRange",
    "calculate_floor",
    "encode_flags",
    "room_numbers_for",
    "utcnow",
    "validate_room_ranges",
    "JoinRequest",
    "Membership",
    "AuditEntry",
    "RoomNote",
    "flag_added_value",
    "flag_removed_value",
    "RoomPatch",
    "HotelSettings",
]
