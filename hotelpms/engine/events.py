"""
Domain events published after every committed mutation
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, Dict, Any, List

from hotelpms.domain.room import utcnow


class EventType(str, Enum):
    """Event types"""
    # Rooms
    ROOM_CREATED = "room.created"
    ROOM_OCCUPANCY_CHANGED = "room.occupancy_changed"
    ROOM_CLEANING_CHANGED = "room.cleaning_changed"
    ROOM_FLAG_TOGGLED = "room.flag_toggled"
    ROOM_NOTE_CHANGED = "room.note_changed"
    ROOM_DELETED = "room.deleted"

    # Admission
    JOIN_REQUEST_CREATED = "join_request.created"
    JOIN_REQUEST_APPROVED = "join_request.approved"
    JOIN_REQUEST_REJECTED = "join_request.rejected"
    MEMBERSHIP_ROLE_CHANGED = "membership.role_changed"
    MEMBERSHIP_REMOVED = "membership.removed"

    # Undo
    OPERATION_UNDONE = "operation.undone"


@dataclass
class BaseEventData:
    """Event payload base"""
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, datetime):
                result[key] = value.isoformat()
        return result


@dataclass
class RoomChangedData(BaseEventData):
    """A room field changed"""
    room_id: str = ""
    hotel_id: str = ""
    room_number: int = 0
    field: str = ""
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: Optional[str] = None


@dataclass
class RoomsCreatedData(BaseEventData):
    """Rooms created in a hotel"""
    hotel_id: str = ""
    room_ids: List[str] = field(default_factory=list)
    room_numbers: List[int] = field(default_factory=list)
    created_by: Optional[str] = None


@dataclass
class JoinRequestData(BaseEventData):
    """Join request lifecycle"""
    request_id: str = ""
    profile_id: str = ""
    hotel_id: str = ""
    membership_id: str = ""
    status: str = ""
    role: Optional[str] = None
    changed_by: Optional[str] = None


@dataclass
class MembershipChangedData(BaseEventData):
    """Employee role change or removal"""
    membership_id: str = ""
    profile_id: str = ""
    hotel_id: str = ""
    old_role: Optional[str] = None
    new_role: Optional[str] = None
    changed_by: Optional[str] = None


@dataclass
class OperationUndoneData(BaseEventData):
    """An undo window was used"""
    entity_id: str = ""
    field: str = ""
    restored_value: Optional[str] = None
    undone_by: Optional[str] = None
