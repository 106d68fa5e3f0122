"""
Pydantic schemas
Request / response validation of the HTTP surface
"""
from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel, Field

from hotelpms.domain.audit import AuditEntry
from hotelpms.domain.enums import (
    AuditChangeType, CleaningStatus, HotelRole, JoinRequestStatus,
    MembershipStatus, OccupancyStatus, RoomFlag,
)
from hotelpms.domain.membership import JoinRequest, Membership
from hotelpms.domain.patch import RoomPatch
from hotelpms.domain.room import Room, RoomRange
from hotelpms.services.audit_service import describe


# ============== Room Schemas ==============

class RoomRangeIn(BaseModel):
    start: Union[int, str]
    end: Union[int, str]

    def to_range(self) -> RoomRange:
        return RoomRange.parse(self.start, self.end)


class RoomBatchCreate(BaseModel):
    ranges: List[RoomRangeIn]


class RoomCreate(BaseModel):
    room_number: int
    floor_number: Optional[int] = None


class OccupancyUpdate(BaseModel):
    status: OccupancyStatus
    reason: Optional[str] = None


class CleaningUpdate(BaseModel):
    status: CleaningStatus
    reason: Optional[str] = None


class RoomPatchIn(BaseModel):
    occupancy_status: Optional[OccupancyStatus] = None
    cleaning_status: Optional[CleaningStatus] = None
    flags: Optional[List[RoomFlag]] = None
    notes: Optional[str] = None
    reason: Optional[str] = None

    def to_patch(self) -> RoomPatch:
        return RoomPatch(
            occupancy_status=self.occupancy_status,
            cleaning_status=self.cleaning_status,
            flags=frozenset(self.flags) if self.flags is not None else None,
            notes=self.notes,
        )


class NoteCreate(BaseModel):
    text: str = Field(..., max_length=2000)


class RoomResponse(BaseModel):
    id: str
    hotel_id: str
    room_number: int
    floor_number: int
    occupancy_status: OccupancyStatus
    cleaning_status: CleaningStatus
    flags: List[RoomFlag]
    notes: Optional[str] = None
    needs_attention: bool
    cleaning_priority: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    @classmethod
    def from_room(cls, room: Room) -> "RoomResponse":
        data = room.to_dict()
        data["flags"] = sorted(room.flags, key=lambda f: f.value)
        data["needs_attention"] = room.needs_attention
        data["cleaning_priority"] = int(room.cleaning_priority)
        return cls(**data)


class NoteResponse(BaseModel):
    id: str
    room_id: str
    note: str
    author_id: Optional[str] = None
    created_at: Optional[datetime] = None


# ============== Admission Schemas ==============

class JoinRequestDecision(BaseModel):
    role: HotelRole


class JoinRequestResponse(BaseModel):
    id: str
    profile_id: str
    hotel_id: str
    status: JoinRequestStatus
    created_at: Optional[datetime] = None

    @classmethod
    def from_request(cls, request: JoinRequest) -> "JoinRequestResponse":
        return cls(**request.to_dict())


class MembershipResponse(BaseModel):
    id: str
    profile_id: str
    hotel_id: str
    role: HotelRole
    status: MembershipStatus
    created_at: Optional[datetime] = None

    @classmethod
    def from_membership(cls, membership: Membership) -> "MembershipResponse":
        return cls(**membership.to_dict())


class AdmissionOutcomeResponse(BaseModel):
    request: JoinRequestResponse
    membership: MembershipResponse


# ============== History Schemas ==============

class AuditEntryResponse(BaseModel):
    id: Optional[str] = None
    room_id: str
    actor_id: Optional[str] = None
    change_type: AuditChangeType
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    description: str

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditEntryResponse":
        return cls(description=describe(entry), **entry.to_dict())
