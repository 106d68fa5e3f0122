"""
Persisted collections

Column names are the snake_case keys of the hosted store and must stay
stable: rooms, hotel_memberships, join_requests, room_history, room_notes.
"""
import uuid
from datetime import timezone

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, JSON, UniqueConstraint, Index
)
from sqlalchemy.types import TypeDecorator

from hotelpms.database import Base
from hotelpms.domain.enums import (
    CleaningStatus, HotelRole, JoinRequestStatus, MembershipStatus, OccupancyStatus
)
from hotelpms.domain.room import utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """Stores UTC; always hands back timezone-aware values (SQLite drops tzinfo)"""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class RoomRecord(Base):
    """rooms"""
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("hotel_id", "room_number", name="uq_rooms_hotel_number"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    hotel_id = Column(String(36), nullable=False, index=True)
    room_number = Column(Integer, nullable=False)
    floor_number = Column(Integer, nullable=False)
    occupancy_status = Column(String(20), nullable=False, default=OccupancyStatus.VACANT.value)
    cleaning_status = Column(String(30), nullable=False, default=CleaningStatus.DIRTY.value)
    flags = Column(JSON, nullable=False, default=list)
    notes = Column(Text)
    updated_by = Column(String(36))
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow)


class MembershipRecord(Base):
    """hotel_memberships"""
    __tablename__ = "hotel_memberships"
    __table_args__ = (
        Index("ix_memberships_pair", "profile_id", "hotel_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    profile_id = Column(String(36), nullable=False)
    hotel_id = Column(String(36), nullable=False, index=True)
    role = Column(String(20), nullable=False, default=HotelRole.HOUSEKEEPING.value)
    status = Column(String(20), nullable=False, default=MembershipStatus.PENDING.value)
    created_at = Column(UTCDateTime, default=utcnow)


class JoinRequestRecord(Base):
    """join_requests"""
    __tablename__ = "join_requests"
    __table_args__ = (
        Index("ix_join_requests_pair", "profile_id", "hotel_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    profile_id = Column(String(36), nullable=False)
    hotel_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=JoinRequestStatus.PENDING.value)
    created_at = Column(UTCDateTime, default=utcnow)


class RoomHistoryRecord(Base):
    """room_history - append only"""
    __tablename__ = "room_history"

    id = Column(String(36), primary_key=True, default=new_id)
    room_id = Column(String(36), nullable=False, index=True)
    changed_by = Column(String(36))
    change_type = Column(String(30), nullable=False)
    old_value = Column(Text)
    new_value = Column(Text)
    note = Column(Text)
    created_at = Column(UTCDateTime, default=utcnow, index=True)


class RoomNoteRecord(Base):
    """room_notes"""
    __tablename__ = "room_notes"

    id = Column(String(36), primary_key=True, default=new_id)
    room_id = Column(String(36), nullable=False, index=True)
    author_id = Column(String(36))
    note = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow, index=True)
    deleted_at = Column(UTCDateTime)


COLLECTION_MODELS = {
    "rooms": RoomRecord,
    "hotel_memberships": MembershipRecord,
    "join_requests": JoinRequestRecord,
    "room_history": RoomHistoryRecord,
    "room_notes": RoomNoteRecord,
}
