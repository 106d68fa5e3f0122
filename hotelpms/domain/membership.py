"""
hotelpms/domain/membership.py

Membership and JoinRequest value types.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from hotelpms.domain.enums import HotelRole, JoinRequestStatus, MembershipStatus


@dataclass(frozen=True)
class Membership:
    """A person's role-bearing association with a hotel"""
    id: str
    profile_id: str
    hotel_id: str
    role: HotelRole
    status: MembershipStatus
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in (MembershipStatus.PENDING, MembershipStatus.APPROVED)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Membership":
        return cls(
            id=record["id"],
            profile_id=record["profile_id"],
            hotel_id=record["hotel_id"],
            role=HotelRole(record["role"]),
            status=MembershipStatus(record["status"]),
            created_at=record.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "hotel_id": self.hotel_id,
            "role": self.role.value,
            "status": self.status.value,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class JoinRequest:
    """A pending ask to join a hotel's staff"""
    id: str
    profile_id: str
    hotel_id: str
    status: JoinRequestStatus
    created_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == JoinRequestStatus.PENDING

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "JoinRequest":
        return cls(
            id=record["id"],
            profile_id=record["profile_id"],
            hotel_id=record["hotel_id"],
            status=JoinRequestStatus(record["status"]),
            created_at=record.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "hotel_id": self.hotel_id,
            "status": self.status.value,
            "created_at": self.created_at,
        }
