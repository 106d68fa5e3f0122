"""
hotelpms/domain/audit.py

Room history entries and room notes.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from hotelpms.domain.enums import AuditChangeType

FLAG_ADDED_PREFIX = "added: "
FLAG_REMOVED_PREFIX = "removed: "


@dataclass(frozen=True)
class AuditEntry:
    """
    One field-level change of a room.

    Attributes:
        room_id: room the entry describes
        actor_id: acting profile, None for system actions
        change_type: kind of change; a plain string until validated by the recorder
        old_value / new_value: semantics depend on change_type
        note: free-text reason
        created_at: assigned by the recorder when missing
    """
    room_id: str
    change_type: Any
    actor_id: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    @property
    def is_flag_added(self) -> bool:
        return (
            self.change_type == AuditChangeType.FLAGS
            and (self.new_value or "").startswith(FLAG_ADDED_PREFIX)
        )

    @property
    def is_flag_removed(self) -> bool:
        return (
            self.change_type == AuditChangeType.FLAGS
            and (self.old_value or "").startswith(FLAG_REMOVED_PREFIX)
        )

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "AuditEntry":
        return cls(
            id=record.get("id"),
            room_id=record["room_id"],
            actor_id=record.get("changed_by"),
            change_type=AuditChangeType(record["change_type"]),
            old_value=record.get("old_value"),
            new_value=record.get("new_value"),
            note=record.get("note"),
            created_at=record.get("created_at"),
        )

    def to_record(self) -> Dict[str, Any]:
        """Persisted field names of the room_history collection"""
        return {
            "room_id": self.room_id,
            "changed_by": self.actor_id,
            "change_type": AuditChangeType(self.change_type).value,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "note": self.note,
            "created_at": self.created_at,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_record()
        data["id"] = self.id
        data["actor_id"] = data.pop("changed_by")
        return data


def flag_added_value(raw: str) -> str:
    return f"{FLAG_ADDED_PREFIX}{raw}"


def flag_removed_value(raw: str) -> str:
    return f"{FLAG_REMOVED_PREFIX}{raw}"


@dataclass(frozen=True)
class RoomNote:
    """A free-text note attached to a room"""
    id: str
    room_id: str
    note: str
    author_id: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "RoomNote":
        return cls(
            id=record["id"],
            room_id=record["room_id"],
            note=record["note"],
            author_id=record.get("author_id"),
            created_at=record.get("created_at"),
            deleted_at=record.get("deleted_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "room_id": self.room_id,
            "note": self.note,
            "author_id": self.author_id,
            "created_at": self.created_at,
            "deleted_at": self.deleted_at,
        }
