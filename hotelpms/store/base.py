"""
hotelpms/store/base.py

Persistence/query interface of the core.

The core only ever inserts, updates by id, deletes by id and runs
filtered / ordered / limited selects against five named collections.
Records are plain dicts keyed by the persisted snake_case field names.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

ROOMS = "rooms"
MEMBERSHIPS = "hotel_memberships"
JOIN_REQUESTS = "join_requests"
ROOM_HISTORY = "room_history"
ROOM_NOTES = "room_notes"

COLLECTIONS = (ROOMS, MEMBERSHIPS, JOIN_REQUESTS, ROOM_HISTORY, ROOM_NOTES)

Record = Dict[str, Any]


class StoreError(Exception):
    """Any failure of the underlying store or transport"""

    def __init__(self, message: str, collection: Optional[str] = None):
        self.collection = collection
        super().__init__(message)


@dataclass(frozen=True)
class Filter:
    """
    One predicate on a named field.

    Attributes:
        field: persisted field name
        op: eq, neq, gte, lte, in, ilike
        value: compared value (a sequence for ``in``, a pattern for ``ilike``)
    """
    field: str
    op: str
    value: Any

    OPS = ("eq", "neq", "gte", "lte", "in", "ilike")

    def __post_init__(self):
        if self.op not in self.OPS:
            raise ValueError(f"Unsupported filter op: {self.op}")

    @classmethod
    def eq(cls, field: str, value: Any) -> "Filter":
        return cls(field, "eq", value)

    @classmethod
    def neq(cls, field: str, value: Any) -> "Filter":
        return cls(field, "neq", value)

    @classmethod
    def gte(cls, field: str, value: Any) -> "Filter":
        return cls(field, "gte", value)

    @classmethod
    def lte(cls, field: str, value: Any) -> "Filter":
        return cls(field, "lte", value)

    @classmethod
    def in_(cls, field: str, values: Sequence[Any]) -> "Filter":
        return cls(field, "in", list(values))

    @classmethod
    def ilike(cls, field: str, pattern: str) -> "Filter":
        return cls(field, "ilike", pattern)


class RecordStore(ABC):
    """Abstract persistence interface; every method may raise StoreError"""

    @abstractmethod
    def insert(self, collection: str, values: Record) -> Record:
        """Insert one record, returning it with server-assigned fields"""

    @abstractmethod
    def insert_many(self, collection: str, rows: Sequence[Record]) -> List[Record]:
        """Insert all rows or none"""

    @abstractmethod
    def update(self, collection: str, record_id: str, values: Record) -> Optional[Record]:
        """Update one record by id, None when the id is unknown"""

    @abstractmethod
    def update_where(self, collection: str, filters: Sequence[Filter], values: Record) -> int:
        """Update every matching record, returning the number changed"""

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> bool:
        """Delete one record by id, False when nothing was deleted"""

    @abstractmethod
    def select(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Record]:
        """Filtered, ordered, limited select"""

    @abstractmethod
    def count(self, collection: str, filters: Sequence[Filter] = ()) -> int:
        """Number of matching records"""

    def get(self, collection: str, record_id: str) -> Optional[Record]:
        rows = self.select(collection, [Filter.eq("id", record_id)], limit=1)
        return rows[0] if rows else None
