from hotelpms.store.base import (
    COLLECTIONS,
    Filter,
    JOIN_REQUESTS,
    MEMBERSHIPS,
    Record,
    RecordStore,
    ROOM_HISTORY,
    ROOM_NOTES,
    ROOMS,
    StoreError,
)
from hotelpms.store.sql import SqlAlchemyStore

__all__ = [
    "COLLECTIONS",
    "Filter",
    "JOIN_REQUESTS",
    "MEMBERSHIPS",
    "Record",
    "RecordStore",
    "ROOM_HISTORY",
    "ROOM_NOTES",
    "ROOMS",
    "StoreError",
    "SqlAlchemyStore",
]
