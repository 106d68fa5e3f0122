"""
hotelpms/domain/settings.py

Per-hotel workflow rules.
"""
from dataclasses import dataclass
from typing import Optional

from hotelpms.config import settings as app_settings


@dataclass(frozen=True)
class HotelSettings:
    """
    Workflow rules of one hotel.

    Attributes:
        prevent_cleaning_with_dnd: block cleaning-status changes on a room flagged dnd
    """
    prevent_cleaning_with_dnd: bool = True

    @classmethod
    def defaults(cls, prevent_cleaning_with_dnd: Optional[bool] = None) -> "HotelSettings":
        if prevent_cleaning_with_dnd is None:
            prevent_cleaning_with_dnd = app_settings.PREVENT_CLEANING_WITH_DND
        return cls(prevent_cleaning_with_dnd=prevent_cleaning_with_dnd)
