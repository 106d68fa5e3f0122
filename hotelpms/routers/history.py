"""
History routes - room history and hotel activity feed
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from hotelpms.container import Container
from hotelpms.domain.enums import AuditChangeType
from hotelpms.models.schemas import AuditEntryResponse
from hotelpms.routers.deps import get_container
from hotelpms.security.auth import get_current_actor

router = APIRouter(tags=["history"])


@router.get("/rooms/{room_id}/history", response_model=List[AuditEntryResponse])
def room_history(
    room_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    """
    One page of a room's history, newest first

    - **limit**: page size, defaults to HISTORY_PAGE_SIZE
    - **offset**: entries to skip
    """
    entries = container.audit.room_history(room_id, limit=limit, offset=offset)
    return [AuditEntryResponse.from_entry(e) for e in entries]


@router.get("/hotels/{hotel_id}/activity", response_model=List[AuditEntryResponse])
def hotel_activity(
    hotel_id: str,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    change_type: Optional[AuditChangeType] = None,
    actor: Optional[str] = None,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    """
    Recent activity across a hotel's rooms

    - **change_type**: only entries of this kind
    - **actor**: only entries by this profile
    """
    limit = limit or container.settings.ACTIVITY_LIMIT
    if change_type is not None:
        entries = container.audit.activity_by_type(change_type, limit=limit, hotel_id=hotel_id)
    elif actor is not None:
        entries = container.audit.activity_by_actor(actor, limit=limit, hotel_id=hotel_id)
    else:
        entries = container.audit.hotel_activity(hotel_id, limit=limit)
    return [AuditEntryResponse.from_entry(e) for e in entries]
