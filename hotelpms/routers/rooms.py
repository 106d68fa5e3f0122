"""
Room routes - room creation, transitions, flags and notes
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from hotelpms.container import Container
from hotelpms.domain.enums import CleaningStatus, OccupancyStatus, RoomFlag
from hotelpms.models.schemas import (
    CleaningUpdate, NoteCreate, NoteResponse, OccupancyUpdate, RoomBatchCreate,
    RoomCreate, RoomPatchIn, RoomResponse,
)
from hotelpms.routers.deps import get_container
from hotelpms.security.auth import get_current_actor

router = APIRouter(tags=["rooms"])


@router.post("/hotels/{hotel_id}/rooms/batch", response_model=List[RoomResponse],
             status_code=status.HTTP_201_CREATED)
def create_rooms_from_ranges(
    hotel_id: str,
    data: RoomBatchCreate,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    """Create one room per number in every range; all or nothing"""
    ranges = [r.to_range() for r in data.ranges]
    rooms = container.rooms.create_rooms_from_ranges(hotel_id, ranges, actor_id)
    return [RoomResponse.from_room(r) for r in rooms]


@router.post("/hotels/{hotel_id}/rooms", response_model=RoomResponse,
             status_code=status.HTTP_201_CREATED)
def create_room(
    hotel_id: str,
    data: RoomCreate,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    room = container.rooms.create_room(hotel_id, data.room_number, actor_id, data.floor_number)
    return RoomResponse.from_room(room)


@router.get("/hotels/{hotel_id}/rooms", response_model=List[RoomResponse])
def list_rooms(
    hotel_id: str,
    floor: Optional[int] = None,
    occupancy: Optional[OccupancyStatus] = None,
    cleaning: Optional[CleaningStatus] = None,
    flag: Optional[List[RoomFlag]] = Query(None),
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    if flag:
        rooms = container.rooms.rooms_with_flags(hotel_id, flag)
    else:
        rooms = container.rooms.get_rooms(hotel_id, floor=floor, occupancy=occupancy, cleaning=cleaning)
    return [RoomResponse.from_room(r) for r in rooms]


@router.get("/hotels/{hotel_id}/rooms/stats")
def room_stats(
    hotel_id: str,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    return container.rooms.room_stats(hotel_id)


@router.get("/hotels/{hotel_id}/housekeeping/queue", response_model=List[RoomResponse])
def housekeeping_queue(
    hotel_id: str,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    return [RoomResponse.from_room(r) for r in container.rooms.housekeeping_queue(hotel_id)]


@router.get("/rooms/{room_id}", response_model=RoomResponse)
def get_room(
    room_id: str,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    return RoomResponse.from_room(container.rooms.get_room(room_id))


@router.put("/rooms/{room_id}/occupancy", response_model=RoomResponse)
def set_occupancy(
    room_id: str,
    data: OccupancyUpdate,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    room = container.rooms.get_room(room_id)
    room = container.rooms.set_occupancy(room, data.status, actor_id, data.reason)
    return RoomResponse.from_room(room)


@router.put("/rooms/{room_id}/cleaning", response_model=RoomResponse)
def set_cleaning(
    room_id: str,
    data: CleaningUpdate,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    room = container.rooms.get_room(room_id)
    room = container.rooms.set_cleaning(room, data.status, actor_id, data.reason)
    return RoomResponse.from_room(room)


@router.post("/rooms/{room_id}/flags/{flag}/toggle", response_model=RoomResponse)
def toggle_flag(
    room_id: str,
    flag: RoomFlag,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    room = container.rooms.get_room(room_id)
    return RoomResponse.from_room(container.rooms.toggle_flag(room, flag, actor_id))


@router.patch("/rooms/{room_id}", response_model=RoomResponse)
def patch_room(
    room_id: str,
    data: RoomPatchIn,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    room = container.rooms.get_room(room_id)
    room = container.rooms.apply_patch(room, data.to_patch(), actor_id, data.reason)
    return RoomResponse.from_room(room)


@router.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(
    room_id: str,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    container.rooms.delete_room(room_id, actor_id)


@router.post("/rooms/{room_id}/notes", response_model=NoteResponse,
             status_code=status.HTTP_201_CREATED)
def add_note(
    room_id: str,
    data: NoteCreate,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    container.rooms.get_room(room_id)
    note = container.notes.add_note(room_id, actor_id, data.text)
    return NoteResponse(**note.to_dict())


@router.get("/rooms/{room_id}/notes", response_model=List[NoteResponse])
def list_notes(
    room_id: str,
    limit: int = Query(50, ge=1, le=500),
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    return [NoteResponse(**n.to_dict()) for n in container.notes.get_notes(room_id, limit)]
