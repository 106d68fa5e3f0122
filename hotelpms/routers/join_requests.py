"""
Join request routes - admission of staff into a hotel
"""
from typing import List
from fastapi import APIRouter, Depends, status

from hotelpms.container import Container
from hotelpms.models.schemas import (
    AdmissionOutcomeResponse, JoinRequestDecision, JoinRequestResponse, MembershipResponse,
)
from hotelpms.routers.deps import get_container
from hotelpms.security.auth import get_current_actor
from hotelpms.services.admission_service import AdmissionOutcome

router = APIRouter(tags=["join-requests"])


def _outcome(outcome: AdmissionOutcome) -> AdmissionOutcomeResponse:
    return AdmissionOutcomeResponse(
        request=JoinRequestResponse.from_request(outcome.request),
        membership=MembershipResponse.from_membership(outcome.membership),
    )


@router.post("/hotels/{hotel_id}/join-requests", response_model=JoinRequestResponse,
             status_code=status.HTTP_201_CREATED)
def create_join_request(
    hotel_id: str,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    """The authenticated profile asks to join the hotel"""
    request = container.admission.create_join_request(actor_id, hotel_id)
    return JoinRequestResponse.from_request(request)


@router.get("/hotels/{hotel_id}/join-requests", response_model=List[JoinRequestResponse])
def list_pending_join_requests(
    hotel_id: str,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    return [JoinRequestResponse.from_request(r) for r in container.admission.pending_requests(hotel_id)]


@router.post("/join-requests/{request_id}/approve", response_model=AdmissionOutcomeResponse)
def approve_join_request(
    request_id: str,
    data: JoinRequestDecision,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    return _outcome(container.admission.approve_join_request(request_id, data.role, actor_id))


@router.post("/join-requests/{request_id}/reject", response_model=AdmissionOutcomeResponse)
def reject_join_request(
    request_id: str,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    return _outcome(container.admission.reject_join_request(request_id, actor_id))


@router.get("/hotels/{hotel_id}/employees", response_model=List[MembershipResponse])
def list_employees(
    hotel_id: str,
    container: Container = Depends(get_container),
    actor_id: str = Depends(get_current_actor),
):
    return [MembershipResponse.from_membership(m) for m in container.admission.get_employees(hotel_id)]
