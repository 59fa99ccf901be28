"""Request router - staff endpoints for the unified booking/consultation queue"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_salon
from ...database import get_db
from ...models import Salon
from ..intake.schemas import ProviderBookingCreate
from ..intake.service import IntakeService
from .aggregator import booking_to_item
from .schemas import (
    BookingItem,
    BookingStatusUpdate,
    ConsultationItem,
    ConsultationStatusUpdate,
    GroupedRequestsResponse,
    RequestFilter,
    UnifiedRequest,
)
from .service import RequestService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["Requests"])


def get_request_service(db: Session = Depends(get_db)) -> RequestService:
    """Dependency injection for RequestService"""
    return RequestService(db)


# ============================================================================
# UNIFIED QUEUE
# ============================================================================


@router.get("", response_model=list[UnifiedRequest])
async def list_requests(
    searchTerm: str = Query(""),
    requestType: str = Query("all", pattern="^(all|bookings|consultations)$"),
    status: Optional[str] = Query(None),
    salon: Salon = Depends(get_current_salon),
    service: RequestService = Depends(get_request_service),
):
    """Bookings and consultations in one list, highest-priority and newest first"""
    criteria = RequestFilter(searchTerm=searchTerm, requestType=requestType, status=status)
    return service.list_requests(salon.id, criteria)


@router.get("/grouped", response_model=GroupedRequestsResponse)
async def get_grouped_requests(
    salon: Salon = Depends(get_current_salon),
    service: RequestService = Depends(get_request_service),
):
    """Overview buckets; an item may appear in more than one"""
    return service.grouped_requests(salon.id)


# ============================================================================
# STATUS CHANGES
# ============================================================================


@router.patch("/bookings/{request_id}/status", response_model=BookingItem)
async def update_booking_status(
    request_id: str,
    data: BookingStatusUpdate,
    salon: Salon = Depends(get_current_salon),
    service: RequestService = Depends(get_request_service),
):
    return service.set_booking_status(salon.id, request_id, data.status, data.expectedUpdatedAt)


@router.patch("/consultations/{request_id}/status", response_model=ConsultationItem)
async def update_consultation_status(
    request_id: str,
    data: ConsultationStatusUpdate,
    salon: Salon = Depends(get_current_salon),
    service: RequestService = Depends(get_request_service),
):
    return service.set_consultation_status(
        salon.id, request_id, data.status, data.expectedUpdatedAt
    )


# ============================================================================
# PROVIDER-CREATED REQUESTS
# ============================================================================


@router.post("/bookings", response_model=BookingItem, status_code=201)
async def create_provider_booking(
    data: ProviderBookingCreate,
    salon: Salon = Depends(get_current_salon),
    db: Session = Depends(get_db),
):
    """Staff logging a request on a client's behalf (starts as provider-requested)"""
    booking = await IntakeService(db).submit_booking_request(
        salon, data, submitted_by=salon.owner_uid
    )
    return booking_to_item(booking)
