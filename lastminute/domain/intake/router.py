"""Intake router - public, unauthenticated salon forms"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...config import PUBLIC_SUBMISSION_LIMIT, PUBLIC_SUBMISSION_WINDOW_SECONDS
from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ...shared.validators import validate_slug
from .schemas import (
    BookingRequestCreate,
    ConsultationCreate,
    ConsultationFormResponse,
    SubmissionResponse,
)
from .service import IntakeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public/salons", tags=["Public Intake"])

rate_limit_submissions = create_rate_limiter(
    limit=PUBLIC_SUBMISSION_LIMIT,
    window_seconds=PUBLIC_SUBMISSION_WINDOW_SECONDS,
    key_prefix="intake_submission",
)


def get_intake_service(db: Session = Depends(get_db)) -> IntakeService:
    """Dependency injection for IntakeService"""
    return IntakeService(db)


def _salon_for(slug: str, service: IntakeService):
    try:
        slug = validate_slug(slug)
    except ValueError as e:
        raise HTTPException(status_code=404, detail="Salon not found") from e
    return service.get_salon_by_slug(slug)


@router.get("/{slug}/consultation-form", response_model=ConsultationFormResponse)
async def get_consultation_form(slug: str, service: IntakeService = Depends(get_intake_service)):
    salon = _salon_for(slug, service)
    form = service.get_consultation_form(salon)
    return ConsultationFormResponse(
        salonName=salon.name,
        fields=form.fields,
        successMessage=form.successMessage,
        submitButtonText=form.submitButtonText,
    )


@router.post("/{slug}/booking-requests", response_model=SubmissionResponse, status_code=201)
async def submit_booking_request(
    slug: str,
    data: BookingRequestCreate,
    service: IntakeService = Depends(get_intake_service),
    _: None = Depends(rate_limit_submissions),
):
    salon = _salon_for(slug, service)
    booking = await service.submit_booking_request(salon, data)
    return SubmissionResponse(
        id=booking.id,
        requestType="booking",
        status=booking.status,
        message="Your request has been sent. The salon will contact you soon.",
    )


@router.post("/{slug}/consultations", response_model=SubmissionResponse, status_code=201)
async def submit_consultation(
    slug: str,
    data: ConsultationCreate,
    service: IntakeService = Depends(get_intake_service),
    _: None = Depends(rate_limit_submissions),
):
    salon = _salon_for(slug, service)
    consultation = await service.submit_consultation(salon, data)
    form = service.get_consultation_form(salon)
    return SubmissionResponse(
        id=consultation.id,
        requestType="consultation",
        status=consultation.status,
        message=form.successMessage,
    )
