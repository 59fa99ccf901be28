"""Intake service - public booking requests and virtual consultations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import BookingRequest, ConsultationSubmission, Salon, utcnow
from ...services.notification_service import notify_new_request
from ..billing.service import UsageService
from ..requests.repository import RequestRepository
from .consultation_form import (
    extract_client_info,
    load_form,
    missing_required_fields,
    oversized_files,
    pending_uploads,
    top_level_fields,
)
from .schemas import BookingRequestCreate, ConsultationCreate, ConsultationFormConfig

logger = logging.getLogger(__name__)


class IntakeService:
    """Service layer for client-facing submissions"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RequestRepository()
        self.usage = UsageService(db)

    def get_salon_by_slug(self, slug: str) -> Salon:
        salon = self.db.query(Salon).filter(Salon.slug == slug).first()
        if not salon:
            raise HTTPException(status_code=404, detail="Salon not found")
        return salon

    def get_consultation_form(self, salon: Salon) -> ConsultationFormConfig:
        form = load_form(salon.consultation_form)
        return ConsultationFormConfig(
            fields=top_level_fields(form.fields),
            successMessage=form.successMessage,
            submitButtonText=form.submitButtonText,
        )

    async def submit_booking_request(
        self, salon: Salon, data: BookingRequestCreate, submitted_by: Optional[str] = None
    ) -> BookingRequest:
        """
        Store a booking request, then meter and notify.

        Requests logged by salon staff (submitted_by set) start as
        provider-requested instead of pending.
        """
        now = utcnow()
        booking = self.repo.create_booking_request(
            self.db,
            salon_id=salon.id,
            client_name=data.clientName,
            client_email=data.clientEmail,
            client_phone=data.clientPhone,
            service=data.service_summary(),
            stylist_preference=data.stylistPreference,
            date_time_preference=data.dateTimePreference,
            notes=data.notes,
            waitlist_opt_in=data.waitlistOptIn,
            submitted_by_provider=submitted_by is not None,
            status="provider-requested" if submitted_by else "pending",
            created_at=now,
            updated_at=now,
        )
        logger.info(f"✅ Booking request {booking.id} stored for salon {salon.id}")

        await self._after_submission(salon, booking, "booking", submitted_by)
        return booking

    async def submit_consultation(
        self, salon: Salon, data: ConsultationCreate
    ) -> ConsultationSubmission:
        form = load_form(salon.consultation_form)

        missing = missing_required_fields(form.fields, data.answers, data.files)
        if missing:
            raise HTTPException(
                status_code=400,
                detail=f"Please fill in the following required fields: {', '.join(missing)}",
            )

        too_large = oversized_files(data.files)
        if too_large:
            raise HTTPException(
                status_code=413,
                detail=f"File too large (max 10MB for images, 50MB for videos): {', '.join(too_large)}",
            )

        files = [f.model_dump(exclude_none=True) for f in data.files]
        unresolved = pending_uploads(files)
        if unresolved:
            logger.warning(
                f"⚠️ Consultation for salon {salon.id} has {len(unresolved)} pending upload(s)"
            )

        now = utcnow()
        consultation = self.repo.create_consultation(
            self.db,
            salon_id=salon.id,
            client_info=extract_client_info(data.answers),
            form_data=dict(data.answers),
            files=files,
            status="pending",
            submitted_at=now,
            created_at=now,
            updated_at=now,
        )
        logger.info(f"✅ Consultation {consultation.id} stored for salon {salon.id}")

        await self._after_submission(salon, consultation, "consultation")
        return consultation

    async def _after_submission(
        self, salon: Salon, record, request_type: str, user_id: Optional[str] = None
    ) -> None:
        # The record is committed; nothing below may fail the submission
        try:
            await self.usage.track_usage(salon.id, request_type, record.id, user_id)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to track usage for {request_type} {record.id}: {e}")

        result = await notify_new_request(salon, record)
        if result["email_error"] or result["sms_error"]:
            logger.warning(f"⚠️ Notification issues for {request_type} {record.id}: {result}")
