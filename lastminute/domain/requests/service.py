"""Request service - unified queue reads and status changes"""

import logging
from datetime import datetime
from typing import Mapping, Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import BookingRequest, ConsultationSubmission, utcnow
from ...shared.timestamps import normalize_timestamp
from .aggregator import (
    booking_to_item,
    consultation_to_item,
    filter_requests,
    merge_requests,
    partition_by_bucket,
)
from .repository import RequestRepository
from .schemas import (
    BOOKING_STATUSES,
    CONSULTATION_STATUSES,
    BookingItem,
    ConsultationItem,
    RequestFilter,
)

logger = logging.getLogger(__name__)


class RequestService:
    """Service layer for the unified request queue"""

    def __init__(self, db: Session, priorities: Optional[Mapping[str, int]] = None):
        self.db = db
        self.repo = RequestRepository()
        self.priorities = priorities

    def aggregate(self, salon_id: str) -> list:
        """
        Merge a salon's booking requests and consultations into one ordered list.

        Both reads must succeed; a failure in either fails the whole call so
        staff never see a half-populated queue.
        """
        try:
            bookings = self.repo.get_booking_requests(self.db, salon_id)
            consultations = self.repo.get_consultations(self.db, salon_id)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to load requests for salon {salon_id}: {e}")
            raise HTTPException(
                status_code=503, detail="Requests are temporarily unavailable"
            ) from e

        requests = merge_requests(bookings, consultations, self.priorities)
        logger.debug(
            f"📋 Aggregated {len(bookings)} bookings + {len(consultations)} consultations for salon {salon_id}"
        )
        return requests

    def list_requests(self, salon_id: str, criteria: RequestFilter) -> list:
        return filter_requests(self.aggregate(salon_id), criteria)

    def grouped_requests(self, salon_id: str, now: Optional[datetime] = None) -> dict:
        return partition_by_bucket(self.aggregate(salon_id), now=now)

    def set_booking_status(
        self,
        salon_id: str,
        request_id: str,
        status: str,
        expected_updated_at: Optional[datetime] = None,
    ) -> BookingItem:
        """Persist a booking status change. Any status is reachable from any other."""
        if status not in BOOKING_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid booking status: {status}")

        booking = self.repo.get_booking_request(self.db, request_id, salon_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking request not found")

        self._write_status(BookingRequest, booking, status, expected_updated_at)
        logger.info(f"✅ Booking request {request_id} marked {status}")
        return booking_to_item(booking)

    def set_consultation_status(
        self,
        salon_id: str,
        request_id: str,
        status: str,
        expected_updated_at: Optional[datetime] = None,
    ) -> ConsultationItem:
        """Persist a consultation status change (pending <-> reviewed)"""
        if status not in CONSULTATION_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid consultation status: {status}")

        consultation = self.repo.get_consultation(self.db, request_id, salon_id)
        if not consultation:
            raise HTTPException(status_code=404, detail="Consultation not found")

        self._write_status(ConsultationSubmission, consultation, status, expected_updated_at)
        logger.info(f"✅ Consultation {request_id} marked {status}")
        return consultation_to_item(consultation)

    def _write_status(self, model, record, status: str, expected_updated_at: Optional[datetime]):
        expected = normalize_timestamp(expected_updated_at) if expected_updated_at else None
        try:
            written = self.repo.update_fields(
                self.db,
                model,
                record.id,
                {"status": status, "updated_at": utcnow()},
                expected_updated_at=expected,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to update {model.__tablename__}/{record.id} to {status}: {e}")
            raise HTTPException(status_code=502, detail="Failed to update request status") from e

        if written == 0:
            logger.warning(
                f"⚠️ Stale update rejected for {model.__tablename__}/{record.id} (expected {expected})"
            )
            raise HTTPException(
                status_code=409,
                detail="This request was changed by someone else. Refresh and try again.",
            )

        self.db.refresh(record)


class RequestQueue:
    """
    In-memory unified queue held by a caller (dashboard session, script).

    Status changes are written first; the local list is only touched after
    the write succeeds, and only the item matching both id and request type
    is replaced.
    """

    def __init__(self, service: RequestService, salon_id: str):
        self.service = service
        self.salon_id = salon_id
        self.items: list = []

    def load(self) -> list:
        self.items = self.service.aggregate(self.salon_id)
        return self.items

    def filtered(self, criteria: RequestFilter) -> list:
        return filter_requests(self.items, criteria)

    def grouped(self, now: Optional[datetime] = None) -> dict:
        return partition_by_bucket(self.items, now=now)

    def set_booking_status(
        self, request_id: str, status: str, expected_updated_at: Optional[datetime] = None
    ) -> bool:
        try:
            updated = self.service.set_booking_status(
                self.salon_id, request_id, status, expected_updated_at
            )
        except HTTPException as e:
            logger.error(f"❌ Booking {request_id} status change to {status} failed: {e.detail}")
            return False
        self._replace("booking", updated)
        return True

    def set_consultation_status(
        self, request_id: str, status: str, expected_updated_at: Optional[datetime] = None
    ) -> bool:
        try:
            updated = self.service.set_consultation_status(
                self.salon_id, request_id, status, expected_updated_at
            )
        except HTTPException as e:
            logger.error(
                f"❌ Consultation {request_id} status change to {status} failed: {e.detail}"
            )
            return False
        self._replace("consultation", updated)
        return True

    def _replace(self, request_type: str, updated) -> None:
        self.items = [
            updated if item.requestType == request_type and item.id == updated.id else item
            for item in self.items
        ]
