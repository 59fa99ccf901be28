"""Request repository - Database operations for booking requests and consultations"""

from datetime import datetime
from typing import Optional, Type, Union

from sqlalchemy.orm import Session

from ...models import BookingRequest, ConsultationSubmission

RequestModel = Union[Type[BookingRequest], Type[ConsultationSubmission]]


class RequestRepository:
    """Repository for request database operations (equality queries and partial updates only)"""

    @staticmethod
    def get_booking_requests(db: Session, salon_id: str) -> list[BookingRequest]:
        """Get all booking requests for a salon"""
        return (
            db.query(BookingRequest)
            .filter(BookingRequest.salon_id == salon_id)
            .order_by(BookingRequest.created_at.desc())
            .all()
        )

    @staticmethod
    def get_consultations(db: Session, salon_id: str) -> list[ConsultationSubmission]:
        """Get all consultation submissions for a salon"""
        return (
            db.query(ConsultationSubmission)
            .filter(ConsultationSubmission.salon_id == salon_id)
            .order_by(ConsultationSubmission.submitted_at.desc())
            .all()
        )

    @staticmethod
    def get_booking_request(
        db: Session, request_id: str, salon_id: str
    ) -> Optional[BookingRequest]:
        return (
            db.query(BookingRequest)
            .filter(BookingRequest.id == request_id, BookingRequest.salon_id == salon_id)
            .first()
        )

    @staticmethod
    def get_consultation(
        db: Session, request_id: str, salon_id: str
    ) -> Optional[ConsultationSubmission]:
        return (
            db.query(ConsultationSubmission)
            .filter(
                ConsultationSubmission.id == request_id,
                ConsultationSubmission.salon_id == salon_id,
            )
            .first()
        )

    @staticmethod
    def create_booking_request(db: Session, **fields) -> BookingRequest:
        booking = BookingRequest(**fields)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def create_consultation(db: Session, **fields) -> ConsultationSubmission:
        consultation = ConsultationSubmission(**fields)
        db.add(consultation)
        db.commit()
        db.refresh(consultation)
        return consultation

    @staticmethod
    def update_fields(
        db: Session,
        model: RequestModel,
        request_id: str,
        updates: dict,
        expected_updated_at: Optional[datetime] = None,
    ) -> int:
        """
        Partial update of one document. Returns the number of rows written.

        When expected_updated_at is given the write only lands if the stored
        updated_at still equals it (compare-and-swap); otherwise last write wins.
        """
        query = db.query(model).filter(model.id == request_id)
        if expected_updated_at is not None:
            query = query.filter(model.updated_at == expected_updated_at)

        updated = query.update(updates, synchronize_session=False)
        db.commit()
        return updated
