import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text

from .database import Base


def generate_document_id():
    """Generate an opaque document ID (each table is its own ID namespace)"""
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


class Salon(Base):
    __tablename__ = "salons"

    id = Column(String(36), primary_key=True, default=generate_document_id)
    owner_uid = Column(String(255), unique=True, index=True, nullable=False)  # Firebase UID
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    booking_url = Column(String(500), nullable=True)
    # Notification preferences
    notification_email = Column(String(255), nullable=True)
    notification_phones = Column(JSON, default=list, nullable=True)  # E.164 numbers
    notify_email = Column(Boolean, default=True, nullable=False)
    notify_sms = Column(Boolean, default=False, nullable=False)
    # {"fields": [...], "successMessage": str, "submitButtonText": str}
    consultation_form = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class BookingRequest(Base):
    __tablename__ = "booking_requests"

    id = Column(String(36), primary_key=True, default=generate_document_id)
    salon_id = Column(String(36), index=True, nullable=False)

    client_name = Column(String(255), nullable=False)
    client_email = Column(String(255), nullable=True)
    client_phone = Column(String(50), nullable=True)
    service = Column(Text, nullable=True)  # Summary of selected services + "Other: ..." text
    stylist_preference = Column(String(255), nullable=True)
    date_time_preference = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    waitlist_opt_in = Column(Boolean, default=False, nullable=False)
    submitted_by_provider = Column(Boolean, default=False, nullable=False)

    # pending | contacted | booked | not-booked | provider-requested
    status = Column(String(50), default="pending", nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class ConsultationSubmission(Base):
    __tablename__ = "consultations"

    id = Column(String(36), primary_key=True, default=generate_document_id)
    salon_id = Column(String(36), index=True, nullable=False)

    client_info = Column(JSON, nullable=False, default=dict)  # {name, email, phone}
    form_data = Column(JSON, nullable=False, default=dict)  # field id -> str | list[str]
    files = Column(JSON, nullable=False, default=list)  # [{fieldId, url, name, size}]

    # pending | reviewed
    status = Column(String(50), default="pending", nullable=False, index=True)

    submitted_at = Column(DateTime(timezone=True), default=utcnow)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class UsageMetric(Base):
    """One row per billable submission (booking request or consultation)"""

    __tablename__ = "usage_metrics"

    id = Column(String(36), primary_key=True, default=generate_document_id)
    salon_id = Column(String(36), index=True, nullable=False)
    type = Column(String(20), nullable=False)  # booking | consultation
    request_id = Column(String(36), nullable=False)
    user_id = Column(String(255), nullable=False, default="anonymous")
    timestamp = Column(DateTime(timezone=True), default=utcnow, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class BillingAccount(Base):
    __tablename__ = "billing_accounts"

    id = Column(String(36), primary_key=True, default=generate_document_id)
    salon_id = Column(String(36), index=True, nullable=False)
    stripe_customer_id = Column(String(255), nullable=True)
    subscription_id = Column(String(255), nullable=True)
    subscription_item_id = Column(String(255), nullable=True)  # Metered price item
    # active, past_due, canceled, incomplete, trialing, unpaid
    status = Column(String(50), default="incomplete", nullable=False)
    billing_email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
