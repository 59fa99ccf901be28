import os

# Must be set before lastminute.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("FIREBASE_PROJECT_ID", "lastminute-test")
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ.pop("REDIS_URL", None)

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lastminute.auth import get_current_salon
from lastminute.database import Base, get_db
from lastminute.main import app
from lastminute.models import BookingRequest, ConsultationSubmission, Salon

NOW = datetime(2024, 3, 14, 12, 0, tzinfo=timezone.utc)

engine = create_engine(
    "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def no_outbound_calls(monkeypatch):
    """Record notifications and Stripe reports instead of sending them"""
    sent = {"notifications": [], "stripe": []}

    async def fake_notify(salon, request):
        sent["notifications"].append((salon.id, request.id))
        return {"email_sent": True, "sms_sent": False, "email_error": None, "sms_error": None}

    async def fake_report(subscription_item_id, quantity=1):
        sent["stripe"].append((subscription_item_id, quantity))

    monkeypatch.setattr("lastminute.domain.intake.service.notify_new_request", fake_notify)
    monkeypatch.setattr("lastminute.domain.billing.service.report_usage_to_stripe", fake_report)
    return sent


@pytest.fixture
def make_salon(db):
    counter = {"n": 0}

    def _make(**overrides) -> Salon:
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "owner_uid": f"owner-{n}",
            "name": f"Salon {n}",
            "slug": f"salon-{n}",
            "notification_email": f"salon{n}@example.com",
        }
        fields.update(overrides)
        salon = Salon(**fields)
        db.add(salon)
        db.commit()
        db.refresh(salon)
        return salon

    return _make


@pytest.fixture
def salon(make_salon):
    return make_salon()


@pytest.fixture
def make_booking(db):
    def _make(salon: Salon, created_at: datetime = NOW, **overrides) -> BookingRequest:
        fields = {
            "salon_id": salon.id,
            "client_name": "Jane Doe",
            "client_email": "jane@example.com",
            "client_phone": "+15551234567",
            "service": "Cut & Style",
            "status": "pending",
            "created_at": created_at,
            "updated_at": created_at,
        }
        fields.update(overrides)
        booking = BookingRequest(**fields)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def make_consultation(db):
    def _make(salon: Salon, submitted_at: datetime = NOW, **overrides) -> ConsultationSubmission:
        fields = {
            "salon_id": salon.id,
            "client_info": {"name": "Ana Lima", "email": "ana@example.com", "phone": "(555) 987-6543"},
            "form_data": {"service-type": "Hair Color"},
            "files": [],
            "status": "pending",
            "submitted_at": submitted_at,
            "created_at": submitted_at,
            "updated_at": submitted_at,
        }
        fields.update(overrides)
        consultation = ConsultationSubmission(**fields)
        db.add(consultation)
        db.commit()
        db.refresh(consultation)
        return consultation

    return _make


@pytest.fixture
def client(db, salon):
    """API client authenticated as the owner of `salon`"""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_salon] = lambda: salon
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def public_client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
