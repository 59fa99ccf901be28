"""
Import salons, booking requests, consultations, usage metrics and billing
accounts from Firestore

Firestore documents keep their IDs, so re-running the import updates rows in
place instead of duplicating them. Timestamps in any legacy shape (Firestore
Timestamp, exported {_seconds, _nanoseconds} maps, ISO strings) are
normalized; unreadable ones are imported as NULL.

Run with: python migrations/import_firestore_requests.py
"""

import os
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import firebase_admin
from firebase_admin import credentials, firestore
from sqlalchemy import null
from sqlalchemy.orm import Session

from lastminute.config import FIREBASE_PROJECT_ID, FIREBASE_SERVICE_ACCOUNT_JSON_PATH
from lastminute.database import Base, SessionLocal, engine
from lastminute.models import (
    BillingAccount,
    BookingRequest,
    ConsultationSubmission,
    Salon,
    UsageMetric,
)
from lastminute.shared.timestamps import normalize_timestamp


def init_firebase():
    """Initialize Firebase Admin SDK and return a Firestore client"""
    if FIREBASE_SERVICE_ACCOUNT_JSON_PATH and os.path.exists(FIREBASE_SERVICE_ACCOUNT_JSON_PATH):
        cred = credentials.Certificate(FIREBASE_SERVICE_ACCOUNT_JSON_PATH)
    else:
        cred = credentials.ApplicationDefault()
    firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
    return firestore.client()


def _timestamp(value):
    # Explicit NULL, otherwise the column default would stamp the import time
    normalized = normalize_timestamp(value)
    return normalized if normalized is not None else null()


def salon_from_doc(doc_id: str, data: dict) -> Salon:
    notifications = (data.get("settings") or {}).get("notifications") or {}
    return Salon(
        id=doc_id,
        # Salon documents are keyed by the owner's Firebase UID
        owner_uid=data.get("ownerId") or doc_id,
        name=data.get("name") or "Untitled Salon",
        slug=data.get("slug") or doc_id,
        booking_url=data.get("bookingUrl"),
        notification_email=data.get("notificationEmail") or data.get("email"),
        notification_phones=data.get("notificationPhones") or [],
        notify_email=bool(notifications.get("email", True)),
        notify_sms=bool(notifications.get("sms", False)),
        consultation_form=data.get("consultationForm"),
        created_at=_timestamp(data.get("createdAt")),
        updated_at=_timestamp(data.get("updatedAt")),
    )


def booking_from_doc(doc_id: str, data: dict) -> BookingRequest:
    return BookingRequest(
        id=doc_id,
        salon_id=data.get("salonId") or "",
        client_name=data.get("clientName") or "",
        client_email=data.get("clientEmail"),
        client_phone=data.get("clientPhone"),
        service=data.get("service"),
        stylist_preference=data.get("stylistPreference"),
        date_time_preference=data.get("dateTimePreference"),
        notes=data.get("notes"),
        waitlist_opt_in=bool(data.get("waitlistOptIn", False)),
        submitted_by_provider=bool(data.get("submittedByProvider", False)),
        status=data.get("status") or "pending",
        created_at=_timestamp(data.get("createdAt")),
        updated_at=_timestamp(data.get("updatedAt")),
    )


def consultation_from_doc(doc_id: str, data: dict) -> ConsultationSubmission:
    return ConsultationSubmission(
        id=doc_id,
        salon_id=data.get("salonId") or "",
        client_info=data.get("clientInfo") or {},
        form_data=data.get("formData") or {},
        files=data.get("files") or [],
        status=data.get("status") or "pending",
        submitted_at=_timestamp(data.get("submittedAt")),
        created_at=_timestamp(data.get("createdAt")),
        updated_at=_timestamp(data.get("updatedAt")),
    )


def usage_metric_from_doc(doc_id: str, data: dict) -> UsageMetric:
    return UsageMetric(
        id=doc_id,
        salon_id=data.get("salonId") or "",
        type=data.get("type") or "booking",
        request_id=data.get("requestId") or "",
        user_id=data.get("userId") or "anonymous",
        timestamp=_timestamp(data.get("timestamp")),
        created_at=_timestamp(data.get("createdAt")),
    )


def billing_account_from_doc(doc_id: str, data: dict) -> BillingAccount:
    return BillingAccount(
        id=doc_id,
        salon_id=data.get("salonId") or "",
        stripe_customer_id=data.get("stripeCustomerId"),
        subscription_id=data.get("subscriptionId"),
        subscription_item_id=data.get("subscriptionItemId"),
        status=data.get("status") or "incomplete",
        billing_email=data.get("billingEmail") or None,
        created_at=_timestamp(data.get("createdAt")),
        updated_at=_timestamp(data.get("updatedAt")),
    )


COLLECTIONS = [
    ("salons", salon_from_doc),
    ("bookingRequests", booking_from_doc),
    ("consultations", consultation_from_doc),
    ("usage_metrics", usage_metric_from_doc),
    ("billing_accounts", billing_account_from_doc),
]


def import_collection(db: Session, firestore_db, name: str, convert) -> tuple[int, int]:
    print(f"\n=== Importing {name} ===")
    count = 0
    skipped = 0
    for doc in firestore_db.collection(name).stream():
        try:
            db.merge(convert(doc.id, doc.to_dict() or {}))
            db.commit()
            count += 1
        except Exception as e:
            db.rollback()
            print(f"  ⚠ Skipping {name}/{doc.id} - {str(e)[:100]}")
            skipped += 1
    print(f"✓ Imported {count} {name} ({skipped} skipped)")
    return count, skipped


def main():
    print("=" * 50)
    print("Firestore → SQL import")
    print("=" * 50)

    Base.metadata.create_all(bind=engine, checkfirst=True)
    firestore_db = init_firebase()
    db = SessionLocal()

    try:
        for name, convert in COLLECTIONS:
            import_collection(db, firestore_db, name, convert)
    except Exception as e:
        print(f"\n✗ Import failed: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()

    print("\n✓ Import complete")


if __name__ == "__main__":
    main()
