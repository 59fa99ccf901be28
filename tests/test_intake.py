import pytest

from lastminute.domain.intake import service as intake_service
from lastminute.models import BillingAccount, BookingRequest, ConsultationSubmission, UsageMetric

BOOKING = {
    "clientName": "Jane Doe",
    "clientEmail": "Jane@Example.com",
    "clientPhone": "(555) 123-4567",
    "selectedServices": ["Balayage", "Cut & Style"],
    "otherService": "bang trim",
    "dateTimePreference": "Friday afternoon",
    "waitlistOptIn": True,
}

CONSULTATION = {
    "answers": {
        "name": "Ana Lima",
        "email": "ana@example.com",
        "phone": "(555) 987-6543",
        "service-type": "Hair Color",
        "desired-result": "Copper balayage",
    },
    "files": [
        {"fieldId": "hair-photo-top", "url": "https://cdn.example.com/top.jpg", "name": "top.jpg", "size": 2048},
        {
            "fieldId": "hair-photo-front",
            "url": "placeholder://upload-pending/front.jpg",
            "name": "front.jpg",
            "size": 4096,
        },
    ],
}


def test_booking_request_is_stored_pending(public_client, db, salon):
    response = public_client.post(f"/public/salons/{salon.slug}/booking-requests", json=BOOKING)

    assert response.status_code == 201
    body = response.json()
    assert body["requestType"] == "booking"
    assert body["status"] == "pending"

    booking = db.get(BookingRequest, body["id"])
    assert booking.salon_id == salon.id
    assert booking.client_email == "jane@example.com"
    assert booking.client_phone == "+15551234567"
    assert booking.service == "Balayage, Cut & Style, Other: bang trim"
    assert booking.waitlist_opt_in is True
    assert booking.submitted_by_provider is False


@pytest.mark.parametrize(
    "overrides",
    [{"clientName": "  "}, {"clientPhone": ""}, {"clientPhone": "12345"}, {"clientEmail": "not-an-email"}],
)
def test_invalid_booking_is_rejected(public_client, db, salon, overrides):
    response = public_client.post(
        f"/public/salons/{salon.slug}/booking-requests", json={**BOOKING, **overrides}
    )
    assert response.status_code == 422
    assert db.query(BookingRequest).count() == 0
    assert db.query(UsageMetric).count() == 0


def test_unknown_salon_is_404(public_client):
    response = public_client.post("/public/salons/no-such-salon/booking-requests", json=BOOKING)
    assert response.status_code == 404


def test_each_submission_tracks_usage_once_and_notifies_once(public_client, db, salon, no_outbound_calls):
    booking = public_client.post(f"/public/salons/{salon.slug}/booking-requests", json=BOOKING).json()
    consultation = public_client.post(f"/public/salons/{salon.slug}/consultations", json=CONSULTATION).json()

    metrics = db.query(UsageMetric).order_by(UsageMetric.timestamp).all()
    assert [(m.type, m.request_id, m.user_id) for m in metrics] == [
        ("booking", booking["id"], "anonymous"),
        ("consultation", consultation["id"], "anonymous"),
    ]
    assert no_outbound_calls["notifications"] == [(salon.id, booking["id"]), (salon.id, consultation["id"])]


def test_notification_failure_does_not_fail_submission(public_client, db, salon, monkeypatch):
    async def exploding_email(*args, **kwargs):
        raise RuntimeError("Resend is down")

    # Real notifier, broken email channel
    from lastminute.services import notification_service

    monkeypatch.setattr(intake_service, "notify_new_request", notification_service.notify_new_request)
    monkeypatch.setattr(notification_service, "send_new_booking_request_email", exploding_email)

    response = public_client.post(f"/public/salons/{salon.slug}/booking-requests", json=BOOKING)

    assert response.status_code == 201
    assert db.query(BookingRequest).count() == 1
    assert db.query(UsageMetric).count() == 1


def test_usage_failure_does_not_fail_submission(public_client, db, salon, monkeypatch, no_outbound_calls):
    async def broken_track(*args, **kwargs):
        raise RuntimeError("metrics table locked")

    monkeypatch.setattr(intake_service.UsageService, "track_usage", broken_track)

    response = public_client.post(f"/public/salons/{salon.slug}/booking-requests", json=BOOKING)

    assert response.status_code == 201
    assert db.query(BookingRequest).count() == 1
    assert len(no_outbound_calls["notifications"]) == 1


def test_active_billing_account_reports_one_unit_to_stripe(public_client, db, salon, no_outbound_calls):
    db.add(BillingAccount(salon_id=salon.id, status="active", subscription_item_id="si_123"))
    db.commit()

    public_client.post(f"/public/salons/{salon.slug}/booking-requests", json=BOOKING)

    assert no_outbound_calls["stripe"] == [("si_123", 1)]


def test_inactive_billing_account_is_not_charged(public_client, db, salon, no_outbound_calls):
    db.add(BillingAccount(salon_id=salon.id, status="past_due", subscription_item_id="si_123"))
    db.commit()

    public_client.post(f"/public/salons/{salon.slug}/booking-requests", json=BOOKING)

    assert no_outbound_calls["stripe"] == []
    assert db.query(UsageMetric).count() == 1


def test_stripe_failure_keeps_the_usage_metric(public_client, db, salon, monkeypatch):
    async def rejected(*args, **kwargs):
        raise RuntimeError("No such subscription item")

    monkeypatch.setattr("lastminute.domain.billing.service.report_usage_to_stripe", rejected)
    db.add(BillingAccount(salon_id=salon.id, status="active", subscription_item_id="si_gone"))
    db.commit()

    response = public_client.post(f"/public/salons/{salon.slug}/booking-requests", json=BOOKING)

    assert response.status_code == 201
    assert db.query(UsageMetric).count() == 1


# ============================================================================
# CONSULTATIONS
# ============================================================================


def test_consultation_is_stored_with_client_info_and_flags_pending_upload(client, public_client, db, salon):
    response = public_client.post(f"/public/salons/{salon.slug}/consultations", json=CONSULTATION)

    assert response.status_code == 201
    stored = db.get(ConsultationSubmission, response.json()["id"])
    assert stored.status == "pending"
    assert stored.client_info == {"name": "Ana Lima", "email": "ana@example.com", "phone": "(555) 987-6543"}
    assert stored.submitted_at is not None

    queue = client.get("/requests", params={"requestType": "consultations"}).json()
    files = {f["name"]: f for f in queue[0]["files"]}
    assert files["front.jpg"]["uploadPending"] is True
    assert files["top.jpg"]["uploadPending"] is False


def test_consultation_missing_required_fields_is_rejected(public_client, db, salon):
    payload = {"answers": {"name": "Ana Lima"}, "files": []}

    response = public_client.post(f"/public/salons/{salon.slug}/consultations", json=payload)

    assert response.status_code == 400
    assert "Email Address" in response.json()["detail"]
    assert "Hair Photos - Top View" in response.json()["detail"]
    assert db.query(ConsultationSubmission).count() == 0


def test_oversized_upload_is_rejected(public_client, db, salon):
    payload = {
        **CONSULTATION,
        "files": [{**CONSULTATION["files"][0], "size": 11 * 1024 * 1024}, CONSULTATION["files"][1]],
    }

    response = public_client.post(f"/public/salons/{salon.slug}/consultations", json=payload)

    assert response.status_code == 413
    assert db.query(ConsultationSubmission).count() == 0


def test_custom_form_conditional_children_are_required_only_when_shown(public_client, make_salon):
    salon = make_salon(
        consultation_form={
            "fields": [
                {"id": "name", "type": "text", "label": "Name", "required": True, "order": 1},
                {
                    "id": "treatment",
                    "type": "select",
                    "label": "Treatment",
                    "order": 2,
                    "options": ["Color", "Cut"],
                    "conditionalRules": [{"triggerValue": "Color", "showFields": ["last-color"]}],
                },
                {
                    "id": "last-color",
                    "type": "text",
                    "label": "Last color date",
                    "required": True,
                    "isConditional": True,
                    "order": 3,
                },
            ],
            "successMessage": "Thanks!",
        }
    )
    url = f"/public/salons/{salon.slug}/consultations"

    ok = public_client.post(url, json={"answers": {"name": "Ana", "treatment": "Cut"}})
    assert ok.status_code == 201
    assert ok.json()["message"] == "Thanks!"

    rejected = public_client.post(url, json={"answers": {"name": "Ana", "treatment": "Color"}})
    assert rejected.status_code == 400
    assert "Last color date" in rejected.json()["detail"]


def test_public_form_lists_top_level_fields_in_order(public_client, salon):
    response = public_client.get(f"/public/salons/{salon.slug}/consultation-form")

    assert response.status_code == 200
    body = response.json()
    assert body["salonName"] == salon.name
    assert [f["order"] for f in body["fields"]] == sorted(f["order"] for f in body["fields"])
    assert body["fields"][0]["id"] == "name"
    assert body["submitButtonText"] == "Submit Consultation"
