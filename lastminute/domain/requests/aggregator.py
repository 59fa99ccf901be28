"""
Unified request aggregation

Bookings and consultations live in separate tables with separate ID
namespaces. Everything here works on already-fetched rows in memory:
tagging, ordering, filtering and dashboard grouping. No I/O.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional

from ...config import RECENTLY_COMPLETED_HOURS
from ...models import BookingRequest, ConsultationSubmission
from ...shared.timestamps import normalize_timestamp
from ...shared.validators import digits_only
from .schemas import BookingItem, ClientInfo, ConsultationFile, ConsultationItem, RequestFilter

# Sort tiers, highest first. "reviewed" shares the "contacted" tier.
STATUS_PRIORITY: dict[str, int] = {
    "pending": 4,
    "provider-requested": 3,
    "contacted": 2,
    "reviewed": 2,
}
DEFAULT_STATUS_PRIORITY = 1

CONSULTATION_SEARCH_LABEL = "virtual consultation"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def booking_to_item(booking: BookingRequest) -> BookingItem:
    return BookingItem(
        id=booking.id,
        salonId=booking.salon_id,
        clientName=booking.client_name or "",
        clientEmail=booking.client_email,
        clientPhone=booking.client_phone,
        service=booking.service,
        stylistPreference=booking.stylist_preference,
        dateTimePreference=booking.date_time_preference,
        notes=booking.notes,
        waitlistOptIn=bool(booking.waitlist_opt_in),
        submittedByProvider=bool(booking.submitted_by_provider),
        status=booking.status,
        createdAt=normalize_timestamp(booking.created_at),
        updatedAt=normalize_timestamp(booking.updated_at),
    )


def consultation_to_item(consultation: ConsultationSubmission) -> ConsultationItem:
    info = consultation.client_info or {}
    return ConsultationItem(
        id=consultation.id,
        salonId=consultation.salon_id,
        clientInfo=ClientInfo(
            name=info.get("name") or "",
            email=info.get("email") or "",
            phone=info.get("phone") or "",
        ),
        formData=consultation.form_data or {},
        files=[ConsultationFile(**f) for f in (consultation.files or [])],
        status=consultation.status,
        submittedAt=normalize_timestamp(consultation.submitted_at),
        createdAt=normalize_timestamp(consultation.created_at),
        updatedAt=normalize_timestamp(consultation.updated_at),
    )


def status_priority(status: str, priorities: Optional[Mapping[str, int]] = None) -> int:
    table = STATUS_PRIORITY if priorities is None else priorities
    return table.get(status, DEFAULT_STATUS_PRIORITY)


def recency_of(item) -> Optional[datetime]:
    """Most-recent-activity date: createdAt for bookings, submittedAt for consultations"""
    if item.requestType == "booking":
        return normalize_timestamp(item.createdAt)
    if item.requestType == "consultation":
        return normalize_timestamp(item.submittedAt)
    return None


def sort_requests(items: Iterable, priorities: Optional[Mapping[str, int]] = None) -> list:
    """Order by status priority, then recency, both descending. Stable for ties."""

    def sort_key(item):
        return (status_priority(item.status, priorities), recency_of(item) or _OLDEST)

    return sorted(items, key=sort_key, reverse=True)


def merge_requests(
    bookings: Iterable[BookingRequest],
    consultations: Iterable[ConsultationSubmission],
    priorities: Optional[Mapping[str, int]] = None,
) -> list:
    """Tag both record types and return one ordered list"""
    items = [booking_to_item(b) for b in bookings]
    items.extend(consultation_to_item(c) for c in consultations)
    return sort_requests(items, priorities)


def _matches_search(item, term: str) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True

    if item.requestType == "booking":
        fields = (item.clientName, item.clientEmail, item.service, item.notes)
        return any(needle in (value or "").lower() for value in fields)

    if item.requestType == "consultation":
        info = item.clientInfo
        if needle in info.name.lower() or needle in info.email.lower():
            return True
        needle_digits = digits_only(needle)
        if needle_digits and needle_digits in digits_only(info.phone):
            return True
        return needle in CONSULTATION_SEARCH_LABEL

    return False


def _matches_type(item, request_type: str) -> bool:
    if request_type == "bookings":
        return item.requestType == "booking"
    if request_type == "consultations":
        return item.requestType == "consultation"
    return True


def filter_requests(requests: Iterable, criteria: RequestFilter) -> list:
    """
    Apply dashboard filters. Pure and order preserving.

    Status matching is literal: "contacted" does not match reviewed
    consultations even though the two share a sort tier.
    """
    status = criteria.status if criteria.status and criteria.status != "all" else None
    return [
        item
        for item in requests
        if _matches_type(item, criteria.requestType)
        and (status is None or item.status == status)
        and _matches_search(item, criteria.searchTerm)
    ]


def partition_by_bucket(
    requests: Iterable,
    now: Optional[datetime] = None,
    window: timedelta = timedelta(hours=RECENTLY_COMPLETED_HOURS),
) -> dict[str, list]:
    """
    Group requests for the dashboard overview.

    Each bucket is an independent predicate over the full list, so an item
    can land in more than one (a contacted booking updated an hour ago is in
    both "contacted" and "recentlyCompleted").
    """
    items = list(requests)
    reference = normalize_timestamp(now) if now is not None else datetime.now(timezone.utc)
    cutoff = reference - window

    def recently_completed(item) -> bool:
        if item.status == "pending":
            return False
        # Items never touched since submission fall back to their submission date
        updated = normalize_timestamp(item.updatedAt) or recency_of(item)
        return updated is not None and updated >= cutoff

    return {
        "pending": [i for i in items if i.status == "pending"],
        "providerRequested": [i for i in items if i.status == "provider-requested"],
        "contacted": [i for i in items if i.status == "contacted"],
        "recentlyCompleted": [i for i in items if recently_completed(i)],
    }
