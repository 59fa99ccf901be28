from datetime import datetime, timedelta, timezone
from itertools import product

import pytest

from lastminute.domain.requests.aggregator import (
    filter_requests,
    merge_requests,
    partition_by_bucket,
    sort_requests,
    status_priority,
)
from lastminute.domain.requests.schemas import (
    BookingItem,
    ClientInfo,
    ConsultationFile,
    ConsultationItem,
    RequestFilter,
)

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


def booking(id="b1", status="pending", created=NOW, updated=None, **fields):
    return BookingItem(
        id=id,
        salonId="s1",
        clientName=fields.pop("clientName", "Jane Doe"),
        status=status,
        createdAt=created,
        updatedAt=updated or created,
        **fields,
    )


def consultation(id="c1", status="pending", submitted=NOW, updated=None, **info):
    return ConsultationItem(
        id=id,
        salonId="s1",
        clientInfo=ClientInfo(
            name=info.get("name", "Ana Lima"),
            email=info.get("email", "ana@example.com"),
            phone=info.get("phone", "(555) 987-6543"),
        ),
        status=status,
        submittedAt=submitted,
        createdAt=submitted,
        updatedAt=updated or submitted,
    )


# ============================================================================
# ORDERING
# ============================================================================


def test_priority_table():
    assert status_priority("pending") == 4
    assert status_priority("provider-requested") == 3
    assert status_priority("contacted") == 2
    assert status_priority("reviewed") == 2
    assert status_priority("booked") == 1
    assert status_priority("not-booked") == 1
    assert status_priority("something-new") == 1


def test_priority_table_can_be_overridden():
    items = [booking("a", "booked"), booking("b", "pending")]
    ordered = sort_requests(items, priorities={"booked": 9})
    assert [i.id for i in ordered] == ["a", "b"]


def test_statuses_group_by_priority_tier():
    items = [
        booking("1", "not-booked", NOW),
        booking("2", "pending", NOW - timedelta(days=3)),
        booking("3", "contacted", NOW),
        booking("4", "provider-requested", NOW),
        consultation("5", "reviewed", NOW),
    ]
    tiers = [status_priority(i.status) for i in sort_requests(items)]
    assert tiers == [4, 3, 2, 2, 1]


def test_equal_priority_orders_by_recency_descending():
    older = booking("old", created=NOW - timedelta(hours=5))
    newer = booking("new", created=NOW)
    assert [i.id for i in sort_requests([older, newer])] == ["new", "old"]


def test_consultation_recency_uses_submitted_at():
    b = booking("b", created=NOW - timedelta(hours=1))
    c = consultation("c", submitted=NOW)
    assert [i.requestType for i in sort_requests([b, c])] == ["consultation", "booking"]


def test_missing_dates_sort_last_within_their_tier():
    undated = booking("undated", created=None)
    dated = booking("dated", created=NOW - timedelta(days=30))
    assert [i.id for i in sort_requests([undated, dated])] == ["dated", "undated"]


def test_ties_keep_input_order():
    items = [booking(str(n), created=NOW) for n in range(5)]
    assert [i.id for i in sort_requests(items)] == ["0", "1", "2", "3", "4"]


def test_merge_preserves_every_item_with_its_tag(make_salon, make_booking, make_consultation):
    salon = make_salon()
    bookings = [make_booking(salon, NOW - timedelta(hours=n)) for n in range(3)]
    consultations = [make_consultation(salon, NOW - timedelta(hours=n)) for n in range(2)]

    merged = merge_requests(bookings, consultations)

    assert len(merged) == 5
    assert sorted(i.requestType for i in merged) == ["booking"] * 3 + ["consultation"] * 2
    assert {(i.requestType, i.id) for i in merged} == {
        *(("booking", b.id) for b in bookings),
        *(("consultation", c.id) for c in consultations),
    }


# ============================================================================
# FILTERING
# ============================================================================


@pytest.fixture
def queue():
    return [
        booking("b1", "pending", clientName="Jane Doe", clientEmail="jane@example.com", service="Balayage"),
        booking("b2", "contacted", clientName="Mo Patel", notes="Prefers Sarah"),
        booking("b3", "booked", clientName="Lee Kim", service="Cut & Style"),
        consultation("c1", "pending", name="Ana Lima", phone="(555) 987-6543"),
        consultation("c2", "reviewed", name="Ruth Bell", email="ruth@example.com", phone="(555) 111-2222"),
    ]


def ids(items):
    return [i.id for i in items]


def test_type_filter(queue):
    assert ids(filter_requests(queue, RequestFilter(requestType="bookings"))) == ["b1", "b2", "b3"]
    assert ids(filter_requests(queue, RequestFilter(requestType="consultations"))) == ["c1", "c2"]
    assert ids(filter_requests(queue, RequestFilter())) == ids(queue)


def test_search_is_case_insensitive_over_booking_fields(queue):
    assert ids(filter_requests(queue, RequestFilter(searchTerm="BALAYAGE"))) == ["b1"]
    assert ids(filter_requests(queue, RequestFilter(searchTerm="sarah"))) == ["b2"]
    assert ids(filter_requests(queue, RequestFilter(searchTerm="jane@"))) == ["b1"]


def test_search_matches_consultation_phone_digits(queue):
    assert ids(filter_requests(queue, RequestFilter(searchTerm="555-987"))) == ["c1"]


def test_search_matches_virtual_consultation_phrase(queue):
    assert ids(filter_requests(queue, RequestFilter(searchTerm="Virtual"))) == ["c1", "c2"]


def test_status_filter_is_literal(queue):
    contacted = filter_requests(queue, RequestFilter(status="contacted"))
    assert ids(contacted) == ["b2"]
    assert ids(filter_requests(queue, RequestFilter(status="reviewed"))) == ["c2"]
    assert ids(filter_requests(queue, RequestFilter(status="all"))) == ids(queue)


def test_filter_does_not_mutate_input(queue):
    before = ids(queue)
    filter_requests(queue, RequestFilter(status="pending"))
    assert ids(queue) == before


@pytest.mark.parametrize(
    "search,request_type,status",
    list(product(["", "jane", "555", "consult"], ["all", "bookings", "consultations"], [None, "pending", "reviewed"])),
)
def test_filtering_is_idempotent(queue, search, request_type, status):
    criteria = RequestFilter(searchTerm=search, requestType=request_type, status=status)
    once = filter_requests(queue, criteria)
    assert filter_requests(once, criteria) == once


# ============================================================================
# GROUPING
# ============================================================================


def test_buckets():
    items = [
        booking("p", "pending", updated=NOW - timedelta(hours=1)),
        booking("pr", "provider-requested", updated=NOW - timedelta(days=5)),
        booking("c", "contacted", updated=NOW - timedelta(days=5)),
        consultation("r", "reviewed", updated=NOW - timedelta(hours=10)),
    ]
    groups = partition_by_bucket(items, now=NOW)

    assert ids(groups["pending"]) == ["p"]
    assert ids(groups["providerRequested"]) == ["pr"]
    assert ids(groups["contacted"]) == ["c"]
    # Pending never counts as completed, however recent
    assert ids(groups["recentlyCompleted"]) == ["r"]


def test_recent_contacted_item_is_in_two_buckets():
    item = booking("b", "contacted", created=NOW - timedelta(days=3), updated=NOW - timedelta(hours=2))
    groups = partition_by_bucket([item], now=NOW)
    assert ids(groups["contacted"]) == ["b"]
    assert ids(groups["recentlyCompleted"]) == ["b"]


def test_recently_completed_window_edges():
    inside = booking("inside", "booked", updated=NOW - timedelta(hours=48))
    outside = booking("outside", "booked", updated=NOW - timedelta(hours=48, seconds=1))
    undated = booking("undated", "booked", created=None)
    groups = partition_by_bucket([inside, outside, undated], now=NOW)
    assert ids(groups["recentlyCompleted"]) == ["inside"]


def test_recently_completed_falls_back_to_submission_date():
    fresh = booking("fresh", "booked", created=NOW - timedelta(hours=1)).model_copy(update={"updatedAt": None})
    stale = booking("stale", "booked", created=NOW - timedelta(days=5)).model_copy(update={"updatedAt": None})
    reviewed = consultation("c", "reviewed", submitted=NOW - timedelta(hours=3)).model_copy(
        update={"updatedAt": "garbage"}
    )
    groups = partition_by_bucket([fresh, stale, reviewed], now=NOW)
    assert ids(groups["recentlyCompleted"]) == ["fresh", "c"]


def test_consultations_never_enter_contacted_bucket():
    groups = partition_by_bucket([consultation("c", "reviewed")], now=NOW)
    assert groups["contacted"] == []


# ============================================================================
# UPLOADS
# ============================================================================


def test_placeholder_upload_is_flagged():
    item = ConsultationItem(
        id="c",
        salonId="s1",
        clientInfo=ClientInfo(name="Ana"),
        status="pending",
        files=[
            ConsultationFile(fieldId="hair-photo-top", url="placeholder://upload-pending/photo.jpg", name="photo.jpg"),
            ConsultationFile(fieldId="hair-photo-front", url="https://cdn.example.com/front.jpg", name="front.jpg"),
        ],
    )
    assert item.files[0].uploadPending is True
    assert item.files[1].uploadPending is False
    assert [f.name for f in item.pending_uploads] == ["photo.jpg"]
    assert item.model_dump()["files"][0]["uploadPending"] is True
