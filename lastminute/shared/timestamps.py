"""Timestamp normalization shared by every place that sorts or displays dates"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

UNKNOWN_DATE_LABEL = "Unknown date"

# Accessors exposed by server-timestamp wrappers (JS-style, snake_case, protobuf)
_WRAPPER_ACCESSORS = ("toDate", "to_date", "ToDatetime")


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_seconds_map(value: dict) -> Optional[datetime]:
    seconds = value.get("_seconds", value.get("seconds"))
    nanos = value.get("_nanoseconds", value.get("nanoseconds", 0)) or 0
    if not isinstance(seconds, (int, float)) or not isinstance(nanos, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(seconds + nanos / 1_000_000_000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        # Outside the range datetime can represent
        return None


def _parse_iso(value: str) -> Optional[datetime]:
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def normalize_timestamp(value: Any) -> Optional[datetime]:
    """
    Convert any stored timestamp representation into an aware UTC datetime.

    Accepts native datetimes/dates, server-timestamp wrappers exposing a
    zero-argument ``toDate()``-style accessor, Firestore JSON export maps
    (``{"_seconds": ..., "_nanoseconds": ...}``) and ISO-8601 strings.

    Returns None (the invalid-date sentinel) for anything unparsable.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _as_utc(value)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    for accessor in _WRAPPER_ACCESSORS:
        method = getattr(value, accessor, None)
        if callable(method):
            try:
                converted = method()
            except Exception as e:
                logger.warning(f"⚠️ Timestamp wrapper {type(value).__name__}.{accessor}() failed: {e}")
                return None
            if isinstance(converted, datetime):
                return _as_utc(converted)
            return None

    if isinstance(value, dict):
        return _from_seconds_map(value)

    if isinstance(value, str):
        parsed = _parse_iso(value)
        return _as_utc(parsed) if parsed else None

    return None


def format_timestamp(value: Any, fmt: str = "%b %d, %Y %I:%M %p") -> str:
    """Display helper - never leaks an unparsable value into output"""
    normalized = normalize_timestamp(value)
    if normalized is None:
        return UNKNOWN_DATE_LABEL
    return normalized.strftime(fmt)
