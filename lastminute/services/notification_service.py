"""
Salon Notification Service
One email or SMS alert to salon staff when a new request lands.
Notification problems are reported in the result dict, never raised.
"""

import logging
from typing import Optional, Union

from ..config import DASHBOARD_URL
from ..domain.requests.schemas import is_pending_upload
from ..email_service import send_new_booking_request_email, send_new_consultation_email
from ..models import BookingRequest, ConsultationSubmission, Salon
from ..shared.validators import validate_us_phone
from .twilio_service import new_request_sms_body, send_sms

logger = logging.getLogger(__name__)

NewRequest = Union[BookingRequest, ConsultationSubmission]


async def _send_request_email(salon: Salon, request: NewRequest) -> dict:
    if isinstance(request, ConsultationSubmission):
        info = request.client_info or {}
        files = request.files or []
        return await send_new_consultation_email(
            to=salon.notification_email,
            salon_name=salon.name,
            client_name=info.get("name") or "",
            client_email=info.get("email"),
            client_phone=info.get("phone"),
            file_count=len(files),
            pending_upload_count=sum(1 for f in files if is_pending_upload(f.get("url"))),
            submitted_at=request.submitted_at,
        )
    return await send_new_booking_request_email(
        to=salon.notification_email,
        salon_name=salon.name,
        client_name=request.client_name,
        client_email=request.client_email,
        client_phone=request.client_phone,
        service=request.service,
        date_time_preference=request.date_time_preference,
        notes=request.notes,
        submitted_by_provider=bool(request.submitted_by_provider),
        submitted_at=request.created_at,
    )


async def notify_new_request(salon: Salon, request: NewRequest) -> dict:
    """
    Alert salon staff about a new booking request or consultation

    At most one notification goes out per submission: an email to the
    salon's notification address when email alerts are on, otherwise one
    SMS to the first valid alert number when SMS alerts are on.

    Returns:
        Dict with email_sent, sms_sent, email_error, sms_error
    """
    request_type = "consultation" if isinstance(request, ConsultationSubmission) else "booking"
    result = {"email_sent": False, "sms_sent": False, "email_error": None, "sms_error": None}

    # Send Email
    if salon.notify_email and salon.notification_email:
        try:
            logger.info(f"📧 Sending new {request_type} email to {salon.notification_email}")
            await _send_request_email(salon, request)
            result["email_sent"] = True
        except Exception as e:
            result["email_error"] = str(e)
            logger.error(
                f"❌ Failed to send new {request_type} email to {salon.notification_email}: {e}"
            )
        return result

    # Send SMS
    phones = salon.notification_phones or []
    if not (salon.notify_sms and phones):
        logger.debug(f"⚠️ No alert channel configured for salon {salon.id}")
        return result

    formatted_phone, skipped = _first_valid_phone(phones)
    if skipped:
        logger.warning(f"⚠️ Invalid alert numbers for salon {salon.id}: {skipped}")
    if not formatted_phone:
        result["sms_error"] = f"Invalid phone number format: {', '.join(skipped)}"
        return result

    try:
        logger.info(f"📱 Sending new {request_type} SMS to {formatted_phone}")
        success, error = await send_sms(formatted_phone, new_request_sms_body(DASHBOARD_URL, request_type))
    except Exception as e:
        success, error = False, str(e)
        logger.error(f"❌ Failed to send new {request_type} SMS to {formatted_phone}: {e}")
    result["sms_sent"] = success
    result["sms_error"] = None if success else error
    return result


def _first_valid_phone(phones: list[str]) -> tuple[Optional[str], list[str]]:
    skipped = []
    for phone in phones:
        try:
            formatted = validate_us_phone(phone)
        except ValueError:
            skipped.append(phone)
            continue
        if formatted:
            return formatted, skipped
    return None, skipped
