"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from typing import Any, Optional, Union

import resend
from mjml import mjml_to_html

from .config import DASHBOARD_URL, EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import new_booking_request_template, new_consultation_template

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailError(Exception):
    """Raised when an email cannot be compiled or handed to Resend"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # Newer mjml releases return an object with .html/.errors, older ones a dict
        errors = result.get("errors") if isinstance(result, dict) else getattr(result, "errors", None)
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        if isinstance(result, dict):
            return result.get("html", "")
        return getattr(result, "html", str(result))
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailError(f"Failed to compile MJML template: {e}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Resend response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailError(f"Failed to send email: {e}") from e


async def send_new_booking_request_email(
    to: str,
    salon_name: str,
    client_name: str,
    client_email: Optional[str] = None,
    client_phone: Optional[str] = None,
    service: Optional[str] = None,
    date_time_preference: Optional[str] = None,
    notes: Optional[str] = None,
    submitted_by_provider: bool = False,
    submitted_at: Any = None,
) -> dict:
    """Tell the salon a booking request arrived"""
    mjml_content = new_booking_request_template(
        salon_name=salon_name,
        client_name=client_name,
        client_email=client_email,
        client_phone=client_phone,
        service=service,
        date_time_preference=date_time_preference,
        notes=notes,
        dashboard_url=DASHBOARD_URL,
        submitted_by_provider=submitted_by_provider,
        submitted_at=submitted_at,
    )
    return await send_email(
        to=to,
        subject=f"New Booking Request: {client_name}",
        mjml_content=mjml_content,
    )


async def send_new_consultation_email(
    to: str,
    salon_name: str,
    client_name: str,
    client_email: Optional[str] = None,
    client_phone: Optional[str] = None,
    file_count: int = 0,
    pending_upload_count: int = 0,
    submitted_at: Any = None,
) -> dict:
    """Tell the salon a virtual consultation arrived"""
    mjml_content = new_consultation_template(
        salon_name=salon_name,
        client_name=client_name,
        client_email=client_email,
        client_phone=client_phone,
        file_count=file_count,
        pending_upload_count=pending_upload_count,
        dashboard_url=DASHBOARD_URL,
        submitted_at=submitted_at,
    )
    return await send_email(
        to=to,
        subject=f"New Virtual Consultation: {client_name or 'New client'}",
        mjml_content=mjml_content,
    )
