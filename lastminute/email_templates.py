"""
MJML Email Templates
Salon-facing alerts for new booking requests and consultations
"""

from html import escape
from typing import Any, Optional

from .shared.timestamps import format_timestamp

THEME = {
    "primary": "#db2777",
    "background": "#fdf2f8",
    "card_bg": "#ffffff",
    "text_primary": "#111827",
    "text_secondary": "#374151",
    "text_muted": "#6b7280",
    "warning": "#f59e0b",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="{THEME['card_bg']}" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="12px" color="{THEME['text_muted']}" padding="0">
              You're receiving this because request alerts are turned on for your salon.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _detail_rows(details: list[tuple[str, Optional[str]]]) -> str:
    rows = "".join(
        f"""
              <tr>
                <td style="padding: 6px 0; color: {THEME['text_muted']}; width: 40%;">{escape(label)}</td>
                <td style="padding: 6px 0; color: {THEME['text_primary']};">{escape(value)}</td>
              </tr>"""
        for label, value in details
        if value
    )
    return f"""
            <mj-table padding="8px 0 0 0">
              {rows}
            </mj-table>
    """


def new_booking_request_template(
    salon_name: str,
    client_name: str,
    client_email: Optional[str],
    client_phone: Optional[str],
    service: Optional[str],
    date_time_preference: Optional[str],
    notes: Optional[str],
    dashboard_url: str,
    submitted_by_provider: bool = False,
    submitted_at: Any = None,
) -> str:
    """New booking request alert MJML template"""
    intro = (
        f"A booking request for {escape(client_name)} was added by your team."
        if submitted_by_provider
        else f"{escape(client_name)} just asked for an appointment at {escape(salon_name)}."
    )
    details = _detail_rows(
        [
            ("Service", service),
            ("Preferred time", date_time_preference),
            ("Email", client_email),
            ("Phone", client_phone),
            ("Notes", notes),
            ("Submitted", format_timestamp(submitted_at)),
        ]
    )
    content = f"""
            <mj-text>{intro}</mj-text>
            {details}
    """
    return get_base_template(
        title="New Booking Request",
        preview_text=f"New booking request from {escape(client_name)}",
        content_sections=content,
        cta_url=dashboard_url,
        cta_label="View Request",
    )


def new_consultation_template(
    salon_name: str,
    client_name: str,
    client_email: Optional[str],
    client_phone: Optional[str],
    file_count: int,
    pending_upload_count: int,
    dashboard_url: str,
    submitted_at: Any = None,
) -> str:
    """New virtual consultation alert MJML template"""
    uploads_notice = ""
    if pending_upload_count:
        uploads_notice = f"""
            <mj-text color="{THEME['warning']}" font-size="14px" font-weight="600">
              ⚠️ {pending_upload_count} photo(s) did not finish uploading. Ask the client to resend them.
            </mj-text>
        """

    who = escape(client_name or "A client")
    details = _detail_rows(
        [
            ("Email", client_email),
            ("Phone", client_phone),
            ("Photos/videos", str(file_count) if file_count else None),
            ("Submitted", format_timestamp(submitted_at)),
        ]
    )
    content = f"""
            <mj-text>{who} submitted a virtual consultation to {escape(salon_name)}.</mj-text>
            {details}
            {uploads_notice}
    """
    return get_base_template(
        title="New Virtual Consultation",
        preview_text=f"New consultation from {who}",
        content_sections=content,
        cta_url=dashboard_url,
        cta_label="Review Consultation",
    )
