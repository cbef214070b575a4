"""Appointment confirmation e-mail via the Resend API.

Sending is best-effort from the caller's point of view: this module raises
on any failure and the booking flow logs and moves on.
"""

import html
import httpx
from typing import Any, Dict, Optional
from healthcheck.config.settings import settings
import logging

logger = logging.getLogger(__name__)

CONFIRMATION_SUBJECT = "Your Appointment is Confirmed!"

_CONFIRMATION_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 0; padding: 0; background-color: #f0f9f4; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .header {{ background: #0d9488; color: white; padding: 30px; border-radius: 12px 12px 0 0; text-align: center; }}
    .content {{ background: white; padding: 30px; border-radius: 0 0 12px 12px; }}
    .appointment-card {{ background: #f0fdfa; border-left: 4px solid #0d9488; padding: 20px; margin: 20px 0; }}
    .label {{ color: #64748b; width: 120px; font-weight: 500; }}
    .value {{ color: #1e293b; font-weight: 600; }}
    .footer {{ text-align: center; margin-top: 30px; color: #64748b; font-size: 14px; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>Appointment Confirmed</h1></div>
    <div class="content">
      <p>Hi {user_name},</p>
      <p>Great news! Your appointment has been successfully scheduled. Here are the details:</p>
      <div class="appointment-card">
        <h2>Appointment Details</h2>
        <p><span class="label">Doctor:</span> <span class="value">{doctor_name}</span></p>
        <p><span class="label">Specialty:</span> <span class="value">{specialty}</span></p>
        <p><span class="label">Date:</span> <span class="value">{appointment_date}</span></p>
        <p><span class="label">Time:</span> <span class="value">{appointment_time}</span></p>
        <p><span class="label">Reason:</span> <span class="value">{reason}</span></p>
      </div>
      <p><strong>Reminder:</strong> Please arrive 10-15 minutes before your scheduled time.</p>
      <p>If you need to reschedule or cancel, please do so at least 24 hours in advance.</p>
      <div class="footer">
        <p>Thank you for choosing HealthCheck for your healthcare needs.</p>
        <p>This is an automated message. Please do not reply to this email.</p>
      </div>
    </div>
  </div>
</body>
</html>
"""


def render_confirmation_html(
    user_name: Optional[str],
    doctor_name: str,
    specialty: str,
    appointment_date: str,
    appointment_time: str,
    reason: Optional[str],
) -> str:
    """Render the confirmation body. All values are HTML-escaped."""
    return _CONFIRMATION_TEMPLATE.format(
        user_name=html.escape(user_name or "there"),
        doctor_name=html.escape(doctor_name),
        specialty=html.escape(specialty),
        appointment_date=html.escape(appointment_date),
        appointment_time=html.escape(appointment_time),
        reason=html.escape(reason or ""),
    )


class EmailClient:
    """Thin async client for the Resend e-mail API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        sender: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.api_url = api_url or settings.resend_api_url
        self.sender = sender or settings.email_sender
        self._transport = transport

    async def send_appointment_confirmation(
        self,
        *,
        to: str,
        user_name: Optional[str],
        doctor_name: str,
        specialty: str,
        appointment_date: str,
        appointment_time: str,
        reason: Optional[str],
    ) -> Dict[str, Any]:
        """Send the booking confirmation.

        Returns:
            The Resend API response body

        Raises:
            ValueError: If no API key is configured or no recipient is given
            httpx.HTTPError: If the request fails or Resend rejects it
        """
        if not self.api_key:
            raise ValueError(
                "Email service not configured. Set RESEND_API_KEY in your .env file."
            )
        if not to:
            raise ValueError("No recipient address for confirmation e-mail")

        payload = {
            "from": self.sender,
            "to": [to],
            "subject": CONFIRMATION_SUBJECT,
            "html": render_confirmation_html(
                user_name,
                doctor_name,
                specialty,
                appointment_date,
                appointment_time,
                reason,
            ),
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=15.0, transport=self._transport) as client:
            resp = await client.post(self.api_url, headers=headers, json=payload)
            resp.raise_for_status()
            data = resp.json()

        logger.info(f"Confirmation e-mail sent to {to}: {data.get('id')}")
        return data


_email_client: Optional[EmailClient] = None


def get_email_client() -> EmailClient:
    """Get or create EmailClient instance."""
    global _email_client
    if _email_client is None:
        _email_client = EmailClient()
    return _email_client
