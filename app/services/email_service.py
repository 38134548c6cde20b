"""Email service using SendGrid."""

import logging

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.config import Settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending transactional emails via SendGrid."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.sendgrid_api_key
        self._from = (settings.email_from_address, settings.email_from_name)
        self._otp_expire_minutes = settings.otp_expire_minutes

    def _send_email(self, to_email: str, subject: str, text: str, html_content: str) -> bool:
        """Send email via SendGrid. Returns True if successful."""
        if not self._api_key:
            logger.warning("SendGrid API key not configured, skipping email send")
            return False

        message = Mail(
            from_email=self._from,
            to_emails=to_email,
            subject=subject,
            plain_text_content=text,
            html_content=html_content,
        )

        try:
            sg = SendGridAPIClient(self._api_key)
            response = sg.send(message)
            logger.info(f"Email sent to {to_email}, status: {response.status_code}")
            return response.status_code in (200, 201, 202)
        except Exception:
            logger.exception(f"Failed to send email to {to_email}")
            return False

    def send_verification_otp(self, email: str, code: str) -> bool:
        """Send the email verification code."""
        minutes = self._otp_expire_minutes
        text = f"Your WalletWise verification code is {code}. It expires in {minutes} minutes."
        html = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6;">
          <h2>Verify your WalletWise account</h2>
          <p>Your verification code is:</p>
          <p style="font-size: 24px; font-weight: bold; letter-spacing: 4px;">{code}</p>
          <p>This code expires in {minutes} minutes.</p>
          <p>If you didn't request this, you can ignore this email.</p>
        </div>
        """
        return self._send_email(email, "Verify your WalletWise account", text, html)


def deliver_verification_otp(settings: Settings, email: str, code: str) -> None:
    """Background task: send a verification code, reporting failure only to the logs.

    Runs after the response has been sent, so delivery problems never reach
    the client.
    """
    if not EmailService(settings).send_verification_otp(email, code):
        logger.warning(f"Verification code delivery to {email} failed")
