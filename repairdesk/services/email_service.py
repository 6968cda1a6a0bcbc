"""Customer email delivery through the Brevo transactional API.

Results are plain dicts: `success`, `status_code`, `message_id` and, on
failure, `error`. Nothing here raises for a delivery problem; the Notifier
turns the result into a SENT or FAILED log row.
"""

from repairdesk.config import settings
import logging
import uuid
from typing import Optional, Dict, Any
import httpx

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"


def _result(success: bool, status_code: Optional[int] = None, message_id: Optional[str] = None,
            error: Optional[str] = None) -> Dict[str, Any]:
    result = {"success": success, "status_code": status_code, "message_id": message_id}
    if not success:
        result["error"] = error
    return result


class EmailService:
    """Sends shop emails via Brevo using httpx."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = 30.0):
        self.api_key = api_key if api_key is not None else settings.BREVO_API_KEY
        self.from_address = settings.EMAIL_FROM_ADDRESS
        self.from_name = settings.EMAIL_FROM_NAME
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and bool(self.from_address)

    def build_payload(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "sender": {"name": self.from_name, "email": self.from_address},
            "to": [{"email": to}],
            "subject": subject,
            "textContent": body,
            "htmlContent": html_body or "<html><body><p>{}</p></body></html>".format(body.replace("\n", "<br>")),
        }
        if reply_to:
            payload["replyTo"] = {"email": reply_to}
        return payload

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send one email.

        Args:
            to: Customer address
            subject: Subject line
            body: Plain text body
            html_body: HTML body; the plain text is wrapped when omitted
            reply_to: Optional reply-to address
        """
        if not self.api_key:
            logger.error("Brevo API key not configured, email to %s not sent", to)
            return _result(False, error="Brevo API key not configured")

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    BREVO_API_URL,
                    json=self.build_payload(to, subject, body, html_body, reply_to),
                    headers={"accept": "application/json", "api-key": self.api_key},
                    timeout=self.timeout,
                )
        except httpx.TimeoutException:
            logger.error("Brevo API request timed out", extra={"to": to})
            return _result(False, error="Brevo API request timed out")
        except httpx.HTTPError as e:
            logger.error("Failed to send email via Brevo", extra={"to": to, "error": str(e)})
            return _result(False, error=str(e))

        if 200 <= response.status_code < 300:
            message_id = response.json().get("messageId")
            logger.info(
                "Email sent via Brevo",
                extra={"to": to, "subject": subject[:50], "message_id": message_id},
            )
            return _result(True, response.status_code, message_id)

        logger.error("Brevo API error", extra={"status_code": response.status_code, "error": response.text})
        return _result(False, response.status_code, error=f"Brevo API error: {response.text}")


class MockEmailService(EmailService):
    """Records emails instead of sending them; used in development and tests.

    Set `fail_with` to make every send fail with that error.
    """

    def __init__(self, fail_with: Optional[str] = None):
        self.api_key = "mock-key"
        self.from_address = "shop@example.com"
        self.from_name = "RepairDesk"
        self.timeout = 0
        self.fail_with = fail_with
        self._sent_emails = []

    @property
    def is_configured(self) -> bool:
        return True

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        if self.fail_with:
            logger.info(f"Mock email to {to} failed: {self.fail_with}")
            return _result(False, error=self.fail_with)

        message_id = f"mock-{uuid.uuid4().hex[:16]}"
        self._sent_emails.append(
            {
                "to": to,
                "subject": subject,
                "body": body,
                "html_body": html_body,
                "reply_to": reply_to,
                "message_id": message_id,
            }
        )
        logger.info(f"Mock email sent to {to}: {subject}")
        return _result(True, 201, message_id)


def get_email_service() -> EmailService:
    """Brevo when a key is configured; the mock outside production otherwise."""
    service = EmailService()
    if service.is_configured or settings.is_production:
        return service
    logger.warning("BREVO_API_KEY not set, using MockEmailService")
    return MockEmailService()
