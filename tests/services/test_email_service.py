"""
Tests for Email Service.

Tests MockEmailService and the Brevo client with httpx mocked out.
"""

import pytest
import httpx
from unittest.mock import patch, MagicMock, AsyncMock

from repairdesk.services.email_service import BREVO_API_URL, EmailService, MockEmailService, get_email_service


def _mock_client(response=None, side_effect=None):
    """Patchable stand-in for `httpx.AsyncClient()` used as an async context manager."""
    client = MagicMock()
    client.post = AsyncMock(return_value=response, side_effect=side_effect)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


class TestMockEmailService:
    """Tests for MockEmailService."""

    def test_mock_is_always_configured(self):
        assert MockEmailService().is_configured is True

    def test_payload_wraps_plain_text(self):
        payload = MockEmailService().build_payload("a@example.com", "Subject", "Hello\nthere")

        assert payload["sender"] == {"name": "RepairDesk", "email": "shop@example.com"}
        assert payload["htmlContent"] == "<html><body><p>Hello<br>there</p></body></html>"
        assert "replyTo" not in payload

    @pytest.mark.asyncio
    async def test_send_email_success(self):
        service = MockEmailService()

        result = await service.send_email(
            to="recipient@example.com",
            subject="Test Subject",
            body="Test body content",
            html_body="<h1>HTML Content</h1>",
        )

        assert result["success"] is True
        assert result["message_id"].startswith("mock-")
        assert service._sent_emails[0]["html_body"] == "<h1>HTML Content</h1>"

    @pytest.mark.asyncio
    async def test_configured_failure(self):
        service = MockEmailService(fail_with="quota exceeded")

        result = await service.send_email(to="a@example.com", subject="S", body="B")

        assert result["success"] is False
        assert result["error"] == "quota exceeded"
        assert service._sent_emails == []


class TestEmailServiceNotConfigured:
    """Tests for EmailService when no API key is set."""

    @pytest.mark.asyncio
    async def test_send_email_not_configured(self):
        service = EmailService(api_key="")

        result = await service.send_email(to="test@example.com", subject="Test", body="Test")

        assert service.is_configured is False
        assert result["success"] is False
        assert "not configured" in result["error"].lower()

    def test_factory_falls_back_to_mock(self):
        with patch("repairdesk.services.email_service.settings") as mock_settings:
            mock_settings.BREVO_API_KEY = None
            mock_settings.EMAIL_FROM_ADDRESS = "service@example.com"
            mock_settings.EMAIL_FROM_NAME = "Test"
            mock_settings.is_production = False

            assert isinstance(get_email_service(), MockEmailService)

    def test_factory_never_mocks_production(self):
        with patch("repairdesk.services.email_service.settings") as mock_settings:
            mock_settings.BREVO_API_KEY = None
            mock_settings.EMAIL_FROM_ADDRESS = "service@example.com"
            mock_settings.EMAIL_FROM_NAME = "Test"
            mock_settings.is_production = True

            service = get_email_service()
            assert not isinstance(service, MockEmailService)
            assert service.is_configured is False


class TestEmailServiceIntegration:
    """Tests for EmailService with a mocked Brevo endpoint."""

    @pytest.mark.asyncio
    async def test_send_email_posts_payload(self):
        response = MagicMock(status_code=201)
        response.json.return_value = {"messageId": "<brevo-123@smtp>"}
        client = _mock_client(response=response)

        with patch("repairdesk.services.email_service.httpx.AsyncClient", return_value=client):
            service = EmailService(api_key="test-api-key")
            result = await service.send_email(
                to="recipient@example.com",
                subject="Test Subject",
                body="Line one\nLine two",
                reply_to="desk@example.com",
            )

        assert result == {"success": True, "status_code": 201, "message_id": "<brevo-123@smtp>"}
        url = client.post.call_args.args[0]
        kwargs = client.post.call_args.kwargs
        assert url == BREVO_API_URL
        assert kwargs["headers"]["api-key"] == "test-api-key"
        assert kwargs["json"]["to"] == [{"email": "recipient@example.com"}]
        assert kwargs["json"]["replyTo"] == {"email": "desk@example.com"}
        assert "Line one<br>Line two" in kwargs["json"]["htmlContent"]

    @pytest.mark.asyncio
    async def test_api_error_response(self):
        response = MagicMock(status_code=400, text='{"code":"invalid_parameter"}')
        client = _mock_client(response=response)

        with patch("repairdesk.services.email_service.httpx.AsyncClient", return_value=client):
            result = await EmailService(api_key="test-api-key").send_email(to="a@example.com", subject="S", body="B")

        assert result["success"] is False
        assert result["status_code"] == 400
        assert "invalid_parameter" in result["error"]

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = _mock_client(side_effect=httpx.ReadTimeout("timed out"))

        with patch("repairdesk.services.email_service.httpx.AsyncClient", return_value=client):
            result = await EmailService(api_key="test-api-key").send_email(to="a@example.com", subject="S", body="B")

        assert result["success"] is False
        assert "timed out" in result["error"]

    @pytest.mark.asyncio
    async def test_transport_error(self):
        client = _mock_client(side_effect=httpx.ConnectError("connection refused"))

        with patch("repairdesk.services.email_service.httpx.AsyncClient", return_value=client):
            result = await EmailService(api_key="test-api-key").send_email(to="a@example.com", subject="S", body="B")

        assert result["success"] is False
        assert result["error"] == "connection refused"
