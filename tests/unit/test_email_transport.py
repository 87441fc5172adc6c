"""Unit tests for email transports.

HTTP calls go through httpx.MockTransport, no network access.
"""

import json

import httpx
import pytest

from stagebook.config import Settings
from stagebook.infrastructure.email.console import LoggingEmailSender
from stagebook.infrastructure.email.factory import build_email_sender, close_email_sender
from stagebook.infrastructure.email.http import HttpEmailSender
from stagebook.shared.exceptions import EmailDeliveryError

API_URL = "https://mail.example.com/v1/send"


def _sender(handler, api_key: str = "mail-key") -> HttpEmailSender:
    return HttpEmailSender(
        API_URL,
        api_key,
        from_address="noreply@stagebook.app",
        transport=httpx.MockTransport(handler),
    )


class TestHttpEmailSender:
    """Test the HTTP notification API client."""

    @pytest.mark.asyncio
    async def test_posts_message_with_bearer_token(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202, json={"id": "msg-1"})

        sender = _sender(handler)
        await sender.send_email("artist@example.com", "Contract Signed: Gig", "<p>hi</p>")
        await sender.close()

        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == API_URL
        assert request.headers["Authorization"] == "Bearer mail-key"
        assert json.loads(request.content) == {
            "from": "noreply@stagebook.app",
            "to": "artist@example.com",
            "subject": "Contract Signed: Gig",
            "html": "<p>hi</p>",
        }

    @pytest.mark.asyncio
    async def test_no_authorization_without_key(self):
        seen: dict[str, str | None] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["authorization"] = request.headers.get("Authorization")
            return httpx.Response(200)

        sender = _sender(handler, api_key="")
        await sender.send_email("artist@example.com", "s", "b")

        assert seen["authorization"] is None

    @pytest.mark.asyncio
    async def test_error_status_raises_delivery_error(self):
        sender = _sender(lambda request: httpx.Response(503, text="unavailable"))

        with pytest.raises(EmailDeliveryError) as exc_info:
            await sender.send_email("artist@example.com", "s", "b")

        assert exc_info.value.details == {"status_code": 503, "to": "artist@example.com"}

    @pytest.mark.asyncio
    async def test_network_error_raises_delivery_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        sender = _sender(handler)

        with pytest.raises(EmailDeliveryError, match="request failed"):
            await sender.send_email("artist@example.com", "s", "b")

    @pytest.mark.asyncio
    async def test_client_reused_and_closed(self):
        sender = _sender(lambda request: httpx.Response(200))

        await sender.send_email("a@example.com", "s", "b")
        client = sender._client
        await sender.send_email("b@example.com", "s", "b")

        assert sender._client is client
        await close_email_sender(sender)
        assert sender._client is None


class TestEmailFactory:
    @pytest.mark.asyncio
    async def test_log_provider(self):
        sender = build_email_sender(
            Settings(_env_file=None, signature_secret_key="k" * 32, email_provider="log")
        )

        assert isinstance(sender, LoggingEmailSender)
        await sender.send_email("artist@example.com", "s", "b")
        assert sender.sent_count == 1
        await close_email_sender(sender)

    def test_http_provider(self):
        sender = build_email_sender(
            Settings(
                _env_file=None,
                signature_secret_key="k" * 32,
                email_provider="http",
                email_api_url=API_URL,
                email_api_key="secret",
                email_timeout_seconds=5,
            )
        )

        assert isinstance(sender, HttpEmailSender)
        assert sender.api_url == API_URL
        assert sender.timeout == 5
