"""HTTP notification API client.

Delivers email through a transactional email HTTP API: one POST per
message with a JSON body ``{from, to, subject, html}`` and a bearer token.
"""

import httpx

from stagebook.shared.exceptions import EmailDeliveryError
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)


class HttpEmailSender:
    """Email transport backed by an HTTP notification API."""

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        *,
        from_address: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Endpoint that accepts the message POST
            api_key: Bearer token (omitted from headers when empty)
            from_address: Sender address
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.api_url = api_url
        self.api_key = api_key
        self.from_address = from_address
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {
                "Accept": "application/json",
                "User-Agent": "StageBook/0.4 (+notifications)",
            }
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send_email(self, to: str, subject: str, html: str) -> None:
        """Send one message.

        Raises:
            EmailDeliveryError: Non-2xx response or network failure
        """
        client = await self._get_client()
        payload = {"from": self.from_address, "to": to, "subject": subject, "html": html}
        try:
            response = await client.post(self.api_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EmailDeliveryError(
                f"Email API returned {e.response.status_code}",
                details={"status_code": e.response.status_code, "to": to},
            ) from e
        except httpx.HTTPError as e:
            raise EmailDeliveryError(
                f"Email API request failed: {e}",
                details={"to": to},
            ) from e

        logger.debug("email_api_accepted", to=to, status_code=response.status_code)
