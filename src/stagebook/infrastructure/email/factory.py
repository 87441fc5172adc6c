"""Factory for the configured email transport.

The HTTP transport holds an httpx.AsyncClient, so it is created once per
process and closed on shutdown.
"""

from __future__ import annotations

import inspect

from stagebook.config import Settings
from stagebook.domain.notifications.ports import EmailSenderPort
from stagebook.infrastructure.email.console import LoggingEmailSender
from stagebook.infrastructure.email.http import HttpEmailSender


def build_email_sender(settings: Settings) -> EmailSenderPort:
    if settings.email_provider == "http":
        return HttpEmailSender(
            settings.email_api_url,
            settings.email_api_key,
            from_address=settings.email_from_address,
            timeout=settings.email_timeout_seconds,
        )
    return LoggingEmailSender()


async def close_email_sender(sender: object | None) -> None:
    close = getattr(sender, "close", None)
    if close is None:
        return
    if inspect.iscoroutinefunction(close):
        await close()
    else:
        close()
