"""Development email transport that only logs."""

from stagebook.shared.logging import get_logger

logger = get_logger(__name__)


class LoggingEmailSender:
    """Logs each message instead of delivering it."""

    def __init__(self) -> None:
        self.sent_count = 0

    async def send_email(self, to: str, subject: str, html: str) -> None:
        self.sent_count += 1
        logger.info("email_logged", to=to, subject=subject, html_length=len(html))
