"""Contract email integration.

Sends the right template to the right party at each contract lifecycle
step. Every public operation returns a boolean (or counts) and never
raises: rendering problems, invalid recipients and transport failures are
logged and reported as ``False``.
"""

from collections.abc import Callable, Sequence
from datetime import timedelta

from stagebook.domain.notifications import templates
from stagebook.domain.notifications.models import (
    BatchReminderResult,
    BookingCancelledNotification,
    ContractNotificationParams,
    ContractReminderNotification,
    ReminderTarget,
    SignatureCompletionNotification,
    SignatureRequestNotification,
)
from stagebook.domain.notifications.ports import EmailSenderPort
from stagebook.observability.metrics import NOTIFICATION_EMAILS
from stagebook.shared.clock import Clock, days_until, utc_now
from stagebook.shared.exceptions import TemplateRenderError
from stagebook.shared.logging import get_logger
from stagebook.shared.validation import is_valid_email

logger = get_logger(__name__)


class ContractEmailIntegration:
    """Orchestrates contract notification emails."""

    def __init__(
        self,
        email_sender: EmailSenderPort,
        *,
        public_base_url: str,
        signature_deadline_days: int = 7,
        clock: Clock = utc_now,
    ) -> None:
        self.email_sender = email_sender
        self.base_url = public_base_url.rstrip("/")
        self.signature_deadline = timedelta(days=signature_deadline_days)
        self._clock = clock

    # ----- URLs -----

    @property
    def artist_dashboard_url(self) -> str:
        return f"{self.base_url}/artist-dashboard"

    @property
    def venue_dashboard_url(self) -> str:
        return f"{self.base_url}/venue-dashboard"

    @property
    def dashboard_url(self) -> str:
        return f"{self.base_url}/dashboard"

    def signing_url(self, contract_id: str) -> str:
        return f"{self.base_url}/contracts/{contract_id}/sign"

    def verification_url(self, certificate_number: str) -> str:
        return f"{self.base_url}/verify-certificate?cert={certificate_number}"

    # ----- Notifications -----

    async def send_contract_created_notification(self, params: ContractNotificationParams) -> bool:
        """Send the contract-sent email to the artist and to the venue.

        The two sends are independent. Returns True only if both succeed.
        """
        artist_sent = await self._deliver(
            "contract_sent",
            params.artist_email,
            templates.contract_created_subject(params.contract_title, recipient_is_artist=True),
            lambda: templates.render_contract_sent(
                templates.ContractSentParams(
                    recipient_name=params.artist_name,
                    sender_name=params.venue_name,
                    contract_title=params.contract_title,
                    event_date=params.event_date,
                    event_venue=params.event_venue,
                    contract_id=params.contract_id,
                    dashboard_url=self.artist_dashboard_url,
                )
            ),
            contract_id=params.contract_id,
        )
        venue_sent = await self._deliver(
            "contract_sent",
            params.venue_email,
            templates.contract_created_subject(params.contract_title, recipient_is_artist=False),
            lambda: templates.render_contract_sent(
                templates.ContractSentParams(
                    recipient_name=params.venue_name,
                    sender_name=params.artist_name,
                    contract_title=params.contract_title,
                    event_date=params.event_date,
                    event_venue=params.event_venue,
                    contract_id=params.contract_id,
                    dashboard_url=self.venue_dashboard_url,
                )
            ),
            contract_id=params.contract_id,
        )
        logger.info(
            "contract_created_notifications_sent",
            contract_id=params.contract_id,
            artist_sent=artist_sent,
            venue_sent=venue_sent,
        )
        return artist_sent and venue_sent

    async def send_signature_request_notification(
        self, notification: SignatureRequestNotification
    ) -> bool:
        deadline = notification.signing_deadline or (self._clock() + self.signature_deadline)
        return await self._deliver(
            "signature_request",
            notification.recipient_email,
            templates.signature_request_subject(notification.contract_title),
            lambda: templates.render_signature_request(
                templates.SignatureRequestParams(
                    recipient_name=notification.recipient_name,
                    sender_name=notification.sender_name,
                    contract_title=notification.contract_title,
                    event_date=notification.event_date,
                    event_venue=notification.event_venue,
                    contract_id=notification.contract_id,
                    signing_deadline=deadline,
                    signing_url=self.signing_url(notification.contract_id),
                )
            ),
            contract_id=notification.contract_id,
        )

    async def send_signature_completion_notification(
        self, notification: SignatureCompletionNotification
    ) -> bool:
        certificate_number = notification.certificate_number
        if not certificate_number:
            logger.warning(
                "signature_completion_missing_certificate",
                contract_id=notification.contract_id,
            )
            return False
        return await self._deliver(
            "signature_received",
            notification.recipient_email,
            templates.signature_received_subject(notification.contract_title),
            lambda: templates.render_signature_received(
                templates.SignatureReceivedParams(
                    recipient_name=notification.recipient_name,
                    signer_name=notification.signer_name,
                    contract_title=notification.contract_title,
                    event_date=notification.event_date,
                    event_venue=notification.event_venue,
                    contract_id=notification.contract_id,
                    certificate_number=certificate_number,
                    verification_url=self.verification_url(certificate_number),
                )
            ),
            contract_id=notification.contract_id,
        )

    async def send_contract_reminder_notification(
        self, notification: ContractReminderNotification
    ) -> bool:
        """Send one reminder. ``days_until_event`` is used as given."""
        try:
            status = templates.ReminderStatus(notification.status)
        except ValueError:
            NOTIFICATION_EMAILS.labels(template="reminder", outcome="invalid_status").inc()
            logger.warning(
                "notification_invalid_status",
                status=str(notification.status),
                contract_id=notification.contract_id,
            )
            return False
        return await self._deliver(
            f"reminder_{status.value}",
            notification.recipient_email,
            templates.reminder_subject(status, notification.contract_title),
            lambda: templates.render_contract_reminder(
                templates.ReminderParams(
                    recipient_name=notification.recipient_name,
                    other_party_name=notification.other_party_name,
                    contract_title=notification.contract_title,
                    event_date=notification.event_date,
                    event_venue=notification.event_venue,
                    contract_id=notification.contract_id,
                    days_until_event=notification.days_until_event,
                    status=status,
                    dashboard_url=self.dashboard_url,
                )
            ),
            contract_id=notification.contract_id,
        )

    async def send_batch_contract_reminders(
        self, contracts: Sequence[ReminderTarget]
    ) -> BatchReminderResult:
        """Remind both parties of every contract, one send at a time.

        A failed send is counted and the batch carries on.
        """
        result = BatchReminderResult()
        now = self._clock()
        for target in contracts:
            remaining = days_until(target.event_date, now)
            recipients = (
                (target.artist_email, target.artist_name, target.venue_name),
                (target.venue_email, target.venue_name, target.artist_name),
            )
            for email, name, other_party in recipients:
                sent = await self.send_contract_reminder_notification(
                    ContractReminderNotification(
                        recipient_email=email,
                        recipient_name=name,
                        other_party_name=other_party,
                        contract_title=target.contract_title,
                        event_date=target.event_date,
                        event_venue=target.event_venue,
                        contract_id=target.contract_id,
                        days_until_event=remaining,
                        status=target.status,
                    )
                )
                if sent:
                    result.success_count += 1
                else:
                    result.failure_count += 1

        logger.info(
            "batch_reminders_completed",
            contracts=len(contracts),
            sent=result.success_count,
            failed=result.failure_count,
        )
        return result

    async def send_booking_cancelled_notification(
        self, notification: BookingCancelledNotification
    ) -> bool:
        return await self._deliver(
            "booking_cancelled",
            notification.recipient_email,
            templates.booking_cancelled_subject(notification.contract_title),
            lambda: templates.render_booking_cancelled(
                templates.BookingCancelledParams(
                    recipient_name=notification.recipient_name,
                    contract_title=notification.contract_title,
                    event_date=notification.event_date,
                    event_venue=notification.event_venue,
                    reason=notification.reason,
                    dashboard_url=self.dashboard_url,
                )
            ),
        )

    # ----- internals -----

    async def _deliver(
        self,
        template: str,
        recipient: str,
        subject: str,
        render: Callable[[], str],
        *,
        contract_id: str | None = None,
    ) -> bool:
        if not is_valid_email(recipient):
            NOTIFICATION_EMAILS.labels(template=template, outcome="invalid_recipient").inc()
            logger.warning(
                "notification_invalid_recipient",
                template=template,
                recipient=recipient,
                contract_id=contract_id,
            )
            return False

        try:
            body = render()
        except TemplateRenderError as e:
            NOTIFICATION_EMAILS.labels(template=template, outcome="render_error").inc()
            logger.error(
                "notification_render_failed",
                template=template,
                contract_id=contract_id,
                error=e.message,
            )
            return False

        try:
            await self.email_sender.send_email(recipient, subject, body)
        except Exception as e:
            NOTIFICATION_EMAILS.labels(template=template, outcome="failed").inc()
            logger.warning(
                "notification_send_failed",
                template=template,
                recipient=recipient,
                contract_id=contract_id,
                error=str(e),
            )
            return False

        NOTIFICATION_EMAILS.labels(template=template, outcome="sent").inc()
        logger.info(
            "notification_sent",
            template=template,
            recipient=recipient,
            contract_id=contract_id,
        )
        return True
