"""HTML email templates for contract notifications.

Templates are plain strings with ``{{field}}`` placeholders. Each template
has a parameter dataclass whose field names are exactly the placeholder
names. Rendering is pure: values are HTML-escaped, datetimes are formatted,
and a placeholder without a value raises ``TemplateRenderError``.
"""

import html
import re
from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any

from stagebook.shared.clock import ensure_aware
from stagebook.shared.exceptions import TemplateRenderError

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([a-z][a-z0-9_]*)\s*\}\}")

EVENT_DATE_FORMAT = "%B %d, %Y"
TIMESTAMP_FORMAT = "%B %d, %Y %H:%M UTC"


class ReminderStatus(str, Enum):
    """Selects the wording of a contract reminder."""

    PENDING_SIGNATURE = "pending-signature"
    UNSIGNED = "unsigned"
    EXPIRING_SOON = "expiring-soon"


# ----- Parameter records -----


@dataclass
class ContractSentParams:
    recipient_name: str
    sender_name: str
    contract_title: str
    event_date: datetime | str
    event_venue: str
    contract_id: str
    dashboard_url: str


@dataclass
class SignatureRequestParams:
    recipient_name: str
    sender_name: str
    contract_title: str
    event_date: datetime | str
    event_venue: str
    contract_id: str
    signing_deadline: datetime | str
    signing_url: str


@dataclass
class SignatureReceivedParams:
    recipient_name: str
    signer_name: str
    contract_title: str
    event_date: datetime | str
    event_venue: str
    contract_id: str
    certificate_number: str
    verification_url: str


@dataclass
class ReminderParams:
    recipient_name: str
    other_party_name: str
    contract_title: str
    event_date: datetime | str
    event_venue: str
    contract_id: str
    days_until_event: int
    status: ReminderStatus
    dashboard_url: str


@dataclass
class BookingCancelledParams:
    recipient_name: str
    contract_title: str
    event_date: datetime | str
    event_venue: str
    reason: str
    dashboard_url: str


@dataclass
class CertificateDocumentParams:
    certificate_number: str
    status: str
    signer_name: str
    signer_email: str
    signer_role: str
    contract_id: str
    signed_at: datetime
    issued_at: datetime
    expires_at: datetime
    signature_hash: str
    verification_hash: str
    verification_url: str


# ----- Layout -----

_STYLE = """
    body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #1f2937; }
    .container { max-width: 600px; margin: 0 auto; background: white; }
    .header { background: #4f46e5; color: white; padding: 32px 20px; text-align: center; }
    .header.urgent { background: #dc2626; }
    .content { padding: 32px 20px; }
    .details { background: #f9fafb; padding: 16px; border-radius: 6px; margin: 16px 0; width: 100%; }
    .details td { padding: 6px 0; border-bottom: 1px solid #e5e7eb; }
    .details td.label { font-weight: 600; color: #6b7280; width: 40%; }
    .cta { display: inline-block; background: #4f46e5; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: 600; }
    .mono { font-family: monospace; word-break: break-all; }
    .footer { background: #1f2937; color: #d1d5db; padding: 20px; text-align: center; font-size: 12px; }
"""


def _document(title: str, heading: str, body: str, *, urgent: bool = False) -> str:
    header_class = "header urgent" if urgent else "header"
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="UTF-8">\n'
        f"  <title>{title} - StageBook</title>\n"
        f"  <style>{_STYLE}  </style>\n"
        "</head>\n"
        "<body>\n"
        '  <div class="container">\n'
        f'    <div class="{header_class}"><h1>{heading}</h1></div>\n'
        f'    <div class="content">\n{body}\n    </div>\n'
        '    <div class="footer">\n'
        "      <p><strong>StageBook</strong></p>\n"
        "      <p>This is an automated message. Please do not reply to this email.</p>\n"
        "    </div>\n"
        "  </div>\n"
        "</body>\n"
        "</html>\n"
    )


def _details(*rows: tuple[str, str]) -> str:
    cells = "\n".join(
        f'        <tr><td class="label">{label}</td><td>{value}</td></tr>' for label, value in rows
    )
    return f'      <table class="details">\n{cells}\n      </table>'


_EVENT_ROWS = (
    ("Contract", "{{contract_title}}"),
    ("Event date", "{{event_date}}"),
    ("Venue", "{{event_venue}}"),
    ("Contract ID", "{{contract_id}}"),
)

CONTRACT_SENT_TEMPLATE = _document(
    "Contract Sent",
    "Contract Ready for Review",
    "      <p>Hi {{recipient_name}},</p>\n"
    "      <p>{{sender_name}} has shared a performance contract with you.</p>\n"
    + _details(*_EVENT_ROWS)
    + '\n      <p><a class="cta" href="{{dashboard_url}}">Open your dashboard</a></p>',
)

SIGNATURE_REQUEST_TEMPLATE = _document(
    "Signature Request",
    "Your Signature Is Needed",
    "      <p>Hi {{recipient_name}},</p>\n"
    "      <p>{{sender_name}} is waiting for your signature on the contract below.</p>\n"
    + _details(*_EVENT_ROWS, ("Sign by", "{{signing_deadline}}"))
    + '\n      <p><a class="cta" href="{{signing_url}}">Review &amp; sign</a></p>',
)

SIGNATURE_RECEIVED_TEMPLATE = _document(
    "Contract Signed",
    "Contract Signed",
    "      <p>Hi {{recipient_name}},</p>\n"
    "      <p>{{signer_name}} has signed the contract. The signature is recorded under"
    " certificate <strong>{{certificate_number}}</strong>.</p>\n"
    + _details(*_EVENT_ROWS)
    + '\n      <p><a class="cta" href="{{verification_url}}">Verify the certificate</a></p>',
)

_REMINDER_WORDING: dict[ReminderStatus, tuple[str, str]] = {
    ReminderStatus.PENDING_SIGNATURE: (
        "Contract Awaiting Signature",
        "The contract with {{other_party_name}} is still waiting for a signature.",
    ),
    ReminderStatus.UNSIGNED: (
        "Unsigned Contract",
        "The contract with {{other_party_name}} has not been signed yet.",
    ),
    ReminderStatus.EXPIRING_SOON: (
        "Contract Expiring Soon",
        "The event is almost here and the contract with {{other_party_name}} is still unsigned."
        " Unsigned contracts expire once the event date passes.",
    ),
}

REMINDER_TEMPLATES: dict[ReminderStatus, str] = {
    status: _document(
        "Contract Reminder",
        heading,
        "      <p>Hi {{recipient_name}},</p>\n"
        f"      <p>{message}</p>\n"
        "      <p><strong>{{days_until_event}} day(s)</strong> until the event.</p>\n"
        + _details(*_EVENT_ROWS)
        + '\n      <p><a class="cta" href="{{dashboard_url}}">Open your dashboard</a></p>',
        urgent=status is ReminderStatus.EXPIRING_SOON,
    )
    for status, (heading, message) in _REMINDER_WORDING.items()
}

BOOKING_CANCELLED_TEMPLATE = _document(
    "Booking Cancelled",
    "Booking Cancelled",
    "      <p>Hi {{recipient_name}},</p>\n"
    "      <p>The booking for <strong>{{contract_title}}</strong> at {{event_venue}}"
    " on {{event_date}} has been cancelled. No further reminders will be sent.</p>\n"
    "      <p>Reason: {{reason}}</p>\n"
    '      <p><a class="cta" href="{{dashboard_url}}">Open your dashboard</a></p>',
    urgent=True,
)

CERTIFICATE_TEMPLATE = _document(
    "Signature Certificate",
    "Digital Signature Certificate",
    "      <p><strong>Certificate {{certificate_number}}</strong>: {{status}}</p>\n"
    + _details(
        ("Signer", "{{signer_name}}"),
        ("Email", "{{signer_email}}"),
        ("Role", "{{signer_role}}"),
        ("Contract ID", "{{contract_id}}"),
        ("Signed", "{{signed_at}}"),
        ("Issued", "{{issued_at}}"),
        ("Expires", "{{expires_at}}"),
    )
    + "\n      <p>Signature hash:</p>\n"
    '      <p class="mono">{{signature_hash}}</p>\n'
    "      <p>Verification hash:</p>\n"
    '      <p class="mono">{{verification_hash}}</p>\n'
    '      <p><a class="cta" href="{{verification_url}}">Verify online</a></p>',
)


# ----- Rendering -----


def format_event_date(value: datetime | str) -> str:
    if isinstance(value, datetime):
        return ensure_aware(value).strftime(EVENT_DATE_FORMAT)
    return value


def format_timestamp(value: datetime) -> str:
    return ensure_aware(value).strftime(TIMESTAMP_FORMAT)


def _context(params: Any, datetime_format: str = EVENT_DATE_FORMAT) -> dict[str, Any]:
    context: dict[str, Any] = {}
    for item in fields(params):
        value = getattr(params, item.name)
        if isinstance(value, datetime):
            value = ensure_aware(value).strftime(datetime_format)
        elif isinstance(value, Enum):
            value = value.value
        context[item.name] = value
    return context


def render_template(name: str, template: str, context: dict[str, Any]) -> str:
    """Substitute ``{{field}}`` placeholders with escaped values.

    Raises:
        TemplateRenderError: A placeholder has no value in ``context``
    """
    missing = sorted(
        {key for key in PLACEHOLDER_PATTERN.findall(template) if context.get(key) is None}
    )
    if missing:
        raise TemplateRenderError(name, missing)
    return PLACEHOLDER_PATTERN.sub(
        lambda match: html.escape(str(context[match.group(1)]), quote=True),
        template,
    )


def render_contract_sent(params: ContractSentParams) -> str:
    return render_template("contract_sent", CONTRACT_SENT_TEMPLATE, _context(params))


def render_signature_request(params: SignatureRequestParams) -> str:
    return render_template("signature_request", SIGNATURE_REQUEST_TEMPLATE, _context(params))


def render_signature_received(params: SignatureReceivedParams) -> str:
    return render_template("signature_received", SIGNATURE_RECEIVED_TEMPLATE, _context(params))


def render_contract_reminder(params: ReminderParams) -> str:
    status = ReminderStatus(params.status)
    return render_template(f"reminder:{status.value}", REMINDER_TEMPLATES[status], _context(params))


def render_booking_cancelled(params: BookingCancelledParams) -> str:
    return render_template("booking_cancelled", BOOKING_CANCELLED_TEMPLATE, _context(params))


def render_certificate_document(params: CertificateDocumentParams) -> str:
    return render_template(
        "signature_certificate",
        CERTIFICATE_TEMPLATE,
        _context(params, datetime_format=TIMESTAMP_FORMAT),
    )


# ----- Subjects -----


def contract_created_subject(contract_title: str, *, recipient_is_artist: bool) -> str:
    if recipient_is_artist:
        return f"Contract Received: {contract_title}"
    return f"Contract Sent: {contract_title}"


def signature_request_subject(contract_title: str) -> str:
    return f"Action Required: Sign Contract - {contract_title}"


def signature_received_subject(contract_title: str) -> str:
    return f"Contract Signed: {contract_title}"


def reminder_subject(status: ReminderStatus, contract_title: str) -> str:
    if status is ReminderStatus.PENDING_SIGNATURE:
        return f"Reminder: Contract Awaiting Signature - {contract_title}"
    if status is ReminderStatus.EXPIRING_SOON:
        return f"Urgent: Contract Expiring Soon - {contract_title}"
    return f"Reminder: Unsigned Contract - {contract_title}"


def booking_cancelled_subject(contract_title: str) -> str:
    return f"Booking Cancelled: {contract_title}"
