"""Reminder schedule arithmetic.

An event N days away (N rounded up) gets a reminder at each offset D
before the event for which N > D at booking time. A scheduled reminder is
due once the remaining day count has dropped to D or below.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from stagebook.domain.notifications.templates import ReminderStatus
from stagebook.shared.clock import days_until, ensure_aware

DEFAULT_REMINDER_OFFSETS: tuple[int, ...] = (7, 3, 1)


@dataclass(frozen=True)
class ScheduledReminder:
    offset_days: int
    send_on: datetime


def compute_reminder_schedule(
    event_date: datetime,
    now: datetime,
    offsets: Sequence[int] = DEFAULT_REMINDER_OFFSETS,
) -> list[ScheduledReminder]:
    """Reminders still ahead of ``now``, largest offset first."""
    remaining = days_until(event_date, now)
    event_date = ensure_aware(event_date)
    return [
        ScheduledReminder(offset_days=offset, send_on=event_date - timedelta(days=offset))
        for offset in sorted(set(offsets), reverse=True)
        if remaining > offset
    ]


def due_offsets(scheduled: Iterable[int], days_until_event: int) -> list[int]:
    """Scheduled offsets whose send day has arrived (none once the event has started)."""
    if days_until_event <= 0:
        return []
    return sorted((offset for offset in scheduled if days_until_event <= offset), reverse=True)


def reminder_status_for(days_until_event: int, signed_count: int) -> ReminderStatus:
    """Pick reminder wording from how close the event is and who has signed."""
    if days_until_event <= 1:
        return ReminderStatus.EXPIRING_SOON
    if signed_count > 0:
        return ReminderStatus.PENDING_SIGNATURE
    return ReminderStatus.UNSIGNED
