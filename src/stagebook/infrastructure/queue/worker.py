"""Background worker using ARQ (async Redis queue).

Jobs:
- send_upcoming_event_reminders_job: Daily contract reminders (cron)
- expire_contracts_job: Persist ``expired`` for unsigned past events (cron)
- booking_event_job: Booking notifications handed off by the API
"""

from typing import Any, cast

from arq import cron
from arq.connections import RedisSettings

from stagebook.config import get_settings
from stagebook.container import ServiceContainer
from stagebook.domain.notifications.models import BookingDetails
from stagebook.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)

BOOKING_EVENTS = ("created", "confirmed", "cancelled")


def _container(ctx: dict[str, object]) -> ServiceContainer:
    return cast(ServiceContainer, ctx["container"])


# ----- Job Functions -----


async def send_upcoming_event_reminders_job(ctx: dict[str, object]) -> dict[str, object]:
    """Daily cron job sending contract reminders that have come due.

    Safe to run more than once a day: each reminder is claimed in the
    ledger before it is sent.
    """
    logger.info("job_started", job="send_upcoming_event_reminders")

    try:
        async with _container(ctx).scope() as services:
            run = await services.booking_email.send_upcoming_event_reminders()

        logger.info(
            "job_completed",
            job="send_upcoming_event_reminders",
            contracts_reminded=run.contracts_reminded,
            sent=run.success_count,
            failed=run.failure_count,
        )
        return {
            "status": "completed",
            "bookings_checked": run.bookings_checked,
            "contracts_reminded": run.contracts_reminded,
            "skipped_settled": run.skipped_settled,
            "already_sent": run.already_sent,
            "emails_sent": run.success_count,
            "emails_failed": run.failure_count,
        }

    except Exception as e:
        logger.exception(
            "job_failed",
            job="send_upcoming_event_reminders",
            error=str(e),
        )
        return {"status": "failed", "error": str(e)}


async def expire_contracts_job(ctx: dict[str, object]) -> dict[str, object]:
    """Daily cron job marking unsigned contracts whose event has passed."""
    logger.info("job_started", job="expire_contracts")

    try:
        async with _container(ctx).scope() as services:
            expired = await services.lifecycle.expire_overdue_contracts()

        logger.info("job_completed", job="expire_contracts", expired_count=len(expired))
        return {"status": "completed", "expired": expired}

    except Exception as e:
        logger.exception(
            "job_failed",
            job="expire_contracts",
            error=str(e),
        )
        return {"status": "failed", "error": str(e)}


async def booking_event_job(
    ctx: dict[str, object],
    event: str,
    booking: dict[str, Any],
    reason: str | None = None,
) -> dict[str, object]:
    """Send the notifications for one booking event.

    Args:
        ctx: ARQ context with shared resources
        event: One of ``created``, ``confirmed``, ``cancelled``
        booking: BookingDetails fields
        reason: Cancellation reason (cancelled only)

    Returns:
        Result dict with status and details
    """
    booking_id = booking.get("booking_id")
    logger.info("job_started", job="booking_event", booking_event=event, booking_id=booking_id)

    if event not in BOOKING_EVENTS:
        logger.warning("unknown_booking_event", booking_event=event, booking_id=booking_id)
        return {"status": "failed", "booking_id": booking_id, "error": f"Unknown event: {event}"}

    try:
        details = BookingDetails(**booking)
        async with _container(ctx).scope() as services:
            handler = services.booking_email
            if event == "created":
                result = await handler.handle_booking_created(details)
            elif event == "confirmed":
                result = await handler.handle_booking_confirmed(details)
            else:
                result = await handler.handle_booking_cancelled(details, reason or "")

        logger.info(
            "job_completed",
            job="booking_event",
            booking_event=event,
            booking_id=booking_id,
            success=result.success,
        )
        return {
            "status": "completed" if result.success else "failed",
            "booking_id": booking_id,
            "notification_sent": result.notification_sent,
            "error": result.error,
        }

    except Exception as e:
        logger.exception(
            "job_failed",
            job="booking_event",
            booking_id=booking_id,
            error=str(e),
        )
        return {"status": "failed", "booking_id": booking_id, "error": str(e)}


# ----- Worker Settings -----


async def startup(ctx: dict[str, object]) -> None:
    """Initialize worker resources on startup."""
    setup_logging()
    logger.info("worker_starting")

    settings = get_settings()
    if settings.storage_backend == "memory":
        logger.warning("worker_using_memory_storage")
    ctx["container"] = await ServiceContainer.create(settings)

    logger.info("worker_started")


async def shutdown(ctx: dict[str, object]) -> None:
    """Clean up worker resources on shutdown."""
    logger.info("worker_stopping")
    container = ctx.get("container")
    if isinstance(container, ServiceContainer):
        await container.close()
    logger.info("worker_stopped")


def get_redis_settings() -> RedisSettings:
    """Get Redis settings from app config."""
    settings = get_settings()
    return RedisSettings.from_dsn(str(settings.redis_url))


class WorkerSettings:
    """ARQ worker settings."""

    # Job functions (on-demand jobs)
    functions = [
        booking_event_job,
        send_upcoming_event_reminders_job,
    ]

    # Redis connection - must be a RedisSettings instance, not a method
    redis_settings = get_redis_settings()

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Worker config
    max_jobs = 10
    job_timeout = 300
    keep_result = 3600
    retry_jobs = True
    max_tries = 3

    # Cron jobs (scheduled tasks)
    cron_jobs = [
        # Daily - contract reminders for upcoming events
        cron(
            send_upcoming_event_reminders_job,
            hour=get_settings().reminder_cron_hour,
            minute=0,
            unique=True,
        ),
        # Daily at 00:15 - expire contracts whose event passed unsigned
        cron(expire_contracts_job, hour=0, minute=15, unique=True),
    ]
