"""Queue client for enqueuing background jobs."""

from dataclasses import asdict
from typing import Any

from arq.connections import ArqRedis, RedisSettings, create_pool

from stagebook.config import get_settings
from stagebook.domain.notifications.models import BookingDetails
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)

_pool: ArqRedis | None = None


async def get_queue_pool() -> ArqRedis:
    """Get or create the ARQ Redis connection pool."""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await create_pool(RedisSettings.from_dsn(str(settings.redis_url)))
    return _pool


async def close_queue_pool() -> None:
    """Close the queue pool connection."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def enqueue_job(
    job_name: str,
    *args: Any,
    **kwargs: Any,
) -> str | None:
    """Enqueue a background job.

    Args:
        job_name: Name of the job function to execute
        *args: Positional arguments for the job
        **kwargs: Keyword arguments for the job

    Returns:
        Job ID if successfully enqueued, None otherwise
    """
    try:
        pool = await get_queue_pool()
        job = await pool.enqueue_job(job_name, *args, **kwargs)
        if job:
            logger.info(
                "job_enqueued",
                job_name=job_name,
                job_id=job.job_id,
            )
            return job.job_id
        return None
    except Exception as e:
        logger.exception(
            "job_enqueue_failed",
            job_name=job_name,
            error=str(e),
        )
        return None


async def enqueue_booking_event(
    event: str,
    booking: BookingDetails,
    reason: str | None = None,
) -> str | None:
    """Hand a booking event to the worker.

    Args:
        event: ``created``, ``confirmed`` or ``cancelled``
        booking: Booking data for the notifications
        reason: Cancellation reason

    Returns:
        Job ID if successfully enqueued
    """
    return await enqueue_job("booking_event_job", event=event, booking=asdict(booking), reason=reason)


async def enqueue_reminder_run() -> str | None:
    """Run the reminder job now instead of waiting for the daily cron."""
    return await enqueue_job("send_upcoming_event_reminders_job")
