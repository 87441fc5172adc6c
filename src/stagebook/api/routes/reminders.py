"""Contract reminder routes."""

from datetime import datetime

from fastapi import APIRouter, Response
from pydantic import BaseModel, EmailStr

from stagebook.api.deps import ServicesDep
from stagebook.api.schemas import APIRequestModel, QueuedJobResponse
from stagebook.domain.notifications.models import ReminderTarget
from stagebook.domain.notifications.templates import ReminderStatus
from stagebook.infrastructure.queue.client import enqueue_reminder_run

router = APIRouter(prefix="/reminders", tags=["Reminders"])


class ReminderTargetRequest(APIRequestModel):
    contract_id: str
    artist_email: EmailStr
    artist_name: str
    venue_email: EmailStr
    venue_name: str
    contract_title: str
    event_date: datetime
    event_venue: str
    status: ReminderStatus = ReminderStatus.PENDING_SIGNATURE


class BatchReminderRequest(APIRequestModel):
    contracts: list[ReminderTargetRequest]


class BatchReminderResponse(BaseModel):
    success_count: int
    failure_count: int
    total: int


class ReminderRunResponse(BaseModel):
    bookings_checked: int
    contracts_reminded: int
    skipped_settled: int
    already_sent: int
    success_count: int
    failure_count: int


@router.post("/batch", response_model=BatchReminderResponse)
async def send_batch_reminders(
    request: BatchReminderRequest,
    services: ServicesDep,
) -> BatchReminderResponse:
    """Send reminders for the given contracts to both parties."""
    targets = [ReminderTarget(**target.model_dump()) for target in request.contracts]
    result = await services.contract_email.send_batch_contract_reminders(targets)
    return BatchReminderResponse(
        success_count=result.success_count,
        failure_count=result.failure_count,
        total=result.total,
    )


@router.post("/run", response_model=ReminderRunResponse)
async def run_upcoming_event_reminders(services: ServicesDep) -> ReminderRunResponse:
    """Run the periodic reminder job now. Already sent reminders are not repeated."""
    run = await services.booking_email.send_upcoming_event_reminders()
    return ReminderRunResponse(**vars(run))


@router.post("/run/background", response_model=QueuedJobResponse, status_code=202)
async def queue_upcoming_event_reminders(response: Response) -> QueuedJobResponse:
    """Queue the reminder job on the background worker."""
    job_id = await enqueue_reminder_run()
    if job_id is None:
        response.status_code = 503
    return QueuedJobResponse(queued=job_id is not None, job_id=job_id)
