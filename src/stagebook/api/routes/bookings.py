"""Booking event routes.

The booking workflow posts its events here; each one triggers the
matching notification emails. Email failures never fail the request.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from fastapi import APIRouter, Response
from pydantic import BaseModel, EmailStr

from stagebook.api.deps import ServicesDep
from stagebook.api.schemas import APIRequestModel, FieldErrorResponse, QueuedJobResponse
from stagebook.container import Services
from stagebook.domain.contracts.models import ContractData
from stagebook.domain.notifications.models import BookingDetails, BookingHandlerResult
from stagebook.infrastructure.queue.client import enqueue_booking_event
from stagebook.shared.exceptions import NotFoundError
from stagebook.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


# ----- Schemas -----


class BookingPayload(APIRequestModel):
    contract_id: str
    artist_name: str
    artist_email: EmailStr
    venue_name: str
    venue_email: EmailStr
    contract_title: str
    event_date: datetime
    event_venue: str
    artist_id: str | None = None
    venue_id: str | None = None
    performance_fee: Decimal | None = None

    def to_details(self, booking_id: str) -> BookingDetails:
        return BookingDetails(booking_id=booking_id, **self.model_dump())


class BookingCreatedRequest(BookingPayload):
    """A new booking. Without ``contract_id`` a draft contract is generated."""

    booking_id: str
    contract_id: str = ""
    payment_terms: str = ""
    performance_details: dict[str, Any] | None = None
    technical_requirements: dict[str, Any] | None = None

    def to_details(self, booking_id: str) -> BookingDetails:
        data = self.model_dump(
            exclude={
                "booking_id",
                "payment_terms",
                "performance_details",
                "technical_requirements",
            }
        )
        return BookingDetails(booking_id=booking_id, **data)


class BookingConfirmedRequest(APIRequestModel):
    booking: BookingPayload | None = None


class BookingCancelledRequest(APIRequestModel):
    reason: str
    booking: BookingPayload | None = None


class BookingEventResponse(BaseModel):
    success: bool
    booking_id: str
    contract_id: str | None = None
    notification_sent: bool
    scheduled_reminders: list[int]
    error: str | None = None
    contract_errors: list[FieldErrorResponse] = []


def to_response(
    result: BookingHandlerResult,
    contract_id: str | None,
    contract_errors: list[FieldErrorResponse] | None = None,
) -> BookingEventResponse:
    return BookingEventResponse(
        success=result.success,
        booking_id=result.booking_id,
        contract_id=contract_id,
        notification_sent=result.notification_sent,
        scheduled_reminders=result.scheduled_reminders,
        error=result.error,
        contract_errors=contract_errors or [],
    )


async def resolve_booking(
    services: Services, booking_id: str, payload: BookingPayload | None
) -> BookingDetails:
    """Use the submitted booking data, falling back to what was stored on creation."""
    if payload is not None:
        return payload.to_details(booking_id)
    record = await services.repositories.bookings.get(booking_id)
    if record is None:
        raise NotFoundError("Booking", booking_id)
    return record.details


# ----- Endpoints -----


@router.post("", response_model=BookingEventResponse, status_code=201)
async def booking_created(
    request: BookingCreatedRequest,
    response: Response,
    services: ServicesDep,
) -> BookingEventResponse:
    """Handle a new booking: draft the contract if needed and notify both parties."""
    contract_errors: list[FieldErrorResponse] = []
    details = request.to_details(request.booking_id)
    if not details.contract_id:
        result = await services.lifecycle.generate_contract(
            ContractData(
                title=request.contract_title,
                artist_id=request.artist_id or "",
                venue_id=request.venue_id or "",
                event_date=request.event_date,
                event_venue=request.event_venue,
                performance_fee=request.performance_fee,
                payment_terms=request.payment_terms,
                performance_details=request.performance_details,
                technical_requirements=request.technical_requirements,
                booking_id=request.booking_id,
            )
        )
        details.contract_id = result.contract_id
        contract_errors = FieldErrorResponse.from_errors(result.errors)

    result = await services.booking_email.handle_booking_created(details)
    if not result.success:
        response.status_code = 409
    return to_response(result, details.contract_id, contract_errors)


@router.post("/{booking_id}/confirm", response_model=BookingEventResponse)
async def booking_confirmed(
    booking_id: str,
    request: BookingConfirmedRequest,
    response: Response,
    services: ServicesDep,
) -> BookingEventResponse:
    details = await resolve_booking(services, booking_id, request.booking)
    result = await services.booking_email.handle_booking_confirmed(details)
    if not result.success:
        response.status_code = 409
    return to_response(result, details.contract_id)


@router.post("/{booking_id}/cancel", response_model=BookingEventResponse)
async def booking_cancelled(
    booking_id: str,
    request: BookingCancelledRequest,
    services: ServicesDep,
) -> BookingEventResponse:
    """Cancel a booking. Repeating the call sends nothing."""
    details = await resolve_booking(services, booking_id, request.booking)
    result = await services.booking_email.handle_booking_cancelled(details, request.reason)
    return to_response(result, details.contract_id)


class QueuedBookingEventRequest(APIRequestModel):
    event: Literal["created", "confirmed", "cancelled"]
    booking_id: str
    booking: BookingPayload
    reason: str | None = None


@router.post("/events", response_model=QueuedJobResponse, status_code=202)
async def queue_booking_event(
    request: QueuedBookingEventRequest,
    response: Response,
) -> QueuedJobResponse:
    """Hand a booking event to the background worker."""
    job_id = await enqueue_booking_event(
        request.event, request.booking.to_details(request.booking_id), request.reason
    )
    if job_id is None:
        response.status_code = 503
    return QueuedJobResponse(queued=job_id is not None, job_id=job_id)
