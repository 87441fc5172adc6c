"""Shared API schemas and base models."""

from pydantic import BaseModel, ConfigDict

from stagebook.shared.validation import FieldError


class APIRequestModel(BaseModel):
    """Base model for request bodies.

    Forbids unknown fields to avoid silently accepting typos or outdated clients.
    """

    model_config = ConfigDict(extra="forbid")


class FieldErrorResponse(BaseModel):
    field: str
    message: str

    @classmethod
    def from_errors(cls, errors: list[FieldError]) -> list["FieldErrorResponse"]:
        return [cls(field=e.field, message=e.message) for e in errors]


class QueuedJobResponse(BaseModel):
    """A job handed to the background worker. ``job_id`` is None if Redis was unavailable."""

    queued: bool
    job_id: str | None
