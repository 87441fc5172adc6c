"""Custom exception hierarchy for StageBook."""

from typing import Any


class StageBookError(Exception):
    """Base exception for all StageBook errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ----- Resource Errors -----


class NotFoundError(StageBookError):
    """Requested resource was not found."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            message=f"{resource} not found",
            details={"resource": resource, "identifier": identifier},
        )


class ConflictError(StageBookError):
    """Operation conflicts with the current state of a resource."""

    pass


class InvalidStatusTransitionError(ConflictError):
    """Contract status change is not allowed from the current status."""

    def __init__(self, contract_id: str, current: str, requested: str, reason: str) -> None:
        super().__init__(
            message=f"Cannot move contract from '{current}' to '{requested}': {reason}",
            details={
                "contract_id": contract_id,
                "current_status": current,
                "requested_status": requested,
            },
        )


# ----- Validation Errors -----


class ValidationError(StageBookError):
    """Input validation failed."""

    pass


class TemplateRenderError(ValidationError):
    """An email template was rendered with missing parameters."""

    def __init__(self, template: str, missing: list[str]) -> None:
        super().__init__(
            message=f"Template '{template}' is missing parameters: {', '.join(missing)}",
            details={"template": template, "missing": missing},
        )


# ----- External Service Errors -----


class ExternalServiceError(StageBookError):
    """Error from an external service."""

    pass


class EmailDeliveryError(ExternalServiceError):
    """The email transport rejected or failed to deliver a message."""

    pass
