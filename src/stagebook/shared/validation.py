"""Field-level validation results.

Capture and contract-creation flows report validation problems as data
rather than raising.
"""

from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email


@dataclass(frozen=True)
class FieldError:
    """A single validation problem for one input field."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


def require_text(errors: list[FieldError], field: str, value: object) -> None:
    """Append an error when ``value`` is missing or blank."""
    if not isinstance(value, str) or not value.strip():
        errors.append(FieldError(field, "is required"))


def is_valid_email(value: str | None) -> bool:
    if not value:
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def require_email(errors: list[FieldError], field: str, value: object) -> None:
    if not isinstance(value, str) or not value.strip():
        errors.append(FieldError(field, "is required"))
    elif not is_valid_email(value):
        errors.append(FieldError(field, "is not a valid email address"))
