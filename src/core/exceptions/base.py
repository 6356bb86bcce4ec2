from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=401)


class AuthorizationError(AppException):
    """Not authorized to perform action."""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message=message, status_code=403)


class DuplicateError(AppException):
    """Duplicate resource."""

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})


# --- Business rule rejections ---
#
# Deterministic: the operation is not performed and the reason goes back to
# the caller. None of these are retryable.


class RuleViolation(AppException):
    """A business rule rejected the requested transition."""

    def __init__(self, message: str, field: str | None = None, status_code: int = 422):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=status_code, details=details)


class SequencingError(RuleViolation):
    """Course-year skipped, already enrolled, or demotion path not allowed."""

    def __init__(self, message: str):
        super().__init__(message, field="new_course_year")


class SessionOrderingError(RuleViolation):
    """Session year is malformed, out of the window, out of order, or skipped."""

    def __init__(self, message: str):
        super().__init__(message, field="new_session_year")


class DuplicateRecordError(RuleViolation):
    """An academic record already exists for the course year and session."""

    def __init__(self, course_year: str, session_year: str):
        super().__init__(
            f"Student already has a {course_year} year record for session {session_year}",
            field="new_session_year",
            status_code=409,
        )


class PaymentHistoryConflictError(RuleViolation):
    """Target course year already has a record carrying payments."""

    def __init__(self, course_year: str, action: str = "demote"):
        super().__init__(
            f"Cannot {action}: the {course_year} year record already has payment history",
            field="new_course_year",
            status_code=409,
        )


class LateralConfirmationRequiredError(RuleViolation):
    """Lateral-entry student demoted to 1st year without explicit confirmation."""

    def __init__(self):
        super().__init__(
            "Lateral entry status change confirmation is required for demotion to 1st year",
            field="confirm_lateral_change",
        )


class HandoverAmountError(RuleViolation):
    """Handover exceeds the remaining amount or splits a non-cash instrument."""

    def __init__(self, message: str, payment_id: int | None = None):
        super().__init__(message, field="handover_amount")
        if payment_id is not None:
            self.details["payment_id"] = payment_id


class ConcurrencyConflictError(AppException):
    """Write lost a race with another request on the same rows."""

    def __init__(self, message: str = "Record was modified by another request, reload and try again"):
        super().__init__(message=message, status_code=409)
