from src.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    DuplicateError,
    RuleViolation,
    SequencingError,
    SessionOrderingError,
    DuplicateRecordError,
    PaymentHistoryConflictError,
    LateralConfirmationRequiredError,
    HandoverAmountError,
    ConcurrencyConflictError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "DuplicateError",
    "RuleViolation",
    "SequencingError",
    "SessionOrderingError",
    "DuplicateRecordError",
    "PaymentHistoryConflictError",
    "LateralConfirmationRequiredError",
    "HandoverAmountError",
    "ConcurrencyConflictError",
]
