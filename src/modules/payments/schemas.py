"""Pydantic schemas for Payments module."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field, field_validator

from src.modules.payments.models import AmountType
from src.modules.payments.reconciliation import INSTRUMENTS, normalize_payment_mode
from src.shared.schemas.base import BaseSchema, CamelRequestSchema


class PaymentCreate(CamelRequestSchema):
    """Schema for recording a payment against an academic record."""

    student_id: int
    academic_record_id: int
    amount_type: AmountType
    amount: Decimal = Field(gt=0, description="Payment amount (must be positive)")
    payment_mode: str = Field(..., min_length=1, max_length=100)
    transaction_number: str | None = Field(None, max_length=100)
    received_date: date
    approved_by: str = Field(..., min_length=1, max_length=200)
    remarks: str | None = None

    @field_validator("payment_mode")
    @classmethod
    def validate_payment_mode(cls, v: str) -> str:
        v = v.strip()
        if normalize_payment_mode(v) not in INSTRUMENTS:
            raise ValueError("Payment mode must start with one of: Cash, Cheque, Bank, UPI")
        return v

    @field_validator("transaction_number")
    @classmethod
    def strip_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip() or None

    @field_validator("approved_by")
    @classmethod
    def validate_approved_by(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Approved by is required")
        return v


class PaymentResponse(BaseSchema):
    """Schema for payment response."""

    id: int
    student_id: int
    student_name: str | None = None
    roll_number: str | None = None
    academic_record_id: int
    course_year: str
    session_year: str
    amount_type: str
    amount: Decimal
    payment_mode: str
    transaction_number: str | None
    received_date: date
    approved_by: str
    remarks: str | None
    created_by_id: int
    created_at: datetime


class PaymentFilters(BaseSchema):
    """Filters for listing payments."""

    student_id: int | None = None
    academic_record_id: int | None = None
    amount_type: AmountType | None = None
    approved_by: str | None = None
    session_year: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)


class HasHandoverResponse(BaseSchema):
    payment_id: int
    has_handover: bool


class StaffPaymentResponse(BaseSchema):
    """A payment still (partly) held by a staff member."""

    id: int
    student_id: int
    student_name: str | None
    roll_number: str | None
    course_year: str
    session_year: str
    amount_type: str
    amount: Decimal
    handed_over_amount: Decimal
    remaining_amount: Decimal
    payment_mode: str
    full_handover_only: bool
    transaction_number: str | None
    received_date: date


class PaymentDetailResponse(BaseSchema):
    """Per (student, course year, session year) payment totals."""

    student_id: int
    student_name: str | None
    roll_number: str | None
    course_year: str
    session_year: str
    payment_mode: str
    admin_amount: Decimal
    fees_amount: Decimal
    fine_amount: Decimal
    refund_amount: Decimal
    total_paid: Decimal
    net_amount: Decimal
    transaction_ids: list[int]
