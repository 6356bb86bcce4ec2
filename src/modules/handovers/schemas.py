"""Pydantic schemas for cash handovers."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field, field_validator

from src.shared.schemas.base import BaseSchema, CamelRequestSchema


class HandoverItem(CamelRequestSchema):
    """One payment in a handover batch. A missing amount means "all that is left"."""

    id: int
    handover_amount: Decimal | None = None


class HandoverCreate(CamelRequestSchema):
    """Batch of payments handed over together under one receipt."""

    payment_data: list[HandoverItem] = Field(..., min_length=1)
    handed_over_to: str = Field(..., min_length=1, max_length=200)
    handover_date: date
    remarks: str | None = None
    # Batches are verified on creation unless the caller says otherwise
    verified: bool = True
    verified_by: str | None = Field(None, max_length=200)
    verified_on: date | None = None

    @field_validator("payment_data")
    @classmethod
    def validate_unique_payments(cls, v: list[HandoverItem]) -> list[HandoverItem]:
        seen: set[int] = set()
        for item in v:
            if item.id in seen:
                raise ValueError(f"Payment {item.id} appears more than once in the batch")
            seen.add(item.id)
        return v

    @field_validator("handed_over_to")
    @classmethod
    def validate_handed_over_to(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Handed over to is required")
        return v


class HandoverVerify(CamelRequestSchema):
    verified_by: str | None = Field(None, max_length=200)


class HandoverResponse(BaseSchema):
    """Schema for a handover row."""

    id: int
    payment_id: int
    student_id: int
    student_name: str | None = None
    roll_number: str | None = None
    amount: Decimal
    received_by: str
    handed_over_to: str
    handover_date: date
    remarks: str | None
    receipt_number: str
    verified: bool
    verified_by: str | None
    verified_on: date | None
    created_by_id: int
    created_at: datetime


class HandoverBatchResponse(BaseSchema):
    receipt_number: str
    total_amount: Decimal
    handovers: list[HandoverResponse]
