"""Schemas for Students module."""

import re
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from src.core.config import settings
from src.modules.students.models import CourseYear, FeePlan, Gender
from src.shared.schemas.base import CamelRequestSchema


# Indian mobile number: 10 digits starting 6-9
MOBILE_REGEX = re.compile(r"^[6-9][0-9]{9}$")


def normalize_mobile(v: str) -> str:
    normalized = v.replace(" ", "").replace("-", "")

    # Strip country code / trunk prefix
    if normalized.startswith("+91") and len(normalized) == 13:
        normalized = normalized[3:]
    elif normalized.startswith("91") and len(normalized) == 12:
        normalized = normalized[2:]
    elif normalized.startswith("0") and len(normalized) == 11:
        normalized = normalized[1:]

    if not MOBILE_REGEX.match(normalized):
        raise ValueError("Mobile number must be 10 digits (e.g., 9876543210)")
    return normalized


# --- Fee plan ---


class EmiDetailInput(CamelRequestSchema):
    """One installment of an EMI plan."""

    emi_number: int = Field(..., ge=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    due_date: date


class FeePlanFields(CamelRequestSchema):
    """Financial terms of an academic record, shared by admission and promotion."""

    admin_amount: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)
    fees_amount: Decimal = Field(Decimal("0.00"), ge=0, decimal_places=2)
    payment_mode: FeePlan = FeePlan.ONE_TIME
    number_of_emi: int | None = None
    emi_details: list[EmiDetailInput] = Field(default_factory=list)
    ledger_number: str | None = Field(None, max_length=100)

    @model_validator(mode="after")
    def validate_fee_plan(self):
        if self.payment_mode == FeePlan.ONE_TIME:
            self.number_of_emi = None
            self.emi_details = []
            return self

        low, high = settings.min_emi_installments, settings.max_emi_installments
        if self.number_of_emi is None or not low <= self.number_of_emi <= high:
            raise ValueError(f"Number of EMIs must be between {low} and {high}")
        if len(self.emi_details) != self.number_of_emi:
            raise ValueError(
                f"Expected {self.number_of_emi} EMI installments, got {len(self.emi_details)}"
            )

        numbers = sorted(emi.emi_number for emi in self.emi_details)
        if numbers != list(range(1, self.number_of_emi + 1)):
            raise ValueError("EMI numbers must run from 1 without gaps")

        total = sum((emi.amount for emi in self.emi_details), Decimal("0"))
        if total > self.admin_amount + self.fees_amount:
            raise ValueError(
                f"Total of EMI installments ({total}) exceeds admin + fees amount "
                f"({self.admin_amount + self.fees_amount})"
            )

        self.emi_details = sorted(self.emi_details, key=lambda emi: emi.emi_number)
        return self


# --- Student Schemas ---


class StudentCreate(FeePlanFields):
    """Admission: the student plus their first academic record."""

    roll_number: str = Field(..., min_length=1, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    date_of_birth: date | None = None
    gender: Gender
    mobile_number: str = Field(..., min_length=10, max_length=20)
    email: EmailStr | None = None
    father_name: str | None = Field(None, max_length=200)
    category: str | None = Field(None, max_length=50)
    admission_mode: str | None = Field(None, max_length=50)
    admission_date: date | None = None
    is_lateral: bool = False
    college_id: int | None = None
    course_id: int | None = None
    session_year: str = Field(..., min_length=9, max_length=9)
    notes: str | None = None

    @field_validator("mobile_number")
    @classmethod
    def validate_mobile(cls, v: str) -> str:
        return normalize_mobile(v)


class StudentUpdate(CamelRequestSchema):
    """Schema for updating a student. Academic fields change only through promotion."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    date_of_birth: date | None = None
    gender: Gender | None = None
    mobile_number: str | None = Field(None, min_length=10, max_length=20)
    email: EmailStr | None = None
    father_name: str | None = Field(None, max_length=200)
    category: str | None = Field(None, max_length=50)
    admission_mode: str | None = Field(None, max_length=50)
    admission_date: date | None = None
    college_id: int | None = None
    course_id: int | None = None
    notes: str | None = None

    @field_validator("mobile_number")
    @classmethod
    def validate_mobile(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return normalize_mobile(v)


class DiscontinueRequest(CamelRequestSchema):
    """Mark a student as having left the course. Date defaults to today."""

    discontinued_on: date | None = None
    reason: str | None = Field(None, max_length=500)


class EmiDetailResponse(BaseModel):
    id: int
    emi_number: int
    amount: Decimal
    due_date: date

    model_config = {"from_attributes": True}


class AcademicRecordResponse(BaseModel):
    """Schema for academic record response."""

    id: int
    student_id: int
    course_year: str
    session_year: str
    admin_amount: Decimal
    fees_amount: Decimal
    total_amount: Decimal
    payment_mode: str
    number_of_emi: int | None
    ledger_number: str | None
    is_active: bool
    version: int
    emi_details: list[EmiDetailResponse] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class StudentResponse(BaseModel):
    """Schema for student response."""

    id: int
    roll_number: str
    first_name: str
    last_name: str | None
    full_name: str
    date_of_birth: date | None
    gender: str
    mobile_number: str
    email: str | None
    father_name: str | None
    category: str | None
    admission_mode: str | None
    admission_date: date | None
    is_lateral: bool
    college_id: int | None = None
    college_name: str | None = None
    course_id: int | None = None
    course_name: str | None = None
    status: str
    discontinued_on: date | None = None
    discontinued_by: str | None = None
    discontinue_reason: str | None = None
    notes: str | None
    current_course_year: str | None = None
    current_session_year: str | None = None
    created_by_id: int

    model_config = {"from_attributes": True}


# --- Progression ---


class PromoteRequest(FeePlanFields):
    """
    Promote or demote a student to another course year.

    ``is_depromote`` is optional; when sent it must agree with the direction
    implied by the course years. ``new_session_year`` is ignored for a
    demotion unless it differs from the current session.
    """

    current_academic_id: int
    new_course_year: CourseYear
    new_session_year: str | None = Field(None, max_length=9)
    is_depromote: bool | None = None
    confirm_lateral_change: bool = False


class ProgressionOptionResponse(BaseModel):
    course_year: str
    kind: str
    default_session_year: str | None
    requires_lateral_confirmation: bool

    model_config = {"from_attributes": True}


class PromotionResultResponse(BaseModel):
    """Outcome of an accepted promotion or demotion."""

    kind: str
    student: StudentResponse
    academic_record: AcademicRecordResponse
    previous_academic_id: int
    lateral_cleared: bool


class AcademicPaymentSummary(BaseModel):
    """Planned vs paid vs pending for one academic record."""

    academic_record_id: int
    course_year: str
    session_year: str
    is_active: bool
    payment_mode: str
    admin_planned: Decimal
    fees_planned: Decimal
    admin_paid: Decimal
    fees_paid: Decimal
    fine_paid: Decimal
    refunded: Decimal
    admin_pending: Decimal
    fees_pending: Decimal
    total_pending: Decimal
