"""Schemas for course enquiries."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.modules.students.schemas import normalize_mobile
from src.shared.schemas.base import CamelRequestSchema


class EnquiryCreate(CamelRequestSchema):
    """Public registration form."""

    full_name: str = Field(..., min_length=1, max_length=200)
    mobile_number: str = Field(..., min_length=10, max_length=20)
    email: EmailStr
    course: str = Field(..., min_length=1, max_length=200)

    @field_validator("full_name", "course")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("mobile_number")
    @classmethod
    def validate_mobile(cls, v: str) -> str:
        return normalize_mobile(v)


class EnquiryStatusUpdate(CamelRequestSchema):
    is_contacted: bool
    remarks: str | None = Field(None, max_length=1000)


class EnquiryResponse(BaseModel):
    """Schema for course enquiry response."""

    id: int
    full_name: str
    mobile_number: str
    email: str
    course: str
    is_contacted: bool
    contacted_by: str | None
    contacted_at: datetime | None
    remarks: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
