"""Schemas for Colleges module."""

from pydantic import BaseModel, Field

from src.modules.students.models import COURSE_YEAR_ORDER
from src.shared.schemas.base import CamelRequestSchema


# --- College Schemas ---


class CollegeCreate(CamelRequestSchema):
    """Schema for creating a college."""

    name: str = Field(..., min_length=1, max_length=200)
    city: str | None = Field(None, max_length=100)


class CollegeUpdate(CamelRequestSchema):
    """Schema for updating a college."""

    name: str | None = Field(None, min_length=1, max_length=200)
    city: str | None = Field(None, max_length=100)
    is_active: bool | None = None


class CollegeResponse(BaseModel):
    """Schema for college response."""

    id: int
    name: str
    city: str | None
    is_active: bool

    model_config = {"from_attributes": True}


# --- Course Schemas ---


class CourseCreate(CamelRequestSchema):
    """Schema for creating a course."""

    name: str = Field(..., min_length=1, max_length=200)
    duration_years: int = Field(len(COURSE_YEAR_ORDER), ge=1, le=len(COURSE_YEAR_ORDER))


class CourseUpdate(CamelRequestSchema):
    """Schema for updating a course."""

    name: str | None = Field(None, min_length=1, max_length=200)
    duration_years: int | None = Field(None, ge=1, le=len(COURSE_YEAR_ORDER))
    is_active: bool | None = None


class CourseResponse(BaseModel):
    """Schema for course response."""

    id: int
    name: str
    duration_years: int
    is_active: bool

    model_config = {"from_attributes": True}
