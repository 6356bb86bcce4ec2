"""Student, AcademicRecord and EmiDetail models."""

from datetime import date
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BigIntPK


class Gender(StrEnum):
    """Gender enumeration."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class StudentStatus(StrEnum):
    """Student status enumeration. Students are never deleted."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class CourseYear(StrEnum):
    """Year of study. Declaration order is the progression order."""

    FIRST = "1st"
    SECOND = "2nd"
    THIRD = "3rd"
    FOURTH = "4th"

    @property
    def rank(self) -> int:
        """0-based position in the progression order."""
        return COURSE_YEAR_ORDER.index(self)

    def shifted(self, steps: int) -> "CourseYear | None":
        """Course year ``steps`` positions away, or None past either end."""
        position = self.rank + steps
        if 0 <= position < len(COURSE_YEAR_ORDER):
            return COURSE_YEAR_ORDER[position]
        return None


COURSE_YEAR_ORDER: tuple[CourseYear, ...] = tuple(CourseYear)


class FeePlan(StrEnum):
    """How the year's admin + fees amounts are collected."""

    ONE_TIME = "One-Time"
    EMI = "EMI"


class Student(Base):
    """Student admitted through the consultancy."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    roll_number: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )

    # Personal info
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str] = mapped_column(String(10), nullable=False)
    mobile_number: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    father_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Admission
    admission_mode: Mapped[str | None] = mapped_column(String(50), nullable=True)
    admission_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Admitted directly into 2nd year. Cleared only by a confirmed demotion.
    is_lateral: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    college_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("colleges.id"), nullable=True, index=True
    )
    course_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("courses.id"), nullable=True, index=True
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StudentStatus.ACTIVE.value, index=True
    )
    # Set together when the student leaves the course, cleared on reinstatement
    discontinued_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    discontinued_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    discontinue_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    created_by: Mapped["User"] = relationship("User")
    college: Mapped["College | None"] = relationship("College")
    course: Mapped["Course | None"] = relationship("Course")
    academic_records: Mapped[list["AcademicRecord"]] = relationship(
        "AcademicRecord", back_populates="student", order_by="AcademicRecord.id"
    )
    payments: Mapped[list["PaymentTransaction"]] = relationship(
        "PaymentTransaction", back_populates="student"
    )

    @property
    def full_name(self) -> str:
        """Full name of the student."""
        return f"{self.first_name} {self.last_name}" if self.last_name else self.first_name

    @property
    def is_active(self) -> bool:
        return self.status == StudentStatus.ACTIVE.value


class AcademicRecord(Base):
    """
    Enrollment and financial terms of a student for one course year.

    At most one row per (student, course_year). A record demoted away from
    is kept with ``is_active = False`` so its payment history survives; it is
    reactivated if the student is promoted back into that year.
    """

    __tablename__ = "academic_records"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )

    course_year: Mapped[str] = mapped_column(String(10), nullable=False)
    session_year: Mapped[str] = mapped_column(String(9), nullable=False, index=True)

    admin_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    fees_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0.00")
    )
    payment_mode: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FeePlan.ONE_TIME.value
    )
    number_of_emi: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ledger_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_by_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id", "course_year", name="uq_academic_records_student_course_year"
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="academic_records")
    emi_details: Mapped[list["EmiDetail"]] = relationship(
        "EmiDetail",
        back_populates="academic_record",
        cascade="all, delete-orphan",
        order_by="EmiDetail.emi_number",
    )

    @property
    def total_amount(self) -> Decimal:
        return (self.admin_amount or Decimal("0")) + (self.fees_amount or Decimal("0"))

    @property
    def is_emi(self) -> bool:
        return self.payment_mode == FeePlan.EMI.value


class EmiDetail(Base):
    """One installment of an EMI fee plan."""

    __tablename__ = "emi_details"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    academic_record_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("academic_records.id"), nullable=False, index=True
    )
    emi_number: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    academic_record: Mapped["AcademicRecord"] = relationship(
        "AcademicRecord", back_populates="emi_details"
    )


# Import at the end to avoid circular imports
from src.core.auth.models import User
from src.modules.colleges.models import College, Course
from src.modules.payments.models import PaymentTransaction
