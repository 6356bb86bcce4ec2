"""PaymentTransaction model."""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BigIntPK


class AmountType(StrEnum):
    """Component of the academic-year charges a payment settles."""

    ADMIN = "adminAmount"
    FEES = "feesAmount"
    FINE = "fineAmount"
    REFUND = "refundAmount"


class PaymentTransaction(Base):
    """
    Money received from a student against one academic record.

    ``course_year`` and ``session_year`` are copied from the record when the
    payment is taken so the receipt stays readable after a demotion.
    ``approved_by`` is the staff member who physically holds the money until
    it is handed over. Rows are never edited; a payment may be deleted only
    while no cash handover references it.
    """

    __tablename__ = "payment_transactions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )
    academic_record_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("academic_records.id"), nullable=False, index=True
    )
    course_year: Mapped[str] = mapped_column(String(10), nullable=False)
    session_year: Mapped[str] = mapped_column(String(9), nullable=False)

    amount_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    # Free text, e.g. "Cash", "Cheque (123456)", "UPI ref 9981"
    payment_mode: Mapped[str] = mapped_column(String(100), nullable=False)
    transaction_number: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True
    )
    received_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    approved_by: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="payments")
    academic_record: Mapped["AcademicRecord"] = relationship("AcademicRecord")
    created_by: Mapped["User"] = relationship("User")


# Import for type hints
from src.core.auth.models import User
from src.modules.students.models import AcademicRecord, Student
