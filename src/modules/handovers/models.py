"""CashHandover model."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
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


class CashHandover(Base):
    """
    Money passed from the staff member who took a payment to another person.

    One row per payment per batch; every row of a batch shares the
    ``receipt_number``. The sum of handovers for a payment never exceeds the
    payment amount.
    """

    __tablename__ = "cash_handovers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    payment_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("payment_transactions.id"), nullable=False, index=True
    )
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    received_by: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    handed_over_to: Mapped[str] = mapped_column(String(200), nullable=False)
    handover_date: Mapped[date] = mapped_column(Date, nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    receipt_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    verified_on: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_by_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    # Relationships
    payment: Mapped["PaymentTransaction"] = relationship("PaymentTransaction")
    student: Mapped["Student"] = relationship("Student")


# Import for type hints
from src.modules.payments.models import PaymentTransaction
from src.modules.students.models import Student
