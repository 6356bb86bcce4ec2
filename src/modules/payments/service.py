"""Service for Payments module."""

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.exceptions import DuplicateError, NotFoundError, ValidationError
from src.modules.handovers.models import CashHandover
from src.modules.payments.models import AmountType, PaymentTransaction
from src.modules.payments.reconciliation import (
    PaymentDetail,
    TransactionView,
    aggregate_payment_details,
    is_full_handover_only,
    remaining_amount,
)
from src.modules.payments.schemas import PaymentCreate, PaymentFilters
from src.modules.students.models import AcademicRecord, Student
from src.modules.students.schemas import AcademicPaymentSummary
from src.shared.utils.money import ZERO, round_money

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for recording student payments and reading them back."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    # --- Payment Methods ---

    async def create_payment(
        self, data: PaymentCreate, created_by_id: int
    ) -> PaymentTransaction:
        """Record a payment against one of the student's academic records."""
        result = await self.db.execute(
            select(AcademicRecord).where(AcademicRecord.id == data.academic_record_id)
        )
        record = result.scalar_one_or_none()
        if not record:
            raise NotFoundError("Academic record", data.academic_record_id)
        if record.student_id != data.student_id:
            raise ValidationError(
                "Academic record does not belong to this student", field="academic_record_id"
            )

        if data.transaction_number:
            existing = await self.db.execute(
                select(PaymentTransaction.id).where(
                    PaymentTransaction.transaction_number == data.transaction_number
                )
            )
            if existing.scalar_one_or_none():
                raise DuplicateError(
                    "Payment", "transaction_number", data.transaction_number
                )

        payment = PaymentTransaction(
            student_id=data.student_id,
            academic_record_id=record.id,
            course_year=record.course_year,
            session_year=record.session_year,
            amount_type=data.amount_type.value,
            amount=round_money(data.amount),
            payment_mode=data.payment_mode,
            transaction_number=data.transaction_number,
            received_date=data.received_date,
            approved_by=data.approved_by,
            remarks=data.remarks,
            created_by_id=created_by_id,
        )
        self.db.add(payment)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE_PAYMENT,
            entity_type="PaymentTransaction",
            entity_id=payment.id,
            entity_identifier=data.transaction_number,
            user_id=created_by_id,
            new_values={
                "student_id": data.student_id,
                "academic_record_id": record.id,
                "amount_type": data.amount_type.value,
                "amount": str(payment.amount),
                "payment_mode": data.payment_mode,
                "approved_by": data.approved_by,
            },
        )

        await self.db.commit()
        return await self.get_payment_by_id(payment.id)

    async def get_payment_by_id(self, payment_id: int) -> PaymentTransaction:
        """Get payment by ID with student loaded."""
        result = await self.db.execute(
            select(PaymentTransaction)
            .where(PaymentTransaction.id == payment_id)
            .options(selectinload(PaymentTransaction.student))
            .execution_options(populate_existing=True)
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def list_payments(
        self, filters: PaymentFilters
    ) -> tuple[list[PaymentTransaction], int]:
        """List payments with filters."""
        query = select(PaymentTransaction).options(
            selectinload(PaymentTransaction.student)
        )

        if filters.student_id:
            query = query.where(PaymentTransaction.student_id == filters.student_id)
        if filters.academic_record_id:
            query = query.where(
                PaymentTransaction.academic_record_id == filters.academic_record_id
            )
        if filters.amount_type:
            query = query.where(PaymentTransaction.amount_type == filters.amount_type.value)
        if filters.approved_by:
            query = query.where(PaymentTransaction.approved_by == filters.approved_by)
        if filters.session_year:
            query = query.where(PaymentTransaction.session_year == filters.session_year)
        if filters.date_from:
            query = query.where(PaymentTransaction.received_date >= filters.date_from)
        if filters.date_to:
            query = query.where(PaymentTransaction.received_date <= filters.date_to)

        # Count total
        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        # Paginate
        query = query.order_by(
            PaymentTransaction.received_date.desc(), PaymentTransaction.id.desc()
        )
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def has_handover(self, payment_id: int) -> bool:
        """Whether any cash handover references the payment."""
        await self.get_payment_by_id(payment_id)
        result = await self.db.execute(
            select(func.count(CashHandover.id)).where(CashHandover.payment_id == payment_id)
        )
        return (result.scalar() or 0) > 0

    async def delete_payment(self, payment_id: int, deleted_by_id: int) -> None:
        """Delete a payment that has not been handed over."""
        payment = await self.get_payment_by_id(payment_id)

        if await self.has_handover(payment_id):
            raise ValidationError(
                "Cannot delete a payment that has been handed over", field="payment_id"
            )

        old_values = {
            "student_id": payment.student_id,
            "academic_record_id": payment.academic_record_id,
            "amount_type": payment.amount_type,
            "amount": str(payment.amount),
            "payment_mode": payment.payment_mode,
            "approved_by": payment.approved_by,
        }
        await self.db.delete(payment)

        await self.audit.log(
            action=AuditAction.DELETE_PAYMENT,
            entity_type="PaymentTransaction",
            entity_id=payment_id,
            entity_identifier=payment.transaction_number,
            user_id=deleted_by_id,
            old_values=old_values,
        )

        await self.db.commit()
        logger.info("Deleted payment %s of student %s", payment_id, old_values["student_id"])

    # --- Handover support ---

    async def list_approved_by(self) -> list[str]:
        """Distinct staff names recorded as holding payment money."""
        result = await self.db.execute(
            select(PaymentTransaction.approved_by)
            .distinct()
            .order_by(PaymentTransaction.approved_by)
        )
        return [name for name in result.scalars().all() if name]

    async def handed_over_totals(self, payment_ids: list[int]) -> dict[int, Decimal]:
        """Sum of handover amounts per payment."""
        if not payment_ids:
            return {}
        result = await self.db.execute(
            select(CashHandover.payment_id, func.coalesce(func.sum(CashHandover.amount), 0))
            .where(CashHandover.payment_id.in_(payment_ids))
            .group_by(CashHandover.payment_id)
        )
        return {row[0]: round_money(row[1]) for row in result.all()}

    async def list_payments_by_staff(self, staff_name: str) -> list[dict]:
        """Payments held by a staff member that still have money to hand over."""
        result = await self.db.execute(
            select(PaymentTransaction)
            .where(PaymentTransaction.approved_by == staff_name)
            .options(selectinload(PaymentTransaction.student))
            .order_by(PaymentTransaction.received_date, PaymentTransaction.id)
        )
        payments = list(result.scalars().all())
        totals = await self.handed_over_totals([p.id for p in payments])

        rows = []
        for payment in payments:
            handed_over = totals.get(payment.id, ZERO)
            remaining = remaining_amount(payment.amount, handed_over)
            if remaining <= 0:
                continue
            rows.append(
                {
                    "id": payment.id,
                    "student_id": payment.student_id,
                    "student_name": payment.student.full_name if payment.student else None,
                    "roll_number": payment.student.roll_number if payment.student else None,
                    "course_year": payment.course_year,
                    "session_year": payment.session_year,
                    "amount_type": payment.amount_type,
                    "amount": payment.amount,
                    "handed_over_amount": handed_over,
                    "remaining_amount": remaining,
                    "payment_mode": payment.payment_mode,
                    "full_handover_only": is_full_handover_only(payment.payment_mode),
                    "transaction_number": payment.transaction_number,
                    "received_date": payment.received_date,
                }
            )
        return rows

    # --- Reporting ---

    async def get_payment_details(
        self,
        student_id: int | None = None,
        session_year: str | None = None,
        course_year: str | None = None,
    ) -> list[PaymentDetail]:
        """Payment totals per (student, course year, session year)."""
        query = (
            select(PaymentTransaction)
            .options(
                selectinload(PaymentTransaction.student),
                selectinload(PaymentTransaction.academic_record),
            )
            .order_by(
                PaymentTransaction.student_id,
                PaymentTransaction.received_date,
                PaymentTransaction.id,
            )
        )
        if student_id:
            query = query.where(PaymentTransaction.student_id == student_id)
        if session_year:
            query = query.where(PaymentTransaction.session_year == session_year)
        if course_year:
            query = query.where(PaymentTransaction.course_year == course_year)

        result = await self.db.execute(query)
        views = [
            TransactionView(
                id=p.id,
                student_id=p.student_id,
                course_year=p.course_year,
                session_year=p.session_year,
                amount_type=p.amount_type,
                amount=p.amount,
                payment_mode=p.payment_mode,
                received_date=p.received_date,
                student_name=p.student.full_name if p.student else None,
                roll_number=p.student.roll_number if p.student else None,
                fee_plan=p.academic_record.payment_mode if p.academic_record else None,
            )
            for p in result.scalars().all()
        ]
        return aggregate_payment_details(views)

    async def get_student_payment_summary(
        self, student_id: int
    ) -> list[AcademicPaymentSummary]:
        """Planned vs paid vs pending for each of the student's academic records."""
        student_result = await self.db.execute(
            select(Student)
            .where(Student.id == student_id)
            .options(selectinload(Student.academic_records))
        )
        student = student_result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)

        paid_result = await self.db.execute(
            select(
                PaymentTransaction.academic_record_id,
                PaymentTransaction.amount_type,
                func.coalesce(func.sum(PaymentTransaction.amount), 0),
            )
            .where(PaymentTransaction.student_id == student_id)
            .group_by(PaymentTransaction.academic_record_id, PaymentTransaction.amount_type)
        )
        paid: dict[tuple[int, str], Decimal] = {
            (row[0], row[1]): round_money(row[2]) for row in paid_result.all()
        }

        summaries = []
        for record in student.academic_records:
            admin_paid = paid.get((record.id, AmountType.ADMIN.value), ZERO)
            fees_paid = paid.get((record.id, AmountType.FEES.value), ZERO)
            admin_pending = max(round_money(record.admin_amount - admin_paid), ZERO)
            fees_pending = max(round_money(record.fees_amount - fees_paid), ZERO)
            summaries.append(
                AcademicPaymentSummary(
                    academic_record_id=record.id,
                    course_year=record.course_year,
                    session_year=record.session_year,
                    is_active=record.is_active,
                    payment_mode=record.payment_mode,
                    admin_planned=round_money(record.admin_amount),
                    fees_planned=round_money(record.fees_amount),
                    admin_paid=admin_paid,
                    fees_paid=fees_paid,
                    fine_paid=paid.get((record.id, AmountType.FINE.value), ZERO),
                    refunded=paid.get((record.id, AmountType.REFUND.value), ZERO),
                    admin_pending=admin_pending,
                    fees_pending=fees_pending,
                    total_pending=admin_pending + fees_pending,
                )
            )
        return summaries
