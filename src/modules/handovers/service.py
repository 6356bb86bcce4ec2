"""Service for cash handovers."""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.documents.number_generator import DocumentNumberGenerator
from src.core.exceptions import NotFoundError
from src.modules.handovers.models import CashHandover
from src.modules.handovers.schemas import HandoverCreate
from src.modules.payments.models import PaymentTransaction
from src.modules.payments.reconciliation import remaining_amount, resolve_handover_amount
from src.shared.utils.money import ZERO, round_money

logger = logging.getLogger(__name__)

RECEIPT_PREFIX = "HND"


class HandoverService:
    """Service for handing payment money over between staff members."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def create_handovers(
        self,
        data: HandoverCreate,
        created_by_id: int,
        created_by_name: str,
    ) -> tuple[str, list[CashHandover]]:
        """
        Hand over a batch of payments under one receipt number.

        Payment rows are locked while amounts are checked, so two batches
        cannot hand over the same money. Any invalid row rejects the whole
        batch.
        """
        payment_ids = [item.id for item in data.payment_data]
        result = await self.db.execute(
            select(PaymentTransaction)
            .where(PaymentTransaction.id.in_(payment_ids))
            .order_by(PaymentTransaction.id)
            .with_for_update()
        )
        payments = {p.id: p for p in result.scalars().all()}
        for payment_id in payment_ids:
            if payment_id not in payments:
                raise NotFoundError("Payment", payment_id)

        handed_over = await self._handed_over_totals(payment_ids)

        amounts: dict[int, Decimal] = {}
        for item in data.payment_data:
            payment = payments[item.id]
            remaining = remaining_amount(
                payment.amount, handed_over.get(item.id, ZERO)
            )
            amounts[item.id] = resolve_handover_amount(
                payment.payment_mode, remaining, item.handover_amount, payment_id=item.id
            )

        receipt_number = await DocumentNumberGenerator(self.db).generate(RECEIPT_PREFIX)

        if data.verified:
            verified_by = data.verified_by or created_by_name
            verified_on = data.verified_on or date.today()
        else:
            verified_by, verified_on = None, None

        handovers = []
        for item in data.payment_data:
            payment = payments[item.id]
            handover = CashHandover(
                payment_id=payment.id,
                student_id=payment.student_id,
                amount=amounts[item.id],
                received_by=payment.approved_by,
                handed_over_to=data.handed_over_to,
                handover_date=data.handover_date,
                remarks=data.remarks,
                receipt_number=receipt_number,
                verified=data.verified,
                verified_by=verified_by,
                verified_on=verified_on,
                created_by_id=created_by_id,
            )
            self.db.add(handover)
            handovers.append(handover)
        await self.db.flush()

        total = sum(amounts.values(), ZERO)
        await self.audit.log(
            action=AuditAction.CREATE_HANDOVER,
            entity_type="CashHandover",
            entity_id=handovers[0].id,
            entity_identifier=receipt_number,
            user_id=created_by_id,
            new_values={
                "payments": {str(pid): str(amount) for pid, amount in amounts.items()},
                "handed_over_to": data.handed_over_to,
                "total_amount": str(total),
            },
        )

        await self.db.commit()
        logger.info(
            "Handover %s: %s payment(s), total %s, to %s",
            receipt_number,
            len(handovers),
            total,
            data.handed_over_to,
        )
        return receipt_number, await self.get_batch(receipt_number)

    async def _handed_over_totals(self, payment_ids: list[int]) -> dict[int, Decimal]:
        result = await self.db.execute(
            select(CashHandover.payment_id, func.coalesce(func.sum(CashHandover.amount), 0))
            .where(CashHandover.payment_id.in_(payment_ids))
            .group_by(CashHandover.payment_id)
        )
        return {row[0]: round_money(row[1]) for row in result.all()}

    async def get_batch(self, receipt_number: str) -> list[CashHandover]:
        """All handover rows written under one receipt."""
        result = await self.db.execute(
            select(CashHandover)
            .where(CashHandover.receipt_number == receipt_number)
            .options(selectinload(CashHandover.student))
            .order_by(CashHandover.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_handover_by_id(self, handover_id: int) -> CashHandover:
        result = await self.db.execute(
            select(CashHandover)
            .where(CashHandover.id == handover_id)
            .options(selectinload(CashHandover.student))
            .execution_options(populate_existing=True)
        )
        handover = result.scalar_one_or_none()
        if not handover:
            raise NotFoundError("Handover", handover_id)
        return handover

    async def list_handovers(
        self,
        received_by: str | None = None,
        handed_over_to: str | None = None,
        student_id: int | None = None,
        payment_id: int | None = None,
        receipt_number: str | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[CashHandover], int]:
        """List handovers, newest first."""
        query = select(CashHandover).options(selectinload(CashHandover.student))

        if received_by:
            query = query.where(CashHandover.received_by == received_by)
        if handed_over_to:
            query = query.where(CashHandover.handed_over_to == handed_over_to)
        if student_id:
            query = query.where(CashHandover.student_id == student_id)
        if payment_id:
            query = query.where(CashHandover.payment_id == payment_id)
        if receipt_number:
            query = query.where(CashHandover.receipt_number == receipt_number)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(CashHandover.created_at.desc(), CashHandover.id.desc())
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def verify_handover(
        self, handover_id: int, verified_by: str, verified_by_id: int
    ) -> CashHandover:
        """Mark a handover as verified. Verifying twice changes nothing."""
        handover = await self.get_handover_by_id(handover_id)
        if handover.verified:
            return handover

        handover.verified = True
        handover.verified_by = verified_by
        handover.verified_on = date.today()

        await self.audit.log(
            action=AuditAction.VERIFY_HANDOVER,
            entity_type="CashHandover",
            entity_id=handover_id,
            entity_identifier=handover.receipt_number,
            user_id=verified_by_id,
            old_values={"verified": False},
            new_values={"verified": True, "verified_by": verified_by},
        )

        await self.db.commit()
        return await self.get_handover_by_id(handover_id)
