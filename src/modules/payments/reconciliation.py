"""
Payment reconciliation.

Aggregates transactions into per-academic-year totals and decides how much
of a payment may be handed over. Pure functions: callers pass in plain
values or ``TransactionView`` rows.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from src.core.exceptions import HandoverAmountError
from src.modules.payments.models import AmountType
from src.modules.students.models import FeePlan
from src.shared.utils.money import ZERO, round_money

CASH = "cash"
CHEQUE = "cheque"
BANK = "bank"
UPI = "upi"

# First token of the free-text payment mode -> instrument
INSTRUMENTS = {
    "cash": CASH,
    "cheque": CHEQUE,
    "check": CHEQUE,
    "bank": BANK,
    "upi": UPI,
}

FULL_HANDOVER_ONLY = frozenset({CHEQUE, BANK})


def normalize_payment_mode(mode: str | None) -> str:
    """First whitespace-separated token, lower-cased. "Cheque (123)" -> "cheque"."""
    tokens = (mode or "").strip().lower().split()
    if not tokens:
        return ""
    return tokens[0]


def instrument_of(mode: str | None) -> str | None:
    """Known instrument for a payment mode, or None for unrecognised text."""
    return INSTRUMENTS.get(normalize_payment_mode(mode))


def is_full_handover_only(mode: str | None) -> bool:
    """Cheques and bank transfers cannot be split across handovers."""
    return instrument_of(mode) in FULL_HANDOVER_ONLY


def remaining_amount(amount: Decimal, handed_over: Decimal | list[Decimal]) -> Decimal:
    """Amount still held, never negative."""
    if isinstance(handed_over, list):
        handed_over = sum(handed_over, ZERO)
    return max(round_money(Decimal(amount) - Decimal(handed_over)), ZERO)


def resolve_handover_amount(
    mode: str | None,
    remaining: Decimal,
    requested: Decimal | None,
    payment_id: int | None = None,
) -> Decimal:
    """
    Amount to hand over for one payment.

    Cheque and bank payments must go in full; a missing request defaults to
    the remaining amount. Cash and UPI may be split but never exceed what
    is left.
    """
    remaining = round_money(remaining)
    if remaining <= 0:
        raise HandoverAmountError(
            "Payment has already been fully handed over", payment_id=payment_id
        )

    if is_full_handover_only(mode):
        if requested is None:
            return remaining
        if round_money(requested) != remaining:
            raise HandoverAmountError(
                f"{normalize_payment_mode(mode).capitalize()} payments must be handed over "
                f"in full ({remaining})",
                payment_id=payment_id,
            )
        return remaining

    if requested is None:
        return remaining
    requested = round_money(requested)
    if requested <= 0:
        raise HandoverAmountError("Handover amount must be positive", payment_id=payment_id)
    if requested > remaining:
        raise HandoverAmountError(
            f"Handover amount {requested} exceeds remaining amount {remaining}",
            payment_id=payment_id,
        )
    return requested


@dataclass(frozen=True)
class TransactionView:
    """What aggregation needs from a payment transaction."""

    id: int
    student_id: int
    course_year: str
    session_year: str
    amount_type: str
    amount: Decimal
    payment_mode: str = ""
    received_date: date | None = None
    student_name: str | None = None
    roll_number: str | None = None
    # Fee plan of the academic record the payment was taken against
    fee_plan: str | None = None


@dataclass
class PaymentDetail:
    """Totals for one (student, course year, session year)."""

    student_id: int
    course_year: str
    session_year: str
    student_name: str | None = None
    roll_number: str | None = None
    payment_mode: str = FeePlan.ONE_TIME.value
    admin_amount: Decimal = ZERO
    fees_amount: Decimal = ZERO
    fine_amount: Decimal = ZERO
    refund_amount: Decimal = ZERO
    transaction_ids: list[int] = field(default_factory=list)

    @property
    def total_paid(self) -> Decimal:
        return self.admin_amount + self.fees_amount

    @property
    def net_amount(self) -> Decimal:
        return self.admin_amount + self.fees_amount + self.fine_amount - self.refund_amount


def aggregate_payment_details(transactions: list[TransactionView]) -> list[PaymentDetail]:
    """
    Group transactions by (student, course year, session year).

    Admin and fees are summed into their own columns; fines and refunds are
    tracked separately and never counted as fees. The fee plan comes from
    the academic record of the group's transactions, One-Time by default.
    Groups keep the order in which they were first seen.
    """
    groups: "OrderedDict[tuple[int, str, str], PaymentDetail]" = OrderedDict()

    for txn in transactions:
        key = (txn.student_id, txn.course_year, txn.session_year)
        detail = groups.get(key)
        if detail is None:
            detail = PaymentDetail(
                student_id=txn.student_id,
                course_year=txn.course_year,
                session_year=txn.session_year,
                student_name=txn.student_name,
                roll_number=txn.roll_number,
            )
            groups[key] = detail

        if txn.fee_plan:
            detail.payment_mode = txn.fee_plan

        amount = round_money(Decimal(txn.amount))
        if txn.amount_type == AmountType.ADMIN:
            detail.admin_amount += amount
        elif txn.amount_type == AmountType.FEES:
            detail.fees_amount += amount
        elif txn.amount_type == AmountType.FINE:
            detail.fine_amount += amount
        elif txn.amount_type == AmountType.REFUND:
            detail.refund_amount += amount
        detail.transaction_ids.append(txn.id)

    return list(groups.values())
