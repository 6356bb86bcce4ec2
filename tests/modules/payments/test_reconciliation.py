from decimal import Decimal

import pytest

from src.core.exceptions import HandoverAmountError
from src.modules.payments.models import AmountType
from src.modules.payments.reconciliation import (
    CASH,
    CHEQUE,
    TransactionView,
    aggregate_payment_details,
    instrument_of,
    is_full_handover_only,
    normalize_payment_mode,
    remaining_amount,
    resolve_handover_amount,
)


class TestPaymentModes:
    """Tests for payment mode normalisation."""

    @pytest.mark.parametrize(
        "mode, expected",
        [
            ("Cheque (123)", "cheque"),
            ("  CASH ", "cash"),
            ("bank transfer", "bank"),
            ("UPI ref 889", "upi"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, mode, expected):
        assert normalize_payment_mode(mode) == expected

    def test_check_spelling_maps_to_cheque(self):
        assert instrument_of("check 0042") == CHEQUE

    def test_unknown_mode(self):
        assert instrument_of("barter") is None
        assert is_full_handover_only("barter") is False

    def test_full_handover_only_instruments(self):
        assert is_full_handover_only("Cheque (123)")
        assert is_full_handover_only("Bank transfer")
        assert not is_full_handover_only("cash")
        assert not is_full_handover_only("upi")


class TestRemainingAmount:
    def test_subtracts_sum_of_handovers(self):
        assert remaining_amount(Decimal("10000"), [Decimal("4000"), Decimal("2500")]) == Decimal(
            "3500.00"
        )

    def test_never_negative(self):
        assert remaining_amount(Decimal("100"), Decimal("150")) == Decimal("0.00")


class TestResolveHandoverAmount:
    """Tests for how much of a payment may be handed over."""

    def test_cheque_partial_rejected(self):
        """A 10000 cheque cannot be handed over as 4000."""
        with pytest.raises(HandoverAmountError) as exc_info:
            resolve_handover_amount("Cheque (123)", Decimal("10000"), Decimal("4000"), payment_id=7)
        assert "in full" in exc_info.value.message
        assert exc_info.value.details["payment_id"] == 7

    def test_cheque_defaults_to_full_amount(self):
        assert resolve_handover_amount("Cheque (123)", Decimal("10000"), None) == Decimal(
            "10000.00"
        )

    def test_cheque_full_amount_accepted(self):
        assert resolve_handover_amount(
            "bank transfer", Decimal("10000"), Decimal("10000")
        ) == Decimal("10000.00")

    def test_cash_split_then_exhausted(self):
        """Cash 10000 accepts 4000 then 6000 and nothing after."""
        remaining = Decimal("10000")
        handed = []

        first = resolve_handover_amount(CASH, remaining, Decimal("4000"))
        handed.append(first)
        remaining = remaining_amount(Decimal("10000"), handed)
        assert remaining == Decimal("6000.00")

        second = resolve_handover_amount(CASH, remaining, Decimal("6000"))
        handed.append(second)
        remaining = remaining_amount(Decimal("10000"), handed)
        assert remaining == Decimal("0.00")

        with pytest.raises(HandoverAmountError) as exc_info:
            resolve_handover_amount(CASH, remaining, Decimal("1"))
        assert "fully handed over" in exc_info.value.message

    def test_cash_exceeding_remaining_rejected(self):
        with pytest.raises(HandoverAmountError) as exc_info:
            resolve_handover_amount(CASH, Decimal("6000"), Decimal("6000.01"))
        assert "exceeds remaining amount" in exc_info.value.message

    def test_non_positive_rejected(self):
        with pytest.raises(HandoverAmountError):
            resolve_handover_amount("upi", Decimal("500"), Decimal("0"))

    def test_cash_defaults_to_remaining(self):
        assert resolve_handover_amount(CASH, Decimal("250.50"), None) == Decimal("250.50")


class TestAggregatePaymentDetails:
    """Tests for per-year payment aggregation."""

    def _txn(self, txn_id, amount_type, amount, course_year="1st", session="2024-2025", **kwargs):
        return TransactionView(
            id=txn_id,
            student_id=kwargs.pop("student_id", 1),
            course_year=course_year,
            session_year=session,
            amount_type=amount_type,
            amount=Decimal(amount),
            **kwargs,
        )

    def test_sums_by_type(self):
        details = aggregate_payment_details(
            [
                self._txn(1, AmountType.ADMIN, "5000"),
                self._txn(2, AmountType.FEES, "20000"),
                self._txn(3, AmountType.FEES, "10000"),
                self._txn(4, AmountType.FINE, "200"),
                self._txn(5, AmountType.REFUND, "1000"),
            ]
        )
        assert len(details) == 1
        detail = details[0]
        assert detail.admin_amount == Decimal("5000.00")
        assert detail.fees_amount == Decimal("30000.00")
        assert detail.fine_amount == Decimal("200.00")
        assert detail.refund_amount == Decimal("1000.00")
        assert detail.total_paid == Decimal("35000.00")
        assert detail.net_amount == Decimal("34200.00")
        assert detail.transaction_ids == [1, 2, 3, 4, 5]

    def test_groups_by_student_and_year(self):
        details = aggregate_payment_details(
            [
                self._txn(1, AmountType.FEES, "100", course_year="2nd", session="2025-2026"),
                self._txn(2, AmountType.FEES, "100"),
                self._txn(3, AmountType.FEES, "100", student_id=2),
                self._txn(4, AmountType.FEES, "50", course_year="2nd", session="2025-2026"),
            ]
        )
        assert [(d.student_id, d.course_year) for d in details] == [
            (1, "2nd"),
            (1, "1st"),
            (2, "1st"),
        ]
        assert details[0].fees_amount == Decimal("150.00")

    def test_fee_plan_defaults_to_one_time(self):
        details = aggregate_payment_details(
            [
                self._txn(1, AmountType.FEES, "100"),
                self._txn(2, AmountType.FEES, "100", course_year="2nd", fee_plan="EMI"),
            ]
        )
        assert details[0].payment_mode == "One-Time"
        assert details[1].payment_mode == "EMI"

    def test_empty(self):
        assert aggregate_payment_details([]) == []
