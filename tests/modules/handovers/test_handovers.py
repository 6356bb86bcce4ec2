from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.models import UserRole
from src.core.auth.service import AuthService
from src.core.exceptions import HandoverAmountError, NotFoundError
from src.modules.handovers.schemas import HandoverCreate, HandoverItem
from src.modules.handovers.service import HandoverService
from src.modules.payments.models import AmountType, PaymentTransaction
from src.modules.payments.schemas import PaymentCreate
from src.modules.payments.service import PaymentService
from src.modules.students.models import Gender
from src.modules.students.schemas import StudentCreate
from src.modules.students.service import StudentService

TODAY = date(2025, 6, 1)


async def _payment(
    db_session: AsyncSession,
    payment_mode: str = "cash",
    amount: Decimal = Decimal("10000.00"),
    roll_number: str = "H-001",
) -> PaymentTransaction:
    students = StudentService(db_session)
    existing, _ = await students.list_students(search=roll_number)
    if existing:
        student = await students.get_student_by_id(existing[0].id)
    else:
        student = await students.create_student(
            StudentCreate(
                roll_number=roll_number,
                first_name="Isha",
                gender=Gender.FEMALE,
                mobile_number="9090909090",
                session_year="2024-2025",
                fees_amount=Decimal("60000.00"),
            ),
            created_by_id=1,
            today=TODAY,
        )
    return await PaymentService(db_session).create_payment(
        PaymentCreate(
            student_id=student.id,
            academic_record_id=student.academic_records[0].id,
            amount_type=AmountType.FEES,
            amount=amount,
            payment_mode=payment_mode,
            received_date=TODAY,
            approved_by="Neha",
        ),
        created_by_id=1,
    )


def _batch(*items: tuple[int, Decimal | None], **overrides) -> HandoverCreate:
    values = {
        "payment_data": [HandoverItem(id=pid, handover_amount=amount) for pid, amount in items],
        "handed_over_to": "Head Office",
        "handover_date": TODAY,
    }
    values.update(overrides)
    return HandoverCreate(**values)


class TestHandoverSchemas:
    def test_empty_batch_rejected(self):
        with pytest.raises(PydanticValidationError):
            HandoverCreate(payment_data=[], handed_over_to="Office", handover_date=TODAY)

    def test_duplicate_payment_rejected(self):
        with pytest.raises(PydanticValidationError):
            _batch((1, Decimal("10")), (1, Decimal("20")))

    def test_blank_receiver_rejected(self):
        with pytest.raises(PydanticValidationError):
            _batch((1, None), handed_over_to="  ")

    def test_camel_case_body(self):
        data = HandoverCreate.model_validate(
            {
                "paymentData": [{"id": 3, "handoverAmount": "150.00"}],
                "handedOverTo": "Office",
                "handoverDate": "2025-06-01",
            }
        )
        assert data.payment_data[0].handover_amount == Decimal("150.00")
        assert data.verified is True


class TestHandoverService:
    """Tests for handing payment money over."""

    async def test_batch_shares_receipt_number(self, db_session: AsyncSession):
        cash = await _payment(db_session)
        upi = await _payment(db_session, payment_mode="UPI ref 55", amount=Decimal("3000"))
        service = HandoverService(db_session)

        receipt, handovers = await service.create_handovers(
            _batch((cash.id, Decimal("2500")), (upi.id, None)),
            created_by_id=1,
            created_by_name="Neha",
        )

        assert receipt.startswith("HND-")
        assert len(handovers) == 2
        assert {h.receipt_number for h in handovers} == {receipt}
        amounts = {h.payment_id: h.amount for h in handovers}
        assert amounts[cash.id] == Decimal("2500.00")
        assert amounts[upi.id] == Decimal("3000.00")
        assert all(h.received_by == "Neha" for h in handovers)
        assert all(h.verified and h.verified_by == "Neha" for h in handovers)

    async def test_consecutive_batches_get_new_receipts(self, db_session: AsyncSession):
        payment = await _payment(db_session)
        service = HandoverService(db_session)

        first, _ = await service.create_handovers(
            _batch((payment.id, Decimal("100"))), created_by_id=1, created_by_name="Neha"
        )
        second, _ = await service.create_handovers(
            _batch((payment.id, Decimal("100"))), created_by_id=1, created_by_name="Neha"
        )
        assert first != second

    async def test_cheque_partial_handover_rejected(self, db_session: AsyncSession):
        """A 10000 cheque cannot be split into a 4000 handover."""
        cheque = await _payment(db_session, payment_mode="Cheque (123)")
        service = HandoverService(db_session)

        with pytest.raises(HandoverAmountError) as exc_info:
            await service.create_handovers(
                _batch((cheque.id, Decimal("4000"))), created_by_id=1, created_by_name="Neha"
            )
        assert exc_info.value.details["payment_id"] == cheque.id

        _, handovers = await service.create_handovers(
            _batch((cheque.id, None)), created_by_id=1, created_by_name="Neha"
        )
        assert handovers[0].amount == Decimal("10000.00")

    async def test_cash_split_until_exhausted(self, db_session: AsyncSession):
        """Cash 10000 goes over as 4000 and 6000, then nothing is left."""
        cash = await _payment(db_session)
        service = HandoverService(db_session)

        await service.create_handovers(
            _batch((cash.id, Decimal("4000"))), created_by_id=1, created_by_name="Neha"
        )
        await service.create_handovers(
            _batch((cash.id, Decimal("6000"))), created_by_id=1, created_by_name="Neha"
        )

        with pytest.raises(HandoverAmountError) as exc_info:
            await service.create_handovers(
                _batch((cash.id, Decimal("1"))), created_by_id=1, created_by_name="Neha"
            )
        assert "fully handed over" in exc_info.value.message

        assert await PaymentService(db_session).list_payments_by_staff("Neha") == []

    async def test_invalid_row_rejects_whole_batch(self, db_session: AsyncSession):
        cash = await _payment(db_session)
        cheque = await _payment(db_session, payment_mode="cheque 77")
        service = HandoverService(db_session)

        with pytest.raises(HandoverAmountError):
            await service.create_handovers(
                _batch((cash.id, Decimal("1000")), (cheque.id, Decimal("5"))),
                created_by_id=1,
                created_by_name="Neha",
            )

        handovers, total = await service.list_handovers(payment_id=cash.id)
        assert total == 0

    async def test_unknown_payment(self, db_session: AsyncSession):
        service = HandoverService(db_session)

        with pytest.raises(NotFoundError):
            await service.create_handovers(
                _batch((4242, None)), created_by_id=1, created_by_name="Neha"
            )

    async def test_unverified_batch_then_verify(self, db_session: AsyncSession):
        cash = await _payment(db_session)
        service = HandoverService(db_session)

        _, handovers = await service.create_handovers(
            _batch((cash.id, None), verified=False), created_by_id=1, created_by_name="Neha"
        )
        handover = handovers[0]
        assert handover.verified is False
        assert handover.verified_by is None

        verified = await service.verify_handover(handover.id, "Accounts Desk", verified_by_id=1)
        assert verified.verified is True
        assert verified.verified_by == "Accounts Desk"
        assert verified.verified_on == date.today()

        again = await service.verify_handover(handover.id, "Someone Else", verified_by_id=1)
        assert again.verified_by == "Accounts Desk"

    async def test_list_handovers_filters(self, db_session: AsyncSession):
        cash = await _payment(db_session)
        service = HandoverService(db_session)
        await service.create_handovers(
            _batch((cash.id, Decimal("500"))), created_by_id=1, created_by_name="Neha"
        )
        await service.create_handovers(
            _batch((cash.id, Decimal("500")), handed_over_to="Branch"),
            created_by_id=1,
            created_by_name="Neha",
        )

        handovers, total = await service.list_handovers(handed_over_to="Branch")
        assert total == 1
        assert handovers[0].handed_over_to == "Branch"

        handovers, total = await service.list_handovers(received_by="Neha")
        assert total == 2


class TestHandoverEndpoints:
    """Tests for handover API endpoints."""

    async def _create_auth(
        self, db_session: AsyncSession, role: UserRole = UserRole.SUPER_ADMIN
    ) -> str:
        """Helper to create a user and get a token."""
        auth_service = AuthService(db_session)
        email = f"{role.value.lower()}@consultancy.com"
        await auth_service.create_user(
            email=email,
            password="Passw0rd123",
            full_name="Rahul Nair",
            role=role,
        )
        await db_session.commit()
        _, access_token, _ = await auth_service.authenticate(email, "Passw0rd123")
        return access_token

    async def test_create_handover_batch(self, client: AsyncClient, db_session: AsyncSession):
        token = await self._create_auth(db_session)
        cash = await _payment(db_session)

        response = await client.post(
            "/api/v1/payment-handovers",
            json={
                "paymentData": [{"id": cash.id, "handoverAmount": "4000"}],
                "handedOverTo": "Head Office",
                "handoverDate": "2025-06-01",
            },
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["receipt_number"].startswith("HND-")
        assert Decimal(str(data["total_amount"])) == Decimal("4000.00")
        assert data["handovers"][0]["verified_by"] == "Rahul Nair"
        assert data["handovers"][0]["student_name"] == "Isha"

    async def test_cheque_split_rejected(self, client: AsyncClient, db_session: AsyncSession):
        token = await self._create_auth(db_session)
        cheque = await _payment(db_session, payment_mode="Cheque (123)")

        response = await client.post(
            "/api/v1/payment-handovers",
            json={
                "paymentData": [{"id": cheque.id, "handoverAmount": "4000"}],
                "handedOverTo": "Head Office",
                "handoverDate": "2025-06-01",
            },
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["errors"][0]["field"] == "handover_amount"

    async def test_verify_endpoint(self, client: AsyncClient, db_session: AsyncSession):
        token = await self._create_auth(db_session)
        headers = {"Authorization": f"Bearer {token}"}
        cash = await _payment(db_session)
        _, handovers = await HandoverService(db_session).create_handovers(
            _batch((cash.id, None), verified=False), created_by_id=1, created_by_name="Neha"
        )

        response = await client.put(
            f"/api/v1/payment-handovers/{handovers[0].id}/verify", headers=headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["verified"] is True
        assert data["verified_by"] == "Rahul Nair"

        response = await client.get(
            f"/api/v1/payment-handovers?payment_id={cash.id}", headers=headers
        )
        assert response.json()["data"]["total"] == 1
