import warnings
from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SAWarning
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.models import UserRole
from src.core.auth.service import AuthService
from src.core.exceptions import DuplicateError, NotFoundError, ValidationError
from src.modules.handovers.schemas import HandoverCreate, HandoverItem
from src.modules.handovers.service import HandoverService
from src.modules.payments.models import AmountType
from src.modules.payments.schemas import PaymentCreate, PaymentFilters
from src.modules.payments.service import PaymentService
from src.modules.students.models import FeePlan, Gender, Student
from src.modules.students.schemas import EmiDetailInput, StudentCreate
from src.modules.students.service import StudentService

TODAY = date(2025, 6, 1)


async def _admit(db_session: AsyncSession, roll_number: str = "P-001", **overrides) -> Student:
    values = {
        "roll_number": roll_number,
        "first_name": "Dev",
        "last_name": "Sharma",
        "gender": Gender.MALE,
        "mobile_number": "9988776655",
        "session_year": "2024-2025",
        "admin_amount": Decimal("5000.00"),
        "fees_amount": Decimal("45000.00"),
    }
    values.update(overrides)
    return await StudentService(db_session).create_student(
        StudentCreate(**values), created_by_id=1, today=TODAY
    )


def _payment(student: Student, **overrides) -> PaymentCreate:
    values = {
        "student_id": student.id,
        "academic_record_id": student.academic_records[0].id,
        "amount_type": AmountType.FEES,
        "amount": Decimal("10000.00"),
        "payment_mode": "cash",
        "received_date": TODAY,
        "approved_by": "Neha",
    }
    values.update(overrides)
    return PaymentCreate(**values)


class TestPaymentSchemas:
    def test_payment_mode_must_name_instrument(self):
        with pytest.raises(PydanticValidationError):
            PaymentCreate(
                student_id=1,
                academic_record_id=1,
                amount_type=AmountType.FEES,
                amount=Decimal("10"),
                payment_mode="barter",
                received_date=TODAY,
                approved_by="Neha",
            )

    def test_blank_transaction_number_becomes_none(self):
        data = PaymentCreate(
            student_id=1,
            academic_record_id=1,
            amount_type=AmountType.FEES,
            amount=Decimal("10"),
            payment_mode="Cheque (123)",
            transaction_number="   ",
            received_date=TODAY,
            approved_by="Neha",
        )
        assert data.transaction_number is None
        assert data.payment_mode == "Cheque (123)"

    def test_blank_approved_by_rejected(self):
        with pytest.raises(PydanticValidationError):
            PaymentCreate(
                student_id=1,
                academic_record_id=1,
                amount_type=AmountType.FEES,
                amount=Decimal("10"),
                payment_mode="cash",
                received_date=TODAY,
                approved_by="   ",
            )

    def test_amount_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            PaymentCreate(
                student_id=1,
                academic_record_id=1,
                amount_type=AmountType.FEES,
                amount=Decimal("0"),
                payment_mode="cash",
                received_date=TODAY,
                approved_by="Neha",
            )


class TestPaymentService:
    """Tests for recording and reading payments."""

    async def test_create_payment(self, db_session: AsyncSession):
        """Course and session year are copied from the academic record."""
        student = await _admit(db_session)
        service = PaymentService(db_session)

        payment = await service.create_payment(
            _payment(student, transaction_number="TXN-1"), created_by_id=1
        )

        assert payment.id is not None
        assert payment.course_year == "1st"
        assert payment.session_year == "2024-2025"
        assert payment.amount == Decimal("10000.00")
        assert payment.student.roll_number == "P-001"

    async def test_create_payment_record_of_other_student(self, db_session: AsyncSession):
        first = await _admit(db_session)
        second = await _admit(db_session, roll_number="P-002", mobile_number="9988776600")
        service = PaymentService(db_session)

        with pytest.raises(ValidationError):
            await service.create_payment(
                _payment(first, academic_record_id=second.academic_records[0].id),
                created_by_id=1,
            )

    async def test_create_payment_unknown_record(self, db_session: AsyncSession):
        student = await _admit(db_session)
        service = PaymentService(db_session)

        with pytest.raises(NotFoundError):
            await service.create_payment(
                _payment(student, academic_record_id=99999), created_by_id=1
            )

    async def test_duplicate_transaction_number(self, db_session: AsyncSession):
        student = await _admit(db_session)
        service = PaymentService(db_session)
        await service.create_payment(
            _payment(student, payment_mode="upi", transaction_number="UPI-77"), created_by_id=1
        )

        with pytest.raises(DuplicateError):
            await service.create_payment(
                _payment(student, payment_mode="upi", transaction_number="UPI-77"),
                created_by_id=1,
            )

    async def test_list_payments_filters(self, db_session: AsyncSession):
        student = await _admit(db_session)
        service = PaymentService(db_session)
        await service.create_payment(_payment(student), created_by_id=1)
        await service.create_payment(
            _payment(student, amount_type=AmountType.ADMIN, amount=Decimal("5000"), approved_by="Arjun"),
            created_by_id=1,
        )

        payments, total = await service.list_payments(PaymentFilters(approved_by="Arjun"))
        assert total == 1
        assert payments[0].amount_type == AmountType.ADMIN

        payments, total = await service.list_payments(PaymentFilters(student_id=student.id))
        assert total == 2

    async def test_delete_payment(self, db_session: AsyncSession):
        student = await _admit(db_session)
        service = PaymentService(db_session)
        payment = await service.create_payment(_payment(student), created_by_id=1)

        await service.delete_payment(payment.id, deleted_by_id=1)

        with pytest.raises(NotFoundError):
            await service.get_payment_by_id(payment.id)

    async def test_delete_handed_over_payment_rejected(self, db_session: AsyncSession):
        student = await _admit(db_session)
        service = PaymentService(db_session)
        payment = await service.create_payment(_payment(student), created_by_id=1)
        await HandoverService(db_session).create_handovers(
            HandoverCreate(
                payment_data=[HandoverItem(id=payment.id, handover_amount=Decimal("1000"))],
                handed_over_to="Office",
                handover_date=TODAY,
            ),
            created_by_id=1,
            created_by_name="Neha",
        )

        assert await service.has_handover(payment.id) is True
        with pytest.raises(ValidationError):
            await service.delete_payment(payment.id, deleted_by_id=1)

    async def test_payments_by_staff_shows_remaining(self, db_session: AsyncSession):
        student = await _admit(db_session)
        service = PaymentService(db_session)
        cash = await service.create_payment(_payment(student), created_by_id=1)
        cheque = await service.create_payment(
            _payment(student, payment_mode="Cheque (123)", amount=Decimal("20000")),
            created_by_id=1,
        )
        await service.create_payment(_payment(student, approved_by="Arjun"), created_by_id=1)
        await HandoverService(db_session).create_handovers(
            HandoverCreate(
                payment_data=[HandoverItem(id=cash.id, handover_amount=Decimal("4000"))],
                handed_over_to="Office",
                handover_date=TODAY,
            ),
            created_by_id=1,
            created_by_name="Neha",
        )

        rows = await service.list_payments_by_staff("Neha")

        by_id = {row["id"]: row for row in rows}
        assert set(by_id) == {cash.id, cheque.id}
        assert by_id[cash.id]["remaining_amount"] == Decimal("6000.00")
        assert by_id[cash.id]["handed_over_amount"] == Decimal("4000.00")
        assert by_id[cash.id]["full_handover_only"] is False
        assert by_id[cheque.id]["full_handover_only"] is True

        assert await service.list_approved_by() == ["Arjun", "Neha"]

    async def test_approved_by_names_are_distinct(self, db_session: AsyncSession):
        student = await _admit(db_session)
        service = PaymentService(db_session)
        for name in ("Neha", "Neha", "Arjun", "Neha"):
            await service.create_payment(_payment(student, approved_by=name), created_by_id=1)

        with warnings.catch_warnings():
            warnings.simplefilter("error", SAWarning)
            names = await service.list_approved_by()

        assert names == ["Arjun", "Neha"]

    async def test_payment_details_aggregation(self, db_session: AsyncSession):
        student = await _admit(
            db_session,
            payment_mode=FeePlan.EMI,
            number_of_emi=2,
            emi_details=[
                EmiDetailInput(emi_number=1, amount=Decimal("25000"), due_date=date(2024, 8, 1)),
                EmiDetailInput(emi_number=2, amount=Decimal("25000"), due_date=date(2025, 1, 1)),
            ],
        )
        service = PaymentService(db_session)
        await service.create_payment(
            _payment(student, amount_type=AmountType.ADMIN, amount=Decimal("5000")), created_by_id=1
        )
        await service.create_payment(_payment(student), created_by_id=1)
        await service.create_payment(
            _payment(student, amount_type=AmountType.FINE, amount=Decimal("250")), created_by_id=1
        )

        details = await service.get_payment_details(student_id=student.id)

        assert len(details) == 1
        detail = details[0]
        assert detail.payment_mode == "EMI"
        assert detail.admin_amount == Decimal("5000.00")
        assert detail.fees_amount == Decimal("10000.00")
        assert detail.fine_amount == Decimal("250.00")
        assert detail.total_paid == Decimal("15000.00")

    async def test_student_payment_summary(self, db_session: AsyncSession):
        student = await _admit(db_session)
        service = PaymentService(db_session)
        await service.create_payment(_payment(student), created_by_id=1)
        await service.create_payment(
            _payment(student, amount_type=AmountType.ADMIN, amount=Decimal("5000")), created_by_id=1
        )

        summaries = await service.get_student_payment_summary(student.id)

        assert len(summaries) == 1
        summary = summaries[0]
        assert summary.admin_pending == Decimal("0.00")
        assert summary.fees_paid == Decimal("10000.00")
        assert summary.fees_pending == Decimal("35000.00")
        assert summary.total_pending == Decimal("35000.00")


class TestPaymentEndpoints:
    """Tests for payment API endpoints."""

    async def _create_auth(
        self, db_session: AsyncSession, role: UserRole = UserRole.SUPER_ADMIN
    ) -> str:
        """Helper to create a user and get a token."""
        auth_service = AuthService(db_session)
        email = f"{role.value.lower()}@consultancy.com"
        await auth_service.create_user(
            email=email,
            password="Passw0rd123",
            full_name="Neha Kapoor",
            role=role,
        )
        await db_session.commit()
        _, access_token, _ = await auth_service.authenticate(email, "Passw0rd123")
        return access_token

    def _payload(self, student: Student, **overrides) -> dict:
        payload = {
            "studentId": student.id,
            "academicRecordId": student.academic_records[0].id,
            "amountType": "feesAmount",
            "amount": "10000.00",
            "paymentMode": "Cheque (123)",
            "transactionNumber": "CHQ-123",
            "receivedDate": "2025-05-20",
            "approvedBy": "Neha Kapoor",
        }
        payload.update(overrides)
        return payload

    async def test_create_and_get_payment(self, client: AsyncClient, db_session: AsyncSession):
        token = await self._create_auth(db_session)
        headers = {"Authorization": f"Bearer {token}"}
        student = await _admit(db_session)

        response = await client.post("/api/v1/payments", json=self._payload(student), headers=headers)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["amount_type"] == "feesAmount"
        assert data["course_year"] == "1st"
        assert data["roll_number"] == "P-001"
        assert Decimal(data["amount"]) == Decimal("10000.00")

        response = await client.get(f"/api/v1/payments/{data['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["transaction_number"] == "CHQ-123"

    async def test_invalid_payment_mode(self, client: AsyncClient, db_session: AsyncSession):
        token = await self._create_auth(db_session)
        student = await _admit(db_session)

        response = await client.post(
            "/api/v1/payments",
            json=self._payload(student, paymentMode="barter"),
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 422

    async def test_accountant_cannot_record_payment(
        self, client: AsyncClient, db_session: AsyncSession
    ):
        token = await self._create_auth(db_session, UserRole.ACCOUNTANT)
        student = await _admit(db_session)

        response = await client.post(
            "/api/v1/payments",
            json=self._payload(student),
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 403

    async def test_payments_by_staff_and_has_handover(
        self, client: AsyncClient, db_session: AsyncSession
    ):
        token = await self._create_auth(db_session)
        headers = {"Authorization": f"Bearer {token}"}
        student = await _admit(db_session)
        created = await client.post(
            "/api/v1/payments", json=self._payload(student), headers=headers
        )
        payment_id = created.json()["data"]["id"]

        response = await client.get("/api/v1/payments/payments-by-staff/Neha Kapoor", headers=headers)
        assert response.status_code == 200
        rows = response.json()["data"]
        assert len(rows) == 1
        assert rows[0]["full_handover_only"] is True

        response = await client.get(f"/api/v1/payments/{payment_id}/has-handover", headers=headers)
        assert response.json()["data"] == {"payment_id": payment_id, "has_handover": False}

    async def test_delete_payment(self, client: AsyncClient, db_session: AsyncSession):
        token = await self._create_auth(db_session)
        headers = {"Authorization": f"Bearer {token}"}
        student = await _admit(db_session)
        created = await client.post(
            "/api/v1/payments", json=self._payload(student), headers=headers
        )
        payment_id = created.json()["data"]["id"]

        response = await client.delete(f"/api/v1/payments/{payment_id}", headers=headers)
        assert response.status_code == 200

        response = await client.get(f"/api/v1/payments/{payment_id}", headers=headers)
        assert response.status_code == 404

    async def test_payment_details_endpoint(self, client: AsyncClient, db_session: AsyncSession):
        token = await self._create_auth(db_session)
        headers = {"Authorization": f"Bearer {token}"}
        student = await _admit(db_session)
        await client.post("/api/v1/payments", json=self._payload(student), headers=headers)

        response = await client.get(
            f"/api/v1/payments/details?student_id={student.id}", headers=headers
        )
        assert response.status_code == 200
        details = response.json()["data"]
        assert len(details) == 1
        assert details[0]["payment_mode"] == "One-Time"
        assert Decimal(details[0]["fees_amount"]) == Decimal("10000.00")
