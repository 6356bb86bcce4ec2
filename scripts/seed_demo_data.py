#!/usr/bin/env python3
"""
Seed the database with demo staff, students, payments and a handover.

Students cover the interesting progression states: a 1st year student,
a promoted student with two academic records, a lateral-entry student and
one on an EMI plan. Payments are split across cash, cheque and UPI so the
handover screens have something to show.

Usage:
    python scripts/seed_demo_data.py --dry-run   # roll back at the end
    python scripts/seed_demo_data.py --confirm   # commit

Requires migrations to be applied (alembic upgrade head).
"""

import asyncio
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.models import User, UserRole
from src.core.auth.password import hash_password
from src.core.config import settings
from src.core.database.session import async_session
from src.core.documents.number_generator import DocumentNumberGenerator
from src.modules.handovers.models import CashHandover
from src.modules.handovers.service import RECEIPT_PREFIX
from src.modules.payments.models import AmountType, PaymentTransaction
from src.modules.students.models import (
    AcademicRecord,
    CourseYear,
    EmiDetail,
    FeePlan,
    Gender,
    Student,
    StudentStatus,
)
from src.modules.students.progression import session_label

DEMO_PASSWORD = "demo1234"
CURRENT_START = date.today().year
PREVIOUS_START = CURRENT_START - 1

# email, full name, role
STAFF = [
    ("admin@consultancy.com", "Consultancy Admin", UserRole.SUPER_ADMIN),
    ("manager@consultancy.com", "Priya Menon", UserRole.ADMIN),
    ("counsellor@consultancy.com", "Neha Kapoor", UserRole.USER),
    ("accounts@consultancy.com", "Rahul Nair", UserRole.ACCOUNTANT),
]

# roll, first, last, gender, mobile, is_lateral, promoted to 2nd, EMI plan
STUDENTS = [
    ("CS-1001", "Asha", "Verma", Gender.FEMALE, "9876500001", False, False, False),
    ("CS-1002", "Karan", "Mehta", Gender.MALE, "9876500002", False, True, False),
    ("CS-1003", "Meera", "Iyer", Gender.FEMALE, "9876500003", True, False, False),
    ("CS-1004", "Dev", "Sharma", Gender.MALE, "9876500004", False, False, True),
]

ADMIN_AMOUNT = Decimal("5000.00")
FEES_AMOUNT = Decimal("45000.00")


async def seed_users(session: AsyncSession) -> dict[str, User]:
    """Create one user per role. Returns users by role."""
    existing = await session.execute(select(User).where(User.email == STAFF[0][0]))
    if existing.scalar_one_or_none():
        print("  Users already exist, skip.")
        result = await session.execute(select(User))
        return {u.role: u for u in result.scalars().all()}

    pw = hash_password(DEMO_PASSWORD)
    users = {}
    for email, full_name, role in STAFF:
        user = User(
            email=email,
            password_hash=pw,
            full_name=full_name,
            role=role.value,
            is_active=True,
        )
        session.add(user)
        users[role.value] = user
    await session.flush()
    print(f"  Created {len(users)} users (password: {DEMO_PASSWORD}).")
    return users


def _record(course_year: CourseYear, session_year: str, user_id: int, emi: bool) -> AcademicRecord:
    record = AcademicRecord(
        course_year=course_year.value,
        session_year=session_year,
        admin_amount=ADMIN_AMOUNT,
        fees_amount=FEES_AMOUNT,
        payment_mode=FeePlan.EMI.value if emi else FeePlan.ONE_TIME.value,
        number_of_emi=2 if emi else None,
        is_active=True,
        created_by_id=user_id,
    )
    if emi:
        start = date(int(session_year[:4]), 7, 1)
        record.emi_details = [
            EmiDetail(emi_number=1, amount=Decimal("25000.00"), due_date=start),
            EmiDetail(emi_number=2, amount=Decimal("25000.00"), due_date=start + timedelta(days=180)),
        ]
    return record


async def seed_students(session: AsyncSession, user_id: int) -> list[Student]:
    """Admit demo students with their academic records."""
    existing = await session.execute(select(Student).where(Student.roll_number == STUDENTS[0][0]))
    if existing.scalar_one_or_none():
        print("  Students already exist, skip.")
        return []

    students = []
    for roll, first, last, gender, mobile, is_lateral, promoted, emi in STUDENTS:
        first_year = CourseYear.SECOND if is_lateral else CourseYear.FIRST
        student = Student(
            roll_number=roll,
            first_name=first,
            last_name=last,
            gender=gender.value,
            mobile_number=mobile,
            email=f"{first.lower()}.{last.lower()}@example.com",
            admission_date=date(PREVIOUS_START, 7, 15),
            is_lateral=is_lateral,
            status=StudentStatus.ACTIVE.value,
            created_by_id=user_id,
        )
        student.academic_records.append(
            _record(first_year, session_label(PREVIOUS_START), user_id, emi)
        )
        if promoted:
            student.academic_records.append(
                _record(CourseYear.SECOND, session_label(CURRENT_START), user_id, emi)
            )
        session.add(student)
        students.append(student)
    await session.flush()
    print(f"  Created {len(students)} students.")
    return students


async def seed_payments(
    session: AsyncSession, students: list[Student], staff_name: str, user_id: int
) -> list[PaymentTransaction]:
    """Record a few payments held by one staff member."""
    modes = ["cash", "Cheque (000123)", "UPI ref 4455", "cash"]
    payments = []
    for student, mode in zip(students, modes):
        record = student.academic_records[-1]
        for amount_type, amount in (
            (AmountType.ADMIN, ADMIN_AMOUNT),
            (AmountType.FEES, Decimal("10000.00")),
        ):
            payment = PaymentTransaction(
                student_id=student.id,
                academic_record_id=record.id,
                course_year=record.course_year,
                session_year=record.session_year,
                amount_type=amount_type.value,
                amount=amount,
                payment_mode=mode,
                received_date=date.today() - timedelta(days=7),
                approved_by=staff_name,
                created_by_id=user_id,
            )
            session.add(payment)
            payments.append(payment)
    await session.flush()
    print(f"  Created {len(payments)} payments held by {staff_name}.")
    return payments


async def seed_handover(
    session: AsyncSession, payments: list[PaymentTransaction], handed_over_to: str, user: User
) -> None:
    """Hand over part of the first cash payment."""
    cash = next((p for p in payments if p.payment_mode == "cash"), None)
    if cash is None:
        return
    receipt = await DocumentNumberGenerator(session).generate(RECEIPT_PREFIX)
    session.add(
        CashHandover(
            payment_id=cash.id,
            student_id=cash.student_id,
            amount=Decimal("2000.00"),
            received_by=cash.approved_by,
            handed_over_to=handed_over_to,
            handover_date=date.today(),
            receipt_number=receipt,
            verified=True,
            verified_by=user.full_name,
            verified_on=date.today(),
            created_by_id=user.id,
        )
    )
    await session.flush()
    print(f"  Created handover {receipt}.")


async def run_seed(session: AsyncSession, dry_run: bool) -> None:
    users = await seed_users(session)
    admin = users[UserRole.SUPER_ADMIN.value]
    counsellor = users.get(UserRole.USER.value, admin)
    accounts = users.get(UserRole.ACCOUNTANT.value, admin)

    students = await seed_students(session, admin.id)
    if students:
        payments = await seed_payments(session, students, counsellor.full_name, counsellor.id)
        await seed_handover(session, payments, accounts.full_name, counsellor)

    if dry_run:
        await session.rollback()
        print("\n[DRY-RUN] Rolled back, no data written.")
    else:
        await session.commit()
        print("\nSeed completed successfully.")


async def main() -> None:
    import argparse
    parser = argparse.ArgumentParser(description="Seed database with consultancy demo data")
    parser.add_argument("--dry-run", action="store_true", help="Do not commit")
    parser.add_argument("--confirm", action="store_true", help="Commit changes")
    args = parser.parse_args()
    if not args.dry_run and not args.confirm:
        print("Use --dry-run or --confirm")
        sys.exit(1)

    print("Database:", settings.database_url.split("@")[-1] if "@" in settings.database_url else "?")
    print("Mode:", "DRY-RUN" if args.dry_run else "CONFIRM")
    async with async_session() as session:
        await run_seed(session, dry_run=args.dry_run)
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
