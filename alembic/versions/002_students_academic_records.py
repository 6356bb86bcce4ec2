"""Students, academic records and EMI installments

Revision ID: 002_students
Revises: 001_initial
Create Date: 2026-10-12

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002_students"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "students",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("roll_number", sa.String(50), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(10), nullable=False),
        sa.Column("mobile_number", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("father_name", sa.String(200), nullable=True),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("admission_mode", sa.String(50), nullable=True),
        sa.Column("admission_date", sa.Date(), nullable=True),
        sa.Column("is_lateral", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.UniqueConstraint("email", name="uq_students_email"),
    )
    op.create_index("ix_students_roll_number", "students", ["roll_number"], unique=True)
    op.create_index("ix_students_status", "students", ["status"], unique=False)

    op.create_table(
        "academic_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("course_year", sa.String(10), nullable=False),
        sa.Column("session_year", sa.String(9), nullable=False),
        sa.Column("admin_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("fees_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("payment_mode", sa.String(20), nullable=False, server_default="One-Time"),
        sa.Column("number_of_emi", sa.Integer(), nullable=True),
        sa.Column("ledger_number", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_by_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.UniqueConstraint(
            "student_id", "course_year", name="uq_academic_records_student_course_year"
        ),
        sa.CheckConstraint(
            "course_year IN ('1st', '2nd', '3rd', '4th')",
            name="ck_academic_records_course_year",
        ),
        sa.CheckConstraint(
            "payment_mode IN ('One-Time', 'EMI')",
            name="ck_academic_records_payment_mode",
        ),
    )
    op.create_index(
        "ix_academic_records_student_id", "academic_records", ["student_id"], unique=False
    )
    op.create_index(
        "ix_academic_records_session_year", "academic_records", ["session_year"], unique=False
    )

    op.create_table(
        "emi_details",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("academic_record_id", sa.BigInteger(), nullable=False),
        sa.Column("emi_number", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["academic_record_id"], ["academic_records.id"], ondelete="CASCADE"
        ),
        sa.CheckConstraint("amount > 0", name="ck_emi_details_amount_positive"),
    )
    op.create_index(
        "ix_emi_details_academic_record_id", "emi_details", ["academic_record_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("emi_details")
    op.drop_table("academic_records")
    op.drop_table("students")
