"""Payment transactions and cash handovers

Revision ID: 003_payments_handovers
Revises: 002_students
Create Date: 2026-10-12

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "003_payments_handovers"
down_revision: Union[str, None] = "002_students"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "payment_transactions",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("academic_record_id", sa.BigInteger(), nullable=False),
        sa.Column("course_year", sa.String(10), nullable=False),
        sa.Column("session_year", sa.String(9), nullable=False),
        sa.Column("amount_type", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("payment_mode", sa.String(100), nullable=False),
        sa.Column("transaction_number", sa.String(100), nullable=True),
        sa.Column("received_date", sa.Date(), nullable=False),
        sa.Column("approved_by", sa.String(200), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"]),
        sa.ForeignKeyConstraint(["academic_record_id"], ["academic_records.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.UniqueConstraint("transaction_number", name="uq_payment_transactions_transaction_number"),
        sa.CheckConstraint("amount > 0", name="ck_payment_transactions_amount_positive"),
        sa.CheckConstraint(
            "amount_type IN ('adminAmount', 'feesAmount', 'fineAmount', 'refundAmount')",
            name="ck_payment_transactions_amount_type",
        ),
    )
    op.create_index(
        "ix_payment_transactions_student_id", "payment_transactions", ["student_id"]
    )
    op.create_index(
        "ix_payment_transactions_academic_record_id",
        "payment_transactions",
        ["academic_record_id"],
    )
    op.create_index(
        "ix_payment_transactions_received_date", "payment_transactions", ["received_date"]
    )
    op.create_index(
        "ix_payment_transactions_approved_by", "payment_transactions", ["approved_by"]
    )

    op.create_table(
        "cash_handovers",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("payment_id", sa.BigInteger(), nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("received_by", sa.String(200), nullable=False),
        sa.Column("handed_over_to", sa.String(200), nullable=False),
        sa.Column("handover_date", sa.Date(), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("receipt_number", sa.String(50), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("verified_by", sa.String(200), nullable=True),
        sa.Column("verified_on", sa.Date(), nullable=True),
        sa.Column("created_by_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["payment_id"], ["payment_transactions.id"]),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.CheckConstraint("amount > 0", name="ck_cash_handovers_amount_positive"),
    )
    op.create_index("ix_cash_handovers_payment_id", "cash_handovers", ["payment_id"])
    op.create_index("ix_cash_handovers_student_id", "cash_handovers", ["student_id"])
    op.create_index("ix_cash_handovers_received_by", "cash_handovers", ["received_by"])
    op.create_index("ix_cash_handovers_receipt_number", "cash_handovers", ["receipt_number"])
    op.create_index("ix_cash_handovers_created_at", "cash_handovers", ["created_at"])


def downgrade() -> None:
    op.drop_table("cash_handovers")
    op.drop_table("payment_transactions")
