"""Colleges, courses, student discontinue fields and course enquiries

Revision ID: 004_colleges_enquiries
Revises: 003_payments_handovers
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "004_colleges_enquiries"
down_revision: Union[str, None] = "003_payments_handovers"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "colleges",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
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
        sa.UniqueConstraint("name", name="uq_colleges_name"),
    )

    op.create_table(
        "courses",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("duration_years", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
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
        sa.UniqueConstraint("name", name="uq_courses_name"),
    )

    op.add_column("students", sa.Column("college_id", sa.BigInteger(), nullable=True))
    op.add_column("students", sa.Column("course_id", sa.BigInteger(), nullable=True))
    op.add_column("students", sa.Column("discontinued_on", sa.Date(), nullable=True))
    op.add_column("students", sa.Column("discontinued_by", sa.String(200), nullable=True))
    op.add_column("students", sa.Column("discontinue_reason", sa.Text(), nullable=True))
    op.create_foreign_key(
        "fk_students_college_id", "students", "colleges", ["college_id"], ["id"]
    )
    op.create_foreign_key(
        "fk_students_course_id", "students", "courses", ["course_id"], ["id"]
    )
    op.create_index("ix_students_college_id", "students", ["college_id"], unique=False)
    op.create_index("ix_students_course_id", "students", ["course_id"], unique=False)

    op.create_table(
        "course_enquiries",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("mobile_number", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("course", sa.String(200), nullable=False),
        sa.Column("is_contacted", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("contacted_by", sa.String(200), nullable=True),
        sa.Column("contacted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
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
        sa.UniqueConstraint("email", name="uq_course_enquiries_email"),
        sa.UniqueConstraint("mobile_number", name="uq_course_enquiries_mobile_number"),
    )
    op.create_index(
        "ix_course_enquiries_is_contacted", "course_enquiries", ["is_contacted"], unique=False
    )


def downgrade() -> None:
    op.drop_table("course_enquiries")
    op.drop_index("ix_students_course_id", table_name="students")
    op.drop_index("ix_students_college_id", table_name="students")
    op.drop_constraint("fk_students_course_id", "students", type_="foreignkey")
    op.drop_constraint("fk_students_college_id", "students", type_="foreignkey")
    op.drop_column("students", "discontinue_reason")
    op.drop_column("students", "discontinued_by")
    op.drop_column("students", "discontinued_on")
    op.drop_column("students", "course_id")
    op.drop_column("students", "college_id")
    op.drop_table("courses")
    op.drop_table("colleges")
