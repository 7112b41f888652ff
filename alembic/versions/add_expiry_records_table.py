"""add expiry_records table

Revision ID: add_expiry_records
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "add_expiry_records"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "expiry_records",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("subject", sa.Text(), nullable=False),
        # '' = no scope; NULL would never collide in the unique constraint
        sa.Column("scope", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cause_code", sa.Text(), nullable=True),
        sa.Column("renewable", sa.Boolean(), nullable=True),
        sa.Column("note", sa.String(length=500), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_unique_constraint(
        "uq_expiry_records_subject_scope",
        "expiry_records",
        ["subject", "scope"],
    )


def downgrade() -> None:
    op.drop_constraint("uq_expiry_records_subject_scope", "expiry_records", type_="unique")
    op.drop_table("expiry_records")
