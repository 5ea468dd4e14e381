"""reservation and slot guard

Revision ID: 3c1f9a2d7b64
Revises:
Create Date: 2026-10-17 09:12:44.318207

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = '3c1f9a2d7b64'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "reservation",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("guest_name", sa.String(100), nullable=False),
        sa.Column("guest_email", sa.String(255), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("reservation_date", sa.Date(), nullable=False),
        sa.Column("reservation_time", sa.Time(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("special_request", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("party_size BETWEEN 1 AND 4", name="ck_reservation_party_size"),
        sa.CheckConstraint(
            "status IN ('CONFIRMED', 'CANCELLED')", name="ck_reservation_status"
        ),
    )
    op.create_index(
        "idx_reservation_slot_status",
        "reservation",
        ["reservation_date", "reservation_time", "status"],
    )
    op.create_index("idx_reservation_created_at", "reservation", ["created_at"])

    op.create_table(
        "reservation_slot",
        sa.Column("slot_date", sa.Date(), nullable=False),
        sa.Column("slot_time", sa.Time(), nullable=False),
        sa.Column("lock_version", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("slot_date", "slot_time", name="pk_reservation_slot"),
    )


def downgrade() -> None:
    op.drop_table("reservation_slot")
    op.drop_index("idx_reservation_created_at", table_name="reservation")
    op.drop_index("idx_reservation_slot_status", table_name="reservation")
    op.drop_table("reservation")
