"""booking_reminders

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

Adds the booking_reminders table: 24 hour and 2 hour notices scheduled
when a booking is confirmed.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "booking_reminders",
        sa.Column("reminder_id", sa.String(36), primary_key=True),
        sa.Column("booking_id", sa.String(36), sa.ForeignKey("bookings.booking_id"), nullable=False, index=True),
        sa.Column("reminder_type", sa.String(25), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("booking_id", "reminder_type", name="uq_booking_reminders_type"),
    )
    op.create_index("ix_booking_reminders_due", "booking_reminders", ["is_active", "scheduled_for"])


def downgrade() -> None:
    op.drop_index("ix_booking_reminders_due", table_name="booking_reminders")
    op.drop_table("booking_reminders")
