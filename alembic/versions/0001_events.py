"""events table

Revision ID: 0001_events
Revises:
Create Date: 2026-10-19

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_events"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "events",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("color", sa.String(16), nullable=False, server_default="#6366f1"),
        sa.Column("all_day", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("event_type", sa.String(16), nullable=True, server_default="event"),
        sa.Column("client_id", sa.String(64), nullable=True),
        sa.Column("recurrence", sa.String(16), nullable=True),
        sa.Column("recurrence_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_events_user_id", "events", ["user_id"])
    op.create_index("ix_events_user_start", "events", ["user_id", "start_time"])


def downgrade():
    op.drop_index("ix_events_user_start", table_name="events")
    op.drop_index("ix_events_user_id", table_name="events")
    op.drop_table("events")
