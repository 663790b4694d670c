"""Booking calendar schema: blocked periods, bookings, price rules, settings.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op


# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

SQL_FILE = Path(__file__).resolve().parents[1] / "sql" / "001_initial.sql"


def upgrade() -> None:
    # exec_driver_sql runs the whole script in one round trip
    op.get_bind().exec_driver_sql(SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute(
        """
        DROP TABLE IF EXISTS outbox_events;
        DROP TABLE IF EXISTS email_action_tokens;
        DROP TABLE IF EXISTS global_settings;
        DROP TABLE IF EXISTS price_rules;
        DROP TABLE IF EXISTS bookings;
        DROP TABLE IF EXISTS blocked_periods;
        """
    )
