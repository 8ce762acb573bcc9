"""Reservations table (SQL-only).

Revision ID: 001_reservations
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from pathlib import Path

from alembic import op


# revision identifiers, used by Alembic.
revision = "001_reservations"
down_revision = None
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parents[1] / "sql" / "001_reservations.sql"


def upgrade() -> None:
    # Raw execution to support DO $$ ... $$ blocks.
    conn = op.get_bind()
    conn.exec_driver_sql(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS reservations")
    op.execute("DROP TYPE IF EXISTS reservation_status")
