"""DB-level exclusion constraint against overlapping ACTIVE reservations.

Second layer behind the application's conflict-set lock: even if that lock
is bypassed, two ACTIVE rows can never share a night. daterange '[)' matches
the half-open stay convention, so checkout day == next checkin is allowed.

Revision ID: 002_no_active_overlap
Revises: 001_reservations
Create Date: 2026-10-17
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "002_no_active_overlap"
down_revision = "001_reservations"
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parents[1] / "sql" / "002_no_active_overlap.sql"


def upgrade() -> None:
    op.execute(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute("ALTER TABLE reservations DROP CONSTRAINT IF EXISTS no_active_overlap")
    # btree_gist is kept: other indexes may depend on it.
