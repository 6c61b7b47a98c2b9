"""Move a legacy single users.role column into user_roles

Revision ID: 0002_backfill_user_roles
Revises: 0001_initial
Create Date: 2025-09-15
"""
from __future__ import annotations

import logging

from alembic import op
import sqlalchemy as sa

log = logging.getLogger(__name__)

revision = "0002_backfill_user_roles"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Only databases that predate multi-role support carry users.role
    bind = op.get_bind()
    insp = sa.inspect(bind)
    cols = {c["name"] for c in insp.get_columns("users")}
    if "role" not in cols:
        log.info("users.role absent; nothing to backfill")
        return

    op.execute(
        sa.text(
            """
            INSERT INTO user_roles (user_id, role, school_id, created_at, updated_at)
            SELECT u.id, u.role, u.school_id, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP
            FROM users u
            WHERE u.role IS NOT NULL
              AND NOT EXISTS (
                SELECT 1 FROM user_roles ur WHERE ur.user_id = u.id AND ur.role = u.role
              )
            """
        )
    )
    op.execute(sa.text("UPDATE users SET active_role = role WHERE active_role IS NULL AND role IS NOT NULL"))

    with op.batch_alter_table("users") as batch:
        batch.drop_column("role")


def downgrade() -> None:
    with op.batch_alter_table("users") as batch:
        batch.add_column(sa.Column("role", sa.String(32)))
    op.execute(sa.text("UPDATE users SET role = active_role"))
