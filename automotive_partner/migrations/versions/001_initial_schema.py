"""Initial schema: users and settlements.

Revision: 001_initial_schema
Created:  2026-10-18

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. users
  2. settlements (FK to users, unique natural key on user + month)
  3. Indexes

ON DELETE policies:
  settlements.user_id → RESTRICT (cannot delete a user with settlements)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration: no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:

    # ── Step 1: users ──────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="driver"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(first_name)) > 0",
            name="ck_users_first_name_nonempty",
        ),
        sa.CheckConstraint(
            "LENGTH(TRIM(last_name)) > 0",
            name="ck_users_last_name_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
        sa.CheckConstraint(
            "role IN ('driver', 'admin')",
            name="ck_users_role_valid",
        ),
    )

    # ── Step 2: settlements ────────────────────────────────────────────────
    # month_and_year is always the first day of the month.
    # UNIQUE(user_id, month_and_year) is what rejects a concurrent second
    # completion of the same month.

    op.create_table(
        "settlements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_settlements_user"),
            nullable=False,
        ),
        sa.Column("month_and_year", sa.Date(), nullable=False),
        sa.Column("net_profit", sa.Numeric(19, 2), nullable=False),
        sa.Column("factor", sa.Numeric(19, 2), nullable=False),
        sa.Column("tips", sa.Numeric(19, 2), nullable=False),
        sa.Column("penalties", sa.Numeric(19, 2), nullable=False),
        sa.Column("final_profit", sa.Numeric(38, 4), nullable=False),
        sa.Column(
            "bug_reported",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_settlements"),
        sa.UniqueConstraint(
            "user_id",
            "month_and_year",
            name="uq_settlements_user_month",
        ),
        sa.CheckConstraint("net_profit >= 0", name="ck_settlements_net_profit_nonneg"),
        sa.CheckConstraint("factor >= 0",     name="ck_settlements_factor_nonneg"),
        sa.CheckConstraint("tips >= 0",       name="ck_settlements_tips_nonneg"),
        sa.CheckConstraint("penalties >= 0",  name="ck_settlements_penalties_nonneg"),
    )

    # ── Step 3: indexes ────────────────────────────────────────────────────

    op.create_index("ix_settlements_user_id", "settlements", ["user_id"])
    op.create_index("ix_settlements_bug_reported", "settlements", ["bug_reported"])


def downgrade() -> None:
    """
    Drop all objects created in upgrade(), in reverse dependency order.
    Local development reset only; production uses corrective migrations.
    """
    op.drop_index("ix_settlements_bug_reported", table_name="settlements")
    op.drop_index("ix_settlements_user_id",      table_name="settlements")

    op.drop_table("settlements")
    op.drop_table("users")
