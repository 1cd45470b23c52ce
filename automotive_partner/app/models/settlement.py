"""
models/settlement.py: Settlement table definition.

One row per (user, calendar month). No business logic. No imports from
services or routes.

Key design points:
  - Monetary inputs use Numeric(19, 2): never Float. settlement_rules rounds
    accepted amounts to two places and caps them at MAX_AMOUNT, so they fit.
  - final_profit is Numeric(38, 4): net_profit * factor multiplies two
    2-dp values, so four decimal places store the result exactly.
  - month_and_year is always the first day of its month. Together with
    user_id it is the natural key (uq_settlements_user_month). The unique
    constraint is what stops two concurrent completions for the same month;
    settlement_service translates its violation into
    SETTLEMENT_ALREADY_COMPLETED.
  - CHECK constraints mirror the non-negativity rules in
    services/settlement_rules.py. The service rejects bad amounts first;
    the DB constraints are the last line of defence.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from automotive_partner.app.extensions import db


class Settlement(db.Model):
    __tablename__ = "settlements"

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "month_and_year",
            name="uq_settlements_user_month",
        ),
        CheckConstraint("net_profit >= 0", name="ck_settlements_net_profit_nonneg"),
        CheckConstraint("factor >= 0",     name="ck_settlements_factor_nonneg"),
        CheckConstraint("tips >= 0",       name="ck_settlements_tips_nonneg"),
        CheckConstraint("penalties >= 0",  name="ck_settlements_penalties_nonneg"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # ON DELETE RESTRICT: cannot delete a user who has settlements.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    month_and_year: Mapped[date] = mapped_column(Date, nullable=False)

    net_profit: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)

    factor: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)

    tips: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)

    penalties: Mapped[Decimal] = mapped_column(Numeric(19, 2), nullable=False)

    # Derived: net_profit * factor + tips - penalties. Never set by a caller.
    final_profit: Mapped[Decimal] = mapped_column(Numeric(38, 4), nullable=False)

    bug_reported: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="settlements",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Settlement id={self.id} "
            f"user_id={self.user_id} "
            f"month={self.month_and_year} "
            f"final_profit={self.final_profit} "
            f"bug_reported={self.bug_reported}>"
        )
