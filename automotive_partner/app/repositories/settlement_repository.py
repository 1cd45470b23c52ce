"""
repositories/settlement_repository.py: Settlement persistence queries.

The only module that builds SQL for the settlements table. Every function
takes the SQLAlchemy session as a plain argument.

Layer rules:
  - No Flask imports. No AppError: "not found" is returned as None and the
    service decides which error that means.
  - flush() only. Commits are the route's responsibility.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from automotive_partner.app.models.settlement import Settlement


def save(settlement: Settlement, session: Session) -> Settlement:
    """
    Adds the settlement to the session and flushes so the id is assigned.

    A duplicate (user_id, month_and_year) surfaces here as
    sqlalchemy.exc.IntegrityError.
    """
    session.add(settlement)
    session.flush()
    return settlement


def find_by_id(
        settlement_id: int,
        session: Session,
        for_update: bool = False,
) -> Settlement | None:
    """
    Returns the settlement with this id, or None.

    for_update=True takes a row lock (SELECT ... FOR UPDATE) held until the
    request's transaction ends. Dialects without row locks ignore it.
    """
    stmt = select(Settlement).where(Settlement.id == settlement_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def find_by_user_id_and_date(
        user_id: int,
        month_and_year: date,
        session: Session,
        for_update: bool = False,
) -> Settlement | None:
    """Returns the settlement for (user_id, month_and_year), or None.

    month_and_year must already be normalised to the first day of the month.
    """
    stmt = select(Settlement).where(
        Settlement.user_id == user_id,
        Settlement.month_and_year == month_and_year,
    )
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def find_all_with_bug_reported_true(session: Session) -> list[Settlement]:
    """All settlements flagged with a bug report, in id (insertion) order."""
    stmt = (
        select(Settlement)
        .where(Settlement.bug_reported.is_(True))
        .order_by(Settlement.id)
    )
    return list(session.execute(stmt).scalars().all())
