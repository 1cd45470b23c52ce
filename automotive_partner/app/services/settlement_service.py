"""
services/settlement_service.py: Settlement lifecycle.

A settlement is one user's financial outcome for one calendar month. It is
created once by `complete`, may be corrected by `update`, and can be flagged
by the user through `report_bug`.

Check order inside every operation (first failure wins):
  1. existence  : USER_NOT_FOUND / SETTLEMENT_NOT_FOUND (404)
  2. state      : SETTLEMENT_INCOMPLETE (404), SETTLEMENT_ALREADY_COMPLETED (409),
                   BUG_ALREADY_REPORTED (409)
  3. amounts    : settlement_rules.check_settlement_amounts (400)

Accepted amounts are stored rounded half-up to two decimal places
(settlement_rules.normalise_amounts); final_profit is computed from the
rounded values.

Every public function returns the settlement view produced by
settlement_mapper (is_bug_reported returns a plain bool).

Transactions:
  Each operation runs inside the request's single transaction. This module
  only flushes; the route commits once and the error handler rolls back, so
  a rejected operation leaves nothing behind.
  - complete: the unique (user_id, month_and_year) constraint decides between
    two concurrent completions. The loser's IntegrityError is translated into
    SETTLEMENT_ALREADY_COMPLETED.
  - update / report_bug: the row is read with SELECT ... FOR UPDATE so the
    check and the write cannot interleave with another request.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from automotive_partner.app.errors import AppError, ErrorCode
from automotive_partner.app.models.settlement import Settlement
from automotive_partner.app.repositories import settlement_repository
from automotive_partner.app.services import settlement_mapper
from automotive_partner.app.services.settlement_rules import (
    adjust_date,
    calculate_final_profit,
    check_settlement_amounts,
    normalise_amounts,
)
from automotive_partner.app.services.user_service import require_user

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _settlement_incomplete(user_id: int, month_and_year: date) -> AppError:
    return AppError(
        ErrorCode.SETTLEMENT_INCOMPLETE,
        f"The settlement for {month_and_year:%Y-%m} has not been completed yet.",
        404,
        details={"user_id": user_id, "month_and_year": month_and_year.isoformat()},
    )


def _settlement_already_completed(user_id: int, month_and_year: date) -> AppError:
    return AppError(
        ErrorCode.SETTLEMENT_ALREADY_COMPLETED,
        f"The settlement for {month_and_year:%Y-%m} has already been completed.",
        409,
        details={"user_id": user_id, "month_and_year": month_and_year.isoformat()},
    )


def _get_existing_settlement(
        user_id: int,
        month_and_year: date,
        session: Session,
        for_update: bool = False,
) -> Settlement:
    """Returns the settlement for the month or raises SETTLEMENT_INCOMPLETE (404)."""
    settlement = settlement_repository.find_by_user_id_and_date(
        user_id, month_and_year, session, for_update=for_update,
    )
    if settlement is None:
        raise _settlement_incomplete(user_id, month_and_year)
    return settlement


def _ensure_settlement_not_completed(
        user_id: int,
        month_and_year: date,
        session: Session,
) -> None:
    """Raises SETTLEMENT_ALREADY_COMPLETED (409) if the month is already settled."""
    existing = settlement_repository.find_by_user_id_and_date(
        user_id, month_and_year, session,
    )
    if existing is not None:
        raise _settlement_already_completed(user_id, month_and_year)


def _get_settlement_or_404(
        settlement_id: int,
        session: Session,
        for_update: bool = False,
) -> Settlement:
    """Returns the Settlement or raises SETTLEMENT_NOT_FOUND (404)."""
    settlement = settlement_repository.find_by_id(
        settlement_id, session, for_update=for_update,
    )
    if settlement is None:
        raise AppError(
            ErrorCode.SETTLEMENT_NOT_FOUND,
            f"Settlement {settlement_id} does not exist.",
            404,
            details={"settlement_id": settlement_id},
        )
    return settlement


def _final_profit_for(amounts: dict):
    return calculate_final_profit(
        amounts["net_profit"],
        amounts["factor"],
        amounts["tips"],
        amounts["penalties"],
    )


# ── Public service functions ───────────────────────────────────────────────

def get_info(user_id: int, date_value: date, session: Session) -> dict:
    """
    Returns the settlement of user_id for the month containing date_value.

    Raises:
      USER_NOT_FOUND (404)       : unknown user
      SETTLEMENT_INCOMPLETE (404): the month has not been completed yet
    """
    require_user(user_id, session)

    month_and_year = adjust_date(date_value)
    settlement = _get_existing_settlement(user_id, month_and_year, session)

    return settlement_mapper.to_settlement_response(settlement)


def complete(data: dict, session: Session) -> dict:
    """
    Records the settlement of a user for a month.

    Args:
        data: Validated dict from SettlementRequestSchema.
              Keys: user_id, date, net_profit, factor, tips, penalties.

    Raises (in this order):
      USER_NOT_FOUND (404)
      SETTLEMENT_ALREADY_COMPLETED (409): also for a concurrent duplicate
      EMPTY_* / INCORRECT_* / AMOUNT_OUT_OF_RANGE (400): see settlement_rules

    Returns:
        The view of the new settlement; bug_reported is always False.
    """
    user_id: int = data["user_id"]
    require_user(user_id, session)

    month_and_year = adjust_date(data["date"])
    _ensure_settlement_not_completed(user_id, month_and_year, session)

    check_settlement_amounts(data)
    amounts = normalise_amounts(data)

    final_profit = _final_profit_for(amounts)
    settlement = settlement_mapper.to_settlement(
        {**data, **amounts}, final_profit, False,
    )

    try:
        settlement_repository.save(settlement, session)
    except IntegrityError:
        # Another request completed the same month between our check and flush.
        session.rollback()
        raise _settlement_already_completed(user_id, month_and_year)

    logger.info(
        "Settlement %s completed for user %s, month %s",
        settlement.id, user_id, month_and_year.isoformat(),
    )
    return settlement_mapper.to_settlement_response(settlement)


def update(data: dict, session: Session) -> dict:
    """
    Overwrites the amounts of an already completed settlement.

    Recomputes final_profit and clears any pending bug report. Never creates
    a settlement.

    Raises (in this order):
      USER_NOT_FOUND (404)
      SETTLEMENT_INCOMPLETE (404): nothing to update for that month
      EMPTY_* / INCORRECT_* / AMOUNT_OUT_OF_RANGE (400)
    """
    user_id: int = data["user_id"]
    require_user(user_id, session)

    month_and_year = adjust_date(data["date"])
    settlement = _get_existing_settlement(
        user_id, month_and_year, session, for_update=True,
    )

    check_settlement_amounts(data)
    amounts = normalise_amounts(data)

    settlement.net_profit   = amounts["net_profit"]
    settlement.factor       = amounts["factor"]
    settlement.tips         = amounts["tips"]
    settlement.penalties    = amounts["penalties"]
    settlement.final_profit = _final_profit_for(amounts)
    settlement.bug_reported = False
    session.flush()

    logger.info(
        "Settlement %s updated for user %s, month %s",
        settlement.id, user_id, month_and_year.isoformat(),
    )
    return settlement_mapper.to_settlement_response(settlement)


def report_bug(settlement_id: int, session: Session) -> dict:
    """
    Flags a settlement as disputed.

    Raises:
      SETTLEMENT_NOT_FOUND (404)
      BUG_ALREADY_REPORTED (409): the flag is already set
    """
    settlement = _get_settlement_or_404(settlement_id, session, for_update=True)

    if settlement.bug_reported:
        raise AppError(
            ErrorCode.BUG_ALREADY_REPORTED,
            f"A bug has already been reported for settlement {settlement_id}.",
            409,
            details={"settlement_id": settlement_id},
        )

    settlement.bug_reported = True
    session.flush()

    logger.info("Bug reported for settlement %s", settlement_id)
    return settlement_mapper.to_settlement_response(settlement)


def is_bug_reported(settlement_id: int, session: Session) -> bool:
    """Returns the bug flag of a settlement. Raises SETTLEMENT_NOT_FOUND (404)."""
    return _get_settlement_or_404(settlement_id, session).bug_reported


def find_all_with_reported_bug(session: Session) -> list[dict]:
    """Views of every flagged settlement, in id order."""
    return [
        settlement_mapper.to_settlement_response(s)
        for s in settlement_repository.find_all_with_bug_reported_true(session)
    ]
