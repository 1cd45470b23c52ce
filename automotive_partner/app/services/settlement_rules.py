"""
services/settlement_rules.py: Settlement date normalisation, amount
validation and final profit computation.

Pure functions. No session, no Flask. Used identically by `complete` and
`update` in settlement_service.py.

Validation order is fixed: net_profit -> factor -> tips -> penalties.
The first failing check raises; errors are never accumulated.

Presence rules are deliberately asymmetric:
  net_profit, tips : may not be absent (EMPTY_* errors)
  factor, penalties: may be absent; an absent value counts as zero
All four may be zero, none may be negative. Once the sign rules pass, every
present amount must be at most MAX_AMOUNT (AMOUNT_OUT_OF_RANGE).

Amounts of any scale are accepted. normalise_amounts rounds them half-up to
two decimal places before they are stored, and final_profit is computed from
the rounded values.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from automotive_partner.app.errors import AppError, ErrorCode

ZERO = Decimal("0")

# Stored amounts keep two decimal places (the column scale).
CENT = Decimal("0.01")

# Largest accepted input. net_profit * factor then has at most 26 significant
# digits, exact under the default 28-digit decimal context, and every value
# fits the Numeric(19, 2) and Numeric(38, 4) columns.
MAX_AMOUNT = Decimal("99999999999.99")

AMOUNT_FIELDS = ("net_profit", "factor", "tips", "penalties")


def adjust_date(value: date) -> date:
    """Returns the first day of value's month."""
    return value.replace(day=1)


def _is_empty(amount: Decimal | None) -> bool:
    return amount is None


def _is_less_than_zero(amount: Decimal) -> bool:
    return amount < ZERO


def check_net_profit(net_profit: Decimal | None) -> None:
    if _is_empty(net_profit):
        raise AppError(
            ErrorCode.EMPTY_NET_AMOUNT,
            "Net profit is required.",
            400,
            field="net_profit",
        )
    if _is_less_than_zero(net_profit):
        raise AppError(
            ErrorCode.INCORRECT_NET_AMOUNT,
            "Net profit cannot be negative.",
            400,
            field="net_profit",
        )


def check_factor(factor: Decimal | None) -> None:
    # No presence check: an absent factor is zero.
    if factor is not None and _is_less_than_zero(factor):
        raise AppError(
            ErrorCode.INCORRECT_OPTIONAL_FACTOR,
            "Factor cannot be negative.",
            400,
            field="factor",
        )


def check_tips(tips: Decimal | None) -> None:
    if _is_empty(tips):
        raise AppError(
            ErrorCode.EMPTY_TIP_AMOUNT,
            "Tips amount is required.",
            400,
            field="tips",
        )
    if _is_less_than_zero(tips):
        raise AppError(
            ErrorCode.INCORRECT_TIP_AMOUNT,
            "Tips amount cannot be negative.",
            400,
            field="tips",
        )


def check_penalties(penalties: Decimal | None) -> None:
    # No presence check: absent penalties are zero.
    if penalties is not None and _is_less_than_zero(penalties):
        raise AppError(
            ErrorCode.INCORRECT_OPTIONAL_PENALTY_AMOUNT,
            "Penalties amount cannot be negative.",
            400,
            field="penalties",
        )


def check_settlement_amounts(data: dict) -> None:
    """
    Validates the four monetary fields of a settlement request.

    Args:
        data: request dict; keys net_profit, factor, tips, penalties
              (Decimal or None, any of them may be missing).

    Raises:
        AppError with the first violated rule's code (400).
    """
    check_net_profit(data.get("net_profit"))
    check_factor(data.get("factor"))
    check_tips(data.get("tips"))
    check_penalties(data.get("penalties"))
    check_amount_bounds(data)


def check_amount_bounds(data: dict) -> None:
    for field in AMOUNT_FIELDS:
        amount = data.get(field)
        if amount is not None and amount > MAX_AMOUNT:
            raise AppError(
                ErrorCode.AMOUNT_OUT_OF_RANGE,
                f"Amounts cannot exceed {MAX_AMOUNT}.",
                400,
                field=field,
            )


def or_zero(amount: Decimal | None) -> Decimal:
    """Absent optional amounts (factor, penalties) count as zero."""
    return ZERO if amount is None else amount


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def normalise_amounts(data: dict) -> dict:
    """
    The four amounts as they are stored: absent ones as zero, all rounded
    half-up to two decimal places. Call only after check_settlement_amounts.
    """
    return {field: to_cents(or_zero(data.get(field))) for field in AMOUNT_FIELDS}


def calculate_final_profit(
        net_profit: Decimal,
        factor: Decimal,
        tips: Decimal,
        penalties: Decimal,
) -> Decimal:
    """
    final_profit = net_profit * factor + tips - penalties

    Exact Decimal arithmetic, no rounding. Callers pass normalised amounts
    (two decimal places), so the result has at most 4, the final_profit
    column scale.
    """
    return net_profit * factor + tips - penalties
