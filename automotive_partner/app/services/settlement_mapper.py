"""
services/settlement_mapper.py: Request dict -> Settlement row, and
Settlement row -> response view.

No validation happens here; callers pass data that already went through
SettlementRequestSchema and settlement_rules.
"""

from __future__ import annotations

from decimal import Decimal

from automotive_partner.app.models.settlement import Settlement
from automotive_partner.app.schemas.settlement_schema import SettlementResponseSchema
from automotive_partner.app.services.settlement_rules import adjust_date, or_zero

_response_schema = SettlementResponseSchema()


def to_settlement(data: dict, final_profit: Decimal, bug_reported: bool) -> Settlement:
    return Settlement(
        user_id=data["user_id"],
        month_and_year=adjust_date(data["date"]),
        net_profit=data["net_profit"],
        factor=or_zero(data.get("factor")),
        tips=data["tips"],
        penalties=or_zero(data.get("penalties")),
        final_profit=final_profit,
        bug_reported=bug_reported,
    )


def to_settlement_response(settlement: Settlement) -> dict:
    return _response_schema.dump(settlement)
