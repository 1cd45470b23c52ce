"""
schemas/settlement_schema.py: Marshmallow schemas for settlement endpoints.

Validation responsibility:
  - This file: field types and date parsing.
  - services/settlement_rules.py: presence, sign and upper bound of the four
    amounts (EMPTY_* / INCORRECT_* / AMOUNT_OUT_OF_RANGE codes). Those rules
    run in a fixed order and must report one named error, so they are NOT
    expressed as schema validators. The amount fields here therefore accept
    any scale, accept None and are not required.
  - services/settlement_service.py: USER_NOT_FOUND, SETTLEMENT_INCOMPLETE,
    SETTLEMENT_ALREADY_COMPLETED (require DB lookups).

IMPORTANT: Inherits from marshmallow.Schema directly so schemas load without
           a Flask app context (see extensions.py).
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from automotive_partner.app.errors import ErrorCode


def _amount_field() -> fields.Decimal:
    return fields.Decimal(
        required=False,
        allow_none=True,
        load_default=None,
    )


_DATE_ERRORS = {
    "required": ErrorCode.INCORRECT_DATE,
    "null":     ErrorCode.INCORRECT_DATE,
    "invalid":  ErrorCode.INCORRECT_DATE,
}

_USER_ID_ERRORS = {
    "required": "Missing data for required field.",
    "invalid":  "user_id must be an integer.",
}


class SettlementQuerySchema(Schema):
    """
    GET /settlements?user_id=&date=

    Query-string values arrive as strings, so user_id is not strict here.
    """

    user_id = fields.Int(
        required=True,
        error_messages=_USER_ID_ERRORS,
        validate=validate.Range(min=1, error="user_id must be a positive integer."),
    )

    date = fields.Date(required=True, error_messages=_DATE_ERRORS)


class SettlementRequestSchema(Schema):
    """
    POST /settlements (complete) and PUT /settlements (update).

    Field rules:
      user_id    : required, positive integer. Existence is checked in the service.
      date       : required ISO date, any day of the target month.
      net_profit : Decimal or null. Presence/sign in settlement_rules.
      factor     : Decimal or null. Absent means zero.
      tips       : Decimal or null. Presence/sign in settlement_rules.
      penalties  : Decimal or null. Absent means zero.

    final_profit and bug_reported are never accepted from a caller; unknown
    keys are rejected by marshmallow's default RAISE policy.
    """

    user_id = fields.Int(
        required=True,
        strict=True,   # reject floats like 1.0: integers only
        error_messages=_USER_ID_ERRORS,
        validate=validate.Range(min=1, error="user_id must be a positive integer."),
    )

    date = fields.Date(required=True, error_messages=_DATE_ERRORS)

    net_profit = _amount_field()
    factor     = _amount_field()
    tips       = _amount_field()
    penalties  = _amount_field()


class SettlementResponseSchema(Schema):
    """
    Settlement view returned by every settlement_service operation.

    Decimals are dumped as Decimal; the app's JSON provider turns them into
    strings on the wire.
    """

    id             = fields.Int()
    user_id        = fields.Int()
    month_and_year = fields.Date()
    net_profit     = fields.Decimal()
    factor         = fields.Decimal()
    tips           = fields.Decimal()
    penalties      = fields.Decimal()
    final_profit   = fields.Decimal()
    bug_reported   = fields.Bool()
