"""
routes/settlements.py: Settlement route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries.

Endpoints (url_prefix=/api/v1/settlements):
  GET    /settlements?user_id=&date=  → 200  settlement of the month containing date
  POST   /settlements                 → 201  complete a month
  PUT    /settlements                 → 200  correct a completed month
  GET    /settlements/bugs            → 200  all settlements with a reported bug
  PATCH  /settlements/:id/bug         → 200  report a bug
  GET    /settlements/:id/bug         → 200  {"bug_reported": bool}
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from automotive_partner.app.extensions import db
from automotive_partner.app.schemas.settlement_schema import (
    SettlementQuerySchema,
    SettlementRequestSchema,
)
from automotive_partner.app.services import settlement_service

settlements_bp = Blueprint("settlements", __name__)


def _envelope(data, status: int):
    return jsonify({"data": data, "warnings": []}), status


@settlements_bp.route("", methods=["GET"])
def get_info():
    """GET /settlements?user_id=&date=: Settlement of one user for one month."""
    query = SettlementQuerySchema().load(request.args.to_dict())
    settlement = settlement_service.get_info(
        user_id=query["user_id"],
        date_value=query["date"],
        session=db.session,
    )
    return _envelope(settlement, 200)


@settlements_bp.route("", methods=["POST"])
def complete():
    """POST /settlements: Complete the settlement of a month."""
    data = SettlementRequestSchema().load(request.get_json(force=True) or {})
    settlement = settlement_service.complete(data, session=db.session)
    db.session.commit()
    return _envelope(settlement, 201)


@settlements_bp.route("", methods=["PUT"])
def update():
    """PUT /settlements: Overwrite the amounts of a completed month."""
    data = SettlementRequestSchema().load(request.get_json(force=True) or {})
    settlement = settlement_service.update(data, session=db.session)
    db.session.commit()
    return _envelope(settlement, 200)


@settlements_bp.route("/bugs", methods=["GET"])
def find_all_with_reported_bug():
    """GET /settlements/bugs: Settlements flagged by their users."""
    return _envelope(settlement_service.find_all_with_reported_bug(db.session), 200)


@settlements_bp.route("/<int:settlement_id>/bug", methods=["PATCH"])
def report_bug(settlement_id: int):
    """PATCH /settlements/:id/bug: Flag a settlement as disputed."""
    settlement = settlement_service.report_bug(settlement_id, session=db.session)
    db.session.commit()
    return _envelope(settlement, 200)


@settlements_bp.route("/<int:settlement_id>/bug", methods=["GET"])
def is_bug_reported(settlement_id: int):
    """GET /settlements/:id/bug: Whether a bug has been reported."""
    reported = settlement_service.is_bug_reported(settlement_id, session=db.session)
    return _envelope({"id": settlement_id, "bug_reported": reported}, 200)
