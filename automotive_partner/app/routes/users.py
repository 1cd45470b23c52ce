"""
routes/users.py: User route handlers.

Endpoints (url_prefix=/api/v1/users):
  POST /users      → 201  create a driver or admin
  GET  /users/:id  → 200  look a user up
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from automotive_partner.app.extensions import db
from automotive_partner.app.schemas.user_schema import CreateUserSchema
from automotive_partner.app.services import user_service

users_bp = Blueprint("users", __name__)


@users_bp.route("", methods=["POST"])
def create_user():
    data = CreateUserSchema().load(request.get_json(force=True) or {})
    user = user_service.create_user(data, session=db.session)
    db.session.commit()
    return jsonify({"data": user, "warnings": []}), 201


@users_bp.route("/<int:user_id>", methods=["GET"])
def get_user(user_id: int):
    user = user_service.get_user(user_id, session=db.session)
    return jsonify({"data": user, "warnings": []}), 200
