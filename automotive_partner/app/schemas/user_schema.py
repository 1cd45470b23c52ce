"""
schemas/user_schema.py: Marshmallow schemas for user endpoints.

Validation responsibility:
  - This file: field types, lengths, email format, role enum.
  - services/user_service.py: DUPLICATE_EMAIL (requires a DB lookup).

IMPORTANT: Inherits from marshmallow.Schema directly: never an app-bound
           schema class. See extensions.py.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from automotive_partner.app.models.user import USER_ROLES


class CreateUserSchema(Schema):
    """
    POST /users

    Field rules:
      first_name, last_name : 1–50 chars after trimming
      email                 : valid email format, max 255 chars
      role                  : "driver" (default) or "admin"
    """

    first_name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=50,
                error="first_name must be between 1 and 50 characters.",
            ),
            validate.Regexp(r"\s*\S", error="first_name cannot be blank."),
        ],
    )

    last_name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=50,
                error="last_name must be between 1 and 50 characters.",
            ),
            validate.Regexp(r"\s*\S", error="last_name cannot be blank."),
        ],
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    role = fields.Str(
        load_default="driver",
        validate=validate.OneOf(
            USER_ROLES,
            error="role must be one of: driver, admin.",
        ),
    )


class UserResponseSchema(Schema):
    id         = fields.Int()
    first_name = fields.Str()
    last_name  = fields.Str()
    email      = fields.Email()
    role       = fields.Str()
