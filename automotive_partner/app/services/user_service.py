"""
services/user_service.py: User lookup and creation.

settlement_service.py consumes require_user() as its user-existence check.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility: only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from automotive_partner.app.errors import AppError, ErrorCode
from automotive_partner.app.models.user import User
from automotive_partner.app.schemas.user_schema import UserResponseSchema

logger = logging.getLogger(__name__)


def require_user(user_id: int, session: Session) -> User:
    """Returns the User or raises USER_NOT_FOUND (404)."""
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
            404,
            details={"user_id": user_id},
        )
    return user


def get_user(user_id: int, session: Session) -> dict:
    """Returns the serialised user or raises USER_NOT_FOUND (404)."""
    return UserResponseSchema().dump(require_user(user_id, session))


def create_user(data: dict, session: Session) -> dict:
    """
    Creates a driver or admin account.

    Args:
        data: Validated dict from CreateUserSchema.
              Keys: first_name, last_name, email, role.

    Raises:
      AppError(DUPLICATE_EMAIL, 409): email already registered
    """
    email = data["email"].strip().lower()

    existing = session.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()
    if existing is not None:
        raise _duplicate_email(email)

    user = User(
        first_name=data["first_name"].strip(),
        last_name=data["last_name"].strip(),
        email=email,
        role=data.get("role", "driver"),
    )
    session.add(user)
    try:
        session.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email.
        session.rollback()
        raise _duplicate_email(email)

    logger.info("Created %s account id=%s", user.role, user.id)
    return UserResponseSchema().dump(user)


def _duplicate_email(email: str) -> AppError:
    return AppError(
        ErrorCode.DUPLICATE_EMAIL,
        f"The email address '{email}' is already registered.",
        409,
        field="email",
    )
