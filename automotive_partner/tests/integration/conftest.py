"""
tests/integration/conftest.py: Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
    Without TEST_DATABASE_URL that is an in-memory SQLite database
    (Flask-SQLAlchemy keeps a single shared connection for it); point
    TEST_DATABASE_URL at PostgreSQL to run against the production dialect.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - make_user(client, ...)        → user data dict
  - settlement_payload(...)       → request body dict
  - complete(client, ...)         → HTTP response
  - update(client, ...)           → HTTP response
  - report_bug(client, id)        → HTTP response

These are plain functions so they can be called with arbitrary arguments in
any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from automotive_partner.app import create_app
from automotive_partner.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once per test session."""
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test.

    settlements must go before users (ON DELETE RESTRICT).
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM settlements"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_user(
    client,
    first_name: str = "Jan",
    last_name: str = "Kowalski",
    email: str | None = None,
    role: str = "driver",
) -> dict:
    """Creates a user and returns the user data dict."""
    if email is None:
        email = f"{first_name.lower()}.{last_name.lower()}@test.com"
    resp = client.post(
        "/api/v1/users",
        json={
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "role": role,
        },
    )
    assert resp.status_code == 201, f"make_user failed: {resp.get_json()}"
    return resp.get_json()["data"]


def settlement_payload(
    user_id: int,
    date: str = "2024-03-15",
    net_profit: str | None = "1000.00",
    factor: str | None = "0.50",
    tips: str | None = "50.00",
    penalties: str | None = "20.00",
) -> dict:
    """
    Builds a settlement request body. Pass an amount as None to send JSON
    null; delete the key from the returned dict to omit it entirely.
    """
    return {
        "user_id": user_id,
        "date": date,
        "net_profit": net_profit,
        "factor": factor,
        "tips": tips,
        "penalties": penalties,
    }


def complete(client, payload: dict):
    """POSTs a settlement and returns the HTTP response."""
    return client.post("/api/v1/settlements", json=payload)


def update(client, payload: dict):
    """PUTs a settlement and returns the HTTP response."""
    return client.put("/api/v1/settlements", json=payload)


def report_bug(client, settlement_id: int):
    """PATCHes the bug flag of a settlement and returns the HTTP response."""
    return client.patch(f"/api/v1/settlements/{settlement_id}/bug")
