"""
app/__init__.py: Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, which allows:
           - Multiple isolated test app instances
           - `alembic` to import the models without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging for the package loggers
  3. Initialise SQLAlchemy via init_app()
  4. Register route blueprints under /api/v1
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Register a JSON provider that serialises Decimal as string
     (monetary amounts are transmitted as strings, never JS numbers)
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify
from flask.json.provider import DefaultJSONProvider
from flask.logging import default_handler
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from automotive_partner.config import config_by_name, validate_production_config

_PACKAGE_LOGGER = "automotive_partner"


# ── Custom JSON provider ───────────────────────────────────────────────────

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("530.00") → "530.00" (not 530.0)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from automotive_partner.app.extensions import db
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Importing the models populates SQLAlchemy's MetaData for create_all()
    # and Alembic autogenerate.
    with app.app_context():
        from automotive_partner.app.models import settlement, user  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Routes every logger under the package (services included) through Flask's
    default stderr handler at the configured LOG_LEVEL.

    Must run before app.logger is first accessed: Flask only attaches its own
    handler when no ancestor logger has one, which avoids duplicate lines.
    """
    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    if default_handler not in package_logger.handlers:
        package_logger.addHandler(default_handler)
    package_logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    Route files only specify paths relative to their resource.
    """
    from automotive_partner.app.routes.settlements import settlements_bp
    from automotive_partner.app.routes.users import users_bp

    app.register_blueprint(settlements_bp, url_prefix="/api/v1/settlements")
    app.register_blueprint(users_bp,       url_prefix="/api/v1/users")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the error's status
      ValidationError → marshmallow schema errors as MISSING_FIELD /
                        INVALID_FIELD / registered-code responses (400)
      HTTPException   → werkzeug errors (unknown route, bad JSON) keep their status
      Exception       → generic INTERNAL_ERROR (500); traceback logged

    Every handler rolls the session back so a rejected request never commits
    a partial write. Stack traces never leave the server.
    """
    from automotive_partner.app.errors import AppError, ErrorCode, registered_codes
    from automotive_partner.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        into the standard error envelope. Routes never catch AppError.
        """
        db.session.rollback()
        app.logger.warning(
            "Request rejected: %s (%s) %s",
            error.code,
            error.http_status,
            error.message,
        )
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST field error is returned ("one error, not many").
        A message that is itself a registered ErrorCode (e.g. INCORRECT_DATE)
        is used as the code; otherwise MISSING_FIELD or INVALID_FIELD.
        """
        db.session.rollback()
        codes = registered_codes()

        messages = error.messages  # e.g. {"date": ["INCORRECT_DATE"]}

        field = None
        raw_message = "Invalid input."
        code = ErrorCode.INVALID_FIELD

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None

                if isinstance(field_errors, list):
                    raw_message = field_errors[0] if field_errors else "Invalid value."
                else:
                    raw_message = str(field_errors)
                break
        elif isinstance(messages, list):
            raw_message = messages[0] if messages else "Invalid input."

        if raw_message in codes:
            code = raw_message
        elif str(raw_message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD

        response_body = {
            "error": {
                "code": code,
                "message": _code_to_message(code) if raw_message in codes
                else raw_message,
            }
        }
        if field is not None:
            response_body["error"]["field"] = field

        app.logger.warning("Request rejected: %s on field %s", code, field)
        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        db.session.rollback()
        return jsonify({
            "error": {
                "code": error.name.upper().replace(" ", "_"),
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback goes to the application logger only.
        """
        db.session.rollback()
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _code_to_message(code: str) -> str:
    """
    Human-readable default message for a registered code raised as a
    ValidationError message by a schema.
    """
    _messages = {
        "INCORRECT_DATE": "A valid ISO date (YYYY-MM-DD) is required.",
    }
    return _messages.get(code, "Invalid input.")
