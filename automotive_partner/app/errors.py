"""
errors.py: AppError and the error code registry.

Every failure the AutomotivePartner API reports uses a code defined here.
Do not raise strings or generic exceptions from service or route code.

A single exception type carries every failure kind:
  - `code`        one of the ErrorCode constants (the closed set of kinds)
  - `message`     human-readable prose, may be reworded at any time
  - `http_status` the status the error handler renders
  - `field`       the request field that caused the error, if any
  - `details`     context for the failure, e.g. the offending settlement id

Error codes are a contract with API clients. They do not change once published.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
            details: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field
        self.details     = details or {}

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        if self.details:
            payload["details"] = self.details
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the section header.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD                     = "MISSING_FIELD"
    INVALID_FIELD                     = "INVALID_FIELD"
    INCORRECT_DATE                    = "INCORRECT_DATE"

    # ── Settlement amount rules (400) ──────────────────────────────────────
    # Checked in the order net -> factor -> tips -> penalties; first one wins.
    EMPTY_NET_AMOUNT                  = "EMPTY_NET_AMOUNT"
    INCORRECT_NET_AMOUNT              = "INCORRECT_NET_AMOUNT"
    INCORRECT_OPTIONAL_FACTOR         = "INCORRECT_OPTIONAL_FACTOR"
    EMPTY_TIP_AMOUNT                  = "EMPTY_TIP_AMOUNT"
    INCORRECT_TIP_AMOUNT              = "INCORRECT_TIP_AMOUNT"
    INCORRECT_OPTIONAL_PENALTY_AMOUNT = "INCORRECT_OPTIONAL_PENALTY_AMOUNT"
    # Only checked once all sign rules pass.
    AMOUNT_OUT_OF_RANGE               = "AMOUNT_OUT_OF_RANGE"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND                    = "USER_NOT_FOUND"
    SETTLEMENT_NOT_FOUND              = "SETTLEMENT_NOT_FOUND"
    # No settlement exists yet for the requested user and month.
    SETTLEMENT_INCOMPLETE             = "SETTLEMENT_INCOMPLETE"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    SETTLEMENT_ALREADY_COMPLETED      = "SETTLEMENT_ALREADY_COMPLETED"
    BUG_ALREADY_REPORTED              = "BUG_ALREADY_REPORTED"
    DUPLICATE_EMAIL                   = "DUPLICATE_EMAIL"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR                    = "INTERNAL_ERROR"


def registered_codes() -> frozenset[str]:
    """All published error codes."""
    return frozenset(
        value for name, value in vars(ErrorCode).items()
        if not name.startswith("_")
    )
