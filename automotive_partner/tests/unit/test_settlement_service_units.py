"""
Unit tests for settlement_service.

These tests run DB-free with a mocked session. Repository lookups go through
session.execute(...).scalar_one_or_none(); the user check goes through
session.get().
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from automotive_partner.app.errors import AppError, ErrorCode
from automotive_partner.app.models.settlement import Settlement
from automotive_partner.app.services import settlement_service


def _session(user=object(), existing=None) -> MagicMock:
    session = MagicMock()
    session.get.return_value = user
    session.execute.return_value.scalar_one_or_none.return_value = existing
    return session


def _request(**overrides) -> dict:
    data = {
        "user_id":    1,
        "date":       date(2024, 3, 15),
        "net_profit": Decimal("1000.00"),
        "factor":     Decimal("0.50"),
        "tips":       Decimal("50.00"),
        "penalties":  Decimal("20.00"),
    }
    data.update(overrides)
    return data


def _settlement(**overrides) -> Settlement:
    fields = {
        "id":             7,
        "user_id":        1,
        "month_and_year": date(2024, 3, 1),
        "net_profit":     Decimal("1000.00"),
        "factor":         Decimal("0.50"),
        "tips":           Decimal("50.00"),
        "penalties":      Decimal("20.00"),
        "final_profit":   Decimal("530.0000"),
        "bug_reported":   False,
    }
    fields.update(overrides)
    return Settlement(**fields)


def _raises(code: str, fn, *args, **kwargs) -> AppError:
    with pytest.raises(AppError) as exc_info:
        fn(*args, **kwargs)
    assert exc_info.value.code == code
    return exc_info.value


# ═══════════════════════════════════════════════════════════════════════════
# get_info
# ═══════════════════════════════════════════════════════════════════════════

def test_get_info_unknown_user():
    session = _session(user=None)

    err = _raises(
        ErrorCode.USER_NOT_FOUND,
        settlement_service.get_info, 42, date(2024, 5, 10), session,
    )

    assert err.http_status == 404
    assert err.details == {"user_id": 42}
    session.execute.assert_not_called()


def test_get_info_without_settlement_is_incomplete():
    session = _session(existing=None)

    err = _raises(
        ErrorCode.SETTLEMENT_INCOMPLETE,
        settlement_service.get_info, 2, date(2024, 5, 10), session,
    )

    assert err.http_status == 404
    assert err.details["month_and_year"] == "2024-05-01"


def test_get_info_returns_view():
    session = _session(existing=_settlement())

    view = settlement_service.get_info(1, date(2024, 3, 20), session)

    assert view["id"] == 7
    assert view["month_and_year"] == "2024-03-01"
    assert view["final_profit"] == Decimal("530")
    assert view["bug_reported"] is False


# ═══════════════════════════════════════════════════════════════════════════
# complete
# ═══════════════════════════════════════════════════════════════════════════

def test_complete_persists_normalised_settlement():
    session = _session(existing=None)

    view = settlement_service.complete(_request(), session)

    session.add.assert_called_once()
    saved = session.add.call_args.args[0]
    assert isinstance(saved, Settlement)
    assert saved.month_and_year == date(2024, 3, 1)
    assert saved.final_profit == Decimal("530")
    assert saved.bug_reported is False
    session.flush.assert_called_once()
    assert view["month_and_year"] == "2024-03-01"
    assert view["final_profit"] == Decimal("530")


def test_complete_unknown_user_checked_first():
    session = _session(user=None, existing=_settlement())

    _raises(ErrorCode.USER_NOT_FOUND, settlement_service.complete, _request(), session)
    session.add.assert_not_called()


def test_complete_already_completed_before_amount_rules():
    session = _session(existing=_settlement())

    err = _raises(
        ErrorCode.SETTLEMENT_ALREADY_COMPLETED,
        settlement_service.complete, _request(net_profit=None), session,
    )

    assert err.http_status == 409
    session.add.assert_not_called()


def test_complete_rejects_invalid_amounts_without_writing():
    session = _session(existing=None)

    _raises(
        ErrorCode.INCORRECT_TIP_AMOUNT,
        settlement_service.complete, _request(tips=Decimal("-1")), session,
    )
    session.add.assert_not_called()


def test_complete_translates_unique_violation():
    session = _session(existing=None)
    session.flush.side_effect = IntegrityError(
        "INSERT INTO settlements", {}, Exception("uq_settlements_user_month"),
    )

    _raises(
        ErrorCode.SETTLEMENT_ALREADY_COMPLETED,
        settlement_service.complete, _request(), session,
    )
    session.rollback.assert_called_once()


def test_complete_absent_optional_amounts_stored_as_zero():
    session = _session(existing=None)

    settlement_service.complete(_request(factor=None, penalties=None), session)

    saved = session.add.call_args.args[0]
    assert saved.factor == Decimal("0")
    assert saved.penalties == Decimal("0")
    assert saved.final_profit == Decimal("50")


def test_complete_stores_amounts_rounded_to_cents():
    session = _session(existing=None)

    settlement_service.complete(
        _request(net_profit=Decimal("100.005"), factor=Decimal("0.125")),
        session,
    )

    saved = session.add.call_args.args[0]
    assert saved.net_profit == Decimal("100.01")
    assert saved.factor == Decimal("0.13")
    # 100.01 * 0.13 + 50 - 20
    assert saved.final_profit == Decimal("43.0013")


def test_complete_unknown_user_before_extra_decimal_places():
    session = _session(user=None)

    _raises(
        ErrorCode.USER_NOT_FOUND,
        settlement_service.complete, _request(net_profit=Decimal("1.005")), session,
    )


def test_complete_rejects_amount_above_maximum():
    session = _session(existing=None)

    err = _raises(
        ErrorCode.AMOUNT_OUT_OF_RANGE,
        settlement_service.complete, _request(net_profit=Decimal("1000000000000")), session,
    )

    assert err.http_status == 400
    session.add.assert_not_called()


# ═══════════════════════════════════════════════════════════════════════════
# update
# ═══════════════════════════════════════════════════════════════════════════

def test_update_without_completed_month_is_incomplete():
    session = _session(existing=None)

    _raises(ErrorCode.SETTLEMENT_INCOMPLETE, settlement_service.update, _request(), session)


def test_update_unknown_user():
    session = _session(user=None)

    _raises(ErrorCode.USER_NOT_FOUND, settlement_service.update, _request(), session)


def test_update_overwrites_fields_and_clears_bug():
    existing = _settlement(bug_reported=True)
    session = _session(existing=existing)

    view = settlement_service.update(
        _request(net_profit=Decimal("2000.00"), factor=Decimal("0.25"),
                 tips=Decimal("10.00"), penalties=Decimal("5.00")),
        session,
    )

    assert existing.net_profit == Decimal("2000.00")
    assert existing.final_profit == Decimal("505")
    assert existing.bug_reported is False
    assert view["bug_reported"] is False
    session.flush.assert_called_once()


def test_update_invalid_amounts_leave_row_untouched():
    existing = _settlement(bug_reported=True)
    session = _session(existing=existing)

    _raises(
        ErrorCode.INCORRECT_OPTIONAL_FACTOR,
        settlement_service.update, _request(factor=Decimal("-0.5")), session,
    )

    assert existing.factor == Decimal("0.50")
    assert existing.bug_reported is True


# ═══════════════════════════════════════════════════════════════════════════
# report_bug / is_bug_reported / find_all_with_reported_bug
# ═══════════════════════════════════════════════════════════════════════════

def test_report_bug_sets_flag():
    existing = _settlement()
    session = _session(existing=existing)

    view = settlement_service.report_bug(7, session)

    assert existing.bug_reported is True
    assert view["bug_reported"] is True


def test_report_bug_twice_is_rejected():
    session = _session(existing=_settlement(bug_reported=True))

    err = _raises(ErrorCode.BUG_ALREADY_REPORTED, settlement_service.report_bug, 7, session)

    assert err.http_status == 409
    assert err.details == {"settlement_id": 7}


def test_report_bug_unknown_settlement():
    session = _session(existing=None)

    err = _raises(ErrorCode.SETTLEMENT_NOT_FOUND, settlement_service.report_bug, 7, session)

    assert err.http_status == 404
    assert err.details == {"settlement_id": 7}


def test_is_bug_reported_does_not_mutate():
    existing = _settlement(bug_reported=True)
    session = _session(existing=existing)

    assert settlement_service.is_bug_reported(7, session) is True
    session.flush.assert_not_called()


def test_is_bug_reported_unknown_settlement():
    session = _session(existing=None)

    _raises(ErrorCode.SETTLEMENT_NOT_FOUND, settlement_service.is_bug_reported, 7, session)


def test_find_all_with_reported_bug_maps_rows_in_order():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = [
        _settlement(id=3, bug_reported=True),
        _settlement(id=9, bug_reported=True, month_and_year=date(2024, 4, 1)),
    ]

    views = settlement_service.find_all_with_reported_bug(session)

    assert [v["id"] for v in views] == [3, 9]
    assert all(v["bug_reported"] for v in views)
