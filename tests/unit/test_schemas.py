"""Unit tests for snapshot parsing"""

import pytest
from datetime import date, datetime
from pydantic import ValidationError

from saverflow_engine.domain.exceptions import DomainException, InsufficientDataError, InvalidSnapshotError
from saverflow_engine.schemas import parse_snapshot, require_history


@pytest.fixture
def payload() -> dict:
    return {
        "today": "2026-10-19",
        "timezone": "America/New_York",
        "accounts": [
            {"id": "acc-1", "name": "Checking", "type": "checking", "current_balance": 4250.0},
        ],
        "transactions": [
            {
                "id": "t1",
                "account_id": "acc-1",
                "date": "2026-10-18T23:30:00+00:00",
                "amount": -12.5,
                "merchant": "Starbucks",
            },
            {
                "id": "t2",
                "account_id": "acc-1",
                "date": "2026-10-17T09:00:00",
                "amount": 1500.0,
                "merchant": "Acme Payroll",
                "category": "income",
            },
        ],
        "recurrences": [
            {"name": "Rent", "amount": -2100, "cadence": "monthly", "next_date": "2026-10-31", "confidence": "high"},
        ],
    }


def test_parse_valid_snapshot(payload):
    snapshot = parse_snapshot(payload)

    assert snapshot.today == date(2026, 10, 19)
    assert snapshot.accounts[0].current_balance == 4250.0
    assert snapshot.recurrences[0].next_date == date(2026, 10, 31)
    assert snapshot.goals is None
    assert snapshot.user_buffer == 500.0
    assert snapshot.horizon_days == 90


def test_aware_datetimes_converted_to_snapshot_timezone(payload):
    """23:30 UTC is 19:30 in New York during daylight saving time"""
    snapshot = parse_snapshot(payload)

    assert snapshot.transactions[0].date == datetime(2026, 10, 18, 19, 30)
    assert snapshot.transactions[0].date.tzinfo is None
    assert snapshot.transactions[1].date == datetime(2026, 10, 17, 9, 0)


def test_goals_parsed(payload):
    payload["goals"] = [
        {"id": "g1", "name": "Cushion", "target": 5000, "saved": 100, "priority": "essential", "category": "emergency"},
    ]

    snapshot = parse_snapshot(payload)

    assert snapshot.goals[0].remaining == 4900


def test_unknown_cadence_rejected(payload):
    payload["recurrences"][0]["cadence"] = "fortnightly"

    with pytest.raises(InvalidSnapshotError) as exc_info:
        parse_snapshot(payload)

    assert isinstance(exc_info.value.__cause__, ValidationError)
    assert isinstance(exc_info.value, DomainException)


def test_missing_id_rejected(payload):
    del payload["transactions"][0]["id"]

    with pytest.raises(InvalidSnapshotError):
        parse_snapshot(payload)


def test_bad_date_rejected(payload):
    payload["today"] = "next tuesday"

    with pytest.raises(InvalidSnapshotError):
        parse_snapshot(payload)


def test_unknown_timezone_rejected(payload):
    payload["timezone"] = "Mars/Olympus_Mons"

    with pytest.raises(InvalidSnapshotError):
        parse_snapshot(payload)


def test_unknown_risk_tolerance_rejected(payload):
    payload["risk_tolerance"] = "yolo"

    with pytest.raises(InvalidSnapshotError):
        parse_snapshot(payload)


def test_require_history():
    with pytest.raises(InsufficientDataError):
        require_history([], min_transactions=1)

    require_history(["tx"], min_transactions=1)
