"""Unit tests for anomaly detection"""

import pytest
from datetime import date, datetime, timedelta

from saverflow_engine.domain.anomaly import (
    detect_amount_outliers,
    detect_anomalies,
    detect_duplicates,
    detect_frequency_spikes,
    detect_new_merchants,
    detect_time_anomalies,
    get_anomaly_stats,
)
from saverflow_engine.domain.models import Transaction

TODAY = date(2026, 10, 19)
MIDNIGHT = datetime.combine(TODAY, datetime.min.time())


def _tx(tx_id: str, amount: float, days_ago: float, merchant: str = "Corner Shop", hour: int = 12) -> Transaction:
    return Transaction(
        id=tx_id,
        account_id="acc-1",
        date=MIDNIGHT - timedelta(days=days_ago) + timedelta(hours=hour),
        amount=amount,
        merchant=merchant,
    )


@pytest.fixture
def routine_spending() -> list[Transaction]:
    """Twenty ordinary ~$50 purchases over the last forty days"""
    return [_tx(f"r{i}", -50.0 if i % 2 else -55.0, 40 - i * 2, merchant=f"Shop {i % 4}") for i in range(20)]


def test_fewer_than_five_transactions_yields_nothing():
    transactions = [_tx(f"t{i}", -5000.0 if i == 0 else -10.0, i) for i in range(4)]
    assert detect_anomalies(transactions, TODAY) == []


def test_large_outlier_is_high_severity(routine_spending):
    """A $5,000 charge among ~$50 purchases is a high-severity outlier"""
    transactions = routine_spending + [_tx("big", -5000.0, 1, merchant="Jeweler")]

    outliers = detect_amount_outliers(transactions)

    assert len(outliers) == 1
    assert outliers[0].transaction.id == "big"
    assert outliers[0].severity == "high"
    assert outliers[0].confidence <= 1.0


def test_outliers_need_four_of_a_kind():
    """Income with only three deposits is not scored"""
    transactions = [_tx(f"p{i}", 1000.0 if i else 9000.0, i * 10, merchant="Payroll") for i in range(3)]
    assert detect_amount_outliers(transactions) == []


def test_frequency_spike():
    transactions = [_tx("old", -12.0, 30, merchant="Food Truck")]
    transactions += [_tx(f"new{i}", -12.0, i, merchant="Food Truck") for i in range(1, 5)]

    spikes = detect_frequency_spikes(transactions, TODAY)

    assert len(spikes) == 1
    assert spikes[0].id == "frequency-spike-food-truck"
    assert spikes[0].severity == "medium"


def test_new_merchant_flagged_once(routine_spending):
    newcomer = _tx("first", -250.0, 3, merchant="Furniture Outlet")
    repeat = _tx("second", -250.0, 1, merchant="Furniture Outlet")

    anomalies = detect_new_merchants(routine_spending + [newcomer, repeat], TODAY)

    assert [a.transaction.id for a in anomalies] == ["first"]
    assert anomalies[0].severity == "medium"


def test_new_merchant_with_short_history():
    """A new user's history is all recent; a large first purchase is still flagged"""
    transactions = [_tx(f"g{i}", -30.0, i * 2, merchant="Grocer") for i in range(10)]
    transactions.append(_tx("couch", -400.0, 2, merchant="Furniture Outlet"))

    new_merchants = detect_new_merchants(transactions, TODAY)

    assert [a.transaction.id for a in new_merchants] == ["couch"]
    assert new_merchants[0].type == "new_merchant"

    anomalies = detect_anomalies(transactions, TODAY)
    assert any(a.type == "new_merchant" and a.transaction.id == "couch" for a in anomalies)


def test_duplicates_reported_once():
    transactions = [
        _tx("a", -42.5, 2, merchant="Gas Station", hour=10),
        _tx("b", -42.5, 2, merchant="Gas Station", hour=15),
        _tx("c", -42.5, 9, merchant="Gas Station", hour=10),
    ]

    duplicates = detect_duplicates(transactions)

    assert len(duplicates) == 1
    assert duplicates[0].id == "duplicate-a-b"
    assert duplicates[0].type == "duplicate_suspect"


def test_time_anomaly():
    transactions = [_tx(f"m{i}", -4.0, i, merchant="Bakery", hour=9) for i in range(12)]
    transactions.append(_tx("late", -4.0, 0, merchant="Bakery", hour=23))

    anomalies = detect_time_anomalies(transactions)

    assert [a.transaction.id for a in anomalies] == ["late"]


def test_detect_anomalies_sorted_and_capped(routine_spending):
    transactions = routine_spending + [
        _tx("big", -5000.0, 1, merchant="Jeweler"),
        _tx("d1", -42.5, 2, merchant="Gas Station", hour=10),
        _tx("d2", -42.5, 2, merchant="Gas Station", hour=15),
    ]

    anomalies = detect_anomalies(transactions, TODAY, max_anomalies=3)

    assert len(anomalies) <= 3
    assert anomalies[0].severity == "high"
    order = {"high": 0, "medium": 1, "low": 2}
    keys = [(order[a.severity], -a.confidence) for a in anomalies]
    assert keys == sorted(keys)


def test_anomaly_stats(routine_spending):
    transactions = routine_spending + [_tx("big", -5000.0, 1, merchant="Jeweler")]
    anomalies = detect_anomalies(transactions, TODAY)

    stats = get_anomaly_stats(anomalies)

    assert stats.total == len(anomalies)
    assert stats.by_type["amount_outlier"] == 1
    assert sum(stats.by_severity.values()) == stats.total
    assert get_anomaly_stats([]).avg_confidence == 0.0
