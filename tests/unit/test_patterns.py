"""Unit tests for historical pattern analysis"""

import pytest
from datetime import datetime, timedelta

from saverflow_engine.domain.models import Transaction
from saverflow_engine.domain.patterns import EMPTY_HISTORY_STD_DEV, STD_DEV_FLOOR, analyze_transaction_patterns


def _tx(amount: float, days: int, tx_id: str) -> Transaction:
    return Transaction(
        id=tx_id,
        account_id="acc-1",
        date=datetime(2026, 9, 1) + timedelta(days=days),
        amount=amount,
        merchant="Merchant",
    )


def test_empty_history_uses_fallback_volatility():
    """No history gives a zero mean and a non-zero std-dev"""
    patterns = analyze_transaction_patterns([])

    assert patterns.daily_mean == 0.0
    assert patterns.daily_std_dev == EMPTY_HISTORY_STD_DEV
    assert patterns.income_pattern.frequency == 0.0


def test_daily_mean_is_net_flow_over_day_span():
    transactions = [_tx(1000.0, 0, "a"), _tx(-200.0, 5, "b"), _tx(-300.0, 10, "c")]

    patterns = analyze_transaction_patterns(transactions)

    assert patterns.daily_mean == pytest.approx(50.0)
    assert patterns.income_pattern.mean == pytest.approx(1000.0)
    assert patterns.expense_pattern.mean == pytest.approx(250.0)
    assert patterns.expense_pattern.frequency == pytest.approx(0.2)


def test_same_day_history_spans_at_least_one_day():
    transactions = [_tx(-10.0, 0, "a"), _tx(-30.0, 0, "b")]

    patterns = analyze_transaction_patterns(transactions)

    assert patterns.daily_mean == pytest.approx(-40.0)


def test_std_dev_is_floored():
    """Identical small amounts would give zero volatility without the floor"""
    transactions = [_tx(-5.0, day, f"t{day}") for day in range(10)]

    patterns = analyze_transaction_patterns(transactions)

    assert patterns.daily_std_dev == STD_DEV_FLOOR


def test_custom_floor():
    transactions = [_tx(-5.0, day, f"t{day}") for day in range(10)]
    assert analyze_transaction_patterns(transactions, std_dev_floor=75.0).daily_std_dev == 75.0
