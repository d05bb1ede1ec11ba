"""Unit tests for the Monte Carlo forecast"""

import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from saverflow_engine.domain.forecast import calculate_forecast_confidence, generate_forecast
from saverflow_engine.domain.models import Account, Recurrence


def test_forecast_length_and_dates(today, accounts, transactions, recurrences):
    """One day per horizon day, starting today"""
    forecast = generate_forecast(
        today=today, accounts=accounts, transactions=transactions, recurrences=recurrences,
        horizon_days=45, simulations=40,
    )

    assert len(forecast) == 45
    assert forecast[0].date == today
    assert forecast[-1].date == today + timedelta(days=44)


def test_bands_are_ordered(today, accounts, transactions, recurrences):
    """P10 <= P50 <= P90 on every day"""
    forecast = generate_forecast(
        today=today, accounts=accounts, transactions=transactions, recurrences=recurrences,
        horizon_days=60, simulations=50,
    )

    for day in forecast:
        assert day.p10_total <= day.p50_total <= day.p90_total


def test_per_account_bands_sum_to_totals(today, accounts, transactions, recurrences):
    forecast = generate_forecast(
        today=today, accounts=accounts, transactions=transactions, recurrences=recurrences,
        horizon_days=10, simulations=20,
    )

    for day in forecast:
        assert [band.account_id for band in day.by_account] == ["acc-checking", "acc-savings"]
        assert sum(band.p50 for band in day.by_account) == pytest.approx(day.p50_total, abs=0.02)


def test_forecast_is_deterministic(today, accounts, transactions, recurrences):
    """Same inputs give identical output"""
    kwargs = dict(
        today=today, accounts=accounts, transactions=transactions, recurrences=recurrences,
        horizon_days=30, simulations=30,
    )
    assert generate_forecast(**kwargs) == generate_forecast(**kwargs)


def test_executor_does_not_change_results(today, accounts, transactions, recurrences):
    """Parallel runs produce the same bands as sequential runs"""
    kwargs = dict(
        today=today, accounts=accounts, transactions=transactions, recurrences=recurrences,
        horizon_days=30, simulations=30,
    )
    sequential = generate_forecast(**kwargs)

    with ThreadPoolExecutor(max_workers=4) as pool:
        parallel = generate_forecast(executor=pool, **kwargs)

    assert parallel == sequential


def test_large_bill_lowers_balance_after_due_date(today, accounts):
    """A high-confidence bill moves the median down by roughly its amount"""
    bill = Recurrence(name="Tuition", amount=-5000.0, cadence="yearly", next_date=today + timedelta(days=10),
                      confidence="high")

    forecast = generate_forecast(
        today=today, accounts=accounts, transactions=[], recurrences=[bill], horizon_days=20, simulations=50,
    )

    drop = forecast[9].p50_total - forecast[10].p50_total
    assert 4500 < drop < 5500


def test_zero_balance_is_valid(today):
    """A zero starting balance still produces a full, ordered forecast"""
    empty = [Account(id="acc-1", name="Checking", type="checking", current_balance=0.0)]

    forecast = generate_forecast(today=today, accounts=empty, transactions=[], recurrences=[], horizon_days=14,
                                 simulations=25)

    assert len(forecast) == 14
    assert all(day.p10_total <= day.p50_total <= day.p90_total for day in forecast)
    assert forecast[0].by_account[0].account_id == "acc-1"


def test_non_positive_horizon_returns_empty(today, accounts):
    assert generate_forecast(today=today, accounts=accounts, transactions=[], recurrences=[], horizon_days=0) == []


def test_forecast_confidence_bounds(today, accounts, transactions, recurrences):
    forecast = generate_forecast(
        today=today, accounts=accounts, transactions=transactions, recurrences=recurrences,
        horizon_days=30, simulations=30,
    )

    confidence = calculate_forecast_confidence(transactions, recurrences, forecast)

    assert 30 <= confidence <= 100


def test_forecast_confidence_floor_for_no_data():
    """Nothing to go on still yields the minimum score"""
    assert calculate_forecast_confidence([], [], []) == 30
