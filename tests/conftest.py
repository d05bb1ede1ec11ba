"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timedelta

from saverflow_engine.domain.models import Account, Recurrence, SavingsGoal, Transaction
from saverflow_engine.engine import EngineSnapshot


TODAY = date(2026, 10, 19)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def accounts() -> list[Account]:
    """Checking + savings totalling $12,350"""
    return [
        Account(id="acc-checking", name="Everyday Checking", type="checking", current_balance=4250.0),
        Account(id="acc-savings", name="High Yield Savings", type="savings", current_balance=8100.0),
    ]


@pytest.fixture
def recurrences() -> list[Recurrence]:
    return [
        Recurrence(
            name="Rent",
            amount=-2100.0,
            cadence="monthly",
            next_date=TODAY + timedelta(days=12),
            confidence="high",
        ),
        Recurrence(
            name="Paycheck",
            amount=3200.0,
            cadence="biweekly",
            next_date=TODAY + timedelta(days=4),
            confidence="high",
        ),
        Recurrence(
            name="Groceries",
            amount=-150.0,
            cadence="weekly",
            next_date=TODAY + timedelta(days=2),
            confidence="medium",
        ),
    ]


@pytest.fixture
def transactions() -> list[Transaction]:
    """30 days of history: two paychecks, daily coffee, weekly groceries"""
    history = []
    start = datetime.combine(TODAY - timedelta(days=30), datetime.min.time())

    for day in range(30):
        history.append(
            Transaction(
                id=f"coffee-{day}",
                account_id="acc-checking",
                date=start + timedelta(days=day, hours=8),
                amount=-5.75,
                merchant="Blue Bottle Coffee",
            )
        )

    for week in range(4):
        history.append(
            Transaction(
                id=f"grocery-{week}",
                account_id="acc-checking",
                date=start + timedelta(days=week * 7 + 2, hours=18),
                amount=-140.0 - week * 5,
                merchant="Whole Foods Market",
            )
        )

    for paycheck in range(2):
        history.append(
            Transaction(
                id=f"payroll-{paycheck}",
                account_id="acc-checking",
                date=start + timedelta(days=paycheck * 14 + 6, hours=9),
                amount=3200.0,
                merchant="Acme Corp Payroll",
            )
        )

    history.append(
        Transaction(
            id="netflix-1",
            account_id="acc-checking",
            date=start + timedelta(days=10, hours=12),
            amount=-15.49,
            merchant="Netflix",
        )
    )
    return history


@pytest.fixture
def goals() -> list[SavingsGoal]:
    return [
        SavingsGoal(
            id="goal-emergency",
            name="Emergency Fund",
            target=10000.0,
            saved=2500.0,
            priority="essential",
            category="emergency",
        ),
        SavingsGoal(
            id="goal-vacation",
            name="Lisbon Trip",
            target=3000.0,
            saved=600.0,
            priority="aspirational",
            category="lifestyle",
            deadline=TODAY + timedelta(days=240),
        ),
        SavingsGoal(
            id="goal-card",
            name="Pay Off Credit Card",
            target=1800.0,
            saved=1500.0,
            priority="important",
            category="debt",
        ),
    ]


@pytest.fixture
def snapshot(accounts, transactions, recurrences) -> EngineSnapshot:
    """Small simulation count keeps unit tests fast"""
    return EngineSnapshot(
        today=TODAY,
        accounts=accounts,
        transactions=transactions,
        recurrences=recurrences,
        simulations=60,
    )
