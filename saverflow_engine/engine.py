"""
Engine orchestration: one snapshot in, every forecast product out.

Flow:
1. Categorize transactions
2. Monte Carlo forecast
3. Runway and forecast confidence
4. Risk alerts and risk score
5. Anomalies
6. Safe-to-save and suggestion
7. Goal prioritization and allocation (when goals are supplied)
"""

import time
import uuid
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time as clock_time, timedelta
from typing import List, Optional

from saverflow_engine.config import settings
from saverflow_engine.domain.anomaly import detect_anomalies
from saverflow_engine.domain.categorization import categorize_transactions
from saverflow_engine.domain.forecast import calculate_forecast_confidence, generate_forecast
from saverflow_engine.domain.goals import get_goal_allocation_strategy, prioritize_goals
from saverflow_engine.domain.models import (
    Account,
    Anomaly,
    ForecastDay,
    GoalAllocation,
    PrioritizedGoal,
    Recurrence,
    RiskAlert,
    RunwayCalculation,
    SafeToSaveCalculation,
    SavingsGoal,
    Suggestion,
    Transaction,
)
from saverflow_engine.domain.recurrences import monthly_equivalent
from saverflow_engine.domain.risk import calculate_risk_score, detect_risks
from saverflow_engine.domain.runway import calculate_runway
from saverflow_engine.domain.savings import calculate_safe_to_save
from saverflow_engine.infrastructure.observability.logging import log_engine_run
from saverflow_engine.infrastructure.observability.metrics import record_engine_run

WHAT_IF_SCENARIOS = ("delay_bill", "cancel_subscription", "add_expense", "add_income")
BILL_DELAY_DAYS = 5


@dataclass
class EngineSnapshot:
    """Inputs for one engine run"""

    today: date
    accounts: List[Account]
    transactions: List[Transaction] = field(default_factory=list)
    recurrences: List[Recurrence] = field(default_factory=list)
    timezone: str = "UTC"
    user_buffer: float = field(default_factory=lambda: settings.user_buffer)
    horizon_days: int = field(default_factory=lambda: settings.horizon_days)
    simulations: int = field(default_factory=lambda: settings.simulation_count)
    risk_tolerance: str = field(default_factory=lambda: settings.risk_tolerance)
    goals: Optional[List[SavingsGoal]] = None
    monthly_income: Optional[float] = None
    monthly_expenses: Optional[float] = None
    current_emergency_fund: Optional[float] = None

    @property
    def current_balance(self) -> float:
        return sum(a.current_balance for a in self.accounts)


@dataclass
class EngineResult:
    """Everything produced for one snapshot"""

    run_id: str
    transactions: List[Transaction]
    forecast_days: List[ForecastDay]
    runway: RunwayCalculation
    confidence: int
    risks: List[RiskAlert]
    risk_score: int
    anomalies: List[Anomaly]
    safe_to_save: SafeToSaveCalculation
    suggestion: Optional[Suggestion]
    monthly_income: float
    monthly_expenses: float
    prioritized_goals: Optional[List[PrioritizedGoal]] = None
    goal_allocations: Optional[List[GoalAllocation]] = None
    duration_ms: float = 0.0

    @property
    def runway_days(self) -> int:
        return self.runway.days


def build_suggestion(safe_to_save: SafeToSaveCalculation, runway: RunwayCalculation) -> Optional[Suggestion]:
    """Transfer suggestion for a positive safe-to-save amount, otherwise None"""
    if safe_to_save.amount <= 0:
        return None

    return Suggestion(
        id=f"suggestion-smart-save-{safe_to_save.recommended_date.isoformat()}",
        title=f"Move ${safe_to_save.amount} to savings",
        action="transfer",
        transfer_amount=safe_to_save.amount,
        date=safe_to_save.recommended_date,
        expected_runway_change_days=abs(runway.scenarios.expected.days - runway.scenarios.conservative.days),
        rationale=safe_to_save.reasoning,
    )


def _monthly_totals(snapshot: EngineSnapshot) -> tuple[float, float]:
    """Income and expense per month, from hints or derived from recurrences"""
    monthly_income = snapshot.monthly_income
    if monthly_income is None:
        monthly_income = sum(monthly_equivalent(r) for r in snapshot.recurrences if r.amount > 0)

    monthly_expenses = snapshot.monthly_expenses
    if monthly_expenses is None:
        monthly_expenses = abs(sum(monthly_equivalent(r) for r in snapshot.recurrences if r.amount < 0))

    return monthly_income, monthly_expenses


def _emergency_fund(snapshot: EngineSnapshot) -> float:
    if snapshot.current_emergency_fund is not None:
        return snapshot.current_emergency_fund
    return sum(a.current_balance for a in snapshot.accounts if a.type == "savings")


def _run(snapshot: EngineSnapshot, executor: Optional[Executor]) -> EngineResult:
    today = snapshot.today
    current_balance = snapshot.current_balance

    # 1. Categorize transactions
    transactions = categorize_transactions(snapshot.transactions)

    # 2. Forecast
    forecast_days = generate_forecast(
        today=today,
        accounts=snapshot.accounts,
        transactions=transactions,
        recurrences=snapshot.recurrences,
        horizon_days=snapshot.horizon_days,
        simulations=snapshot.simulations,
        daily_mean_scale=settings.daily_mean_scale,
        daily_std_scale=settings.daily_std_scale,
        recurrence_variance_scale=settings.recurrence_variance_scale,
        std_dev_floor=settings.std_dev_floor,
        seed_multiplier=settings.seed_multiplier,
        seed_offset=settings.seed_offset,
        executor=executor,
    )

    # 3. Runway and confidence
    runway = calculate_runway(forecast_days, snapshot.user_buffer, today)
    confidence = calculate_forecast_confidence(transactions, snapshot.recurrences, forecast_days)

    # 4. Risks
    risks = detect_risks(
        today=today,
        forecast_days=forecast_days,
        transactions=transactions,
        recurrences=snapshot.recurrences,
        runway_days=runway.days,
        current_balance=current_balance,
        low_balance_threshold=settings.low_balance_threshold,
        low_balance_critical=settings.low_balance_critical,
        large_bill_multiplier=settings.large_bill_multiplier,
        large_bill_balance_share=settings.large_bill_balance_share,
        large_bill_floor=settings.large_bill_floor,
        runway_alert_days=settings.runway_alert_days,
        spending_spike_sigma=settings.spending_spike_sigma,
        concentration_threshold=settings.concentration_threshold,
        concentration_min_total=settings.concentration_min_total,
        max_alerts=settings.max_risk_alerts,
    )

    # 5. Anomalies
    anomalies = detect_anomalies(
        transactions,
        today,
        z_threshold=settings.outlier_z_threshold,
        frequency_multiplier=settings.frequency_spike_multiplier,
        new_merchant_window_days=settings.new_merchant_window_days,
        new_merchant_min_amount=settings.new_merchant_min_amount,
        time_anomaly_min_hours=settings.time_anomaly_min_hours,
        max_anomalies=settings.max_anomalies,
    )

    # 6. Safe-to-save
    safe_to_save = calculate_safe_to_save(
        forecast_days,
        snapshot.recurrences,
        transactions,
        current_balance,
        runway.days,
        today,
        snapshot.user_buffer,
        snapshot.risk_tolerance,
    )

    monthly_income, monthly_expenses = _monthly_totals(snapshot)

    result = EngineResult(
        run_id=str(uuid.uuid4()),
        transactions=transactions,
        forecast_days=forecast_days,
        runway=runway,
        confidence=confidence,
        risks=risks,
        risk_score=calculate_risk_score(risks, runway.days),
        anomalies=anomalies,
        safe_to_save=safe_to_save,
        suggestion=build_suggestion(safe_to_save, runway),
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
    )

    # 7. Goals
    if snapshot.goals is not None:
        result.prioritized_goals = prioritize_goals(
            snapshot.goals,
            today=today,
            runway_days=runway.days,
            monthly_expenses=monthly_expenses,
            current_emergency_fund=_emergency_fund(snapshot),
            safe_to_save=safe_to_save.amount,
        )
        result.goal_allocations = get_goal_allocation_strategy(result.prioritized_goals, safe_to_save.amount)

    return result


def run_engine(snapshot: EngineSnapshot, *, executor: Optional[Executor] = None) -> EngineResult:
    """
    Run the full pipeline for one snapshot.

    Simulations go to `executor` when one is given, or to a private thread
    pool when SAVERFLOW_SIMULATION_WORKERS > 1. Output is the same either way.
    """
    start_time = time.time()

    if executor is None and settings.simulation_workers > 1:
        with ThreadPoolExecutor(max_workers=settings.simulation_workers) as pool:
            result = _run(snapshot, pool)
    else:
        result = _run(snapshot, executor)

    result.duration_ms = (time.time() - start_time) * 1000

    log_engine_run(
        run_id=result.run_id,
        runway_days=result.runway.days,
        safe_to_save=result.safe_to_save.amount,
        risk_count=len(result.risks),
        anomaly_count=len(result.anomalies),
        duration_ms=result.duration_ms,
        goal_count=len(result.prioritized_goals) if result.prioritized_goals is not None else None,
    )
    record_engine_run(result)

    return result


def _one_off(snapshot: EngineSnapshot, kind: str, amount: float, on: date) -> Transaction:
    if not snapshot.accounts:
        raise ValueError(f"{kind} requires at least one account")

    if kind == "expense":
        return Transaction(
            id=f"temp-expense-{uuid.uuid4().hex[:8]}",
            account_id=snapshot.accounts[0].id,
            date=datetime.combine(on, clock_time.min),
            amount=-abs(amount),
            merchant="One-time purchase",
            category="shopping",
        )
    return Transaction(
        id=f"temp-income-{uuid.uuid4().hex[:8]}",
        account_id=snapshot.accounts[0].id,
        date=datetime.combine(on, clock_time.min),
        amount=abs(amount),
        merchant="Additional income",
        category="income",
    )


def apply_what_if(snapshot: EngineSnapshot, scenario: str, amount: float = 0.0, on: Optional[date] = None) -> EngineSnapshot:
    """
    Copy of snapshot with one hypothetical change applied.

    Scenarios:
    - delay_bill: largest expense recurrence moves 5 days later
    - cancel_subscription: first monthly expense recurrence is dropped
    - add_expense / add_income: one-off transaction on `on` (default today)

    Raises:
        ValueError: for an unknown scenario
    """
    if scenario not in WHAT_IF_SCENARIOS:
        raise ValueError(f"Unknown what-if scenario: {scenario}")

    recurrences = list(snapshot.recurrences)
    transactions = list(snapshot.transactions)
    on = on or snapshot.today

    if scenario == "delay_bill":
        expenses = [r for r in recurrences if r.amount < 0]
        if expenses:
            largest = max(expenses, key=lambda r: abs(r.amount))
            recurrences = [
                replace(r, next_date=r.next_date + timedelta(days=BILL_DELAY_DAYS)) if r.name == largest.name else r
                for r in recurrences
            ]
    elif scenario == "cancel_subscription":
        subscription = next((r for r in recurrences if r.amount < 0 and r.cadence == "monthly"), None)
        if subscription is not None:
            recurrences = [r for r in recurrences if r.name != subscription.name]
    elif scenario == "add_expense":
        transactions.append(_one_off(snapshot, "expense", amount, on))
    else:
        transactions.append(_one_off(snapshot, "income", amount, on))

    return replace(snapshot, recurrences=recurrences, transactions=transactions)


def run_what_if(
    snapshot: EngineSnapshot,
    scenario: str,
    amount: float = 0.0,
    on: Optional[date] = None,
    *,
    executor: Optional[Executor] = None,
) -> EngineResult:
    return run_engine(apply_what_if(snapshot, scenario, amount, on), executor=executor)
