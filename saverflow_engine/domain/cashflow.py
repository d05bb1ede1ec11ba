"""Cash-flow analysis: period summaries, trend regression, burn rate and recurring patterns"""

import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List

from saverflow_engine.domain.models import (
    BurnRate,
    CashFlowSummary,
    CategorySpending,
    ForecastDay,
    IncomeSource,
    RecurringPattern,
    Transaction,
    TrendAnalysis,
    WeeklySummary,
)
from saverflow_engine.utils.date_utils import DateLike, as_date, as_datetime, days_between, start_of_week

NET_TREND_THRESHOLD = 0.1
BURN_TREND_THRESHOLD = 0.15
SLOPE_STABLE_PERCENT = 0.5
TREND_WINDOW_DAYS = 30
MIN_PATTERN_CONFIDENCE = 0.5

# (label, expected interval in days, tolerance)
INTERVAL_BANDS = (
    ("weekly", 7, 2),
    ("biweekly", 14, 3),
    ("monthly", 30, 5),
)


def _cents(value: float) -> float:
    return round(value, 2)


def _volatility_description(score: float) -> str:
    if score > 70:
        return "Very High"
    if score > 50:
        return "High"
    if score > 30:
        return "Moderate"
    return "Low"


def analyze_cash_flow(transactions: List[Transaction], start: DateLike, end: DateLike) -> CashFlowSummary:
    """
    Summarize income, expenses and net flow for [start, end].

    Requirements:
    - Income grouped by merchant, expenses grouped by category with percentages
    - Net trend compares first-half and second-half net flow (+/-10%)
    - Volatility is the coefficient of variation of daily net totals, capped at 100
    """
    start_dt, end_dt = as_datetime(start), as_datetime(end)
    period = [tx for tx in transactions if start_dt <= as_datetime(tx.date) <= end_dt]
    days = max(1, days_between(end_dt, start_dt))

    incomes = [tx for tx in period if tx.amount > 0]
    expenses = [tx for tx in period if tx.amount < 0]

    total_income = sum(tx.amount for tx in incomes)
    sources: Dict[str, IncomeSource] = {}
    for tx in incomes:
        source = sources.setdefault(tx.merchant, IncomeSource(name=tx.merchant, amount=0.0, count=0))
        source.amount += tx.amount
        source.count += 1

    total_expenses = abs(sum(tx.amount for tx in expenses))
    category_totals: Dict[str, float] = defaultdict(float)
    for tx in expenses:
        category_totals[tx.category or "other"] += abs(tx.amount)

    categories = [
        CategorySpending(
            category=category,
            amount=amount,
            percentage=round(amount / total_expenses * 100) if total_expenses > 0 else 0,
        )
        for category, amount in category_totals.items()
    ]
    categories.sort(key=lambda c: c.amount, reverse=True)

    net_total = total_income - total_expenses

    midpoint = start_dt + (end_dt - start_dt) / 2
    first_half_net = sum(tx.amount for tx in period if as_datetime(tx.date) < midpoint)
    second_half_net = sum(tx.amount for tx in period if as_datetime(tx.date) >= midpoint)
    if second_half_net > first_half_net * (1 + NET_TREND_THRESHOLD):
        net_trend = "improving"
    elif second_half_net < first_half_net * (1 - NET_TREND_THRESHOLD):
        net_trend = "declining"
    else:
        net_trend = "stable"

    daily_totals = [0.0] * days
    for tx in period:
        offset = int((as_datetime(tx.date) - start_dt).total_seconds() // 86400)
        if 0 <= offset < days:
            daily_totals[offset] += tx.amount

    avg_daily = sum(daily_totals) / days
    std_dev = math.sqrt(sum((v - avg_daily) ** 2 for v in daily_totals) / days)
    volatility_score = min(100.0, std_dev / max(1.0, abs(avg_daily)) * 100)

    return CashFlowSummary(
        start=start_dt,
        end=end_dt,
        days=days,
        income_total=_cents(total_income),
        income_average=_cents(total_income / days),
        income_count=len(incomes),
        income_sources=sorted(sources.values(), key=lambda s: s.amount, reverse=True),
        expense_total=_cents(total_expenses),
        expense_average=_cents(total_expenses / days),
        expense_count=len(expenses),
        expense_categories=categories,
        net_total=_cents(net_total),
        net_average=_cents(net_total / days),
        net_trend=net_trend,
        volatility_score=round(volatility_score),
        volatility_description=_volatility_description(volatility_score),
    )


def analyze_trend(forecast_days: List[ForecastDay]) -> TrendAnalysis:
    """Least-squares line through the first 30 days of P50 balances"""
    if len(forecast_days) < 7:
        return TrendAnalysis(
            direction="stable",
            strength=0.0,
            confidence=0.0,
            predicted_change=0.0,
            description="Insufficient data for trend analysis",
        )

    values = [day.p50_total for day in forecast_days[:TREND_WINDOW_DAYS]]
    n = len(values)
    x_sum = n * (n - 1) / 2
    y_sum = sum(values)
    xy_sum = sum(i * v for i, v in enumerate(values))
    xx_sum = n * (n - 1) * (2 * n - 1) / 6

    slope = (n * xy_sum - x_sum * y_sum) / (n * xx_sum - x_sum * x_sum)
    intercept = (y_sum - slope * x_sum) / n

    y_mean = y_sum / n
    ss_total = sum((v - y_mean) ** 2 for v in values)
    ss_residual = sum((v - (slope * i + intercept)) ** 2 for i, v in enumerate(values))
    # A flat series is fitted exactly
    r_squared = 1 - ss_residual / ss_total if ss_total > 0 else 1.0

    slope_percent = slope / abs(y_mean) * 100 if y_mean != 0 else 0.0
    if slope_percent > SLOPE_STABLE_PERCENT:
        direction = "up"
    elif slope_percent < -SLOPE_STABLE_PERCENT:
        direction = "down"
    else:
        direction = "stable"

    predicted_change = slope * 30
    if direction == "up":
        description = f"Balance is trending upward by approximately ${abs(predicted_change):.0f} over the next month."
    elif direction == "down":
        description = f"Balance is trending downward by approximately ${abs(predicted_change):.0f} over the next month."
    else:
        description = "Balance is relatively stable with no significant trend."

    return TrendAnalysis(
        direction=direction,
        strength=min(1.0, abs(slope_percent) / 10),
        confidence=max(0.0, min(1.0, r_squared)),
        predicted_change=_cents(predicted_change),
        description=description,
    )


def calculate_burn_rate(transactions: List[Transaction], today: date, days: int = 30) -> BurnRate:
    """Average expense outflow over the trailing window, with half-over-half trend"""
    recent = []
    for tx in transactions:
        days_ago = days_between(today, tx.date)
        if tx.amount < 0 and 0 <= days_ago <= days:
            recent.append((days_ago, abs(tx.amount)))

    daily = sum(amount for _, amount in recent) / days

    midpoint = days / 2
    earlier_rate = sum(amount for days_ago, amount in recent if days_ago >= midpoint) / midpoint
    later_rate = sum(amount for days_ago, amount in recent if days_ago < midpoint) / midpoint

    if later_rate > earlier_rate * (1 + BURN_TREND_THRESHOLD):
        trend = "increasing"
    elif later_rate < earlier_rate * (1 - BURN_TREND_THRESHOLD):
        trend = "decreasing"
    else:
        trend = "stable"

    return BurnRate(
        daily=_cents(daily),
        weekly=_cents(daily * 7),
        monthly=_cents(daily * 30),
        trend=trend,
    )


def _classify_interval(avg_interval: float) -> str:
    for label, expected, tolerance in INTERVAL_BANDS:
        if abs(avg_interval - expected) < tolerance:
            return label
    return "irregular"


def identify_recurring_patterns(transactions: List[Transaction], min_occurrences: int = 2) -> List[RecurringPattern]:
    """Mine merchants that repeat at a consistent weekly, biweekly or monthly interval"""
    by_merchant: Dict[str, List[Transaction]] = defaultdict(list)
    for tx in transactions:
        by_merchant[tx.merchant].append(tx)

    patterns = []
    for merchant, txs in by_merchant.items():
        if len(txs) < min_occurrences:
            continue

        ordered = sorted(txs, key=lambda t: t.date)
        intervals = [days_between(b.date, a.date) for a, b in zip(ordered, ordered[1:])]
        avg_interval = sum(intervals) / len(intervals)
        if avg_interval <= 0:
            continue

        std_dev = math.sqrt(sum((i - avg_interval) ** 2 for i in intervals) / len(intervals))
        frequency = _classify_interval(avg_interval)
        confidence = max(0.0, 1 - std_dev / avg_interval)

        if frequency == "irregular" or confidence <= MIN_PATTERN_CONFIDENCE:
            continue

        last_date = as_datetime(ordered[-1].date)
        patterns.append(
            RecurringPattern(
                merchant=merchant,
                amount=_cents(sum(tx.amount for tx in ordered) / len(ordered)),
                frequency=frequency,
                confidence=round(confidence, 2),
                last_date=last_date,
                next_expected_date=last_date + timedelta(days=round(avg_interval)),
            )
        )

    patterns.sort(key=lambda p: p.confidence, reverse=True)
    return patterns


def generate_weekly_summaries(transactions: List[Transaction], today: date, weeks: int = 4) -> List[WeeklySummary]:
    """Monday-to-Sunday summaries for the last `weeks` weeks, oldest first"""
    summaries = []
    current_week = start_of_week(as_date(today))

    for offset in range(weeks - 1, -1, -1):
        week_start = current_week - timedelta(weeks=offset)
        week_end = week_start + timedelta(days=6)
        week_txs = [tx for tx in transactions if week_start <= as_date(tx.date) <= week_end]

        inflow = sum(tx.amount for tx in week_txs if tx.amount > 0)
        outflow = abs(sum(tx.amount for tx in week_txs if tx.amount < 0))
        summaries.append(
            WeeklySummary(
                week_start=week_start,
                week_end=week_end,
                inflow=_cents(inflow),
                outflow=_cents(outflow),
                net=_cents(inflow - outflow),
                transaction_count=len(week_txs),
            )
        )

    return summaries
