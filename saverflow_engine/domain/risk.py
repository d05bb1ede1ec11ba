"""Risk detection engine - independent heuristics over forecast, bills and spending"""

import math
import re
from datetime import date
from typing import List, Optional

from saverflow_engine.domain.models import ForecastDay, Recurrence, RiskAlert, Transaction
from saverflow_engine.utils.date_utils import days_between

LOW_BALANCE_THRESHOLD = 500.0
LOW_BALANCE_CRITICAL = 200.0
LARGE_BILL_MULTIPLIER = 3.0
LARGE_BILL_BALANCE_SHARE = 0.3
LARGE_BILL_FLOOR = 500.0
RUNWAY_ALERT_DAYS = 14
SPENDING_SPIKE_SIGMA = 2.0
CONCENTRATION_THRESHOLD = 0.85
CONCENTRATION_MIN_TOTAL = 1000.0
MAX_RISK_ALERTS = 5

SEVERITY_ORDER = {"critical": 0, "warning": 1, "info": 2}


def _slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.lower())


def _money(amount: float) -> str:
    return f"${amount:,.0f}"


def detect_low_balance_risks(
    forecast_days: List[ForecastDay],
    threshold: float = LOW_BALANCE_THRESHOLD,
    critical_threshold: float = LOW_BALANCE_CRITICAL,
) -> List[RiskAlert]:
    """
    Flag the first day the conservative band dips under threshold, and
    separately the first day it reaches zero. Nothing after the first
    overdraft day is considered.
    """
    overdraft_index = next(
        (i for i, day in enumerate(forecast_days) if day.p10_total <= 0),
        len(forecast_days),
    )
    low_index = next(
        (i for i, day in enumerate(forecast_days[:overdraft_index]) if day.p10_total < threshold),
        None,
    )

    risks: List[RiskAlert] = []
    if low_index is not None:
        day = forecast_days[low_index]
        risks.append(
            RiskAlert(
                id=f"low-balance-{low_index}",
                title="Balance may run low",
                description=(
                    f"In the conservative scenario, your balance could drop to "
                    f"${round(day.p10_total)} around {day.date:%B} {day.date.day}."
                ),
                date=day.date,
                severity="critical" if day.p10_total < critical_threshold else "warning",
            )
        )

    if overdraft_index < len(forecast_days):
        day = forecast_days[overdraft_index]
        risks.append(
            RiskAlert(
                id=f"negative-balance-{overdraft_index}",
                title="Potential overdraft",
                description=(
                    f"Risk of overdraft around {day.date:%B} {day.date.day}. "
                    "Consider reducing expenses or moving funds."
                ),
                date=day.date,
                severity="critical",
            )
        )

    return risks


def detect_large_bill_risks(
    recurrences: List[Recurrence],
    today: date,
    current_balance: float,
    horizon_days: int = 90,
    multiplier: float = LARGE_BILL_MULTIPLIER,
    balance_share: float = LARGE_BILL_BALANCE_SHARE,
    floor: float = LARGE_BILL_FLOOR,
) -> List[RiskAlert]:
    """Flag upcoming recurrences large relative to typical bills or the balance"""
    expense_amounts = [r.amount for r in recurrences if r.amount < 0]
    average_expense = abs(sum(expense_amounts) / max(1, len(expense_amounts)))

    large_threshold = max(
        average_expense * multiplier,
        current_balance * balance_share,
        floor,
    )

    risks = []
    for recurrence in recurrences:
        days_until = days_between(recurrence.next_date, today)
        magnitude = abs(recurrence.amount)
        if not (0 <= days_until <= horizon_days and magnitude >= large_threshold):
            continue

        # An empty or overdrawn account feels any bill in full
        impact_percent = round(magnitude / current_balance * 100) if current_balance > 0 else 100
        if impact_percent > 50:
            severity = "critical"
        elif impact_percent > 30:
            severity = "warning"
        else:
            severity = "info"

        due = recurrence.next_date
        risks.append(
            RiskAlert(
                id=f"large-bill-{_slug(recurrence.name)}",
                title=f"Large {'payment' if recurrence.amount < 0 else 'deposit'} coming",
                description=(
                    f"{recurrence.name} of {_money(magnitude)} due {due:%B} {due.day} "
                    f"({impact_percent}% of current balance)."
                ),
                date=due,
                severity=severity,
            )
        )

    return risks


def detect_runway_trends(
    forecast_days: List[ForecastDay],
    runway_days: int,
    threshold: float = LOW_BALANCE_THRESHOLD,
    alert_days: int = RUNWAY_ALERT_DAYS,
) -> List[RiskAlert]:
    if runway_days >= alert_days:
        return []

    critical_day: Optional[ForecastDay] = next((d for d in forecast_days if d.p50_total < threshold), None)
    if critical_day is None:
        return []

    return [
        RiskAlert(
            id="runway-critical",
            title="Runway below two weeks",
            description=(
                f"Your financial runway is {runway_days} days. Consider reducing discretionary "
                "spending or securing additional income."
            ),
            date=critical_day.date,
            severity="critical" if runway_days < 7 else "warning",
        )
    ]


def weekly_expense_totals(transactions: List[Transaction], today: date, weeks: int) -> List[float]:
    """Expense totals per trailing 7-day bucket; index 0 is the most recent week"""
    totals = [0.0] * weeks
    for tx in transactions:
        if tx.amount >= 0:
            continue
        days_ago = days_between(today, tx.date)
        if 0 <= days_ago < weeks * 7:
            totals[days_ago // 7] += abs(tx.amount)
    return totals


def detect_spending_anomalies(
    transactions: List[Transaction],
    today: date,
    sigma: float = SPENDING_SPIKE_SIGMA,
) -> List[RiskAlert]:
    """Compare last week's spending against the four weeks before it"""
    weekly = weekly_expense_totals(transactions, today, weeks=5)
    recent, baseline = weekly[0], weekly[1:]

    mean = sum(baseline) / len(baseline)
    std_dev = math.sqrt(sum((w - mean) ** 2 for w in baseline) / len(baseline))

    if std_dev > 0 and recent > mean + sigma * std_dev:
        return [
            RiskAlert(
                id="spending-spike",
                title="Spending above normal",
                description=(
                    f"Last week's spending was ${round(recent - mean)} higher than usual. "
                    "Review recent transactions."
                ),
                date=today,
                severity="warning",
            )
        ]
    return []


def detect_concentration_risk(
    forecast_days: List[ForecastDay],
    today: date,
    threshold: float = CONCENTRATION_THRESHOLD,
    min_total: float = CONCENTRATION_MIN_TOTAL,
) -> List[RiskAlert]:
    if not forecast_days or len(forecast_days[0].by_account) < 2:
        return []

    first_day = forecast_days[0]
    total = first_day.p50_total
    if total <= min_total:
        return []

    concentrated = next((band for band in first_day.by_account if abs(band.p50 / total) > threshold), None)
    if concentrated is None:
        return []

    share = abs(concentrated.p50 / total)
    return [
        RiskAlert(
            id=f"concentration-{concentrated.account_id}",
            title="High account concentration",
            description=(
                f"{round(share * 100)}% of your funds are in one account. "
                "Consider diversifying for better protection."
            ),
            date=today,
            severity="info",
        )
    ]


def detect_risks(
    *,
    today: date,
    forecast_days: List[ForecastDay],
    transactions: List[Transaction],
    recurrences: List[Recurrence],
    runway_days: int,
    current_balance: float,
    low_balance_threshold: float = LOW_BALANCE_THRESHOLD,
    low_balance_critical: float = LOW_BALANCE_CRITICAL,
    large_bill_multiplier: float = LARGE_BILL_MULTIPLIER,
    large_bill_balance_share: float = LARGE_BILL_BALANCE_SHARE,
    large_bill_floor: float = LARGE_BILL_FLOOR,
    runway_alert_days: int = RUNWAY_ALERT_DAYS,
    spending_spike_sigma: float = SPENDING_SPIKE_SIGMA,
    concentration_threshold: float = CONCENTRATION_THRESHOLD,
    concentration_min_total: float = CONCENTRATION_MIN_TOTAL,
    max_alerts: int = MAX_RISK_ALERTS,
) -> List[RiskAlert]:
    """
    Main entry point: run every heuristic and keep the most important alerts.

    Alerts are ordered critical > warning > info, then by date. Overlapping
    findings from different heuristics are all kept.
    """
    horizon_days = len(forecast_days) or 90
    risks = [
        *detect_low_balance_risks(forecast_days, low_balance_threshold, low_balance_critical),
        *detect_large_bill_risks(
            recurrences,
            today,
            current_balance,
            horizon_days,
            large_bill_multiplier,
            large_bill_balance_share,
            large_bill_floor,
        ),
        *detect_runway_trends(forecast_days, runway_days, low_balance_threshold, runway_alert_days),
        *detect_spending_anomalies(transactions, today, spending_spike_sigma),
        *detect_concentration_risk(forecast_days, today, concentration_threshold, concentration_min_total),
    ]

    risks.sort(key=lambda r: (SEVERITY_ORDER[r.severity], r.date))
    return risks[:max_alerts]


def calculate_risk_score(risks: List[RiskAlert], runway_days: int) -> int:
    """
    Risk score from 0 (no risk) to 100.

    Runway under 7/14/30 days adds 40/25/10; each critical, warning or
    info alert adds 20, 10 or 3.
    """
    score = 0
    if runway_days < 7:
        score += 40
    elif runway_days < 14:
        score += 25
    elif runway_days < 30:
        score += 10

    weights = {"critical": 20, "warning": 10, "info": 3}
    score += sum(weights.get(risk.severity, 3) for risk in risks)

    return min(100, score)
