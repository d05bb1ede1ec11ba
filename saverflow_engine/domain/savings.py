"""Safe-to-save calculation, savings impact and transfer scheduling"""

import math
from datetime import date, timedelta
from typing import List, Optional

from saverflow_engine.domain.models import (
    EmergencyFundTarget,
    ForecastDay,
    Recurrence,
    SafeToSaveCalculation,
    SafeToSaveFactors,
    SavingsImpact,
    ScheduledTransfer,
    Transaction,
)
from saverflow_engine.domain.recurrences import monthly_equivalent, project_recurrences
from saverflow_engine.domain.risk import weekly_expense_totals
from saverflow_engine.domain.runway import days_above_threshold, shift_forecast
from saverflow_engine.utils.date_utils import days_between

# Minimum runway (days) before any saving is recommended
MIN_RUNWAY_DAYS = {
    "conservative": 21,
    "moderate": 14,
    "aggressive": 10,
}

RISK_MULTIPLIERS = {
    "conservative": 0.5,
    "moderate": 0.7,
    "aggressive": 0.85,
}

LOOKAHEAD_DAYS = 14
SPENDING_WINDOW_DAYS = 30
UNEXPECTED_SPENDING_DAYS = 7
DEFAULT_TRANSFER_DELAY_DAYS = 7
STABLE_SPENDING_CV = 0.5
MAX_SCHEDULED_TRANSFERS = 12


def _fmt(day: date) -> str:
    return f"{day:%B} {day.day}, {day.year}"


def _withheld(reasoning: str, today: date) -> SafeToSaveCalculation:
    return SafeToSaveCalculation(
        amount=0,
        confidence=0.0,
        reasoning=reasoning,
        factors=SafeToSaveFactors(runway_buffer=0, forecast_margin=0, upcoming_bills=0, risk_adjustment=0),
        recommended_date=today,
        max_safe_amount=0,
    )


def average_daily_spending(transactions: List[Transaction], today: date, window_days: int = SPENDING_WINDOW_DAYS) -> float:
    total = sum(
        abs(tx.amount)
        for tx in transactions
        if tx.amount < 0 and 0 <= days_between(today, tx.date) <= window_days
    )
    return total / window_days


def is_spending_stable(transactions: List[Transaction], today: date) -> bool:
    """Weekly spending over the last four weeks varies by less than half its mean"""
    weekly = weekly_expense_totals(transactions, today, weeks=4)
    mean = sum(weekly) / len(weekly)
    if mean <= 0:
        return False
    std_dev = math.sqrt(sum((w - mean) ** 2 for w in weekly) / len(weekly))
    return std_dev / mean < STABLE_SPENDING_CV


def next_income_date(recurrences: List[Recurrence], today: date) -> Optional[date]:
    upcoming = sorted(r.next_date for r in recurrences if r.amount > 0 and r.next_date >= today)
    return upcoming[0] if upcoming else None


def calculate_safe_to_save(
    forecast_days: List[ForecastDay],
    recurrences: List[Recurrence],
    transactions: List[Transaction],
    current_balance: float,
    runway_days: int,
    today: date,
    user_buffer: float = 500.0,
    risk_tolerance: str = "moderate",
) -> SafeToSaveCalculation:
    """
    Amount that can move to savings while the conservative forecast stays
    above the buffer.

    Formula:
        base = max(0, P10 in 14 days - buffer - one week of spending - bills due in 14 days)
        amount = base * risk multiplier

    Nothing is recommended while runway is under the tolerance's minimum.
    """
    min_runway = MIN_RUNWAY_DAYS[risk_tolerance]
    if runway_days < min_runway:
        return _withheld(
            f"Runway is {runway_days} days, which is below the safe threshold. Focus on building buffer first.",
            today,
        )

    two_weeks_out = next((d for d in forecast_days if days_between(d.date, today) >= LOOKAHEAD_DAYS), None)
    if two_weeks_out is None:
        return _withheld("Insufficient forecast data to calculate safe savings amount.", today)

    conservative_balance = two_weeks_out.p10_total

    upcoming_bills = sum(
        abs(r.amount)
        for r in recurrences
        if r.amount < 0 and 0 <= days_between(r.next_date, today) <= LOOKAHEAD_DAYS
    )

    daily_spending = average_daily_spending(transactions, today)
    unexpected_buffer = daily_spending * UNEXPECTED_SPENDING_DAYS

    risk_multiplier = RISK_MULTIPLIERS[risk_tolerance]
    base_amount = max(0.0, conservative_balance - user_buffer - unexpected_buffer - upcoming_bills)
    safe_amount = base_amount * risk_multiplier
    max_safe_amount = max(0.0, current_balance - user_buffer - unexpected_buffer)

    income_date = next_income_date(recurrences, today)
    if income_date is not None:
        recommended_date = income_date + timedelta(days=1)
    else:
        recommended_date = today + timedelta(days=DEFAULT_TRANSFER_DELAY_DAYS)

    confidence = 0.5
    if runway_days > 30:
        confidence += 0.2
    elif runway_days > 21:
        confidence += 0.1
    if is_spending_stable(transactions, today):
        confidence += 0.15
    if conservative_balance > user_buffer * 2:
        confidence += 0.15
    confidence = min(1.0, confidence)

    if safe_amount > 0:
        reasoning = (
            f"Based on your {runway_days}-day runway and conservative forecast, you can safely save "
            f"${round(safe_amount)}. This keeps you above ${round(user_buffer)} in the P10 scenario even "
            f"with unexpected expenses. Best to transfer after your next income on {_fmt(recommended_date)}."
        )
    else:
        reasoning = "Currently not recommended to save due to tight cash flow. "
        if upcoming_bills > 0:
            reasoning += f"Large bills of ${round(upcoming_bills)} are coming in the next two weeks. "
        reasoning += "Focus on maintaining your buffer first."

    return SafeToSaveCalculation(
        amount=round(safe_amount),
        confidence=round(confidence, 2),
        reasoning=reasoning,
        factors=SafeToSaveFactors(
            runway_buffer=round(base_amount),
            forecast_margin=round(conservative_balance - current_balance),
            upcoming_bills=round(upcoming_bills),
            risk_adjustment=round((1 - risk_multiplier) * base_amount),
        ),
        recommended_date=recommended_date,
        max_safe_amount=round(max_safe_amount),
    )


def calculate_savings_impact(
    amount: float,
    forecast_days: List[ForecastDay],
    current_runway: int,
    user_buffer: float = 500.0,
) -> SavingsImpact:
    """Runway after moving amount out of the account today"""
    new_runway = days_above_threshold(shift_forecast(forecast_days, amount), user_buffer, "p50_total")

    if new_runway < 7:
        risk_level = "high"
    elif new_runway < 14:
        risk_level = "medium"
    else:
        risk_level = "low"

    return SavingsImpact(
        new_runway=new_runway,
        runway_change=new_runway - current_runway,
        risk_level=risk_level,
        will_stay_above_buffer=new_runway > 14,
    )


def generate_savings_schedule(
    forecast_days: List[ForecastDay],
    recurrences: List[Recurrence],
    transactions: List[Transaction],
    current_balance: float,
    today: date,
    goal_amount: float,
    user_buffer: float = 500.0,
    risk_tolerance: str = "moderate",
) -> List[ScheduledTransfer]:
    """
    Greedy transfer plan toward goal_amount, one transfer after each
    upcoming income date.

    Every scheduled transfer is taken out of the forecast before the next
    date is evaluated, so later transfers never count the same money twice.
    """
    if goal_amount <= 0:
        return []

    horizon = len(forecast_days)
    income_dates = sorted(
        {p.date for p in project_recurrences([r for r in recurrences if r.amount > 0], today, horizon) if p.date > today}
    )[:MAX_SCHEDULED_TRANSFERS]

    schedule: List[ScheduledTransfer] = []
    cumulative = 0.0

    for income_date in income_dates:
        adjusted = shift_forecast(forecast_days, cumulative)
        runway_days = days_above_threshold(adjusted, user_buffer, "p50_total")
        calculation = calculate_safe_to_save(
            adjusted,
            recurrences,
            transactions,
            current_balance - cumulative,
            runway_days,
            income_date,
            user_buffer,
            risk_tolerance,
        )
        if calculation.amount <= 0:
            continue

        amount = min(calculation.amount, goal_amount - cumulative)
        if amount <= 0:
            break
        cumulative += amount
        schedule.append(
            ScheduledTransfer(
                date=income_date + timedelta(days=1),
                amount=amount,
                confidence=calculation.confidence,
                cumulative_amount=cumulative,
            )
        )
        if cumulative >= goal_amount:
            break

    return schedule


def calculate_emergency_fund_target(
    transactions: List[Transaction],
    recurrences: List[Recurrence],
) -> EmergencyFundTarget:
    """Three to six months of expenses depending on income stability"""
    # History is treated as one 30-day month
    monthly_history = abs(sum(tx.amount for tx in transactions if tx.amount < 0))
    monthly_recurring = sum(abs(monthly_equivalent(r)) for r in recurrences if r.amount < 0)
    monthly_expenses = monthly_history + monthly_recurring

    has_stable_income = any(
        r.amount > 0 and r.confidence == "high" and r.cadence == "monthly" for r in recurrences
    )
    minimum_months = 3 if has_stable_income else 6

    if has_stable_income:
        reasoning = (
            f"With stable monthly income, aim for {minimum_months} months of expenses "
            f"(${round(monthly_expenses)}/month)."
        )
    else:
        reasoning = (
            f"Without consistent income, aim for {minimum_months} months of expenses "
            f"(${round(monthly_expenses)}/month) for better security."
        )

    return EmergencyFundTarget(
        recommended=round(monthly_expenses * minimum_months),
        minimum_months=minimum_months,
        monthly_expenses=round(monthly_expenses),
        reasoning=reasoning,
    )
