"""Runway calculation with buffer zones, scenarios and what-if impact"""

import math
from dataclasses import replace
from datetime import date, timedelta
from typing import List, Optional

from saverflow_engine.domain.models import (
    BufferZones,
    ForecastDay,
    RunwayCalculation,
    RunwayGoalProjection,
    RunwayImpact,
    RunwayMilestone,
    RunwayScenario,
    RunwayScenarios,
    RunwayVolatility,
)

DEFAULT_BUFFER = 500.0

SAFE_ZONE_DAYS = 30
CRITICAL_ZONE_DAYS = 14
TREND_THRESHOLD = 0.1
CONFIDENCE_WINDOW_DAYS = 30

MILESTONES = (
    (7, "One week buffer"),
    (14, "Two weeks buffer"),
    (30, "One month buffer"),
    (60, "Two months buffer"),
    (90, "Three months buffer"),
)


def days_above_threshold(forecast_days: List[ForecastDay], threshold: float, metric: str = "p50_total") -> int:
    """Index of the first day the metric drops below threshold, or the full length"""
    for index, day in enumerate(forecast_days):
        if getattr(day, metric) < threshold:
            return index
    return len(forecast_days)


def classify_buffer_zone(runway_days: int) -> BufferZones:
    return BufferZones(
        safe=runway_days > SAFE_ZONE_DAYS,
        caution=CRITICAL_ZONE_DAYS <= runway_days <= SAFE_ZONE_DAYS,
        critical=runway_days < CRITICAL_ZONE_DAYS,
    )


def band_confidence(forecast_days: List[ForecastDay]) -> float:
    """Confidence in [0.3, 1] from band width relative to the median balance"""
    window = forecast_days[:CONFIDENCE_WINDOW_DAYS]
    avg_band_width = sum(d.p90_total - d.p10_total for d in window) / len(window)
    avg_balance = sum(d.p50_total for d in window) / len(window)
    band_ratio = avg_band_width / abs(avg_balance) if abs(avg_balance) > 0 else 1.0
    return max(0.3, min(1.0, 1 - band_ratio * 0.5))


def runway_trend(forecast_days: List[ForecastDay]) -> str:
    """Compare the first week's mean P50 against a later week (days 14-20 when available)"""
    if len(forecast_days) < 7:
        return "stable"

    first_week_avg = sum(d.p50_total for d in forecast_days[:7]) / 7
    later_start = max(0, min(14, len(forecast_days) - 7))
    later_week = forecast_days[later_start:later_start + 7]
    later_week_avg = sum(d.p50_total for d in later_week) / len(later_week)

    if later_week_avg > first_week_avg * (1 + TREND_THRESHOLD):
        return "extending"
    if later_week_avg < first_week_avg * (1 - TREND_THRESHOLD):
        return "shrinking"
    return "stable"


def _recommendation(runway_days: int, zones: BufferZones, trend: str) -> str:
    if zones.critical:
        return (
            f"Critical: Only {runway_days} days of runway. Immediate action needed - "
            "reduce expenses or secure additional income."
        )
    if zones.caution:
        return (
            f"Caution: {runway_days} days of runway. Review upcoming expenses and "
            "consider postponing non-essential spending."
        )

    recommendation = f"Good: {runway_days} days of runway. "
    if trend == "extending":
        return recommendation + "Runway is improving - consider allocating to savings goals."
    if trend == "shrinking":
        return recommendation + "Runway is declining - monitor closely and adjust spending if needed."
    return recommendation + "Maintain current course and continue building buffer."


def _exhaustion(today: date, days: int, horizon: int) -> Optional[date]:
    return today + timedelta(days=days) if days < horizon else None


def calculate_runway(
    forecast_days: List[ForecastDay],
    buffer: float = DEFAULT_BUFFER,
    today: Optional[date] = None,
) -> RunwayCalculation:
    """
    Calculate runway for the optimistic (P90), expected (P50) and
    conservative (P10) series. The primary figure is the expected one.
    """
    if today is None:
        today = forecast_days[0].date if forecast_days else date.today()

    if not forecast_days:
        return RunwayCalculation(
            days=0,
            exhaustion_date=None,
            confidence=0.0,
            scenarios=RunwayScenarios(
                optimistic=RunwayScenario(0, None),
                expected=RunwayScenario(0, None),
                conservative=RunwayScenario(0, None),
            ),
            buffer_zones=classify_buffer_zone(0),
            trend="stable",
            recommendation="Unable to calculate runway - no forecast data available.",
        )

    horizon = len(forecast_days)
    conservative_days = days_above_threshold(forecast_days, buffer, "p10_total")
    expected_days = days_above_threshold(forecast_days, buffer, "p50_total")
    optimistic_days = days_above_threshold(forecast_days, buffer, "p90_total")

    zones = classify_buffer_zone(expected_days)
    trend = runway_trend(forecast_days)
    exhaustion_date = _exhaustion(today, expected_days, horizon)

    return RunwayCalculation(
        days=expected_days,
        exhaustion_date=exhaustion_date,
        confidence=round(band_confidence(forecast_days), 2),
        scenarios=RunwayScenarios(
            optimistic=RunwayScenario(optimistic_days, _exhaustion(today, optimistic_days, horizon)),
            expected=RunwayScenario(expected_days, exhaustion_date),
            conservative=RunwayScenario(conservative_days, _exhaustion(today, conservative_days, horizon)),
        ),
        buffer_zones=zones,
        trend=trend,
        recommendation=_recommendation(expected_days, zones, trend),
    )


def shift_forecast(forecast_days: List[ForecastDay], amount: float) -> List[ForecastDay]:
    """Move all three bands down by amount (negative amount moves them up)"""
    return [
        replace(
            day,
            p50_total=day.p50_total - amount,
            p10_total=day.p10_total - amount,
            p90_total=day.p90_total - amount,
        )
        for day in forecast_days
    ]


def calculate_runway_impact(
    forecast_days: List[ForecastDay],
    amount: float,
    buffer: float = DEFAULT_BUFFER,
    today: Optional[date] = None,
) -> RunwayImpact:
    """Runway change if amount leaves the account today"""
    current = calculate_runway(forecast_days, buffer, today)
    adjusted = calculate_runway(shift_forecast(forecast_days, amount), buffer, today)

    change = adjusted.days - current.days
    percent_change = change / current.days * 100 if current.days > 0 else 0

    return RunwayImpact(
        current_runway=current.days,
        new_runway=adjusted.days,
        change=change,
        percent_change=round(percent_change),
        new_exhaustion_date=adjusted.exhaustion_date,
    )


def get_runway_milestones(runway_days: int) -> List[RunwayMilestone]:
    return [
        RunwayMilestone(
            threshold=threshold,
            label=label,
            achieved=runway_days >= threshold,
            days_to_go=max(0, threshold - runway_days),
        )
        for threshold, label in MILESTONES
    ]


VOLATILITY_DESCRIPTIONS = {
    "low": "Runway is stable and predictable. Low financial volatility.",
    "medium": "Runway shows moderate fluctuations. Monitor for significant changes.",
    "high": "Runway is highly variable. Cash flow is unpredictable - consider building larger buffer.",
}


def analyze_runway_volatility(forecast_days: List[ForecastDay], buffer: float = DEFAULT_BUFFER) -> RunwayVolatility:
    """Variability of the runway when measured from each of the first 30 days"""
    if len(forecast_days) < 7:
        return RunwayVolatility(
            volatility="medium",
            score=50,
            description="Insufficient data to assess volatility.",
        )

    runways = [
        days_above_threshold(forecast_days[start:], buffer)
        for start in range(min(30, len(forecast_days)))
    ]
    mean = sum(runways) / len(runways)
    std_dev = math.sqrt(sum((r - mean) ** 2 for r in runways) / len(runways))
    coefficient = std_dev / mean if mean > 0 else 0

    if coefficient < 0.1:
        volatility, score = "low", 25
    elif coefficient < 0.25:
        volatility, score = "medium", 50
    else:
        volatility, score = "high", 80

    return RunwayVolatility(volatility=volatility, score=score, description=VOLATILITY_DESCRIPTIONS[volatility])


def calculate_time_to_runway_goal(
    forecast_days: List[ForecastDay],
    current_runway: int,
    target_runway: int,
    buffer: float = DEFAULT_BUFFER,
) -> RunwayGoalProjection:
    if current_runway >= target_runway:
        return RunwayGoalProjection(True, 0, 0.0, "Target already achieved!")

    if len(forecast_days) < 14:
        return RunwayGoalProjection(False, None, 0.0, "Insufficient data to project timeline.")

    first_runway = days_above_threshold(forecast_days, buffer)
    week_later_runway = days_above_threshold(forecast_days[7:], buffer)
    # Starting a week later already accounts for 7 elapsed days
    weekly_change = week_later_runway - first_runway + 7
    average_improvement = weekly_change / 7

    if average_improvement <= 0:
        return RunwayGoalProjection(
            False,
            None,
            average_improvement,
            "Runway is not improving at current trajectory. Increase income or reduce expenses to reach goal.",
        )

    days_needed = math.ceil((target_runway - current_runway) / average_improvement)
    return RunwayGoalProjection(
        True,
        days_needed,
        round(average_improvement, 2),
        f"At current rate, you'll reach {target_runway} days of runway in approximately {days_needed} days.",
    )
