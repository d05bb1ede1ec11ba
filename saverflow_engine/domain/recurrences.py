"""Expansion of recurring bills and income into dated future occurrences"""

from datetime import date, timedelta
from typing import Dict, List

from saverflow_engine.domain.models import Recurrence, RecurrenceProjection
from saverflow_engine.utils.date_utils import days_between

CADENCE_DAYS: Dict[str, int] = {
    "weekly": 7,
    "biweekly": 14,
    "monthly": 30,
    "quarterly": 90,
    "yearly": 365,
}

# Occurrences per month, used to normalise recurring amounts
CADENCE_MONTHLY_MULTIPLIER: Dict[str, float] = {
    "weekly": 4.33,
    "biweekly": 2.17,
    "monthly": 1.0,
    "quarterly": 0.33,
    "yearly": 0.083,
}

CONFIDENCE_MULTIPLIER: Dict[str, float] = {
    "high": 0.95,
    "medium": 0.8,
    "low": 0.6,
}


def confidence_multiplier(tier: str) -> float:
    return CONFIDENCE_MULTIPLIER.get(tier, CONFIDENCE_MULTIPLIER["low"])


def project_recurrences(
    recurrences: List[Recurrence],
    today: date,
    horizon_days: int,
) -> List[RecurrenceProjection]:
    """
    Project each recurrence over [today, today + horizon_days).

    Stepping starts at next_date and advances by the cadence's fixed day
    count; occurrences before today are skipped but still advance the walk.
    """
    projections: List[RecurrenceProjection] = []

    for recurrence in recurrences:
        interval = timedelta(days=CADENCE_DAYS[recurrence.cadence])
        confidence = confidence_multiplier(recurrence.confidence)
        current = recurrence.next_date

        while days_between(current, today) < horizon_days:
            if current >= today:
                projections.append(
                    RecurrenceProjection(
                        date=current,
                        amount=recurrence.amount,
                        name=recurrence.name,
                        confidence=confidence,
                    )
                )
            current = current + interval

    projections.sort(key=lambda p: p.date)
    return projections


def monthly_equivalent(recurrence: Recurrence) -> float:
    """Signed amount this recurrence contributes per month"""
    return recurrence.amount * CADENCE_MONTHLY_MULTIPLIER[recurrence.cadence]
