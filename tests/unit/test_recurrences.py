"""Unit tests for recurrence projection"""

import pytest
from datetime import date, timedelta

from saverflow_engine.domain.models import Recurrence
from saverflow_engine.domain.recurrences import confidence_multiplier, monthly_equivalent, project_recurrences

TODAY = date(2026, 10, 19)


def _recurrence(cadence: str, offset: int, amount: float = -100.0, confidence: str = "high") -> Recurrence:
    return Recurrence(
        name=f"{cadence} bill",
        amount=amount,
        cadence=cadence,
        next_date=TODAY + timedelta(days=offset),
        confidence=confidence,
    )


def test_weekly_projection_within_horizon():
    projections = project_recurrences([_recurrence("weekly", 0)], TODAY, 30)

    assert [(p.date - TODAY).days for p in projections] == [0, 7, 14, 21, 28]


def test_monthly_uses_fixed_thirty_day_steps():
    projections = project_recurrences([_recurrence("monthly", 5)], TODAY, 90)

    assert [(p.date - TODAY).days for p in projections] == [5, 35, 65]


def test_past_next_date_is_walked_forward():
    """Occurrences before today are skipped but keep the cadence"""
    projections = project_recurrences([_recurrence("weekly", -10)], TODAY, 14)

    assert [(p.date - TODAY).days for p in projections] == [4, 11]


def test_occurrence_on_horizon_boundary_excluded():
    projections = project_recurrences([_recurrence("biweekly", 14)], TODAY, 14)
    assert projections == []


def test_projections_sorted_by_date():
    recurrences = [_recurrence("monthly", 20), _recurrence("weekly", 1)]

    projections = project_recurrences(recurrences, TODAY, 30)
    dates = [p.date for p in projections]

    assert dates == sorted(dates)


def test_confidence_tier_multiplier_applied():
    projections = project_recurrences([_recurrence("weekly", 0, confidence="medium")], TODAY, 7)

    assert projections[0].confidence == pytest.approx(0.8)
    assert confidence_multiplier("low") == pytest.approx(0.6)


def test_monthly_equivalent():
    assert monthly_equivalent(_recurrence("weekly", 0, amount=-100.0)) == pytest.approx(-433.0)
    assert monthly_equivalent(_recurrence("yearly", 0, amount=1200.0)) == pytest.approx(99.6)
