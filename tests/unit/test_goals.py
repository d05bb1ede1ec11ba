"""Unit tests for goal prioritization"""

import pytest
from dataclasses import replace
from datetime import date, timedelta

from saverflow_engine.domain.goals import (
    calculate_feasibility_score,
    calculate_impact_score,
    calculate_urgency_score,
    get_goal_allocation_strategy,
    is_goal_on_track,
    prioritize_goals,
)


@pytest.fixture
def prioritized(goals, today):
    return prioritize_goals(
        goals,
        today=today,
        runway_days=20,
        monthly_expenses=3000.0,
        current_emergency_fund=8100.0,
        safe_to_save=1000.0,
    )


def test_sub_scores(goals, today):
    emergency, vacation, card = goals

    assert calculate_urgency_score(emergency, today) == 75
    assert calculate_urgency_score(vacation, today) == 20
    assert calculate_impact_score(emergency, 20, 8100.0, 3000.0) == 65
    assert calculate_impact_score(card, 20, 8100.0, 3000.0) == 60
    assert calculate_feasibility_score(card, 1000.0, today) == 95


def test_feasibility_clamped_to_100(goals, today):
    vacation = goals[1]
    assert calculate_feasibility_score(vacation, 1000.0, today) == 100


def test_feasibility_with_nothing_to_save(goals, today):
    """No safe-to-save capacity makes every goal very long-term"""
    assert calculate_feasibility_score(goals[0], 0.0, today) == 40


def test_ranks_are_dense_and_scores_non_increasing(prioritized):
    assert [g.rank for g in prioritized] == [1, 2, 3]
    scores = [g.score for g in prioritized]
    assert scores == sorted(scores, reverse=True)
    for goal in prioritized:
        for sub_score in (goal.urgency_score, goal.impact_score, goal.feasibility_score):
            assert 0 <= sub_score <= 100


def test_equal_scores_keep_input_order(prioritized):
    """Emergency fund and credit card tie at 67; input order breaks the tie"""
    assert [g.goal.id for g in prioritized] == ["goal-emergency", "goal-card", "goal-vacation"]
    assert prioritized[0].score == prioritized[1].score == 67
    assert prioritized[2].score == 36


def test_reasoning_precedence(prioritized):
    reasons = {g.goal.id: g.reasoning for g in prioritized}

    assert reasons["goal-emergency"].startswith("Critical priority")
    assert reasons["goal-card"] == "Highly achievable at your current savings rate."
    assert reasons["goal-vacation"] == "Deadline in 8 months requires consistent contributions."


def test_recommended_contributions(prioritized):
    contributions = {g.goal.id: g.recommended_monthly_contribution for g in prioritized}

    assert contributions == {"goal-emergency": 346, "goal-card": 231, "goal-vacation": 300}


def test_completed_goal_gets_no_contribution(goals, today):
    done = replace(goals[2], saved=1800.0)

    [result] = prioritize_goals(
        [done], today=today, runway_days=60, monthly_expenses=3000.0, current_emergency_fund=0.0, safe_to_save=500.0,
    )

    assert result.rank == 1
    assert result.recommended_monthly_contribution == 0


def test_no_goals():
    assert prioritize_goals(
        [], today=date(2026, 10, 19), runway_days=30, monthly_expenses=0.0, current_emergency_fund=0.0,
        safe_to_save=0.0,
    ) == []


def test_allocation_tiers(prioritized):
    allocations = get_goal_allocation_strategy(prioritized, 1000.0)

    assert [(a.goal_id, a.allocation) for a in allocations] == [
        ("goal-emergency", 600),
        ("goal-card", 120),
        ("goal-vacation", 42),
    ]
    assert allocations[0].reasoning.startswith("Rank #1 - ")


def test_allocation_minimum_five_dollars(prioritized):
    allocations = get_goal_allocation_strategy(prioritized, 20.0)

    assert [a.allocation for a in allocations] == [12, 5, 3]


def test_allocation_nothing_available(prioritized):
    assert get_goal_allocation_strategy(prioritized, 0.0) == []


def test_on_track_statuses(goals, today):
    vacation = goals[1]

    ahead = is_goal_on_track(vacation, 400.0, today)
    assert ahead.status == "ahead"
    assert ahead.days_ahead == 60

    assert is_goal_on_track(vacation, 300.0, today).status == "on_track"

    behind = is_goal_on_track(vacation, 200.0, today)
    assert behind.status == "behind"
    assert behind.on_track is False
    assert behind.days_ahead == 120
    assert "$100/month" in behind.message


def test_on_track_edge_cases(goals, today):
    assert is_goal_on_track(goals[0], 100.0, today).status == "no_deadline"

    overdue = replace(goals[1], deadline=today - timedelta(days=3))
    assert is_goal_on_track(overdue, 500.0, today).message == "Deadline has passed."

    stalled = is_goal_on_track(goals[1], 0.0, today)
    assert stalled.status == "behind"
