"""
Goal prioritization.

Each goal gets three sub-scores in [0, 100]:
- urgency: priority tier, deadline proximity, category
- impact: emergency-fund shortfall, category weight, progress bonus
- feasibility: months to complete at the safe-to-save rate vs. deadline

score = 0.35 * urgency + 0.4 * impact + 0.25 * feasibility
"""

import logging
import math
from datetime import date
from typing import List, Optional

from saverflow_engine.domain.models import GoalAllocation, GoalProgress, PrioritizedGoal, SavingsGoal
from saverflow_engine.utils.date_utils import days_between

logger = logging.getLogger(__name__)

URGENCY_WEIGHT = 0.35
IMPACT_WEIGHT = 0.4
FEASIBILITY_WEIGHT = 0.25

PRIORITY_URGENCY = {
    "essential": 40,
    "important": 25,
    "aspirational": 10,
}

CATEGORY_URGENCY = {
    "emergency": 30,
    "debt": 25,
    "large_purchase": 15,
    "investment": 10,
    "lifestyle": 5,
    "other": 5,
}

CATEGORY_IMPACT = {
    "debt": 40,
    "large_purchase": 20,
    "investment": 20,
    "lifestyle": 10,
}

CONTRIBUTION_RATIO = {
    "essential": 0.6,
    "important": 0.4,
    "aspirational": 0.2,
}

MAX_CONTRIBUTION_MONTHS = 24
MIN_ALLOCATION = 5.0


def _months_until(deadline: date, today: date) -> float:
    return max(1.0, days_between(deadline, today) / 30)


def calculate_urgency_score(goal: SavingsGoal, today: date) -> int:
    score = PRIORITY_URGENCY[goal.priority]

    if goal.deadline is not None:
        days_until = days_between(goal.deadline, today)
        if days_until < 30:
            score += 30
        elif days_until < 90:
            score += 20
        elif days_until < 180:
            score += 10
        else:
            score += 5
    else:
        score += 5

    score += CATEGORY_URGENCY.get(goal.category, 5)
    return min(100, score)


def calculate_impact_score(
    goal: SavingsGoal,
    runway_days: int,
    current_emergency_fund: float,
    monthly_expenses: float,
) -> int:
    score = 0

    if goal.category == "emergency":
        if runway_days < 14:
            score += 50
        elif runway_days < 30:
            score += 35
        elif runway_days < 60:
            score += 20
        else:
            score += 10

        months_covered = current_emergency_fund / monthly_expenses if monthly_expenses > 0 else 0
        if months_covered < 3:
            score += 30
        elif months_covered < 6:
            score += 15

    score += CATEGORY_IMPACT.get(goal.category, 0)

    progress = goal.saved / goal.target if goal.target > 0 else 0
    if progress > 0.75:
        score += 20
    elif progress > 0.5:
        score += 10
    elif progress > 0.25:
        score += 5

    return min(100, score)


def calculate_feasibility_score(goal: SavingsGoal, safe_to_save: float, today: date) -> int:
    score = 50
    remaining = goal.remaining

    months_to_complete = remaining / safe_to_save if safe_to_save > 0 else math.inf
    if months_to_complete < 3:
        score += 30
    elif months_to_complete < 6:
        score += 20
    elif months_to_complete < 12:
        score += 10
    elif months_to_complete < 24:
        score += 5
    else:
        score -= 10

    if goal.deadline is not None:
        required_monthly = remaining / _months_until(goal.deadline, today)
        if required_monthly <= safe_to_save:
            score += 20
        elif required_monthly <= safe_to_save * 1.5:
            score += 5
        else:
            score -= 20

    if remaining < 500:
        score += 15
    elif remaining < 1000:
        score += 10
    elif remaining < 5000:
        score += 5

    return max(0, min(100, score))


def recommended_monthly_contribution(
    goal: SavingsGoal,
    safe_to_save: float,
    today: date,
    incomplete_goals: int,
) -> float:
    remaining = goal.remaining
    if remaining <= 0:
        return 0.0

    if goal.deadline is not None:
        return min(remaining / _months_until(goal.deadline, today), safe_to_save)

    allocation = safe_to_save * CONTRIBUTION_RATIO[goal.priority]
    if incomplete_goals > 1:
        allocation /= math.sqrt(incomplete_goals)

    return max(remaining / MAX_CONTRIBUTION_MONTHS, round(allocation))


def _reasoning(goal: SavingsGoal, runway_days: int, feasibility: int, today: date) -> str:
    if goal.category == "emergency" and runway_days < 30:
        return "Critical priority: Building emergency fund will provide essential financial security."
    if goal.priority == "essential":
        return "Essential goal with significant impact on your financial well-being."
    if goal.deadline is not None:
        months_left = round(days_between(goal.deadline, today) / 30)
        return f"Deadline in {months_left} months requires consistent contributions."
    if feasibility > 70:
        return "Highly achievable at your current savings rate."
    return "Long-term goal that requires sustained effort."


def prioritize_goals(
    goals: List[SavingsGoal],
    *,
    today: date,
    runway_days: int,
    monthly_expenses: float,
    current_emergency_fund: float,
    safe_to_save: float,
) -> List[PrioritizedGoal]:
    """
    Score goals and rank them.

    Ranks are a dense 1..N permutation assigned after a stable sort by
    descending score, so equal scores keep their input order.
    """
    incomplete = sum(1 for g in goals if g.target > g.saved)

    scored = []
    for goal in goals:
        urgency = calculate_urgency_score(goal, today)
        impact = calculate_impact_score(goal, runway_days, current_emergency_fund, monthly_expenses)
        feasibility = calculate_feasibility_score(goal, safe_to_save, today)
        score = urgency * URGENCY_WEIGHT + impact * IMPACT_WEIGHT + feasibility * FEASIBILITY_WEIGHT

        scored.append(
            PrioritizedGoal(
                goal=goal,
                score=round(score),
                rank=0,
                reasoning=_reasoning(goal, runway_days, feasibility, today),
                urgency_score=urgency,
                impact_score=impact,
                feasibility_score=feasibility,
                recommended_monthly_contribution=round(
                    recommended_monthly_contribution(goal, safe_to_save, today, incomplete)
                ),
            )
        )

    scored.sort(key=lambda g: g.score, reverse=True)
    for index, prioritized in enumerate(scored):
        prioritized.rank = index + 1

    logger.debug("Prioritized %d goals", len(scored))
    return scored


def get_goal_allocation_strategy(prioritized_goals: List[PrioritizedGoal], available_amount: float) -> List[GoalAllocation]:
    """
    Split available_amount across ranked goals.

    Rank 1 essential goal: up to 60% of what is left
    Ranks 1-2 otherwise: 30%
    Everything else: 15%
    Each allocation is at least $5 when the goal and the pot allow it.
    """
    allocations = []
    remaining = available_amount

    for prioritized in prioritized_goals:
        if remaining <= 0:
            break

        goal_remaining = prioritized.goal.remaining
        if goal_remaining <= 0:
            continue

        if prioritized.rank == 1 and prioritized.goal.priority == "essential":
            share = 0.6
        elif prioritized.rank <= 2:
            share = 0.3
        else:
            share = 0.15
        allocation = min(goal_remaining, remaining * share)

        if allocation < MIN_ALLOCATION and goal_remaining >= MIN_ALLOCATION:
            allocation = min(MIN_ALLOCATION, remaining, goal_remaining)

        if allocation > 0:
            allocations.append(
                GoalAllocation(
                    goal_id=prioritized.goal.id,
                    goal_name=prioritized.goal.name,
                    allocation=round(allocation),
                    reasoning=f"Rank #{prioritized.rank} - {prioritized.reasoning}",
                )
            )
            remaining -= allocation

    return allocations


def is_goal_on_track(goal: SavingsGoal, monthly_contribution: float, today: date) -> GoalProgress:
    """Compare projected completion at monthly_contribution against the deadline"""
    deadline: Optional[date] = goal.deadline
    if deadline is None:
        return GoalProgress(
            on_track=True,
            status="no_deadline",
            days_ahead=0,
            message="No deadline set - progress at your own pace.",
        )

    remaining = goal.remaining
    days_until = days_between(deadline, today)
    if days_until <= 0:
        return GoalProgress(on_track=False, status="behind", days_ahead=days_until, message="Deadline has passed.")

    months_until = days_until / 30
    required_monthly = remaining / months_until

    if monthly_contribution <= 0:
        return GoalProgress(
            on_track=remaining <= 0,
            status="on_track" if remaining <= 0 else "behind",
            days_ahead=0,
            message=(
                "Right on track to meet your deadline."
                if remaining <= 0
                else f"Behind schedule. Contribute ${round(required_monthly)}/month to stay on track."
            ),
        )

    projected_months = remaining / monthly_contribution

    if projected_months < months_until:
        months_ahead = months_until - projected_months
        return GoalProgress(
            on_track=True,
            status="ahead",
            days_ahead=round(months_ahead * 30),
            message=f"Ahead of schedule! You're on track to finish {round(months_ahead)} months early.",
        )
    if projected_months <= months_until * 1.1:
        return GoalProgress(
            on_track=True,
            status="on_track",
            days_ahead=0,
            message="Right on track to meet your deadline.",
        )

    increase_needed = required_monthly - monthly_contribution
    return GoalProgress(
        on_track=False,
        status="behind",
        days_ahead=round(projected_months * 30 - days_until),
        message=f"Behind schedule. Increase contributions by ${round(increase_needed)}/month to stay on track.",
    )
