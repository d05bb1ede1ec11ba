"""
Monte Carlo balance forecast.

Every run starts from the combined account balance and walks the horizon
day by day: scheduled recurrences land with confidence-scaled noise, and a
small normally distributed daily draw models discretionary spending. The
P10/P50/P90 bands are read off the sorted per-day balances across runs.
"""

import logging
import math
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import date, timedelta
from functools import partial
from typing import Dict, List, Optional, Tuple

from saverflow_engine.domain.models import (
    Account,
    ForecastBand,
    ForecastDay,
    Recurrence,
    Transaction,
    TransactionPatterns,
)
from saverflow_engine.domain.patterns import STD_DEV_FLOOR, analyze_transaction_patterns
from saverflow_engine.domain.recurrences import project_recurrences
from saverflow_engine.domain.rng import next_normal, seed_for_run

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 90
DEFAULT_SIMULATIONS = 500

# Empirical scales with no documented derivation; kept overridable
DAILY_MEAN_SCALE = 0.1
DAILY_STD_SCALE = 0.5
RECURRENCE_VARIANCE_SCALE = 0.2

SEED_MULTIPLIER = 12345
SEED_OFFSET = 67890

PERCENTILES = (0.1, 0.5, 0.9)


@dataclass(frozen=True)
class SimulationParams:
    """Everything a single run needs besides its seed"""

    starting_balance: float
    horizon_days: int
    # day offset -> ((amount, confidence), ...)
    scheduled: Tuple[Tuple[Tuple[float, float], ...], ...]
    daily_mean: float
    daily_std_dev: float
    recurrence_variance_scale: float = RECURRENCE_VARIANCE_SCALE


def run_simulation(params: SimulationParams, seed: int) -> List[float]:
    """Simulate one path of end-of-day balances"""
    state = seed
    balance = params.starting_balance
    balances: List[float] = []

    for day in range(params.horizon_days):
        for amount, confidence in params.scheduled[day]:
            spread = abs(amount * (1 - confidence) * params.recurrence_variance_scale)
            actual, state = next_normal(state, amount, spread)
            balance += actual

        drift, state = next_normal(state, params.daily_mean, params.daily_std_dev)
        balance += drift
        balances.append(balance)

    return balances


def build_simulation_params(
    starting_balance: float,
    patterns: TransactionPatterns,
    recurrences: List[Recurrence],
    today: date,
    horizon_days: int,
    daily_mean_scale: float = DAILY_MEAN_SCALE,
    daily_std_scale: float = DAILY_STD_SCALE,
    recurrence_variance_scale: float = RECURRENCE_VARIANCE_SCALE,
) -> SimulationParams:
    schedule: Dict[int, List[Tuple[float, float]]] = {day: [] for day in range(horizon_days)}
    for projection in project_recurrences(recurrences, today, horizon_days):
        offset = (projection.date - today).days
        if 0 <= offset < horizon_days:
            schedule[offset].append((projection.amount, projection.confidence))

    return SimulationParams(
        starting_balance=starting_balance,
        horizon_days=horizon_days,
        scheduled=tuple(tuple(schedule[day]) for day in range(horizon_days)),
        daily_mean=patterns.daily_mean * daily_mean_scale,
        daily_std_dev=patterns.daily_std_dev * daily_std_scale,
        recurrence_variance_scale=recurrence_variance_scale,
    )


def _percentile(sorted_values: List[float], p: float) -> float:
    index = min(len(sorted_values) - 1, int(math.floor(len(sorted_values) * p)))
    return sorted_values[index]


def _account_shares(accounts: List[Account], total_balance: float) -> List[Tuple[str, float]]:
    if not accounts:
        return []
    if total_balance > 0:
        return [(a.id, a.current_balance / total_balance) for a in accounts]
    return [(a.id, 1 / len(accounts)) for a in accounts]


def generate_forecast(
    *,
    today: date,
    accounts: List[Account],
    transactions: List[Transaction],
    recurrences: List[Recurrence],
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    simulations: int = DEFAULT_SIMULATIONS,
    daily_mean_scale: float = DAILY_MEAN_SCALE,
    daily_std_scale: float = DAILY_STD_SCALE,
    recurrence_variance_scale: float = RECURRENCE_VARIANCE_SCALE,
    std_dev_floor: float = STD_DEV_FLOOR,
    seed_multiplier: int = SEED_MULTIPLIER,
    seed_offset: int = SEED_OFFSET,
    executor: Optional[Executor] = None,
) -> List[ForecastDay]:
    """
    Generate one ForecastDay per horizon day with P10/P50/P90 bands.

    Runs are seeded from their index alone, so results are identical with
    or without an executor. A zero or negative combined balance is a valid
    input and produces a valid forecast.
    """
    if horizon_days <= 0:
        return []
    simulations = max(1, simulations)

    total_balance = sum(a.current_balance for a in accounts)
    patterns = analyze_transaction_patterns(transactions, std_dev_floor=std_dev_floor)
    params = build_simulation_params(
        total_balance,
        patterns,
        recurrences,
        today,
        horizon_days,
        daily_mean_scale=daily_mean_scale,
        daily_std_scale=daily_std_scale,
        recurrence_variance_scale=recurrence_variance_scale,
    )
    seeds = [seed_for_run(run, seed_multiplier, seed_offset) for run in range(simulations)]

    logger.debug(
        "Running forecast simulations",
        extra={"simulations": simulations, "horizon_days": horizon_days, "starting_balance": total_balance},
    )

    simulate = partial(run_simulation, params)
    if executor is not None:
        paths = list(executor.map(simulate, seeds))
    else:
        paths = [simulate(seed) for seed in seeds]

    shares = _account_shares(accounts, total_balance)
    forecast_days: List[ForecastDay] = []

    for day in range(horizon_days):
        day_balances = sorted(path[day] for path in paths)
        p10, p50, p90 = (_percentile(day_balances, p) for p in PERCENTILES)

        forecast_days.append(
            ForecastDay(
                date=today + timedelta(days=day),
                p50_total=round(p50, 2),
                p10_total=round(p10, 2),
                p90_total=round(p90, 2),
                by_account=[
                    ForecastBand(
                        account_id=account_id,
                        p50=round(p50 * share, 2),
                        p10=round(p10 * share, 2),
                        p90=round(p90 * share, 2),
                    )
                    for account_id, share in shares
                ],
            )
        )

    return forecast_days


RECURRENCE_CONFIDENCE_SCORES = {"high": 100, "medium": 70, "low": 40}


def calculate_forecast_confidence(
    transactions: List[Transaction],
    recurrences: List[Recurrence],
    forecast_days: List[ForecastDay],
) -> int:
    """
    Confidence score in [30, 100].

    Scoring weights:
    - 30%: Data depth (30+ transactions scores 100)
    - 40%: Average recurrence confidence tier (50 when there are none)
    - 30%: Band width of the first 30 days relative to the median balance
    """
    data_depth_score = min(100.0, len(transactions) / 30 * 100)

    if recurrences:
        recurrence_score = sum(
            RECURRENCE_CONFIDENCE_SCORES.get(r.confidence, 40) for r in recurrences
        ) / len(recurrences)
    else:
        recurrence_score = 50.0

    window = forecast_days[:30]
    if window:
        avg_band_width = sum(d.p90_total - d.p10_total for d in window) / len(window)
        avg_balance = sum(d.p50_total for d in window) / len(window)
        band_ratio = avg_band_width / abs(avg_balance) if avg_balance != 0 else 1.0
        band_width_score = max(0.0, 100 - band_ratio * 100)
    else:
        band_width_score = 0.0

    confidence = data_depth_score * 0.3 + recurrence_score * 0.4 + band_width_score * 0.3
    return round(max(30.0, min(100.0, confidence)))
