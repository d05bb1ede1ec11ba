"""Anomaly detection for unusual transactions"""

import math
import re
from collections import defaultdict
from datetime import date
from typing import Dict, List

from saverflow_engine.domain.models import Anomaly, AnomalyStats, Transaction
from saverflow_engine.utils.date_utils import as_datetime, days_between

MIN_TRANSACTIONS = 5
MIN_POPULATION = 4
OUTLIER_Z_THRESHOLD = 2.5
FREQUENCY_SPIKE_MULTIPLIER = 3.0
NEW_MERCHANT_WINDOW_DAYS = 30
NEW_MERCHANT_MIN_AMOUNT = 50.0
DUPLICATE_AMOUNT_TOLERANCE = 0.01
DUPLICATE_WINDOW_DAYS = 1
TIME_ANOMALY_MIN_HOURS = 6.0
MAX_ANOMALIES = 10

SEVERITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def _mean_std(values: List[float]) -> tuple[float, float]:
    mean = sum(values) / len(values)
    return mean, math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))


def _z_score(value: float, mean: float, std_dev: float) -> float:
    if std_dev == 0:
        return 0.0
    return (value - mean) / std_dev


def _slug(name: str) -> str:
    return re.sub(r"\s+", "-", name.lower())


def _by_merchant(transactions: List[Transaction]) -> Dict[str, List[Transaction]]:
    groups: Dict[str, List[Transaction]] = defaultdict(list)
    for tx in transactions:
        groups[tx.merchant].append(tx)
    return groups


def detect_amount_outliers(transactions: List[Transaction], threshold: float = OUTLIER_Z_THRESHOLD) -> List[Anomaly]:
    """Z-score of each amount against its own side of the ledger"""
    anomalies = []

    for is_expense in (True, False):
        population = [tx for tx in transactions if (tx.amount < 0 if is_expense else tx.amount > 0)]
        if len(population) < MIN_POPULATION:
            continue

        mean, std_dev = _mean_std([abs(tx.amount) for tx in population])
        for tx in population:
            amount = abs(tx.amount)
            z_score = _z_score(amount, mean, std_dev)
            if abs(z_score) <= threshold:
                continue

            if abs(z_score) > 4:
                severity = "high"
            elif abs(z_score) > 3:
                severity = "medium"
            else:
                severity = "low"

            if is_expense:
                direction = "significantly higher" if z_score > 0 else "unusually low"
                description = (
                    f"This ${amount:.2f} expense is {direction} compared to your typical "
                    f"spending (avg: ${mean:.2f})."
                )
            else:
                direction = "higher" if z_score > 0 else "lower"
                description = (
                    f"This ${amount:.2f} deposit is {direction} than your typical "
                    f"income (avg: ${mean:.2f})."
                )

            anomalies.append(
                Anomaly(
                    id=f"amount-outlier-{tx.id}",
                    transaction=tx,
                    type="amount_outlier",
                    severity=severity,
                    description=description,
                    confidence=min(1.0, abs(z_score) / 5),
                )
            )

    return anomalies


def detect_frequency_spikes(
    transactions: List[Transaction],
    today: date,
    multiplier: float = FREQUENCY_SPIKE_MULTIPLIER,
) -> List[Anomaly]:
    """Merchants whose last-week transaction rate is a multiple of their usual rate"""
    anomalies = []

    for merchant, txs in _by_merchant(transactions).items():
        if len(txs) < 3:
            continue

        newest_first = sorted(txs, key=lambda t: t.date, reverse=True)
        recent = [tx for tx in newest_first if days_between(today, tx.date) <= 7]
        if len(recent) < 3:
            continue

        day_span = max(1, days_between(today, newest_first[-1].date))
        avg_frequency = len(newest_first) / day_span
        recent_frequency = len(recent) / 7

        if avg_frequency > 0 and recent_frequency >= avg_frequency * multiplier:
            anomalies.append(
                Anomaly(
                    id=f"frequency-spike-{_slug(merchant)}",
                    transaction=recent[0],
                    type="frequency_spike",
                    severity="high" if recent_frequency > avg_frequency * 5 else "medium",
                    description=(
                        f"{len(recent)} transactions at {merchant} in the last week is unusually "
                        f"high (avg: {avg_frequency * 7:.1f}/week)."
                    ),
                    confidence=min(1.0, recent_frequency / (avg_frequency * multiplier)),
                )
            )

    return anomalies


def detect_new_merchants(
    transactions: List[Transaction],
    today: date,
    window_days: int = NEW_MERCHANT_WINDOW_DAYS,
    min_amount: float = NEW_MERCHANT_MIN_AMOUNT,
) -> List[Anomaly]:
    """First-ever transaction with a merchant inside the recent window"""
    oldest_first = sorted(transactions, key=lambda t: t.date)

    first_seen: Dict[str, Transaction] = {}
    for tx in oldest_first:
        first_seen.setdefault(tx.merchant, tx)

    anomalies = []
    for merchant, tx in first_seen.items():
        if days_between(today, tx.date) <= window_days and abs(tx.amount) > min_amount:
            anomalies.append(
                Anomaly(
                    id=f"new-merchant-{tx.id}",
                    transaction=tx,
                    type="new_merchant",
                    severity="medium" if abs(tx.amount) > 200 else "low",
                    description=f"First transaction with {merchant} (${abs(tx.amount):.2f}).",
                    confidence=0.9,
                )
            )

    return anomalies


def detect_duplicates(transactions: List[Transaction]) -> List[Anomaly]:
    """Same merchant and amount within a day; one report per transaction"""
    ordered = sorted(transactions, key=lambda t: t.date)
    anomalies = []

    for i, first in enumerate(ordered):
        twin = next(
            (
                second
                for second in ordered[i + 1:]
                if second.merchant == first.merchant
                and abs(first.amount - second.amount) < DUPLICATE_AMOUNT_TOLERANCE
                and abs(days_between(second.date, first.date)) <= DUPLICATE_WINDOW_DAYS
            ),
            None,
        )
        if twin is None:
            continue

        anomalies.append(
            Anomaly(
                id=f"duplicate-{first.id}-{twin.id}",
                transaction=first,
                type="duplicate_suspect",
                severity="medium",
                description=(
                    f"Potential duplicate: Two identical ${abs(first.amount):.2f} charges from "
                    f"{first.merchant} within 24 hours."
                ),
                confidence=0.8,
            )
        )

    return anomalies


def detect_time_anomalies(transactions: List[Transaction], min_hours: float = TIME_ANOMALY_MIN_HOURS) -> List[Anomaly]:
    """Transactions far from the merchant's usual hour of day"""
    hours_by_merchant: Dict[str, List[int]] = defaultdict(list)
    for tx in transactions:
        hours_by_merchant[tx.merchant].append(as_datetime(tx.date).hour)

    anomalies = []
    for tx in transactions:
        hours = hours_by_merchant[tx.merchant]
        if len(hours) < 3:
            continue

        hour = as_datetime(tx.date).hour
        avg_hour, std_dev = _mean_std([float(h) for h in hours])

        if abs(hour - avg_hour) > max(3 * std_dev, min_hours):
            anomalies.append(
                Anomaly(
                    id=f"time-anomaly-{tx.id}",
                    transaction=tx,
                    type="time_anomaly",
                    severity="low",
                    description=(
                        f"Transaction at {tx.merchant} occurred at an unusual time "
                        f"({hour}:00, typically around {round(avg_hour)}:00)."
                    ),
                    confidence=0.6,
                )
            )

    return anomalies


def detect_anomalies(
    transactions: List[Transaction],
    today: date,
    z_threshold: float = OUTLIER_Z_THRESHOLD,
    frequency_multiplier: float = FREQUENCY_SPIKE_MULTIPLIER,
    new_merchant_window_days: int = NEW_MERCHANT_WINDOW_DAYS,
    new_merchant_min_amount: float = NEW_MERCHANT_MIN_AMOUNT,
    time_anomaly_min_hours: float = TIME_ANOMALY_MIN_HOURS,
    max_anomalies: int = MAX_ANOMALIES,
) -> List[Anomaly]:
    """
    Main entry point: run every detector and return the strongest findings.

    Fewer than five transactions gives no anomalies. Results are sorted by
    severity, then confidence descending. A transaction may be reported by
    several detectors.
    """
    if len(transactions) < MIN_TRANSACTIONS:
        return []

    anomalies = [
        *detect_amount_outliers(transactions, z_threshold),
        *detect_frequency_spikes(transactions, today, frequency_multiplier),
        *detect_new_merchants(transactions, today, new_merchant_window_days, new_merchant_min_amount),
        *detect_duplicates(transactions),
        *detect_time_anomalies(transactions, time_anomaly_min_hours),
    ]

    anomalies.sort(key=lambda a: (SEVERITY_ORDER[a.severity], -a.confidence))
    return anomalies[:max_anomalies]


def get_anomaly_stats(anomalies: List[Anomaly]) -> AnomalyStats:
    by_type: Dict[str, int] = defaultdict(int)
    by_severity: Dict[str, int] = defaultdict(int)
    for anomaly in anomalies:
        by_type[anomaly.type] += 1
        by_severity[anomaly.severity] += 1

    return AnomalyStats(
        total=len(anomalies),
        by_type=dict(by_type),
        by_severity=dict(by_severity),
        avg_confidence=sum(a.confidence for a in anomalies) / len(anomalies) if anomalies else 0.0,
    )
