"""Historical cash-flow statistics used to drive the forecast simulator"""

import logging
import math
from typing import List

from saverflow_engine.domain.models import FlowPattern, Transaction, TransactionPatterns
from saverflow_engine.utils.date_utils import days_between

logger = logging.getLogger(__name__)

# Minimum daily volatility; a zero std-dev would collapse every simulation onto one path
STD_DEV_FLOOR = 20.0
EMPTY_HISTORY_STD_DEV = 50.0


def analyze_transaction_patterns(
    transactions: List[Transaction],
    std_dev_floor: float = STD_DEV_FLOOR,
) -> TransactionPatterns:
    """
    Derive mean/std-dev of daily net flow plus income and expense patterns.

    Requirements:
    - Mean is total net flow divided by the history's day span (at least 1)
    - Std-dev is the sample std-dev of amounts around that mean, floored
    - Empty history yields a zero mean with a fallback std-dev
    """
    if not transactions:
        logger.debug("Empty transaction history, using fallback volatility")
        return TransactionPatterns(
            daily_mean=0.0,
            daily_std_dev=max(std_dev_floor, EMPTY_HISTORY_STD_DEV),
            income_pattern=FlowPattern(mean=0.0, frequency=0.0),
            expense_pattern=FlowPattern(mean=0.0, frequency=0.0),
        )

    incomes = [tx.amount for tx in transactions if tx.amount > 0]
    expenses = [tx.amount for tx in transactions if tx.amount < 0]

    dates = sorted(tx.date for tx in transactions)
    day_span = max(1, days_between(dates[-1], dates[0]))

    total_net = sum(tx.amount for tx in transactions)
    daily_mean = total_net / day_span

    variance = sum((tx.amount - daily_mean) ** 2 for tx in transactions) / max(1, len(transactions) - 1)
    daily_std_dev = math.sqrt(variance)

    return TransactionPatterns(
        daily_mean=daily_mean,
        daily_std_dev=max(std_dev_floor, daily_std_dev),
        income_pattern=FlowPattern(
            mean=sum(incomes) / len(incomes) if incomes else 0.0,
            frequency=len(incomes) / day_span,
        ),
        expense_pattern=FlowPattern(
            mean=abs(sum(expenses) / len(expenses)) if expenses else 0.0,
            frequency=len(expenses) / day_span,
        ),
    )
