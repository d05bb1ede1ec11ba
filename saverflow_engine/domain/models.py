"""Domain models - pure Python dataclasses representing forecasting inputs and results"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional


# --- Snapshot inputs -------------------------------------------------------


@dataclass(frozen=True)
class Account:
    """Account balance snapshot at forecast time"""

    id: str
    name: str
    type: str  # "checking" | "savings" | "credit" | "investment" | "loan"
    current_balance: float
    currency: str = "USD"


@dataclass(frozen=True)
class Transaction:
    """Ledger entry; negative amount = expense, positive = income"""

    id: str
    account_id: str
    date: datetime
    amount: float
    merchant: str
    category: str = ""


@dataclass(frozen=True)
class Recurrence:
    """Predicted repeating cash-flow event (rent, payroll, subscription)"""

    name: str
    amount: float
    cadence: str  # "weekly" | "biweekly" | "monthly" | "quarterly" | "yearly"
    next_date: date
    confidence: str  # "low" | "medium" | "high"


@dataclass(frozen=True)
class SavingsGoal:
    """User savings goal"""

    id: str
    name: str
    target: float
    saved: float
    priority: str  # "essential" | "important" | "aspirational"
    category: str  # "emergency" | "large_purchase" | "debt" | "investment" | "lifestyle" | "other"
    deadline: Optional[date] = None

    @property
    def remaining(self) -> float:
        return self.target - self.saved


# --- Intermediate values ---------------------------------------------------


@dataclass(frozen=True)
class FlowPattern:
    """Mean amount and per-day frequency of one side of the ledger"""

    mean: float
    frequency: float


@dataclass(frozen=True)
class TransactionPatterns:
    """Historical daily net-flow statistics feeding the simulator"""

    daily_mean: float
    daily_std_dev: float
    income_pattern: FlowPattern
    expense_pattern: FlowPattern


@dataclass(frozen=True)
class RecurrenceProjection:
    """One dated occurrence of a recurrence inside the horizon"""

    date: date
    amount: float
    name: str
    confidence: float


# --- Forecast --------------------------------------------------------------


@dataclass(frozen=True)
class ForecastBand:
    """Per-account share of a day's percentile bands"""

    account_id: str
    p50: float
    p10: float
    p90: float


@dataclass(frozen=True)
class ForecastDay:
    """Percentile-banded balance for a single future day"""

    date: date
    p50_total: float
    p10_total: float
    p90_total: float
    by_account: List[ForecastBand] = field(default_factory=list)


# --- Runway ----------------------------------------------------------------


@dataclass
class RunwayScenario:
    days: int
    exhaustion_date: Optional[date]


@dataclass
class RunwayScenarios:
    optimistic: RunwayScenario  # P90
    expected: RunwayScenario  # P50
    conservative: RunwayScenario  # P10


@dataclass
class BufferZones:
    safe: bool  # > 30 days
    caution: bool  # 14-30 days
    critical: bool  # < 14 days

    @property
    def zone(self) -> str:
        if self.safe:
            return "safe"
        if self.caution:
            return "caution"
        return "critical"


@dataclass
class RunwayCalculation:
    """Days until the balance drops below the user's buffer"""

    days: int
    exhaustion_date: Optional[date]
    confidence: float
    scenarios: RunwayScenarios
    buffer_zones: BufferZones
    trend: str  # "extending" | "stable" | "shrinking"
    recommendation: str


@dataclass
class RunwayImpact:
    current_runway: int
    new_runway: int
    change: int
    percent_change: int
    new_exhaustion_date: Optional[date]


@dataclass
class RunwayMilestone:
    threshold: int
    label: str
    achieved: bool
    days_to_go: int


@dataclass
class RunwayVolatility:
    volatility: str  # "low" | "medium" | "high"
    score: int
    description: str


@dataclass
class RunwayGoalProjection:
    achievable: bool
    days_needed: Optional[int]
    average_improvement: float
    message: str


# --- Risks and anomalies ---------------------------------------------------


@dataclass
class RiskAlert:
    """Ephemeral risk finding derived on each run"""

    id: str
    title: str
    description: str
    date: date
    severity: str  # "info" | "warning" | "critical"


@dataclass
class Anomaly:
    """Unusual transaction flagged by one detection heuristic"""

    id: str
    transaction: Transaction
    type: str  # "amount_outlier" | "frequency_spike" | "new_merchant" | "duplicate_suspect" | "time_anomaly"
    severity: str  # "low" | "medium" | "high"
    description: str
    confidence: float


@dataclass
class AnomalyStats:
    total: int
    by_type: Dict[str, int]
    by_severity: Dict[str, int]
    avg_confidence: float


# --- Categorization --------------------------------------------------------


@dataclass
class CategorySpending:
    category: str
    amount: float
    percentage: int


@dataclass
class IrregularMerchant:
    merchant: str
    avg_amount: float
    last_amount: float
    variance: float


# --- Cash flow -------------------------------------------------------------


@dataclass
class IncomeSource:
    name: str
    amount: float
    count: int


@dataclass
class CashFlowSummary:
    """Income/expense/net breakdown for an arbitrary period"""

    start: datetime
    end: datetime
    days: int
    income_total: float
    income_average: float
    income_count: int
    income_sources: List[IncomeSource]
    expense_total: float
    expense_average: float
    expense_count: int
    expense_categories: List[CategorySpending]
    net_total: float
    net_average: float
    net_trend: str  # "improving" | "stable" | "declining"
    volatility_score: int
    volatility_description: str


@dataclass
class TrendAnalysis:
    direction: str  # "up" | "down" | "stable"
    strength: float
    confidence: float
    predicted_change: float
    description: str


@dataclass
class BurnRate:
    daily: float
    weekly: float
    monthly: float
    trend: str  # "increasing" | "stable" | "decreasing"


@dataclass
class RecurringPattern:
    merchant: str
    amount: float
    frequency: str  # "weekly" | "biweekly" | "monthly"
    confidence: float
    last_date: datetime
    next_expected_date: datetime


@dataclass
class WeeklySummary:
    week_start: date
    week_end: date
    inflow: float
    outflow: float
    net: float
    transaction_count: int


# --- Savings ---------------------------------------------------------------


@dataclass
class SafeToSaveFactors:
    runway_buffer: float
    forecast_margin: float
    upcoming_bills: float
    risk_adjustment: float


@dataclass
class SafeToSaveCalculation:
    """Prudent transfer amount under the conservative forecast"""

    amount: float
    confidence: float
    reasoning: str
    factors: SafeToSaveFactors
    recommended_date: date
    max_safe_amount: float


@dataclass
class SavingsImpact:
    new_runway: int
    runway_change: int
    risk_level: str  # "low" | "medium" | "high"
    will_stay_above_buffer: bool


@dataclass
class ScheduledTransfer:
    date: date
    amount: float
    confidence: float
    cumulative_amount: float


@dataclass
class EmergencyFundTarget:
    recommended: float
    minimum_months: int
    monthly_expenses: float
    reasoning: str


@dataclass
class Suggestion:
    """Actionable savings transfer offered to the user"""

    id: str
    title: str
    action: str
    transfer_amount: float
    date: date
    expected_runway_change_days: int
    rationale: str
    status: str = "pending"  # "pending" | "accepted" | "dismissed"


# --- Goals -----------------------------------------------------------------


@dataclass
class PrioritizedGoal:
    """Savings goal with its score, dense rank and sub-scores"""

    goal: SavingsGoal
    score: int
    rank: int
    reasoning: str
    urgency_score: int
    impact_score: int
    feasibility_score: int
    recommended_monthly_contribution: float


@dataclass
class GoalAllocation:
    goal_id: str
    goal_name: str
    allocation: float
    reasoning: str


@dataclass
class GoalProgress:
    on_track: bool
    status: str  # "ahead" | "on_track" | "behind" | "no_deadline"
    days_ahead: int
    message: str
