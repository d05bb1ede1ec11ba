"""Pydantic schemas for snapshot validation and conversion to domain types"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator

from saverflow_engine.config import settings
from saverflow_engine.domain.exceptions import InsufficientDataError, InvalidSnapshotError
from saverflow_engine.domain.models import Account, Recurrence, SavingsGoal, Transaction
from saverflow_engine.engine import EngineSnapshot

logger = logging.getLogger(__name__)


class AccountRecord(BaseModel):
    """Account balance at snapshot time"""

    id: str = Field(..., min_length=1)
    name: str
    type: Literal["checking", "savings", "credit", "investment", "loan"]
    current_balance: float
    currency: str = "USD"


class TransactionRecord(BaseModel):
    """Historical ledger entry"""

    id: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)
    date: datetime
    amount: float
    merchant: str
    category: str = ""


class RecurrenceRecord(BaseModel):
    """Recurring bill or income"""

    name: str = Field(..., min_length=1)
    amount: float
    cadence: Literal["weekly", "biweekly", "monthly", "quarterly", "yearly"]
    next_date: date
    confidence: Literal["high", "medium", "low"]


class SavingsGoalRecord(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    target: float = Field(..., ge=0)
    saved: float = Field(0.0, ge=0)
    priority: Literal["essential", "important", "aspirational"]
    category: Literal["emergency", "large_purchase", "debt", "investment", "lifestyle", "other"]
    deadline: Optional[date] = None


class SnapshotRequest(BaseModel):
    """Everything the engine needs for one run"""

    today: date
    timezone: str = "UTC"
    accounts: List[AccountRecord]
    transactions: List[TransactionRecord] = []
    recurrences: List[RecurrenceRecord] = []
    goals: Optional[List[SavingsGoalRecord]] = None
    user_buffer: float = Field(default_factory=lambda: settings.user_buffer, ge=0)
    horizon_days: int = Field(default_factory=lambda: settings.horizon_days, ge=0)
    simulations: int = Field(default_factory=lambda: settings.simulation_count, ge=1)
    risk_tolerance: Literal["conservative", "moderate", "aggressive"] = Field(
        default_factory=lambda: settings.risk_tolerance
    )
    monthly_income: Optional[float] = None
    monthly_expenses: Optional[float] = None
    current_emergency_fund: Optional[float] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value


def _local_naive(value: datetime, tz: ZoneInfo) -> datetime:
    """Aware datetimes are moved into the snapshot timezone; naive ones are already local"""
    if value.tzinfo is None:
        return value
    return value.astimezone(tz).replace(tzinfo=None)


def to_snapshot(request: SnapshotRequest) -> EngineSnapshot:
    """Convert a validated request into domain dataclasses"""
    tz = ZoneInfo(request.timezone)

    return EngineSnapshot(
        today=request.today,
        timezone=request.timezone,
        accounts=[Account(**record.model_dump()) for record in request.accounts],
        transactions=[
            Transaction(
                id=record.id,
                account_id=record.account_id,
                date=_local_naive(record.date, tz),
                amount=record.amount,
                merchant=record.merchant,
                category=record.category,
            )
            for record in request.transactions
        ],
        recurrences=[Recurrence(**record.model_dump()) for record in request.recurrences],
        goals=[SavingsGoal(**record.model_dump()) for record in request.goals] if request.goals is not None else None,
        user_buffer=request.user_buffer,
        horizon_days=request.horizon_days,
        simulations=request.simulations,
        risk_tolerance=request.risk_tolerance,
        monthly_income=request.monthly_income,
        monthly_expenses=request.monthly_expenses,
        current_emergency_fund=request.current_emergency_fund,
    )


def parse_snapshot(payload: Dict[str, Any]) -> EngineSnapshot:
    """
    Validate a raw snapshot payload and build an EngineSnapshot.

    Raises:
        InvalidSnapshotError: if any record is malformed
    """
    try:
        request = SnapshotRequest.model_validate(payload)
        return to_snapshot(request)
    except (ValidationError, KeyError, ValueError, TypeError) as e:
        logger.warning(
            "Snapshot rejected",
            extra={"step": "parse_snapshot", "error": str(e)},
        )
        raise InvalidSnapshotError(f"Invalid snapshot: {e}") from e


def require_history(transactions: List[Transaction], min_transactions: int = 1) -> None:
    """
    Raises:
        InsufficientDataError: if fewer than min_transactions are present
    """
    if len(transactions) < min_transactions:
        raise InsufficientDataError(
            f"Need at least {min_transactions} transactions, got {len(transactions)}"
        )
