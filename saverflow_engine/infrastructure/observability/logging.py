"""Structured JSON logging for engine runs"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from saverflow_engine.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_engine_run(
    run_id: str,
    runway_days: int,
    safe_to_save: float,
    risk_count: int,
    anomaly_count: int,
    duration_ms: float,
    goal_count: Optional[int] = None,
) -> None:
    """Log structured engine outcome for analysis"""
    logging.info(
        "Engine run completed",
        extra={
            "run_id": run_id,
            "step": "engine_complete",
            "runway_days": runway_days,
            "safe_to_save": safe_to_save,
            "savings_outcome": "recommended" if safe_to_save > 0 else "withheld",
            "risk_count": risk_count,
            "anomaly_count": anomaly_count,
            "goal_count": goal_count,
            "duration_ms": duration_ms,
        },
    )
