"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "cashflow-advisor"

logger = logging.getLogger("cashflow_advisor.audit")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_NAME


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers
    root.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def log_decision(
    user_id: str,
    kind: str,
    amount: Decimal,
    outcome: str,
    duration_ms: float,
    request_id: Optional[str] = None,
) -> None:
    """Log structured spend decision outcome for analysis"""
    logger.info(
        "Decision completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "decision_complete",
            "decision_kind": kind,
            "amount": str(amount),
            "outcome": outcome,
            "duration_ms": duration_ms,
        },
    )


def log_simulation(
    user_id: str,
    simulation_id: str,
    amount: Decimal,
    installments: int,
    risk: str,
    duration_ms: float,
    request_id: Optional[str] = None,
) -> None:
    """Log structured simulation outcome"""
    logger.info(
        "Simulation completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "simulation_complete",
            "simulation_id": simulation_id,
            "amount": str(amount),
            "installments": installments,
            "risk": risk,
            "duration_ms": duration_ms,
        },
    )
