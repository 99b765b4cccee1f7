"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import date, datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "thought-gateway"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_bank_build(
    label: str,
    day: date,
    outcome: str,
    size: int,
    duration_ms: float,
    level: int = logging.INFO,
) -> None:
    """Log structured bank build outcome for analysis"""
    logging.getLogger("thought_gateway.bank").log(
        level,
        f"Bank build {outcome}",
        extra={
            "label": label,
            "day": day.isoformat(),
            "step": "bank_build_complete",
            "build_outcome": outcome,
            "bank_size": size,
            "duration_ms": duration_ms,
        },
    )
