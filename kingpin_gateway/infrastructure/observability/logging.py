"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from kingpin_gateway.config import settings


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

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_robbery(
    request_id: str,
    robbery_id: str,
    attacker_id: int,
    defender_id: int,
    success: bool,
    net_stolen: int,
    duration_ms: float,
) -> None:
    """Log structured robbery outcome for analysis"""
    logging.info(
        "Robbery completed",
        extra={
            "request_id": request_id,
            "robbery_id": robbery_id,
            "attacker_id": attacker_id,
            "defender_id": defender_id,
            "step": "robbery_complete",
            "robbery_outcome": "success" if success else "failure",
            "net_stolen": net_stolen,
            "duration_ms": duration_ms,
        },
    )
