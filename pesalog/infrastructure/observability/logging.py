"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from pesalog.config import settings


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


def log_message_outcome(
    outcome: str,
    raw_message_id: int | None,
    transaction_id: int | None,
    dialect: str | None,
    duration_ms: float,
) -> None:
    """Log structured ingestion outcome for analysis"""
    logging.getLogger("pesalog.ingestion").info(
        "Message processed",
        extra={
            "step": "message_processed",
            "outcome": outcome,
            "raw_message_id": raw_message_id,
            "transaction_id": transaction_id,
            "dialect": dialect,
            "duration_ms": duration_ms,
        },
    )


def log_import_summary(summary: Dict[str, Any], duration_ms: float) -> None:
    """Log aggregate counts for a historical import or poll batch"""
    logging.getLogger("pesalog.ingestion").info(
        "Import completed",
        extra={"step": "import_complete", "duration_ms": duration_ms, **summary},
    )
