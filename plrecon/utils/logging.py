"""
Structured logging for the reconciliation system.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional
from plrecon.config import get_config


config = get_config()


class StructuredFormatter(logging.Formatter):
    """Formats log records as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra"):
            log_obj.update(record.extra)

        return json.dumps(log_obj, default=str)


def setup_logging(name: str = __name__) -> logging.Logger:
    """Setup and return a configured logger."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config.LOG_LEVEL))

    if logger.handlers:
        return logger

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, config.LOG_LEVEL))
    console_handler.setFormatter(logging.Formatter(config.LOG_FORMAT))
    logger.addHandler(console_handler)

    # File handler with structured JSON
    if config.LOG_FILE:
        file_handler = logging.FileHandler(config.LOG_FILE)
        file_handler.setLevel(getattr(logging, config.LOG_LEVEL))
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


def log_component_action(
    logger: logging.Logger,
    component: str,
    action: str,
    details: Optional[dict] = None,
    confidence: Optional[float] = None,
) -> None:
    """Log a component action with context."""
    extra = {
        "component": component,
        "action": action,
    }
    if confidence is not None:
        extra["confidence"] = confidence
    if details:
        extra.update(details)

    logger.info(
        f"[{component}] {action}",
        extra={"extra": extra}
    )


def log_decision(logger: logging.Logger, record) -> None:
    """Log one audit record. Records carrying warnings are logged as warnings."""
    extra = {
        "type": "decision",
        "run_id": record.run_id,
        "row_id": record.row_id,
        "status": record.status.value,
        "matched_reference": record.matched_reference,
        "confidence": record.confidence,
        "latency_ms": record.latency_ms,
    }
    message = (
        f"Decision for {record.row_id}: {record.status.value} "
        f"(confidence {record.confidence:.2f}, {record.latency_ms} ms)"
    )
    if record.warnings:
        extra["warnings"] = list(record.warnings)
        logger.warning(f"{message} warnings: {'; '.join(record.warnings)}", extra={"extra": extra})
    else:
        logger.info(message, extra={"extra": extra})
