"""
Logging Configuration

Structured logging for the API and the reset scheduler's timer threads.
Production writes one JSON object per line; development writes plain text
with the tenant appended so interleaved group traffic stays readable.

Context travels through the standard `extra=` mechanism:

    logger.info("Arcade added", extra={"tenant_id": tenant_id, "arcade_id": arcade.id})
"""
import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict

# Extra attributes copied into output when a log call supplies them
CONTEXT_FIELDS = ("tenant_id", "user_id", "arcade_id", "event_type")

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}

SECURITY_EVENTS = (
    "permission_denied",
    "tenant_isolation_violation",
    "invalid_token",
    "tenant_reset",
)


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            # Scheduled resets log from timer threads
            "thread": record.threadName,
        }
        log_data.update(_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Group names are often not ASCII
        return json.dumps(log_data, ensure_ascii=False, default=str)


class ContextFormatter(logging.Formatter):
    """Plain text with the tenant / user context appended."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if not context:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{line} [{suffix}]"


def setup_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure the root logger.

    Safe to call more than once; existing handlers are replaced.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ContextFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
    root_logger.addHandler(handler)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_security_event(event_type: str, details: Dict[str, Any], logger: logging.Logger) -> None:
    """
    Log a security-relevant event at WARNING.

    Event types:
    - permission_denied: privileged operation refused by the gate
    - tenant_isolation_violation: token group does not match the tenant header
    - invalid_token: gateway token failed verification
    - tenant_reset: a tenant's data was wiped
    """
    if event_type not in SECURITY_EVENTS:
        logger.debug(f"Unregistered security event type: {event_type}")

    logger.warning(
        f"SECURITY EVENT: {event_type}",
        extra={"security_event": True, "event_type": event_type, **details}
    )
