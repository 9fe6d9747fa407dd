"""
Structured Logging Configuration

Provides JSON-formatted logging with:
- Request ID tracking
- Webhook event context (event type, entity type, entity id)
- Structured output for log aggregation
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional, Any, Dict
from contextvars import ContextVar

# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
event_type_var: ContextVar[str] = ContextVar('event_type', default='')


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.
    Outputs logs in JSON format for easy parsing by log aggregators.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        event_type = event_type_var.get()
        if event_type:
            log_data["event_type"] = event_type

        log_data["module"] = record.module
        log_data["function"] = record.funcName
        log_data["line"] = record.lineno

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_data'):
            log_data["data"] = record.extra_data

        if hasattr(record, 'entity_type'):
            log_data["entity_type"] = record.entity_type
        if hasattr(record, 'entity_id'):
            log_data["entity_id"] = record.entity_id

        return json.dumps(log_data, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter that adds structured context to log messages.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs

    def log_with_context(
        self,
        level: int,
        msg: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        **extra_data
    ):
        """Log with additional structured context."""
        extra = {}
        if entity_type:
            extra['entity_type'] = entity_type
        if entity_id:
            extra['entity_id'] = entity_id
        if extra_data:
            extra['extra_data'] = extra_data

        self.log(level, msg, extra=extra)

    def entity_persisted(self, entity_type: str, entity_id: str, table: str, action: str):
        """Log a successful webhook write."""
        self.log_with_context(
            logging.INFO,
            f"Persisted {entity_type} into {table} ({action})",
            entity_type=entity_type,
            entity_id=entity_id,
            table=table,
            action=action
        )

    def sync_batch(self, entity: str, batch_number: int, size: int):
        """Log a bulk sync batch."""
        self.log_with_context(
            logging.INFO,
            f"Synced {entity} batch {batch_number} ({size} records)",
            entity_type=entity,
            batch_number=batch_number,
            size=size
        )

    def webhook_outcome(self, event_type: str, state: str, status_code: int, entity_id: Optional[str] = None):
        """Log the terminal state of one webhook delivery."""
        level = logging.INFO if status_code < 400 else logging.WARNING
        self.log_with_context(
            level,
            f"Webhook {event_type} -> {state} ({status_code})",
            entity_id=entity_id,
            event_type=event_type,
            state=state,
            status_code=status_code
        )


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_uvicorn: bool = True
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True for production)
        include_uvicorn: Also configure uvicorn loggers
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    app_logger = logging.getLogger("app")
    app_logger.setLevel(log_level)

    if include_uvicorn:
        for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
            uvicorn_logger = logging.getLogger(logger_name)
            uvicorn_logger.handlers = [handler]

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("slowapi").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for the given module."""
    base_logger = logging.getLogger(name)
    return StructuredLogger(base_logger, {})


def set_request_context(request_id: str, event_type: Optional[str] = None):
    """Set context for the current request."""
    request_id_var.set(request_id)
    if event_type:
        event_type_var.set(event_type)


def clear_request_context():
    """Clear request context."""
    request_id_var.set('')
    event_type_var.set('')
