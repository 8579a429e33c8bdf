import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from shipping_quotes.core.config import Settings, get_settings

# Id of the request being served, echoed back in X-Correlation-ID
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the correlation id of the current request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id.get() or "-"
        return True


class StructuredLogFormatter(logging.Formatter):
    """
    Renders records as one JSON object per line.

    A dict passed as ``extra={"data": {...}}`` is merged into the top level
    of the entry.
    """

    def __init__(self, service: str = ""):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if self.service:
            entry["service"] = self.service

        corr_id = getattr(record, "correlation_id", "")
        if corr_id and corr_id != "-":
            entry["correlation_id"] = corr_id

        if record.exc_info and record.exc_info[0] is not None:
            entry["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stack": self.formatException(record.exc_info),
            }

        data = getattr(record, "data", None)
        if isinstance(data, dict):
            entry.update(data)

        return json.dumps(entry, default=str)


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    JSON lines when ``ENABLE_STRUCTURED_LOGGING`` is set, a plain one-line
    format otherwise.
    """
    settings = settings or get_settings()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    if settings.ENABLE_STRUCTURED_LOGGING:
        handler.setFormatter(StructuredLogFormatter(service=settings.PROJECT_NAME))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module-level logger; formatting is decided by ``configure_logging``."""
    return logging.getLogger(name)


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """
    Bind a correlation id to the current context.

    Args:
        corr_id: Id received from the caller; a new one is generated when empty

    Returns:
        The id now bound
    """
    corr_id = corr_id or uuid.uuid4().hex
    correlation_id.set(corr_id)
    return corr_id
