from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

from storefront.core.config import settings

_STANDARD_ATTRS = set(logging.makeLogRecord({}).__dict__.keys()) | {"message", "asctime"}

# Keys whose values never reach a log line (payment nonces, credentials, tokens).
REDACTED_KEYS = frozenset(
    {
        "nonce",
        "password",
        "hashed_password",
        "access_token",
        "client_token",
        "authorization",
        "private_key",
        "secret_key",
    }
)
REDACTED = "***"


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in REDACTED_KEYS else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra`` fields are nested and redacted."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {key: value for key, value in record.__dict__.items() if key not in _STANDARD_ATTRS}
        if extra.pop("alert", False):
            payload["alert"] = True
        if extra:
            payload["extra"] = redact(extra)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info
        return json.dumps(payload, default=str)


def setup_logging() -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": JsonFormatter}},
            "handlers": {
                "default": {"class": "logging.StreamHandler", "formatter": "json"},
            },
            "root": {"handlers": ["default"], "level": level},
            "loggers": {
                "uvicorn.error": {"level": level},
                "uvicorn.access": {"handlers": ["default"], "level": level, "propagate": False},
                # Reconciliation alerts are emitted whatever LOG_LEVEL says.
                "storefront.reconciliation": {"level": logging.CRITICAL},
            },
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def security_alert(message: str, **context: Any) -> None:
    """Failed logins and rejected tokens, tagged for alerting rules."""
    get_logger("storefront.security").warning(message, extra={"alert": True, **context})


def reconciliation_alert(message: str, **context: Any) -> None:
    """A charge was captured but the order ledger does not show it.

    The record has to be matched by hand against the gateway dashboard
    using the transaction id in ``context``.
    """
    get_logger("storefront.reconciliation").critical(message, extra={"alert": True, **context})
