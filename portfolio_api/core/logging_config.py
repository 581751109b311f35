"""
Logging setup for the portfolio API.

Records go to stderr as JSON lines (LOG_JSON=true, for log aggregation) or
as one readable line each. Fields bound with `bind_log_context` for the
current request (request_id, user_id) are added to every record logged
while handling it.

Usage:
    from portfolio_api.core.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)

    logger.info("Transaction recorded", extra={'symbol': 'BTC'})
"""

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Tuple

_log_context: ContextVar[Dict[str, Any]] = ContextVar('log_context', default={})

# LogRecord attributes that are not caller-supplied fields
_RECORD_FIELDS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message', 'asctime', 'color_message'}


def bind_log_context(**fields: Any) -> Token:
    """Add fields to every record logged from the current context; returns a token for reset."""
    return _log_context.set({**_log_context.get(), **fields})


def reset_log_context(token: Token) -> None:
    _log_context.reset(token)


def current_log_context() -> Dict[str, Any]:
    return dict(_log_context.get())


class ContextFilter(logging.Filter):
    """Copy bound request fields onto records; explicit `extra` values win."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _extra_fields(record: logging.LogRecord) -> Iterator[Tuple[str, Any]]:
    for key, value in record.__dict__.items():
        if key not in _RECORD_FIELDS:
            yield key, value


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:

    {"timestamp": "2026-03-02T14:30:00.000+00:00", "level": "INFO",
     "logger": "portfolio_api.services.transaction_service",
     "message": "Transaction recorded", "request_id": "...", "user_id": "...", "symbol": "BTC"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(timespec='milliseconds'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        for key, value in _extra_fields(record):
            log_obj.setdefault(key, value)

        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)

        # Decimals, datetimes and the like end up as their str()
        return json.dumps(log_obj, default=str)


class HumanFormatter(logging.Formatter):
    """
    2026-03-02 14:30:00 INFO  [services.transaction_service] Transaction recorded (user_id=..., symbol=BTC)
    """

    PACKAGE_PREFIX = 'portfolio_api.'

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')

        logger_name = record.name
        if logger_name.startswith(self.PACKAGE_PREFIX):
            logger_name = logger_name[len(self.PACKAGE_PREFIX):]

        output = f"{timestamp} {record.levelname.ljust(5)} [{logger_name}] {record.getMessage()}"

        extras = [f"{key}={value}" for key, value in _extra_fields(record)]
        if extras:
            output += f" ({', '.join(extras)})"

        if record.exc_info:
            output += f"\n{self.formatException(record.exc_info)}"

        return output


def setup_logging(json_format: Optional[bool] = None, level: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Args:
        json_format: JSON lines (True) or human-readable (False).
                    If None, uses the LOG_JSON setting.
        level: Log level name. Defaults to the LOG_LEVEL setting.
    """
    from portfolio_api.core.config import settings

    if json_format is None:
        json_format = settings.LOG_JSON
    level_no = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else HumanFormatter())
    handler.addFilter(ContextFilter())

    root = logging.getLogger()
    root.setLevel(level_no)
    # Remove existing handlers to avoid duplicates
    root.handlers.clear()
    root.addHandler(handler)

    # Botocore is chatty at DEBUG
    logging.getLogger('botocore').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
