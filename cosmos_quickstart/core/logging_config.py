"""
Logging infrastructure for Cosmos Quickstart.

Log records go to stderr (and optionally a rotating file) so that stdout
carries only the tutorial's progress lines. Records logged during a
scenario run are tagged with the run id; account keys and auth tokens
are redacted before any handler writes them.
"""

import logging
import logging.handlers
import json
import sys
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from contextvars import ContextVar

REDACTED = "***REDACTED***"

# Run id of the scenario in progress
correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)


class SensitiveDataFilter(logging.Filter):
    """Filter to redact account keys and auth tokens from log messages."""

    PATTERNS = [
        (re.compile(r'(Authorization:\s+)(?:Bearer\s+)?\S+', re.IGNORECASE), rf'\1{REDACTED}'),
        (re.compile(r'(AccountKey=)[^;]+', re.IGNORECASE), rf'\1{REDACTED}'),
        (re.compile(r'(type=(?:master|aad|resource)&ver=[\d.]+&sig=)[^&\s]+', re.IGNORECASE), rf'\1{REDACTED}'),
        (re.compile(r'(["\']?(?:primary_?key|key)["\']?\s*[:=]\s*["\']?)[A-Za-z0-9+/]{40,}={0,2}', re.IGNORECASE), rf'\1{REDACTED}'),
    ]

    def __init__(self, secrets: Optional[Iterable[str]] = None):
        super().__init__()
        self._secrets = [s for s in (secrets or []) if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            for pattern, replacement in self.PATTERNS:
                record.msg = pattern.sub(replacement, record.msg)
            for secret in self._secrets:
                record.msg = record.msg.replace(secret, REDACTED)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the run id and any attached context."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }

        if run_id := correlation_id.get():
            log_data["correlation_id"] = run_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "context"):
            log_data["context"] = record.context

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter; prefixes the run id when a run is in progress."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        run_id = correlation_id.get()
        return f"[{run_id}] {line}" if run_id else line


def setup_logging(
    level: str = "INFO",
    format_type: str = "text",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    module_levels: Optional[Dict[str, str]] = None,
    secrets: Optional[Iterable[str]] = None
) -> None:
    """
    Configure Cosmos Quickstart logging.

    Replaces any handlers on the root logger.

    Args:
        level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Log format ("json" or "text")
        log_file: Optional file path for log output
        max_bytes: Size at which the log file is rotated
        backup_count: Number of rotated log files to keep
        module_levels: Optional dict of module-specific log levels
                      e.g., {"azure": "WARNING", "cosmos_quickstart.store": "DEBUG"}
        secrets: Literal values (such as the account key) to redact
    """
    formatter = JSONFormatter() if format_type == "json" else TextFormatter()
    redactor = SensitiveDataFilter(secrets)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(redactor)
        root_logger.addHandler(handler)

    for module_name, module_level in (module_levels or {}).items():
        logging.getLogger(module_name).setLevel(getattr(logging, module_level.upper()))

    root_logger.debug(
        f"Logging configured: level={level}, format={format_type}, file={log_file}, "
        f"module_levels={module_levels}"
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_correlation_id(corr_id: str) -> None:
    """Tag records logged from the current context with ``corr_id``."""
    correlation_id.set(corr_id)


def clear_correlation_id() -> None:
    correlation_id.set(None)


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """
    Log a message with structured context.

    The JSON formatter emits ``context`` as a nested object; the text
    formatter ignores it.

    Args:
        logger: Logger instance
        level: Log level
        message: Log message
        **context: Additional context to include in log
    """
    logger.log(level, message, extra={"context": context} if context else {})
