"""
Logging infrastructure for tablestorage.

Records emitted through log_with_context carry a context dict describing the
scan they belong to. The JSON formatter lifts the scan fields (table,
partition, page and entity counts) to the top level of each line so log
queries can filter on them; the text formatter appends them as key=value
pairs. Storage credentials are redacted before any handler writes a record.
"""

import logging
import logging.handlers
import json
import sys
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

SCAN_FIELDS = ("table_name", "partition_key", "pages", "entities")

_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(GB|MB|KB|B)?$")
_SIZE_UNITS = {None: 1, "B": 1, "KB": 1024, "MB": 1024 ** 2, "GB": 1024 ** 3}


class SensitiveDataFilter(logging.Filter):
    """Redacts storage account credentials from messages, arguments and context."""

    PATTERNS = [
        (re.compile(r'(AccountKey=)[^;]+', re.IGNORECASE), r'\1***REDACTED***'),
        (re.compile(r'(SharedAccessSignature=)[^;&]+', re.IGNORECASE), r'\1***REDACTED***'),
        (re.compile(r'(sig=)[^;&]+', re.IGNORECASE), r'\1***REDACTED***'),
        (re.compile(r'(Authorization:\s+)(?:SharedKey\s+)?\S+', re.IGNORECASE), r'\1***REDACTED***'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self.redact(arg) for arg in record.args)
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            record.context = {key: self.redact(value) for key, value in context.items()}
        return True

    @classmethod
    def redact(cls, value: Any) -> Any:
        """Return value with credentials masked; non-strings pass through."""
        if not isinstance(value, str):
            return value
        for pattern, replacement in cls.PATTERNS:
            value = pattern.sub(replacement, value)
        return value


def _split_context(record: logging.LogRecord) -> tuple[Dict[str, Any], Dict[str, Any]]:
    context = dict(getattr(record, "context", None) or {})
    scan = {field: context.pop(field) for field in SCAN_FIELDS if field in context}
    return scan, context


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Scan fields from the record's context become top-level keys; any other
    context is kept under "context".
    """

    def format(self, record: logging.LogRecord) -> str:
        scan, context = _split_context(record)
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **scan,
        }
        if context:
            log_data["context"] = context
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines, with scan context appended as key=value pairs."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        scan, context = _split_context(record)
        pairs = {**scan, **context}
        if pairs:
            line += " [" + " ".join(f"{key}={value}" for key, value in pairs.items()) + "]"
        return line


def _attach(root_logger: logging.Logger, handler: logging.Handler, formatter: logging.Formatter) -> None:
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(handler)


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: Optional[str] = None,
    rotation_size: str = "10MB",
    rotation_count: int = 5,
    module_levels: Optional[Dict[str, str]] = None
) -> None:
    """
    Configure the root logger for tablestorage.

    Replaces any existing root handlers with a stdout handler and, when
    log_file is given, a size-rotated file handler.

    Args:
        level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" or "text"
        log_file: Optional file path for log output
        rotation_size: Size at which the log file rotates (e.g., "10MB")
        rotation_count: Number of rotated log files to keep
        module_levels: Per-logger levels,
                      e.g., {"tablestorage.storage.backend": "DEBUG"}
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    formatter = JSONFormatter() if format_type == "json" else TextFormatter()
    _attach(root_logger, logging.StreamHandler(sys.stdout), formatter)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=_parse_size(rotation_size),
            backupCount=rotation_count,
            encoding='utf-8'
        )
        _attach(root_logger, file_handler, formatter)

    for module_name, module_level in (module_levels or {}).items():
        logging.getLogger(module_name).setLevel(getattr(logging, module_level.upper()))

    log_with_context(
        root_logger, logging.INFO, "Logging configured",
        level=level, format=format_type, file=log_file, module_levels=module_levels,
    )


def _parse_size(size_str: str) -> int:
    """Convert a size such as "10MB" or "512" to bytes."""
    match = _SIZE_PATTERN.match(size_str.upper().strip())
    if match is None:
        raise ValueError(f"Invalid log rotation size: {size_str!r}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit])


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """
    Log a message with structured context.

    Args:
        logger: Logger instance
        level: Log level
        message: Log message
        **context: Fields attached to the record; table_name, partition_key,
            pages and entities are treated as scan fields by the formatters
    """
    extra = {"context": context} if context else {}
    logger.log(level, message, extra=extra)
