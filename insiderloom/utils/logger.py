"""
Logging setup for InsiderLoom.

Console output is plain text; the rotating log file holds one JSON object per
record so skipped filings and run summaries can be grepped or loaded later.
"""

import json
import logging
import logging.config
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import yaml

from .config import get_absolute_path, get_project_root, get_settings

LOG_FILE_NAME = "insiderloom.log"
PACKAGE_LOGGER = "insiderloom"


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Structured fields passed as ``extra={"extra_fields": {...}}`` are merged
    into the top-level object.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that stamps every record with fixed fields.

    The pipeline wraps its logger with the filing being processed so each
    worker's records carry the document key.
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = dict(kwargs.get("extra") or {})
        fields = dict(self.extra)
        fields.update(extra.get("extra_fields") or {})
        extra["extra_fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs


def _resolve_log_dir(log_dir: Optional[str]) -> Path:
    path = get_absolute_path(log_dir or get_settings().logging.log_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def setup_logging(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
) -> None:
    """
    Set up logging configuration.

    Args:
        config_path: Path to logging config YAML file. Defaults to
            ``config/logging.yaml``; basic handlers are installed when absent.
        log_level: Override log level. Defaults to ``logging.level`` from
            settings (``INSIDERLOOM_LOG_LEVEL`` feeds that).
        log_dir: Directory for log files. Defaults to ``logging.log_path``.
    """
    settings = get_settings().logging
    level = (log_level or settings.level).upper()
    logs_dir = _resolve_log_dir(log_dir)

    if config_path is None:
        resolved = get_project_root() / "config" / "logging.yaml"
    else:
        resolved = get_absolute_path(config_path)

    if resolved.exists():
        with open(resolved, "r") as f:
            config = yaml.safe_load(f)

        # Relative log file names live in the log directory
        for handler_config in config.get("handlers", {}).values():
            if "filename" in handler_config:
                filename = Path(handler_config["filename"])
                if not filename.is_absolute():
                    handler_config["filename"] = str(logs_dir / filename)

        logging.config.dictConfig(config)
    else:
        _setup_basic_logging(logs_dir, json_file=settings.log_format == "json")

    # Handlers carry no level of their own, so these two decide what is emitted
    for name in ("", PACKAGE_LOGGER):
        logging.getLogger(name).setLevel(getattr(logging, level))


def _setup_basic_logging(logs_dir: Path, json_file: bool = True) -> None:
    """Console + rotating file handlers on the root logger."""
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    file_handler = logging.handlers.RotatingFileHandler(
        logs_dir / LOG_FILE_NAME,
        maxBytes=10485760,  # 10MB
        backupCount=30,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        JsonFormatter() if json_file else console_handler.formatter
    )

    root_logger = logging.getLogger()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)


def get_logger(
    name: str,
    context: Optional[dict[str, Any]] = None,
) -> logging.Logger | ContextAdapter:
    """
    Get a logger instance.

    Args:
        name: Logger name (``insiderloom.<package>.<module>``).
        context: Fields attached to every record of the returned adapter.
    """
    logger = logging.getLogger(name)

    if context:
        return ContextAdapter(logger, context)

    return logger


def log_operation(
    logger: logging.Logger,
    operation: str,
    success: bool,
    duration_ms: Optional[float] = None,
    **kwargs: Any,
) -> None:
    """
    Log an operation result with structured data.

    Args:
        logger: Logger instance.
        operation: Name of the operation (``resolve_filings``, ``pipeline_run``).
        success: Whether operation succeeded.
        duration_ms: Operation duration in milliseconds.
        **kwargs: Counters and identifiers for the JSON record.
    """
    extra_fields = {
        "operation": operation,
        "success": success,
    }
    if duration_ms is not None:
        extra_fields["duration_ms"] = round(duration_ms, 1)
    extra_fields.update(kwargs)

    level = logging.INFO if success else logging.ERROR
    message = f"Operation '{operation}' {'succeeded' if success else 'failed'}"

    logger.log(level, message, extra={"extra_fields": extra_fields})
