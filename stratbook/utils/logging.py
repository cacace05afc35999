"""Structured logging for stratbook.

Provides JSON-formatted logging with context support for
content events, debugging, and monitoring.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

# LogRecord attributes that are not user-supplied context
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename",
    "funcName", "levelname", "levelno", "lineno",
    "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info",
    "thread", "threadName", "exc_info", "exc_text",
    "message", "asctime", "taskName",
))


def _context_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_extras: bool = True):
        """Initialize JSON formatter.

        Args:
            include_extras: Include extra fields in output
        """
        super().__init__()
        self._include_extras = include_extras

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted string
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self._include_extras:
            extras = {}
            for key, value in _context_fields(record).items():
                try:
                    json.dumps(value)  # Check if serializable
                    extras[key] = value
                except (TypeError, ValueError):
                    extras[key] = str(value)

            if extras:
                log_data["context"] = extras

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Text formatter with context support."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = [f"{key}={value}" for key, value in _context_fields(record).items()]
        if extras:
            return f"{base} | {' '.join(extras)}"
        return base


class ContentEventLogger:
    """Logger for strategy content lifecycle events.

    Every event carries an ``event`` field plus the ids involved, so JSON
    logs can be filtered per strategy.

    Example:
        >>> events = ContentEventLogger("stratbook.content")
        >>> events.version_created(strategy_id, version_id, version_number=2)
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @staticmethod
    def _ids(**values: Any) -> dict[str, Any]:
        return {k: str(v) if isinstance(v, UUID) else v for k, v in values.items()}

    def version_created(
        self,
        strategy_id: UUID,
        version_id: UUID,
        version_number: int,
        **context: Any,
    ) -> None:
        """Log a new version becoming current."""
        self._logger.info(
            "Version %d created for strategy %s", version_number, strategy_id,
            extra={
                "event": "version_created",
                **self._ids(strategy_id=strategy_id, version_id=version_id),
                "version_number": version_number,
                **context,
            },
        )

    def images_copied(
        self,
        strategy_id: UUID,
        from_version_id: Optional[UUID],
        to_version_id: UUID,
        copied: int,
        failed: int = 0,
    ) -> None:
        """Log a copy-forward of images onto a new version."""
        level = logging.WARNING if failed else logging.INFO
        self._logger.log(
            level,
            "Copied %d image(s) to version %s (%d failed)", copied, to_version_id, failed,
            extra={
                "event": "images_copied",
                **self._ids(
                    strategy_id=strategy_id,
                    from_version_id=from_version_id,
                    to_version_id=to_version_id,
                ),
                "copied": copied,
                "failed": failed,
            },
        )

    def image_uploaded(
        self,
        strategy_id: UUID,
        image_id: UUID,
        storage_path: str,
        version_id: Optional[UUID] = None,
    ) -> None:
        """Log one stored image."""
        self._logger.info(
            "Uploaded image %s for strategy %s", storage_path, strategy_id,
            extra={
                "event": "image_uploaded",
                **self._ids(strategy_id=strategy_id, image_id=image_id, version_id=version_id),
                "storage_path": storage_path,
            },
        )

    def upload_rejected(self, strategy_id: Optional[UUID], file_name: str, reason: str) -> None:
        """Log a file refused before upload."""
        self._logger.warning(
            "Upload rejected: %s - %s", file_name, reason,
            extra={
                "event": "upload_rejected",
                **self._ids(strategy_id=strategy_id),
                "file_name": file_name,
                "reason": reason,
            },
        )

    def aggregate_fallback(self, operation: str, error: str) -> None:
        """Log that a joined read fell back to separate queries."""
        self._logger.warning(
            "Aggregated query failed for %s, falling back to separate queries", operation,
            extra={"event": "aggregate_fallback", "operation": operation, "error": error},
        )


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    file: str | Path | None = None,
    rotate_size_mb: int = 10,
    retain_count: int = 5,
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Log format ('json' or 'text')
        file: Log file path (None for stdout only)
        rotate_size_mb: Log rotation size in MB
        retain_count: Number of rotated files to retain
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    if format == "json":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file:
        file_path = Path(file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=rotate_size_mb * 1024 * 1024,
            backupCount=retain_count,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Configure uvicorn loggers to propagate to root (so they go to file handler)
    for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(uvicorn_logger_name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def get_content_logger(name: str) -> ContentEventLogger:
    """Get a content event logger instance."""
    return ContentEventLogger(name)
