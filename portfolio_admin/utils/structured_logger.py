"""
Structured logging for data-access events.
Provides JSON-formatted logs with context and metadata alongside the console log.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any


class StructuredLogger:
    """
    Logger that outputs both human-readable and machine-parseable logs.

    Usage:
        logger = StructuredLogger("portfolio_admin.events")
        logger.info("mutation_completed", kind="skills", action="create", id=4)
    """

    def __init__(
        self,
        name: str,
        log_dir: Path | None = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize structured logger.

        Args:
            name: Logger name
            log_dir: Directory for JSON log files (None = disabled)
            enable_json: Enable JSON file logging
            enable_console: Enable console output
        """
        self.name = name
        self.log_dir = log_dir
        self.enable_json = enable_json and log_dir is not None
        self.enable_console = enable_console

        self._logger = logging.getLogger(name)

        self._json_file = None
        if self.enable_json:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            json_log_path = log_dir / f"portfolio_admin_{timestamp}.jsonl"
            self._json_file = open(json_log_path, "a", encoding="utf-8")  # noqa: SIM115

        # Session context (added to all log entries)
        self._session_context: dict[str, Any] = {
            "session_id": f"{int(time.time())}_{id(self)}",
            "start_time": datetime.now().isoformat(),
        }

    def _format_message(self, event: str, **context) -> str:
        """Format message for console output."""
        parts = [f"[{event}]"]
        for key, value in context.items():
            if key not in ("level", "timestamp"):
                parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_json(self, level: str, event: str, **context) -> None:
        """Write structured log entry to JSON file."""
        if not self._json_file or self._json_file.closed:
            return

        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "event": event,
            **self._session_context,
            **context,
        }

        try:
            self._json_file.write(json.dumps(entry, default=str) + "\n")
            self._json_file.flush()
        except (OSError, ValueError) as e:
            print(f"JSON logging failed: {e}", file=sys.stderr)

    def _log(self, level: int, event: str, **context) -> None:
        if self.enable_console:
            # Square brackets in the event name would be read as rich markup.
            self._logger.log(
                level, self._format_message(event, **context), extra={"markup": False}
            )
        if self.enable_json:
            self._write_json(logging.getLevelName(level), event, **context)

    def debug(self, event: str, **context) -> None:
        """Log debug event."""
        self._log(logging.DEBUG, event, **context)

    def info(self, event: str, **context) -> None:
        """Log info event."""
        self._log(logging.INFO, event, **context)

    def warning(self, event: str, **context) -> None:
        """Log warning event."""
        self._log(logging.WARNING, event, **context)

    def error(self, event: str, **context) -> None:
        """Log error event."""
        self._log(logging.ERROR, event, **context)

    def close(self) -> None:
        """Close JSON log file."""
        if self._json_file and not self._json_file.closed:
            self._json_file.close()


class DataAccessLogger:
    """Specialized logger for store reads, writes and cache invalidations."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def query_completed(self, kind: str, rows: int, duration_ms: float):
        self.logger.debug(
            "query_completed",
            kind=kind,
            rows=rows,
            duration_ms=round(duration_ms, 2),
        )

    def query_failed(self, kind: str, error: Exception):
        self.logger.warning(
            "query_failed",
            kind=kind,
            error_kind=getattr(error, "kind", type(error).__name__),
            error=str(error),
        )

    def mutation_completed(self, kind: str, action: str, record_id: int | None):
        self.logger.info(
            "mutation_completed",
            kind=kind,
            action=action,
            record_id=record_id,
        )

    def mutation_failed(self, kind: str, action: str, error: Exception):
        """Log a rejected write, with the store's details when it sent any."""
        self.logger.error(
            "mutation_failed",
            kind=kind,
            action=action,
            error_kind=getattr(error, "kind", type(error).__name__),
            error=str(error),
            code=getattr(error, "code", None),
            details=getattr(error, "details", None),
        )

    def cache_invalidated(self, key: str):
        self.logger.debug("cache_invalidated", key=key)


def create_data_access_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, DataAccessLogger]:
    """
    Create the structured loggers.

    Returns:
        Tuple of (base_logger, data_access_logger)
    """
    base = StructuredLogger(
        "portfolio_admin.events", log_dir=log_dir, enable_json=enable_json
    )
    return base, DataAccessLogger(base)
