"""
Structured logging configuration for flake-locker.

Lint runs emit machine-readable JSON events on stderr so CI systems can
collect them without mixing them into the report on stdout.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class StderrHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stderr`` is at emit time."""

    def __init__(self):
        super().__init__(sys.stderr)

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, _value):
        pass


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
        }
        message = record.getMessage()
        if message:
            log_entry["message"] = message

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class LintLogger:
    """Structured logger for lint run events."""

    def __init__(self, name: str = "flake_locker.lint"):
        self.logger = logging.getLogger(name)
        self._setup_logger()
        self.run_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        """Setup logger with structured formatting."""
        if not self.logger.handlers:
            handler = StderrHandler()
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)
            self.logger.propagate = False

    def set_run_context(
        self,
        run_id: Optional[str] = None,
        file_path: Optional[str] = None,
        total_nodes: Optional[int] = None,
    ) -> None:
        """Set run context for logging."""
        self.run_context = {}
        if run_id:
            self.run_context["run_id"] = run_id
        if file_path:
            self.run_context["file_path"] = file_path
        if total_nodes is not None:
            self.run_context["total_nodes"] = total_nodes

    def clear_run_context(self) -> None:
        """Clear run context."""
        self.run_context.clear()

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.run_context, **kwargs}
        self.logger.log(level, "", extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        """Log info level event."""
        self._log(logging.INFO, event_type, **kwargs)


_lint_logger = LintLogger()


def get_lint_logger() -> LintLogger:
    """Get lint operations logger."""
    return _lint_logger


def log_lint_start(run_id: str, file_path: str) -> None:
    """Log lint start event."""
    logger = get_lint_logger()
    logger.set_run_context(run_id, file_path)
    logger.info("lint_started")


def log_duplicates_detected(uri: str, members: list) -> None:
    """Log one duplicate group."""
    get_lint_logger().info(
        "duplicates_detected", uri=uri, members=members, member_count=len(members)
    )


def log_lint_complete(
    run_id: str, total_nodes: int, duration_ms: int, duplicate_groups: int
) -> None:
    """Log lint completion event."""
    logger = get_lint_logger()
    logger.info(
        "lint_completed",
        run_id=run_id,
        total_nodes=total_nodes,
        lint_duration_ms=duration_ms,
        duplicate_groups=duplicate_groups,
    )
    logger.clear_run_context()


def log_lint_failed(run_id: str, error: Exception) -> None:
    """Log a lint run that stopped on an I/O or parse error."""
    logger = get_lint_logger()
    logger.info(
        "lint_failed",
        run_id=run_id,
        error_type=type(error).__name__,
        error_message=str(error),
    )
    logger.clear_run_context()


def configure_logging(log_level: str = "WARNING") -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)
    _lint_logger.logger.setLevel(level)
