"""
Error taxonomy and centralized error handling for flake-locker.

Defines the exceptions raised while loading a lock file and a small error
handler that logs structured error context and dispatches callbacks.
"""

import logging
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .structured_logging import StderrHandler

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class FlakeLockError(Exception):
    """Base class for all fatal lock file errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class IoError(FlakeLockError):
    """The lock file could not be read."""


class ParseError(FlakeLockError, ValueError):
    """The lock file content is not a usable flake.lock document."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        super().__init__(message, path)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        location = ""
        if self.line is not None:
            location = f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        if self.path:
            return f"{self.path}{location}: {self.message}"
        if location:
            return f"line {location[1:]}: {self.message}"
        return self.message


class UnsupportedVersionError(ParseError):
    """The lock file declares a format version this tool does not understand."""

    def __init__(self, version: Any, path: Optional[str] = None):
        super().__init__(f"Unsupported flake.lock version: {version}", path)
        self.version = version


class ErrorLevel(Enum):
    """Error severity levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ErrorCategory(Enum):
    """Error categories for better classification."""

    PARSING = "PARSING"
    FILESYSTEM = "FILESYSTEM"
    VALIDATION = "VALIDATION"
    CONFIGURATION = "CONFIGURATION"


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    traceback_info: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)


# Error callback type
ErrorCallback = Callable[[ErrorContext], None]

_LEVEL_MAP = {
    ErrorLevel.DEBUG: logging.DEBUG,
    ErrorLevel.INFO: logging.INFO,
    ErrorLevel.WARNING: logging.WARNING,
    ErrorLevel.ERROR: logging.ERROR,
    ErrorLevel.CRITICAL: logging.CRITICAL,
}


class ErrorHandler:
    """
    Centralized error handler for consistent error management.

    Logs every handled error with its context, keeps per-category statistics
    and notifies registered callbacks.
    """

    def __init__(
        self,
        logger_name: str = "flake_locker",
        log_level: int = logging.WARNING,
        enable_callbacks: bool = True,
        log_format: str = DEFAULT_LOG_FORMAT,
    ):
        """
        Initialize error handler.

        Args:
            logger_name: Name for the logger
            log_level: Logging level
            enable_callbacks: Whether to enable error callbacks
            log_format: ``logging.Formatter`` format string for error lines
        """
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(log_level)
        if not self.logger.handlers:
            self.logger.addHandler(StderrHandler())
        for handler in self.logger.handlers:
            handler.setFormatter(logging.Formatter(log_format))
        self.enable_callbacks = enable_callbacks
        self.error_callbacks: Dict[ErrorCategory, List[ErrorCallback]] = {}
        self.global_callbacks: List[ErrorCallback] = []
        self.error_stats: Dict[str, int] = {}

    def register_callback(
        self, callback: ErrorCallback, category: Optional[ErrorCategory] = None
    ):
        """
        Register error callback.

        Args:
            callback: Function to call on errors
            category: Error category to filter, None for all errors
        """
        if not self.enable_callbacks:
            return

        if category is None:
            self.global_callbacks.append(callback)
        else:
            self.error_callbacks.setdefault(category, []).append(callback)

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        """
        Handle an error with structured logging and callbacks.

        Returns:
            ErrorContext: The created error context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            traceback_info=traceback.format_exc() if exception else None,
            suggestions=suggestions or [],
        )

        stat_key = f"{category.value}_{level.value}"
        self.error_stats[stat_key] = self.error_stats.get(stat_key, 0) + 1

        log_data = {
            "category": category.value,
            "module": module,
            "function": function,
            "details": context.details,
        }
        if exception:
            log_data["exception"] = type(exception).__name__
        self.logger.log(_LEVEL_MAP[level], f"{message} | {log_data}")

        if self.enable_callbacks:
            for callback in self.error_callbacks.get(category, []):
                try:
                    callback(context)
                except Exception as cb_error:
                    # Don't let callback errors break the main flow
                    self.logger.error(f"Error in callback: {cb_error}")

            for callback in self.global_callbacks:
                try:
                    callback(context)
                except Exception as cb_error:
                    self.logger.error(f"Error in global callback: {cb_error}")

        return context

    def warning(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle warning level error."""
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )

    def get_error_stats(self) -> Dict[str, int]:
        """Get error statistics."""
        return self.error_stats.copy()


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """
    Get the global error handler instance.

    Returns:
        ErrorHandler: Global error handler
    """
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING,
    enable_callbacks: bool = True,
    logger_name: str = "flake_locker",
    log_format: str = DEFAULT_LOG_FORMAT,
) -> ErrorHandler:
    """
    Setup global error handling configuration.

    Args:
        log_level: Logging level
        enable_callbacks: Whether to enable callbacks
        logger_name: Logger name
        log_format: Format string for error lines

    Returns:
        ErrorHandler: Configured error handler
    """
    global _global_error_handler
    _global_error_handler = ErrorHandler(
        logger_name, log_level, enable_callbacks, log_format
    )
    return _global_error_handler


def log_parsing_error(
    error: ParseError,
    module: str,
    function: str,
    exception: Optional[Exception] = None,
):
    """
    Convenience function for logging parse failures before they are raised.

    Logged at INFO: the CLI already reports the raised error on its own line.

    Args:
        error: The parse error about to be raised
        module: Module name
        function: Function name
        exception: Underlying decoder exception, if any
    """
    details: Dict[str, Any] = {}
    if error.line is not None:
        details["line_number"] = error.line
    if error.column is not None:
        details["column"] = error.column
    if error.path is not None:
        # Only the file name, not the full path
        details["file_path"] = Path(error.path).name

    get_error_handler().handle_error(
        ErrorLevel.INFO,
        ErrorCategory.PARSING,
        error.message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=[
            "Check that the file is a flake.lock generated by nix",
            "Regenerate it with `nix flake lock`",
        ],
    )


def log_filesystem_error(
    error: IoError,
    module: str,
    function: str,
    exception: Optional[Exception] = None,
):
    """Log a lock file read failure before it is raised."""
    details: Dict[str, Any] = {}
    if error.path is not None:
        details["file_path"] = Path(error.path).name

    get_error_handler().handle_error(
        ErrorLevel.INFO,
        ErrorCategory.FILESYSTEM,
        error.message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=["Check the path and its permissions"],
    )
