"""
Error Handler Utility
=====================

This module provides centralized error handling for the timeline: an
exception hierarchy for the few failures that can happen outside the core
algorithms (configuration, data loading, presentation callbacks) and an
ErrorHandler that logs by severity, keeps a short history and notifies the
presentation layer through a Qt signal.

The core (clamping, layout, label stacking, filtering) never raises for
degenerate domains or empty inputs; those are corrected or defined states.
"""

import logging
import traceback
from datetime import datetime
from typing import Any, Callable, Optional

from PyQt5.QtCore import QObject, pyqtSignal

# Configure logger
logger = logging.getLogger(__name__)


class ErrorSeverity:
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class TimelineError(Exception):
    """Base exception for timeline-related errors."""

    def __init__(self, message: str, details: Optional[str] = None,
                 severity: str = ErrorSeverity.ERROR):
        """
        Initialize timeline error.

        Args:
            message: User-friendly error message
            details: Technical details for logging
            severity: Error severity level
        """
        super().__init__(message)
        self.message = message
        self.details = details or message
        self.severity = severity


class ConfigError(TimelineError):
    """Exception for invalid timeline configuration values."""

    def __init__(self, message: str, config_file: Optional[str] = None,
                 key: Optional[str] = None, value: Any = None):
        details = f"{message}\n"
        if config_file:
            details += f"Config file: {config_file}\n"
        if key:
            details += f"Key: {key} = {value!r}\n"

        super().__init__(message, details, ErrorSeverity.ERROR)
        self.config_file = config_file
        self.key = key
        self.value = value


class DataLoadError(TimelineError):
    """Exception for event data that cannot be loaded at all."""
    pass


class ErrorHandler(QObject):
    """
    Centralized error handler for the timeline.

    Signals:
        error_occurred: Emitted when an error is handled (severity, message, details)
    """

    error_occurred = pyqtSignal(str, str, str)  # severity, message, details

    def __init__(self, parent=None, max_stored_errors: int = 10):
        super().__init__(parent)
        self._error_count = 0
        self._last_errors = []
        self._max_stored_errors = max_stored_errors

    def handle_error(self, error: Exception, context: str = "") -> str:
        """
        Log an error, record it and notify listeners.

        Args:
            error: The exception that occurred
            context: What was being done (e.g., "handling wheel event")

        Returns:
            str: The user-facing message
        """
        self._error_count += 1

        if isinstance(error, TimelineError):
            message = error.message
            details = error.details
            severity = error.severity
        else:
            message = f"An unexpected error occurred while {context}" if context else "An unexpected error occurred"
            error_traceback = "".join(traceback.format_exception(type(error), error, error.__traceback__))
            details = f"Context: {context}\n{type(error).__name__}: {error}\n{error_traceback}"
            severity = ErrorSeverity.ERROR

        log_message = f"Error in {context}: {details}" if context else f"Error: {details}"

        if severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

        self._store_error(severity, message, details)
        self.error_occurred.emit(severity, message, details)
        return message

    def _store_error(self, severity: str, message: str, details: str):
        self._last_errors.append({
            'timestamp': datetime.now(),
            'severity': severity,
            'message': message,
            'details': details
        })

        # Keep only last N errors
        if len(self._last_errors) > self._max_stored_errors:
            self._last_errors = self._last_errors[-self._max_stored_errors:]

    def get_error_history(self) -> list:
        """
        Get recent error history.

        Returns:
            list: Error records (dicts with timestamp, severity, message, details)
        """
        return self._last_errors.copy()

    def get_error_count(self) -> int:
        return self._error_count

    def clear_error_history(self):
        """Clear error history and reset count."""
        self._last_errors.clear()
        self._error_count = 0

    @staticmethod
    def safe_execute(func: Callable, *args, default_return: Any = None,
                     error_handler: Optional['ErrorHandler'] = None,
                     context: str = "", **kwargs) -> Any:
        """
        Execute a presentation callback, routing failures to an ErrorHandler.

        Without an error handler the exception propagates.

        Args:
            func: Function to execute
            *args: Positional arguments for function
            default_return: Value to return if function fails
            error_handler: ErrorHandler instance to use for handling errors
            context: Context description for error messages
            **kwargs: Keyword arguments for function

        Returns:
            Function return value, or default_return if an error was handled
        """
        if error_handler is None:
            return func(*args, **kwargs)
        try:
            return func(*args, **kwargs)
        except Exception as e:
            error_handler.handle_error(e, context)
            return default_return
