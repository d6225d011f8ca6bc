"""
Centralized error handling with callback support and categorization.

Errors raised while advancing conversations are reported here instead of being
logged ad hoc at every call site. Each report is categorised by where it came
from and how severe it is, counted, logged at a matching level and passed to
any registered callbacks.

Usage:
    # Register a custom error handler
    async def alert_operator(error_info: ErrorInfo):
        ...

    error_handler = get_error_handler()
    error_handler.register_handler(alert_operator, ErrorContext.ENGINE)

    # Report an error
    await error_handler.handle_error(
        exception,
        context=ErrorContext.ACTION,
        severity=ErrorSeverity.MEDIUM,
        operation="send_greeting",
        conversation_key="12345",
    )
"""

import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from chatflow.config.logging_config import configure_logging


class ErrorContext(Enum):
    """Where an error originated."""

    ACTION = "action"
    GUARD = "guard"
    ENGINE = "engine"
    TRANSPORT = "transport"
    CLASSIFICATION = "classification"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Simple error information structure."""

    error: Exception
    context: ErrorContext
    severity: ErrorSeverity
    operation: str
    metadata: Dict[str, Any]
    timestamp: datetime


class ErrorHandler:
    """
    Error reporting with per-context and global callbacks.

    Callback failures are logged and isolated from each other and from the
    code that reported the error.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or configure_logging("error_handler")
        self._handlers: Dict[ErrorContext, List[Callable]] = {
            context: [] for context in ErrorContext
        }
        self._global_handlers: List[Callable] = []
        self._error_count: Dict[ErrorContext, int] = {
            context: 0 for context in ErrorContext
        }

    def register_handler(
        self,
        handler: Callable[[ErrorInfo], Any],
        context: Optional[ErrorContext] = None,
    ) -> None:
        """
        Register an error callback for a specific context or globally.

        Args:
            handler: Sync or async callable taking an ErrorInfo
            context: Error context to handle (None for global handlers)
        """
        if context is None:
            self._global_handlers.append(handler)
            self.logger.debug("Registered global error handler")
        else:
            self._handlers[context].append(handler)
            self.logger.debug(f"Registered error handler for {context.value}")

    async def handle_error(
        self,
        error: Exception,
        context: ErrorContext = ErrorContext.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        operation: str = "unknown",
        **metadata,
    ) -> None:
        """
        Report an error to the log and to registered callbacks.

        Args:
            error: The exception that occurred
            context: Error context for categorization
            severity: Error severity level
            operation: Name of the operation that failed
            **metadata: Additional metadata such as the conversation key
        """
        error_info = ErrorInfo(
            error=error,
            context=context,
            severity=severity,
            operation=operation,
            metadata=metadata,
            timestamp=datetime.now(),
        )

        self._error_count[context] += 1

        log_level = {
            ErrorSeverity.LOW: logging.DEBUG,
            ErrorSeverity.MEDIUM: logging.WARNING,
            ErrorSeverity.HIGH: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL,
        }[severity]

        details = ", ".join(f"{key}={value}" for key, value in metadata.items())
        self.logger.log(
            log_level,
            f"Error in {context.value} ({operation}): {type(error).__name__}: {error}"
            + (f" [{details}]" if details else ""),
        )

        await self._execute_handlers(self._handlers[context], error_info)
        await self._execute_handlers(self._global_handlers, error_info)

    async def _execute_handlers(
        self, handlers: List[Callable], error_info: ErrorInfo
    ) -> None:
        for handler in handlers:
            try:
                result = handler(error_info)
                if inspect.isawaitable(result):
                    await result
            except Exception as handler_error:
                self.logger.error(f"Error in error handler: {handler_error}")

    def get_error_stats(self) -> Dict[str, Any]:
        """Get simple error statistics."""
        return {
            "error_counts": {
                ctx.value: count for ctx, count in self._error_count.items()
            },
            "total_errors": sum(self._error_count.values()),
            "registered_handlers": {
                ctx.value: len(handlers) for ctx, handlers in self._handlers.items()
            },
            "global_handlers": len(self._global_handlers),
        }


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler
