# pwlifecycle/core/exceptions/base.py
"""
Base Exception Class for the Lifecycle Manager

This module provides the foundation exception class that all other
lifecycle exceptions inherit from. It carries the error category that
drives propagation, the original cause, and structured context for the
report and the structured log.
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from .enums import ErrorCategory, ErrorSeverity


@dataclass
class ErrorContext:
    """
    Structured context attached to an exception.

    Provides key/value data and tags for debugging and log enrichment.
    """

    data: Dict[str, Any] = field(default_factory=dict)
    tags: Set[str] = field(default_factory=set)

    def add(self, key: str, value: Any) -> 'ErrorContext':
        """Add context data."""
        self.data[key] = value
        return self

    def add_tag(self, tag: str) -> 'ErrorContext':
        """Add a tag for categorization."""
        self.tags.add(tag)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "data": self.data.copy(),
            "tags": sorted(self.tags),
        }


class AutomationException(Exception):
    """
    Base exception class for all lifecycle manager exceptions.

    Attributes:
        message: Human-readable error description
        error_code: Identifier derived from the class name and timestamp
        category: Error category deciding propagation
        severity: Error severity level
        error_context: Additional context information
        timestamp: When the error occurred
        stack_trace: Stack trace captured at construction time
        original_exception: Original exception that caused this error

    Example:
        >>> try:
        ...     launch_browser()
        ... except Exception as e:
        ...     raise AutomationException(
        ...         message="Browser failed",
        ...         category=ErrorCategory.BROWSER,
        ...         original_exception=e
        ...     ).add_context("browser_type", "chromium") from e
    """

    def __init__(
            self,
            message: str,
            error_code: Optional[str] = None,
            category: ErrorCategory = ErrorCategory.BROWSER,
            severity: Optional[ErrorSeverity] = None,
            context: Optional[Dict[str, Any]] = None,
            original_exception: Optional[BaseException] = None
    ):
        """
        Initialize automation exception.

        Args:
            message: Clear, actionable error description
            error_code: Unique identifier for this error (auto-generated if None)
            category: Error category for classification
            severity: Severity level (category default if None)
            context: Additional debugging context
            original_exception: Original exception that caused this error
        """
        super().__init__(message)

        self.message = message
        self.timestamp = datetime.now(timezone.utc)
        self.error_code = error_code or self._generate_error_code()
        self.category = category
        self.severity = severity or category.get_default_severity()

        self.error_context = ErrorContext()
        if context:
            for key, value in context.items():
                self.error_context.add(key, value)

        for tag in category.get_monitoring_tags():
            self.error_context.add_tag(tag)

        self.original_exception = original_exception
        if original_exception is not None:
            self.__cause__ = original_exception
            self.error_context.add("original_type", type(original_exception).__name__)
            self.error_context.add("original_message", str(original_exception))

        self.stack_trace = traceback.format_exc()

    def _generate_error_code(self) -> str:
        """Generate an error code based on exception type and timestamp."""
        class_name = self.__class__.__name__.replace("Exception", "").upper()
        return f"{class_name}_{self.timestamp.strftime('%Y%m%d_%H%M%S')}"

    @property
    def context(self) -> Dict[str, Any]:
        """Context data as a plain dictionary."""
        return self.error_context.data

    def add_context(self, key: str, value: Any) -> 'AutomationException':
        """
        Add contextual information to the exception.

        Args:
            key: Context key (e.g., "browser_type", "trace_path")
            value: Context value

        Returns:
            AutomationException: Self for method chaining
        """
        self.error_context.add(key, value)
        return self

    def add_tag(self, tag: str) -> 'AutomationException':
        """Add a tag for categorization."""
        self.error_context.add_tag(tag)
        return self

    def is_fatal(self) -> bool:
        """Whether this error should fail the running test."""
        return self.category.is_fatal()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for structured logging.

        Returns:
            Dict: Complete exception data
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "context": self.error_context.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "original_exception": {
                "type": type(self.original_exception).__name__,
                "message": str(self.original_exception)
            } if self.original_exception is not None else None,
        }

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message[:50]}', "
            f"category={self.category.value}, "
            f"severity={self.severity.value}, "
            f"error_code='{self.error_code}'"
            f")"
        )
