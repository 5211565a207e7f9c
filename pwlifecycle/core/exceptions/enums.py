# pwlifecycle/core/exceptions/enums.py
"""
Exception Classification Enums

This module defines enums for categorizing exceptions raised by the
lifecycle manager. The category decides how an error propagates:
configuration, browser and step errors fail the test, while artifact
and teardown errors only ever produce a warning.
"""

from enum import Enum
from typing import Dict, Set


class ErrorSeverity(str, Enum):
    """
    Error severity levels for exception prioritization.

    Usage:
        >>> ArtifactException("no video", severity=ErrorSeverity.LOW)
    """

    LOW = "low"
    """Cosmetic or informational problems, e.g. a missing video file."""

    MEDIUM = "medium"
    """Degraded evidence, e.g. a trace that could not be exported."""

    HIGH = "high"
    """The current test cannot run, e.g. the browser failed to launch."""

    CRITICAL = "critical"
    """Nothing in the test class can run, e.g. required settings are missing."""


class ErrorCategory(str, Enum):
    """
    Error categories organizing exceptions by lifecycle phase.

    Usage:
        >>> if error.category.is_fatal():
        ...     raise error
    """

    CONFIGURATION = "configuration"
    """Missing or invalid settings. Reported as a misconfiguration per test."""

    BROWSER = "browser"
    """Engine, browser, context or page creation failures."""

    STEP = "step"
    """Failures raised from inside a tracked step."""

    ARTIFACT = "artifact"
    """Screenshot, trace or video capture failures."""

    TEARDOWN = "teardown"
    """Failures while closing pages, contexts, browsers or the engine."""

    def is_fatal(self) -> bool:
        """Whether errors of this category affect the test outcome."""
        return self in _FATAL_CATEGORIES

    def get_monitoring_tags(self) -> Set[str]:
        """Get tags attached to every exception of this category."""
        return _MONITORING_TAGS[self]

    def get_default_severity(self) -> ErrorSeverity:
        """Get the severity used when the caller does not pass one."""
        return _DEFAULT_SEVERITY[self]


_FATAL_CATEGORIES: Set[ErrorCategory] = {
    ErrorCategory.CONFIGURATION,
    ErrorCategory.BROWSER,
    ErrorCategory.STEP,
}

_MONITORING_TAGS: Dict[ErrorCategory, Set[str]] = {
    ErrorCategory.CONFIGURATION: {"config", "setup"},
    ErrorCategory.BROWSER: {"browser", "infrastructure"},
    ErrorCategory.STEP: {"step", "test_failure"},
    ErrorCategory.ARTIFACT: {"artifact", "non_fatal"},
    ErrorCategory.TEARDOWN: {"teardown", "non_fatal"},
}

_DEFAULT_SEVERITY: Dict[ErrorCategory, ErrorSeverity] = {
    ErrorCategory.CONFIGURATION: ErrorSeverity.CRITICAL,
    ErrorCategory.BROWSER: ErrorSeverity.HIGH,
    ErrorCategory.STEP: ErrorSeverity.HIGH,
    ErrorCategory.ARTIFACT: ErrorSeverity.MEDIUM,
    ErrorCategory.TEARDOWN: ErrorSeverity.LOW,
}


class LogStatus(str, Enum):
    """Report log statuses, ordered by how much attention they need."""

    INFO = "info"
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"

    @property
    def weight(self) -> int:
        """Ordering used to compute the overall status of a report entry."""
        return _STATUS_WEIGHT[self]


_STATUS_WEIGHT: Dict[LogStatus, int] = {
    LogStatus.INFO: 0,
    LogStatus.PASS: 1,
    LogStatus.WARNING: 2,
    LogStatus.FAIL: 3,
}
