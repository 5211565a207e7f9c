# pwlifecycle/core/exceptions/configuration.py
"""
Configuration Exception Classes

Raised when required settings are missing or invalid. The orchestrator
records the message once per test class and re-raises it for every test
so each one is reported as misconfigured on its own.
"""

from typing import List, Optional

from .base import AutomationException
from .enums import ErrorCategory, ErrorSeverity


class ConfigurationException(AutomationException):
    """Missing or invalid configuration."""

    def __init__(
            self,
            message: str,
            missing_keys: Optional[List[str]] = None,
            environment: Optional[str] = None,
            **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.CONFIGURATION)
        kwargs.setdefault('severity', ErrorSeverity.CRITICAL)

        super().__init__(message=message, **kwargs)

        self.missing_keys = list(missing_keys or [])
        self.environment = environment

        if self.missing_keys:
            self.add_context("missing_keys", self.missing_keys)
        if environment:
            self.add_context("environment", environment)
