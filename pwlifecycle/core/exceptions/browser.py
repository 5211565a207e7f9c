# pwlifecycle/core/exceptions/browser.py
"""
Browser-Related Exception Classes

This module defines exceptions raised while acquiring Playwright
resources. Acquisition errors are fatal for the affected test and always
carry the engine's original error.
"""

from typing import Optional

from .base import AutomationException
from .enums import ErrorCategory, ErrorSeverity


class BrowserException(AutomationException):
    """
    Base class for all browser-related exceptions.

    Covers the Playwright engine, browser, context and page handles.
    """

    def __init__(
            self,
            message: str,
            browser_type: Optional[str] = None,
            **kwargs
    ):
        """
        Initialize browser exception with browser-specific context.

        Args:
            message: Error description
            browser_type: Engine name (chromium, firefox, webkit)
            **kwargs: Additional arguments for AutomationException
        """
        kwargs.setdefault('category', ErrorCategory.BROWSER)
        kwargs.setdefault('severity', ErrorSeverity.HIGH)

        super().__init__(message=message, **kwargs)

        self.browser_type = browser_type
        if browser_type:
            self.add_context("browser_type", browser_type)
            self.add_tag(f"browser_{browser_type.lower()}")


class BrowserLaunchException(BrowserException):
    """
    Raised when a session cannot be created.

    Wraps failures of engine start, browser launch, context creation or
    page creation. The original error is preserved as both
    ``original_exception`` and ``__cause__``.
    """

    def __init__(
            self,
            message: str,
            browser_type: Optional[str] = None,
            launch_stage: Optional[str] = None,
            **kwargs
    ):
        super().__init__(message, browser_type=browser_type, **kwargs)

        self.launch_stage = launch_stage
        if launch_stage:
            self.add_context("launch_stage", launch_stage)
