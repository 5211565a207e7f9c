# pwlifecycle/core/exceptions/artifact.py
"""
Artifact Exception Classes

Raised when a screenshot, trace or video cannot be produced. These never
change a test's outcome; callers log them as warnings.
"""

from typing import Optional

from .base import AutomationException
from .enums import ErrorCategory, ErrorSeverity


class ArtifactException(AutomationException):
    """A piece of evidence could not be captured."""

    def __init__(
            self,
            message: str,
            artifact_type: Optional[str] = None,
            **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.ARTIFACT)
        kwargs.setdefault('severity', ErrorSeverity.MEDIUM)

        super().__init__(message=message, **kwargs)

        self.artifact_type = artifact_type
        if artifact_type:
            self.add_context("artifact_type", artifact_type)
            self.add_tag(f"artifact_{artifact_type}")
