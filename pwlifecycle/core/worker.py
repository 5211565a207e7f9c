# pwlifecycle/core/worker.py
"""
Per-Worker Context

Everything the lifecycle keeps per worker thread: the session registry,
the step tracker, the report entry of the running test and the settings
bound for it. The orchestrator and the step interceptor take a
``WorkerContext`` explicitly and only fall back to the calling thread's
context when none is passed.
"""

import threading
from typing import Optional

from playwright.sync_api import Page

from pwlifecycle.config.settings import ArtifactPolicy, LifecycleSettings, get_settings
from pwlifecycle.core.browser_manager import SessionRegistry
from pwlifecycle.reporting.html_reporter import ReportEntry
from pwlifecycle.reporting.step_tracker import StepTracker


class WorkerContext:
    """
    State confined to one worker.

    Example:
        >>> worker = get_worker_context()
        >>> worker.registry.acquire().page.goto("/")
        >>> worker.steps.current_index
        0
    """

    def __init__(
            self,
            registry: Optional[SessionRegistry] = None,
            steps: Optional[StepTracker] = None
    ):
        self.name = threading.current_thread().name
        self.settings: Optional[LifecycleSettings] = None
        self.report_entry: Optional[ReportEntry] = None
        self.registry = registry or SessionRegistry(settings_provider=self.get_settings)
        self.steps = steps or StepTracker()

    def get_settings(self) -> LifecycleSettings:
        """Settings bound for the running test, else the cached process settings."""
        return self.settings if self.settings is not None else get_settings()

    @property
    def policy(self) -> ArtifactPolicy:
        if self.settings is None:
            return ArtifactPolicy()
        return self.settings.artifact_policy

    def bind(self, entry: Optional[ReportEntry] = None, settings: Optional[LifecycleSettings] = None) -> None:
        if entry is not None:
            self.report_entry = entry
        if settings is not None:
            self.settings = settings

    def unbind(self) -> None:
        """Drop the per-test report entry and settings."""
        self.report_entry = None
        self.settings = None

    def page(self) -> Page:
        """The current page, acquiring a session if needed."""
        return self.registry.acquire().page


_local = threading.local()


def get_worker_context() -> WorkerContext:
    """Get the calling thread's context, creating it on first use."""
    context = getattr(_local, "context", None)
    if context is None:
        context = WorkerContext()
        _local.context = context
    return context


def set_worker_context(context: WorkerContext) -> None:
    """Install a context for the calling thread."""
    _local.context = context


def reset_worker_context() -> None:
    """Forget the calling thread's context without touching its session."""
    _local.context = None
