# pwlifecycle/core/browser_manager.py
"""
Per-Worker Browser Session Management

This module owns the Playwright resources of one worker:
- Lazy creation of a single session (engine, browser, context, page)
- Liveness checks that discard a broken session as a unit
- Page recycling between tests while the context (cookies, storage) survives
- Strict reverse-order teardown that never propagates close failures

A ``SessionRegistry`` is never shared between threads; every worker gets
its own through ``pwlifecycle.core.worker``.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from playwright.sync_api import (
    Browser,
    BrowserContext,
    BrowserType as PlaywrightBrowserType,
    Page,
    Playwright,
    sync_playwright,
)

from pwlifecycle.config.artifacts import ArtifactPaths
from pwlifecycle.config.settings import LifecycleSettings, get_settings
from pwlifecycle.core.browser_constants import BrowserCapabilities, BrowserType, ChromiumArgs
from pwlifecycle.core.exceptions.browser import BrowserLaunchException
from pwlifecycle.core.exceptions.enums import ErrorCategory
from pwlifecycle.core.logger import get_logger, get_performance_timer


def start_playwright() -> Playwright:
    """Start the Playwright sync engine for the calling thread."""
    return sync_playwright().start()


@dataclass(frozen=True)
class BrowserSession:
    """
    The Playwright handles bound to one worker.

    All four handles are live together or the session is discarded
    together; a replacement page produces a new ``BrowserSession``.
    """

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page
    browser_type: BrowserType
    session_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def age(self) -> timedelta:
        return datetime.now() - self.created_at

    def is_valid(self) -> bool:
        """The browser is connected and the page is open. Errors count as invalid."""
        try:
            return bool(self.browser.is_connected()) and not self.page.is_closed()
        except Exception:
            return False

    def with_page(self, page: Page) -> "BrowserSession":
        return replace(self, page=page)

    def screenshot(self, full_page: bool = False) -> bytes:
        """Capture the current page as PNG bytes."""
        return self.page.screenshot(full_page=full_page)

    def close(self) -> None:
        """
        Close page, context, browser and engine in that order.

        Each close is attempted even if an earlier one failed; failures are
        logged and never raised.
        """
        logger = get_logger("browser_session")
        closers = (
            ("page", self.page.close),
            ("context", self.context.close),
            ("browser", self.browser.close),
            ("playwright", self.playwright.stop),
        )
        for resource, close in closers:
            try:
                close()
            except Exception as e:
                logger.warning(
                    f"Error closing {resource}: {e}",
                    resource=resource,
                    session_id=self.session_id,
                    error=str(e),
                    error_category=ErrorCategory.TEARDOWN.value
                )


class BrowserFactory:
    """
    Factory for launch and context options derived from settings.

    Example:
        >>> factory = BrowserFactory(settings, ArtifactPaths.default())
        >>> factory.create_launch_options()
        {'headless': True, 'slow_mo': 0}
    """

    def __init__(self, settings: LifecycleSettings, paths: ArtifactPaths):
        self.settings = settings
        self.paths = paths
        self.logger = get_logger("browser_factory")

    @property
    def browser_type(self) -> BrowserType:
        return self.settings.browser_type

    def get_launcher(self, playwright: Playwright) -> PlaywrightBrowserType:
        """Get the Playwright launcher for the configured engine."""
        launchers = {
            BrowserType.CHROMIUM: playwright.chromium,
            BrowserType.FIREFOX: playwright.firefox,
            BrowserType.WEBKIT: playwright.webkit,
        }
        return launchers[self.browser_type]

    def create_launch_options(self) -> Dict[str, Any]:
        """
        Create browser launch options from configuration.

        Chromium under CI drops the sandbox and stops using /dev/shm.
        """
        options: Dict[str, Any] = {
            "headless": self.settings.headless,
            "slow_mo": self.settings.slow_mo,
        }

        if self.browser_type == BrowserType.CHROMIUM and self.settings.is_ci:
            options["args"] = ChromiumArgs.get_args(ci=True)
            options["chromium_sandbox"] = False

        self.logger.debug(
            f"Created launch options for {self.browser_type.value}",
            browser_type=self.browser_type.value,
            headless=options["headless"],
            slow_mo=options["slow_mo"],
            ci_hardening="args" in options
        )

        return options

    def records_video(self) -> bool:
        """Video is recorded only where the engine supports it and policy allows."""
        return (
            BrowserCapabilities.supports_video(self.browser_type)
            and self.settings.video_policy.enabled
        )

    def create_context_options(self) -> Dict[str, Any]:
        """Create browser context options: base URL and, if enabled, video directory."""
        options: Dict[str, Any] = {"base_url": self.settings.base_url}

        if self.records_video():
            options["record_video_dir"] = str(self.paths.videos_dir)

        return options


class SessionRegistry:
    """
    Holds at most one live ``BrowserSession`` for the owning worker.

    Example:
        >>> registry = SessionRegistry()
        >>> session = registry.acquire()
        >>> session.page.goto("/")
        >>> previous_video = registry.recycle_page()
        >>> registry.destroy()
    """

    def __init__(
            self,
            settings_provider: Optional[Callable[[], LifecycleSettings]] = None,
            paths: Optional[ArtifactPaths] = None,
            engine_factory: Callable[[], Playwright] = start_playwright
    ):
        """
        Initialize the registry.

        Args:
            settings_provider: Returns the settings to launch with (cached settings if None)
            paths: Artifact directories (``build/reports`` under the working directory if None)
            engine_factory: Starts a Playwright engine
        """
        self._settings_provider = settings_provider or get_settings
        self.paths = paths or ArtifactPaths.default()
        self._engine_factory = engine_factory
        self._session: Optional[BrowserSession] = None
        self.logger = get_logger("session_registry")

    def current(self) -> Optional[BrowserSession]:
        """The stored session, valid or not. Never creates one."""
        return self._session

    def has_valid_session(self) -> bool:
        return self._session is not None and self._session.is_valid()

    def acquire(self) -> BrowserSession:
        """
        Return the live session, creating one if needed.

        A stored session that fails the liveness check is destroyed first.

        Raises:
            BrowserLaunchException: If any handle cannot be created
            ConfigurationException: If settings cannot be loaded
        """
        session = self._session
        if session is not None and not session.is_valid():
            self.logger.warning(
                "Discarding invalid browser session",
                session_id=session.session_id,
                browser_type=session.browser_type.value
            )
            self.destroy()
            session = None

        if session is None:
            session = self._create_session()
            self._session = session

        return session

    def _create_session(self) -> BrowserSession:
        settings = self._settings_provider()
        factory = BrowserFactory(settings, self.paths)
        browser_type = factory.browser_type

        playwright = browser = context = None
        stage = "engine"

        with get_performance_timer(f"create_session_{browser_type.value}") as timer:
            try:
                self.paths.ensure()
                playwright = self._engine_factory()

                stage = "browser"
                browser = factory.get_launcher(playwright).launch(**factory.create_launch_options())

                stage = "context"
                context = browser.new_context(**factory.create_context_options())

                stage = "page"
                page = context.new_page()
            except Exception as e:
                self._release_partial(context, browser, playwright)
                self.logger.error(
                    f"Failed to initialize Playwright browser at {stage} stage",
                    browser_type=browser_type.value,
                    launch_stage=stage,
                    error=str(e)
                )
                raise BrowserLaunchException(
                    f"Failed to initialize Playwright browser: {e}",
                    browser_type=browser_type.value,
                    launch_stage=stage,
                    original_exception=e
                ) from e

            session = BrowserSession(
                playwright=playwright,
                browser=browser,
                context=context,
                page=page,
                browser_type=browser_type,
            )
            timer.add_metric("session_id", session.session_id)
            timer.add_metric("records_video", factory.records_video())

        self.logger.info(
            f"Browser {browser_type.value} session created",
            session_id=session.session_id,
            browser_type=browser_type.value,
            headless=settings.headless
        )
        return session

    def _release_partial(self, context, browser, playwright) -> None:
        """Close whatever a failed creation left behind."""
        for resource, handle, method in (
                ("context", context, "close"),
                ("browser", browser, "close"),
                ("playwright", playwright, "stop"),
        ):
            if handle is None:
                continue
            try:
                getattr(handle, method)()
            except Exception as e:
                self.logger.warning(
                    f"Error releasing {resource}: {e}",
                    resource=resource,
                    error_category=ErrorCategory.TEARDOWN.value
                )

    def _close_page(self, page: Page) -> Optional[Path]:
        """Close a page and return its recording path, if any."""
        video = None
        try:
            video = page.video
        except Exception as e:
            self.logger.debug(f"Page video unavailable: {e}")

        try:
            page.close()
        except Exception as e:
            self.logger.warning(
                f"Error closing page: {e}",
                error=str(e),
                error_category=ErrorCategory.TEARDOWN.value
            )

        if video is None:
            return None

        try:
            return Path(video.path())
        except Exception as e:
            self.logger.debug(f"Video path unavailable: {e}")
            return None

    def recycle_page(self) -> Optional[Path]:
        """
        Replace the current page with a fresh one in the same context.

        Returns:
            Path of the previous page's recording, or None

        Raises:
            BrowserLaunchException: If no session can be acquired or the
                replacement page cannot be opened
        """
        session = self.acquire()
        previous_video = self._close_page(session.page)

        try:
            new_page = session.context.new_page()
        except Exception as e:
            self.destroy()
            raise BrowserLaunchException(
                f"Failed to open a new page: {e}",
                browser_type=session.browser_type.value,
                launch_stage="page",
                original_exception=e
            ) from e

        self._session = session.with_page(new_page)
        self.logger.debug(
            "Page recycled",
            session_id=session.session_id,
            previous_video=str(previous_video) if previous_video else None
        )
        return previous_video

    def close_current_page_and_get_video(self) -> Optional[Path]:
        """
        Close the current page without opening another one.

        Returns:
            Path of the page's recording, or None when there is no session,
            the page is already closed, or nothing was recorded
        """
        session = self._session
        if session is None:
            return None

        try:
            if session.page.is_closed():
                return None
        except Exception:
            return None

        return self._close_page(session.page)

    def destroy(self) -> None:
        """
        Close every handle of the session and forget it.

        Idempotent; close failures are logged, never raised.
        """
        session = self._session
        self._session = None
        if session is None:
            return

        with get_performance_timer(f"destroy_session_{session.browser_type.value}") as timer:
            timer.add_metric("session_id", session.session_id)
            timer.add_metric("session_age_seconds", round(session.age.total_seconds(), 3))
            session.close()

        self.logger.info(
            "Browser session destroyed",
            session_id=session.session_id,
            browser_type=session.browser_type.value
        )
