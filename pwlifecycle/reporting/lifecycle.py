# pwlifecycle/reporting/lifecycle.py
"""
Test Lifecycle Orchestrator

Drives one test class through
ClassSetup -> (TestSetup -> TestRunning -> TestTeardown)* -> ClassTeardown.

Class setup loads configuration once and keeps a failure as a deferred
misconfiguration, so every test of the class fails on its own with a
"Misconfiguration" entry instead of the whole class aborting. Test
teardown captures evidence (failure screenshot, trace, video), each step
isolated so one broken artifact never hides the others, and always
destroys the worker's session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from pwlifecycle.config.artifacts import ArtifactPaths, build_artifact_file_name
from pwlifecycle.config.settings import LifecycleSettings, load_settings
from pwlifecycle.core.browser_constants import UNKNOWN_METHOD, TracingDefaults
from pwlifecycle.core.exceptions.base import AutomationException
from pwlifecycle.core.exceptions.configuration import ConfigurationException
from pwlifecycle.core.logger import (
    clear_logging_context,
    get_logger,
    set_correlation_id,
    set_test_id,
)
from pwlifecycle.core.worker import WorkerContext, get_worker_context
from pwlifecycle.reporting.html_reporter import (
    HtmlReporter,
    ReportEntry,
    escape_html,
    to_collapsible_stack_html,
    to_short_error,
)


@dataclass(frozen=True)
class TestInfo:
    """What the orchestrator needs to know about one test."""

    __test__ = False

    class_name: Optional[str]
    method_name: Optional[str]
    display_name: str = ""

    @property
    def name(self) -> str:
        return self.display_name or self.method_name or UNKNOWN_METHOD

    @property
    def test_id(self) -> str:
        return f"{self.class_name}.{self.name}" if self.class_name else self.name


@dataclass(frozen=True)
class ConfigResult:
    """Outcome of loading configuration once per class."""

    settings: Optional[LifecycleSettings] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.settings is not None

    @classmethod
    def load(cls, loader: Callable[[], LifecycleSettings]) -> "ConfigResult":
        try:
            return cls(settings=loader())
        except ConfigurationException as e:
            return cls(error=str(e))


@dataclass
class ClassRun:
    """State of one test class between class setup and class teardown."""

    class_name: str
    reporter: HtmlReporter
    config: ConfigResult
    started_at: datetime = field(default_factory=datetime.now)
    report_path: Optional[Path] = None

    @property
    def misconfiguration(self) -> Optional[str]:
        return self.config.error


class LifecycleOrchestrator:
    """
    Maps test framework callbacks onto sessions, steps and the report.

    Every per-test method takes the worker explicitly and falls back to the
    calling thread's context.

    Example:
        >>> orchestrator = LifecycleOrchestrator()
        >>> run = orchestrator.start_class("DemoTest")
        >>> test = TestInfo("DemoTest", "test_title", "test_title")
        >>> orchestrator.start_test(run, test)
        >>> orchestrator.finish_test(run, test, error=None)
        >>> orchestrator.finish_class(run)
    """

    def __init__(
            self,
            reports_root: Optional[Union[str, Path]] = None,
            settings_loader: Callable[[], LifecycleSettings] = load_settings,
            worker_provider: Callable[[], WorkerContext] = get_worker_context
    ):
        """
        Initialize the orchestrator.

        Args:
            reports_root: Root directory for reports and artifacts (``build/reports`` if None)
            settings_loader: Loads and validates settings, raising ConfigurationException
            worker_provider: Returns the calling worker's context
        """
        self.paths = ArtifactPaths(Path(reports_root)) if reports_root is not None else ArtifactPaths.default()
        self.settings_loader = settings_loader
        self.worker_provider = worker_provider
        self.logger = get_logger("lifecycle")

    def _worker(self, worker: Optional[WorkerContext]) -> WorkerContext:
        worker = worker or self.worker_provider()
        worker.registry.paths = self.paths
        return worker

    # Class setup / teardown

    def start_class(self, class_name: str) -> ClassRun:
        """Create the class report and load configuration, deferring any failure."""
        self.paths.ensure()
        reporter = HtmlReporter(
            self.paths.reports_dir / f"{class_name}_Results.html",
            title=f"{class_name} Results"
        )
        config = ConfigResult.load(self.settings_loader)

        if config.ok:
            self.logger.info("Test class started", test_class=class_name, report=str(reporter.file_path))
        else:
            self.logger.error(
                "Configuration failed, every test of the class will fail",
                test_class=class_name,
                error=config.error
            )

        return ClassRun(class_name=class_name, reporter=reporter, config=config)

    def finish_class(self, run: ClassRun, worker: Optional[WorkerContext] = None) -> Path:
        """Release the worker, flush the report and drop the deferred misconfiguration."""
        worker = self._worker(worker)
        worker.registry.destroy()
        worker.steps.clear()
        worker.unbind()

        try:
            run.report_path = run.reporter.flush()
        finally:
            run.config = ConfigResult(settings=run.config.settings)

        self.logger.info("Test class finished", test_class=run.class_name, report=str(run.report_path))
        return run.report_path

    # Test setup / teardown

    def start_test(self, run: ClassRun, test: TestInfo, worker: Optional[WorkerContext] = None) -> ReportEntry:
        """
        Prepare the worker for a test body.

        Returns:
            The report entry of the test

        Raises:
            ConfigurationException: On deferred misconfiguration or missing critical keys
            BrowserLaunchException: If no session or page can be created
        """
        worker = self._worker(worker)
        entry = run.reporter.create_entry(test.name)
        worker.bind(entry=entry)
        set_test_id(test.test_id)
        set_correlation_id()

        try:
            settings = self._require_settings(run, entry)
            worker.bind(settings=settings)
            worker.steps.reset()
            entry.info(f"{escape_html(test.name)} - started")
            self.logger.info("Test started", test_class=test.class_name, test_name=test.name)

            worker.registry.recycle_page()
        except Exception as e:
            if isinstance(e, AutomationException):
                self.logger.error("Test setup failed", test_name=test.name, **e.to_dict())
            else:
                self.logger.error("Test setup failed", test_name=test.name, error=to_short_error(e))
            if not isinstance(e, ConfigurationException):
                entry.fail(f"Test setup failed: {escape_html(to_short_error(e))}<br/>{to_collapsible_stack_html(e)}")
            self._release(worker)
            raise

        if settings.trace_policy.enabled:
            self._start_tracing(worker, entry, settings)

        return entry

    def _require_settings(self, run: ClassRun, entry: ReportEntry) -> LifecycleSettings:
        if run.misconfiguration is not None:
            message = f"Misconfiguration: {run.misconfiguration}"
            entry.fail(escape_html(message))
            raise ConfigurationException(message)

        settings = run.config.settings
        missing = settings.missing_critical_keys()
        if missing:
            message = f"Misconfiguration: {', '.join(missing)}"
            entry.fail(escape_html(message))
            raise ConfigurationException(message, missing_keys=missing, environment=settings.environment)

        return settings

    def _start_tracing(self, worker: WorkerContext, entry: ReportEntry, settings: LifecycleSettings) -> None:
        try:
            worker.registry.acquire().context.tracing.start(
                screenshots=settings.screenshot,
                snapshots=settings.snapshot,
                sources=TracingDefaults.SOURCES
            )
        except Exception as e:
            self.logger.warning(f"Could not start tracing: {e}", error=str(e))
            entry.warning(f"Could not start tracing: {escape_html(str(e))}")

    def finish_test(
            self,
            run: ClassRun,
            test: TestInfo,
            error: Optional[BaseException] = None,
            worker: Optional[WorkerContext] = None,
            skipped: bool = False
    ) -> None:
        """
        Record the outcome, capture artifacts and release the worker.

        A skipped test is logged as a WARNING with the skip reason in
        ``error``; it is neither passed nor failed.

        Never raises for artifact or teardown failures; those become
        WARNING events on the entry.
        """
        worker = self._worker(worker)
        entry = worker.report_entry or run.reporter.create_entry(test.name)
        failed = error is not None and not skipped

        try:
            entry.info(f"{escape_html(test.name)} - finished")

            if skipped:
                reason = str(error) if error is not None else ""
                entry.warning(f"{escape_html(test.name)} - skipped: {escape_html(reason)}")
            elif not failed:
                entry.passed(f"{escape_html(test.name)} - passed")
            else:
                self._log_failure(worker, entry, error)
                if worker.policy.screenshot_on_test_failure:
                    self._attach_test_screenshot(worker, entry, test)

            if worker.policy.trace.enabled:
                self._export_trace(worker, entry, test, failed)

            if worker.policy.video.enabled:
                self._report_video(worker, entry, failed)

            self.logger.info(
                "Test finished",
                test_class=test.class_name,
                test_name=test.name,
                outcome="skipped" if skipped else "failed" if failed else "passed",
                status=entry.status.value
            )
        finally:
            self._release(worker)

    def _log_failure(self, worker: WorkerContext, entry: ReportEntry, error: BaseException) -> None:
        index = worker.steps.current_index
        name = worker.steps.current_name
        entry.fail(f"Failed at step #{index}: {escape_html(str(name))}")
        entry.fail(escape_html(to_short_error(error)))
        entry.fail(to_collapsible_stack_html(error))

    def _attach_test_screenshot(self, worker: WorkerContext, entry: ReportEntry, test: TestInfo) -> None:
        try:
            session = worker.registry.current()
            if session is None or not session.is_valid():
                return
            screenshot = session.screenshot(full_page=True)
            entry.fail("Test Screenshot", media=screenshot)

            file_name = build_artifact_file_name(test.class_name, test.method_name, ".png")
            screenshot_path = self.paths.screenshots_dir / file_name
            screenshot_path.parent.mkdir(parents=True, exist_ok=True)
            screenshot_path.write_bytes(screenshot)
            entry.info(f"Screenshot file: {escape_html(str(screenshot_path.resolve()))}")
        except Exception as e:
            self.logger.warning(f"Could not capture test screenshot: {e}", error=str(e))
            entry.warning(f"Could not capture test screenshot: {escape_html(str(e))}")

    def _export_trace(self, worker: WorkerContext, entry: ReportEntry, test: TestInfo, failed: bool) -> None:
        try:
            session = worker.registry.current()
            if session is None:
                return
            file_name = build_artifact_file_name(test.class_name, test.method_name, ".zip")
            trace_path = self.paths.traces_dir / file_name
            session.context.tracing.stop(path=str(trace_path))

            message = f"Trace saved: {escape_html(str(trace_path.resolve()))}"
            if failed:
                entry.fail(message)
            else:
                entry.info(message)
        except Exception as e:
            self.logger.warning(f"Could not export trace: {e}", error=str(e))
            entry.warning(f"Could not export trace: {escape_html(str(e))}")

    def _report_video(self, worker: WorkerContext, entry: ReportEntry, failed: bool) -> None:
        try:
            video = worker.registry.close_current_page_and_get_video()
            if video is None:
                return

            message = f"Video saved: {escape_html(str(video.resolve()))}"
            if failed:
                entry.fail(message)
            else:
                entry.info(message)
        except Exception as e:
            self.logger.warning(f"Could not get video: {e}", error=str(e))
            entry.warning(f"Could not get video: {escape_html(str(e))}")

    def _release(self, worker: WorkerContext) -> None:
        """Destroy the session and forget every per-test binding."""
        try:
            worker.registry.destroy()
        finally:
            worker.steps.clear()
            worker.unbind()
            clear_logging_context()
