# tests/unit/test_lifecycle.py
"""
Unit tests for the test lifecycle orchestrator.

A fake Playwright engine stands in for the browser; the report is real.
"""

from unittest.mock import Mock

import pytest

from pwlifecycle.core.exceptions.browser import BrowserLaunchException
from pwlifecycle.core.exceptions.configuration import ConfigurationException
from pwlifecycle.core.exceptions.enums import LogStatus
from pwlifecycle.core.logger import correlation_id_var, test_id_var
from pwlifecycle.reporting.lifecycle import ConfigResult, LifecycleOrchestrator, TestInfo
from pwlifecycle.reporting.steps import run_step

from fakes import make_settings


def failing_loader():
    raise ConfigurationException(
        "Critical configuration keys are missing or empty: ['BASE_URL'] for environment: local"
    )


def read_title_of_blank_page():
    raise AssertionError("page title should not be blank")


class TestConfigResult:
    """Test the deferred configuration result."""

    def test_ok(self):
        result = ConfigResult.load(make_settings)
        assert result.ok
        assert result.error is None

    def test_error_is_kept(self):
        result = ConfigResult.load(failing_loader)

        assert not result.ok
        assert result.settings is None
        assert "BASE_URL" in result.error

    def test_unexpected_errors_propagate(self):
        def broken():
            raise RuntimeError("disk on fire")

        with pytest.raises(RuntimeError):
            ConfigResult.load(broken)


class TestTestInfo:

    def test_names(self):
        info = TestInfo("DemoTest", "test_title", "test_title[chromium]")

        assert info.name == "test_title[chromium]"
        assert info.test_id == "DemoTest.test_title[chromium]"

    def test_fallbacks(self):
        assert TestInfo(None, "test_x").name == "test_x"
        assert TestInfo(None, None).name == "unknownMethod"
        assert TestInfo(None, "test_x").test_id == "test_x"


class TestLifecycleOrchestrator:
    """Test the class and test state machine."""

    @pytest.fixture(autouse=True)
    def setup_orchestrator(self, worker, engine_factory, tmp_path):
        self.worker = worker
        self.engines = engine_factory
        self.settings = make_settings()
        self.reports_root = tmp_path / "reports"
        self.orchestrator = LifecycleOrchestrator(
            reports_root=self.reports_root,
            settings_loader=lambda: self.settings,
            worker_provider=lambda: self.worker
        )
        self.test = TestInfo("DemoTest", "test_title", "test_title")

    def events(self, entry, status):
        return [event for event in entry.events if event.status == status]

    def test_start_class(self):
        run = self.orchestrator.start_class("DemoTest")

        assert run.config.ok
        assert run.misconfiguration is None
        assert run.reporter.file_path == self.reports_root / "DemoTest_Results.html"
        for name in ("traces", "videos", "screenshots"):
            assert (self.reports_root / name).is_dir()
        assert self.engines.engines == []

    def test_start_test(self):
        run = self.orchestrator.start_class("DemoTest")
        entry = self.orchestrator.start_test(run, self.test)

        assert entry.name == "test_title"
        assert entry.messages(LogStatus.INFO) == ["test_title - started"]
        assert self.worker.report_entry is entry
        assert self.worker.settings is self.settings
        assert self.worker.steps.active and self.worker.steps.current_index == 0
        assert self.worker.registry.has_valid_session()
        assert self.worker.registry.paths.reports_dir == self.reports_root
        assert test_id_var.get() == "DemoTest.test_title"
        assert correlation_id_var.get()

        tracing = self.worker.registry.current().context.tracing
        assert tracing.start_options == {"screenshots": True, "snapshots": True, "sources": True}

    def test_tracing_options_follow_settings(self):
        self.settings = make_settings(SCREENSHOT="false", SNAPSHOT="false")
        run = self.orchestrator.start_class("DemoTest")
        self.orchestrator.start_test(run, self.test)

        tracing = self.worker.registry.current().context.tracing
        assert tracing.start_options == {"screenshots": False, "snapshots": False, "sources": True}

    def test_passing_test(self):
        run = self.orchestrator.start_class("DemoTest")
        self.orchestrator.start_test(run, self.test)
        session = self.worker.registry.current()
        entry = self.worker.report_entry
        run_step("Navigate to page: https://example.com/", lambda: None, worker=self.worker)

        self.orchestrator.finish_test(run, self.test, error=None, worker=self.worker)

        assert entry.status == LogStatus.PASS
        assert entry.messages(LogStatus.PASS) == ["test_title - passed"]
        assert self.events(entry, LogStatus.FAIL) == []
        infos = entry.messages(LogStatus.INFO)
        assert infos[1] == "test_title - finished"
        assert any(message.startswith("Trace saved: ") for message in infos)
        assert any(message.startswith("Video saved: ") for message in infos)
        assert not any(message.startswith("Screenshot file: ") for message in infos)
        assert all(page.screenshot_calls == [] for page in session.context.pages)
        assert list((self.reports_root / "traces").glob("DemoTest-test_title-*.zip"))
        assert list((self.reports_root / "screenshots").iterdir()) == []

    def test_skipped_test_is_neither_passed_nor_failed(self):
        run = self.orchestrator.start_class("DemoTest")
        entry = self.orchestrator.start_test(run, self.test)
        session = self.worker.registry.current()

        self.orchestrator.finish_test(
            run, self.test, error=RuntimeError("feature disabled"), worker=self.worker, skipped=True
        )

        assert entry.status == LogStatus.WARNING
        assert entry.messages(LogStatus.WARNING) == ["test_title - skipped: feature disabled"]
        assert entry.messages(LogStatus.PASS) == []
        assert self.events(entry, LogStatus.FAIL) == []
        assert all(page.screenshot_calls == [] for page in session.context.pages)
        assert self.worker.registry.current() is None

    def test_teardown_releases_worker(self):
        run = self.orchestrator.start_class("DemoTest")
        self.orchestrator.start_test(run, self.test)

        self.orchestrator.finish_test(run, self.test, worker=self.worker)

        assert self.worker.registry.current() is None
        assert self.engines.live_engines == []
        assert not self.worker.steps.active
        assert self.worker.report_entry is None
        assert self.worker.settings is None
        assert test_id_var.get() == ""
        assert correlation_id_var.get() == ""

    def test_failing_test_at_third_step(self):
        run = self.orchestrator.start_class("DemoTest")
        entry = self.orchestrator.start_test(run, self.test)
        session = self.worker.registry.current()

        run_step("Navigate to page: https://example.com/", lambda: None, worker=self.worker)
        run_step("Accept cookies", lambda: None, worker=self.worker)
        with pytest.raises(AssertionError) as excinfo:
            run_step("Read page title", read_title_of_blank_page, worker=self.worker)

        self.orchestrator.finish_test(run, self.test, excinfo.value, worker=self.worker)

        failures = self.events(entry, LogStatus.FAIL)
        step_failure = failures[0]
        assert step_failure.message.startswith("Read page title<br/>")
        assert "Show full stack trace" in step_failure.message
        assert step_failure.media is not None

        messages = entry.messages(LogStatus.FAIL)
        assert "Failed at step #3: Read page title" in messages
        assert "AssertionError: page title should not be blank" in messages
        assert "Test Screenshot" in messages
        assert any(message.startswith("Trace saved: ") for message in messages)
        assert any(message.startswith("Video saved: ") for message in messages)
        assert session.page.screenshot_calls == [False, True]

        screenshots = list((self.reports_root / "screenshots").glob("DemoTest-test_title-*.png"))
        assert len(screenshots) == 1
        assert any(m == f"Screenshot file: {screenshots[0].resolve()}" for m in entry.messages(LogStatus.INFO))

    def test_test_screenshot_policy(self):
        self.settings = make_settings(ARTIFACT_SCREENSHOT_ON_TEST_FAIL="false")
        run = self.orchestrator.start_class("DemoTest")
        entry = self.orchestrator.start_test(run, self.test)

        self.orchestrator.finish_test(run, self.test, RuntimeError("boom"), worker=self.worker)

        assert "Test Screenshot" not in entry.messages(LogStatus.FAIL)
        assert list((self.reports_root / "screenshots").iterdir()) == []

    def test_failure_before_any_step(self):
        run = self.orchestrator.start_class("DemoTest")
        entry = self.orchestrator.start_test(run, self.test)

        self.orchestrator.finish_test(run, self.test, ValueError("early"), worker=self.worker)

        assert "Failed at step #0: None" in entry.messages(LogStatus.FAIL)

    def test_trace_policy_off(self):
        self.settings = make_settings(ARTIFACT_TRACE_POLICY="off")
        run = self.orchestrator.start_class("DemoTest")
        entry = self.orchestrator.start_test(run, self.test)
        tracing = self.worker.registry.current().context.tracing

        self.orchestrator.finish_test(run, self.test, worker=self.worker)

        assert tracing.start_options is None
        assert tracing.stop_paths == []
        assert not any("Trace saved" in message for message in entry.messages())

    def test_video_policy_off(self):
        self.settings = make_settings(ARTIFACT_VIDEO_POLICY="off")
        run = self.orchestrator.start_class("DemoTest")
        entry = self.orchestrator.start_test(run, self.test)

        self.orchestrator.finish_test(run, self.test, worker=self.worker)

        assert not any("Video saved" in message for message in entry.messages())

    def test_tracing_start_failure_is_a_warning(self):
        run = self.orchestrator.start_class("DemoTest")
        original_acquire = self.worker.registry.acquire

        def acquire_with_broken_tracing():
            session = original_acquire()
            session.context.tracing.start_error = RuntimeError("tracing unavailable")
            return session

        self.worker.registry.acquire = acquire_with_broken_tracing
        entry = self.orchestrator.start_test(run, self.test)

        assert entry.messages(LogStatus.WARNING) == ["Could not start tracing: tracing unavailable"]
        assert self.worker.registry.has_valid_session()

    def test_artifact_failures_are_isolated(self):
        run = self.orchestrator.start_class("DemoTest")
        entry = self.orchestrator.start_test(run, self.test)
        session = self.worker.registry.current()
        session.page.screenshot_error = RuntimeError("screenshot failed")
        session.context.tracing.stop_error = RuntimeError("must start tracing first")

        self.orchestrator.finish_test(run, self.test, RuntimeError("boom"), worker=self.worker)

        warnings = entry.messages(LogStatus.WARNING)
        assert "Could not capture test screenshot: screenshot failed" in warnings
        assert "Could not export trace: must start tracing first" in warnings
        assert any(message.startswith("Video saved: ") for message in entry.messages(LogStatus.FAIL))
        assert self.worker.registry.current() is None

    def test_one_session_per_test(self):
        run = self.orchestrator.start_class("DemoTest")

        for index in range(4):
            test = TestInfo("DemoTest", f"test_{index}", f"test_{index}")
            self.orchestrator.start_test(run, test)
            assert len(self.engines.live_engines) == 1
            self.orchestrator.finish_test(run, test, worker=self.worker)
            assert self.engines.live_engines == []

        assert len(self.engines.engines) == 4
        assert [entry.name for entry in run.reporter.entries] == [f"test_{i}" for i in range(4)]

    def test_deferred_misconfiguration(self):
        self.orchestrator.settings_loader = failing_loader
        run = self.orchestrator.start_class("DemoTest")

        assert run.misconfiguration is not None

        for method in ("test_one", "test_two"):
            test = TestInfo("DemoTest", method, method)
            with pytest.raises(ConfigurationException, match="^Misconfiguration: Critical configuration keys"):
                self.orchestrator.start_test(run, test)

        entries = run.reporter.entries
        assert [entry.status for entry in entries] == [LogStatus.FAIL, LogStatus.FAIL]
        assert all(entry.messages()[0].startswith("Misconfiguration: ") for entry in entries)
        assert self.engines.engines == []
        assert self.worker.report_entry is None

        report = self.orchestrator.finish_class(run)

        assert "Misconfiguration" in report.read_text(encoding="utf-8")
        assert run.misconfiguration is None

    def test_missing_critical_keys(self):
        self.settings = make_settings(BASE_URL="")
        run = self.orchestrator.start_class("DemoTest")

        with pytest.raises(ConfigurationException) as excinfo:
            self.orchestrator.start_test(run, self.test)

        assert str(excinfo.value) == "Misconfiguration: BASE_URL"
        assert excinfo.value.missing_keys == ["BASE_URL"]
        assert run.reporter.entries[0].messages(LogStatus.FAIL) == ["Misconfiguration: BASE_URL"]
        assert self.engines.engines == []

    def test_acquisition_failure_propagates(self):
        self.engines.launch_error = RuntimeError("Executable doesn't exist")
        run = self.orchestrator.start_class("DemoTest")

        with pytest.raises(BrowserLaunchException) as excinfo:
            self.orchestrator.start_test(run, self.test)

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        entry = run.reporter.entries[0]
        assert entry.messages(LogStatus.FAIL)[0].startswith("Test setup failed: ")
        assert self.worker.report_entry is None
        assert self.engines.live_engines == []

    def test_setup_failure_is_logged_with_error_details(self):
        self.engines.launch_error = RuntimeError("Executable doesn't exist")
        self.orchestrator.logger = Mock()
        run = self.orchestrator.start_class("DemoTest")

        with pytest.raises(BrowserLaunchException):
            self.orchestrator.start_test(run, self.test)

        _, kwargs = self.orchestrator.logger.error.call_args
        assert kwargs["test_name"] == "test_title"
        assert kwargs["error_type"] == "BrowserLaunchException"
        assert kwargs["category"] == "browser"
        assert kwargs["original_exception"]["message"] == "Executable doesn't exist"

    def test_finish_class(self):
        run = self.orchestrator.start_class("DemoTest")
        self.orchestrator.start_test(run, self.test)
        self.orchestrator.finish_test(run, self.test, worker=self.worker)
        self.worker.bind(settings=self.settings)
        self.worker.registry.acquire()

        report = self.orchestrator.finish_class(run)

        assert report == self.reports_root / "DemoTest_Results.html"
        assert run.report_path == report
        assert "test_title - passed" in report.read_text(encoding="utf-8")
        assert self.worker.registry.current() is None
        assert self.engines.live_engines == []
