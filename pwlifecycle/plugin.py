# pwlifecycle/plugin.py
"""
pytest plugin wiring the lifecycle orchestrator into test runs.

Enable it from a ``conftest.py``::

    pytest_plugins = ["pwlifecycle.plugin"]

Test classes opt in by inheriting ``pwlifecycle.testing.BaseTest`` or by
requesting the ``lifecycle`` fixture.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

import pytest
from playwright.sync_api import Page

from pwlifecycle.config.environments import ENV_SELECTOR
from pwlifecycle.config.settings import load_log_level
from pwlifecycle.core.logger import setup_logging
from pwlifecycle.core.worker import WorkerContext, get_worker_context
from pwlifecycle.reporting.lifecycle import ClassRun, LifecycleOrchestrator, TestInfo

orchestrator_key = pytest.StashKey[LifecycleOrchestrator]()
outcome_key = pytest.StashKey["TestOutcome"]()


@dataclass
class TestOutcome:
    """Result of the last setup or call phase that ran for a test item."""
    __test__ = False

    when: str
    passed: bool
    skipped: bool = False
    error: Optional[BaseException] = None


class TestBodyNotRun(RuntimeError):
    """The test body never ran, so the test cannot be reported as passed."""
    __test__ = False


def pytest_addoption(parser: pytest.Parser):
    group = parser.getgroup("pwlifecycle", "Playwright test lifecycle")
    group.addoption(
        "--lifecycle-env",
        action="store",
        default=None,
        help="Environment to load from envs/<env>.env (overrides ENV)"
    )
    group.addoption(
        "--reports-dir",
        action="store",
        default=None,
        help="Root directory for HTML reports, traces, videos and screenshots (default: build/reports)"
    )


def pytest_configure(config: pytest.Config):
    """Register markers, configure logging and create the orchestrator."""
    config.addinivalue_line("markers", "e2e: drives a real browser against BASE_URL")

    environment = config.getoption("--lifecycle-env")
    if environment:
        os.environ[ENV_SELECTOR] = environment

    setup_logging(log_level=load_log_level(), enable_json_format=False)
    config.stash[orchestrator_key] = LifecycleOrchestrator(reports_root=config.getoption("--reports-dir"))


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo):
    """Stash the setup and call outcome of a test for fixture teardown."""
    outcome = yield
    report = outcome.get_result()

    if report.when in ("setup", "call"):
        item.stash[outcome_key] = TestOutcome(
            when=report.when,
            passed=report.passed,
            skipped=report.skipped,
            error=call.excinfo.value if call.excinfo is not None else None,
        )


def resolve_test_error(outcome: Optional[TestOutcome]) -> Tuple[Optional[BaseException], bool]:
    """
    Map the stashed phase outcome to ``(error, skipped)`` for ``finish_test``.

    Only a passed call phase counts as passed. A failed setup reports the
    fixture error; a body that never ran reports ``TestBodyNotRun``.
    """
    if outcome is None:
        return TestBodyNotRun("Test body did not run"), False
    if outcome.skipped:
        return outcome.error, True
    if not outcome.passed:
        return outcome.error or TestBodyNotRun(f"Test {outcome.when} failed"), False
    if outcome.when != "call":
        return TestBodyNotRun("Test body did not run"), False
    return None, False


def build_test_info(item: pytest.Item) -> TestInfo:
    cls = getattr(item, "cls", None)
    method_name = getattr(item, "originalname", None) or item.name
    return TestInfo(
        class_name=cls.__name__ if cls is not None else None,
        method_name=method_name,
        display_name=item.name,
    )


@pytest.fixture(scope="session")
def lifecycle_orchestrator(pytestconfig: pytest.Config) -> LifecycleOrchestrator:
    return pytestconfig.stash[orchestrator_key]


@pytest.fixture(scope="class")
def lifecycle_class(request: pytest.FixtureRequest, lifecycle_orchestrator: LifecycleOrchestrator):
    """One report per test class. A test function outside a class gets its own."""
    if request.cls is not None:
        class_name = request.cls.__name__
    else:
        class_name = f"{request.module.__name__.rsplit('.', 1)[-1]}_{request.node.name}"

    run = lifecycle_orchestrator.start_class(class_name)
    yield run
    lifecycle_orchestrator.finish_class(run)


@pytest.fixture
def lifecycle(
        request: pytest.FixtureRequest,
        lifecycle_class: ClassRun,
        lifecycle_orchestrator: LifecycleOrchestrator
):
    """Run the current test inside the lifecycle; yields the worker context."""
    test = build_test_info(request.node)
    worker = get_worker_context()

    lifecycle_orchestrator.start_test(lifecycle_class, test, worker=worker)
    yield worker

    error, skipped = resolve_test_error(request.node.stash.get(outcome_key, None))
    lifecycle_orchestrator.finish_test(lifecycle_class, test, error, worker=worker, skipped=skipped)


@pytest.fixture
def session_page(lifecycle: WorkerContext) -> Page:
    """The worker's page for the current test."""
    return lifecycle.page()
