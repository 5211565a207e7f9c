# tests/conftest.py
import pytest

from pwlifecycle.config.artifacts import ArtifactPaths
from pwlifecycle.config.settings import get_settings
from pwlifecycle.core.browser_manager import SessionRegistry
from pwlifecycle.core.worker import WorkerContext, reset_worker_context

from fakes import FakeEngineFactory

CONFIG_KEYS = (
    "ENV",
    "CI",
    "BASE_URL",
    "HEADLESS",
    "SLOWMO",
    "BROWSER_TYPE",
    "SCREENSHOT",
    "SNAPSHOT",
    "ARTIFACT_SCREENSHOT_ON_STEP_FAIL",
    "ARTIFACT_SCREENSHOT_ON_TEST_FAIL",
    "ARTIFACT_TRACE_POLICY",
    "ARTIFACT_VIDEO_POLICY",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_config_environment(monkeypatch):
    """Keep the process environment from leaking into settings."""
    for key in CONFIG_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    reset_worker_context()


@pytest.fixture
def engine_factory():
    return FakeEngineFactory()


@pytest.fixture
def artifact_paths(tmp_path):
    return ArtifactPaths(tmp_path / "reports")


@pytest.fixture
def worker(engine_factory, artifact_paths):
    """A worker whose registry launches fake engines with the bound settings."""
    context = WorkerContext()
    context.registry = SessionRegistry(
        settings_provider=context.get_settings,
        paths=artifact_paths,
        engine_factory=engine_factory
    )
    return context
