# pwlifecycle/testing.py
"""
Base class for lifecycle-managed test classes.

Example:
    >>> class TestDemo(BaseTest):
    ...     def test_title(self):
    ...         demo = DemoPage()
    ...         demo.navigate_to(self.settings.base_url)
    ...         assert demo.read_title().strip()
"""

import pytest
from playwright.sync_api import Page

from pwlifecycle.config.settings import LifecycleSettings
from pwlifecycle.core.worker import WorkerContext


class BaseTest:
    """
    Runs every test of a subclass inside the lifecycle.

    Requires the ``pwlifecycle.plugin`` plugin to be enabled.
    """

    worker: WorkerContext

    @pytest.fixture(autouse=True)
    def _lifecycle(self, lifecycle: WorkerContext):
        self.worker = lifecycle
        yield

    @property
    def page(self) -> Page:
        return self.worker.page()

    @property
    def settings(self) -> LifecycleSettings:
        return self.worker.get_settings()
