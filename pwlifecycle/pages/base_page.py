# pwlifecycle/pages/base_page.py
"""
Base Page Object

Page objects get the current worker's page unless one is passed in, and
wrap their actions with ``@step`` so failures are reported per step.
"""

from typing import Optional

from playwright.sync_api import Page

from pwlifecycle.core.logger import get_logger
from pwlifecycle.core.worker import get_worker_context


class BasePage:
    """
    Convenient access to the current ``Page``.

    Example:
        >>> class LoginPage(BasePage):
        ...     @step("Log in as {username}")
        ...     def login(self, username, password):
        ...         self.page.fill("#username", username)
    """

    def __init__(self, page: Optional[Page] = None):
        self.page = page if page is not None else get_worker_context().page()
        self.logger = get_logger(self.__class__.__name__)
