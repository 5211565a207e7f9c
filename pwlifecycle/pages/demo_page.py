# pwlifecycle/pages/demo_page.py
"""Minimal page object used by the end-to-end demo test."""

from pwlifecycle.pages.base_page import BasePage
from pwlifecycle.reporting.steps import step


class DemoPage(BasePage):

    @step("Navigate to page: {0}")
    def navigate_to(self, url: str) -> None:
        self.page.goto(url)

    @step("Read page title")
    def read_title(self) -> str:
        return self.page.title()
