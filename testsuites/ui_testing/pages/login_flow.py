"""
================================================================================
Login Flow (Salesforce)
================================================================================

Salesforce login page: username / password form, Log In button and the
inline error shown for bad or missing credentials.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Optional

from testsuites.ui_testing.framework.locators import ElementLocator
from testsuites.ui_testing.framework.page_flow import PageFlow, URL_FRAGMENTS_LOGGED_IN
from testsuites.ui_testing.framework.wait_engine import VISIBLE


class LoginFlow(PageFlow):
    """Login flow. `submit()` is its irreversible action."""

    USERNAME = ElementLocator.by_id("username", name="username input")
    PASSWORD = ElementLocator.by_id("password", name="password input")
    LOGIN_BUTTON = ElementLocator.by_id("Login", name="log in button")
    ERROR = ElementLocator.by_id("error", name="login error")

    def open(self) -> "LoginFlow":
        with self.step("Open login page"):
            self.navigate()
            self.dispatcher.engine.wait_until(self.USERNAME, VISIBLE)
        return self

    def enter_username(self, username: str) -> None:
        self.dispatcher.type(self.USERNAME, username)

    def enter_password(self, password: str) -> None:
        self.dispatcher.type(self.PASSWORD, password)

    def submit(self) -> None:
        with self.irreversible("Submit login form"):
            self.dispatcher.click(self.LOGIN_BUTTON)

    def login(self, username: str, password: str) -> None:
        with self.step(f"Login as {username or '<empty>'}"):
            self.enter_username(username)
            self.enter_password(password)
        self.submit()

    def is_error_displayed(self, timeout_ms: int = 5000) -> bool:
        return self.dispatcher.is_displayed(self.ERROR, timeout_ms)

    def read_error(self) -> str:
        return self.dispatcher.read_text(self.ERROR)

    def wait_until_logged_in(self, timeout_ms: Optional[int] = None) -> str:
        """Wait for the post-login landing page; returns its URL."""
        with self.step("Wait for login to complete"):
            return self.wait_for_url(*URL_FRAGMENTS_LOGGED_IN, timeout_ms=timeout_ms)
