"""
================================================================================
Page Flow Base
================================================================================

Foundation class for page flows: named, ordered sequences of dispatcher calls
that drive one feature of the application.

Provides:
    - Locator tables as plain class attributes (owned by each flow)
    - Navigation and URL waits
    - Explicit overlay waits (Lightning spinners) instead of fixed sleeps
    - Step markers tied to the owning TestExecutionContext

A flow performs at most one irreversible action (submit / save), never
retries it, and lets failures propagate to the caller.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, ContextManager, Optional

import allure
from loguru import logger
from playwright.sync_api import Error as PlaywrightError

from .errors import SessionLostError, raise_if_session_lost
from .interaction_dispatcher import InteractionDispatcher
from .locators import ElementLocator

if TYPE_CHECKING:
    from .execution_context import TestExecutionContext


# Lightning spinner / loading mask shown while records save or lists refresh
SPINNER = ElementLocator.css(".slds-spinner_container", name="loading spinner")

URL_FRAGMENTS_LOGGED_IN = ("lightning", "home")


class PageFlow:
    """
    Base class for all page flows.

    Usage:
        class LoginFlow(PageFlow):
            USERNAME = ElementLocator.by_id("username", name="username")

            def enter_username(self, username: str) -> None:
                self.dispatcher.type(self.USERNAME, username)

        flow = LoginFlow.from_context(ctx)
    """

    # Override in subclasses
    URL_PATH: str = ""

    def __init__(
        self,
        dispatcher: InteractionDispatcher,
        base_url: str = "",
        context: Optional["TestExecutionContext"] = None,
    ):
        """
        Initialize page flow.

        Args:
            dispatcher: Dispatcher bound to the test's session
            base_url: Base URL of the application
            context: Owning execution context (enables step markers)
        """
        self.dispatcher = dispatcher
        self.base_url = base_url.rstrip("/")
        self.context = context

    @classmethod
    def from_context(cls, context: "TestExecutionContext", **kwargs):
        """Build the flow on a context's session with the configured base URL."""
        return cls(
            context.dispatcher,
            base_url=context.settings.app_url,
            context=context,
            **kwargs,
        )

    @property
    def page(self):
        return self.dispatcher.page

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.URL_PATH}"

    @property
    def current_url(self) -> str:
        if self.page.is_closed():
            raise SessionLostError("page has been closed")
        return self.page.url

    # =========================================================================
    # Steps
    # =========================================================================

    def step(self, label: str) -> ContextManager:
        """
        Mark a named step.

        Recorded on the owning context's step log when there is one, otherwise
        only as an Allure step.
        """
        if self.context is not None:
            return self.context.step(label)
        return allure.step(label)

    # =========================================================================
    # Navigation
    # =========================================================================

    def navigate(self, wait_until: str = "domcontentloaded") -> None:
        """Navigate to this flow's URL."""
        with allure.step(f"Navigate to {self.url}"):
            try:
                self.page.goto(self.url, wait_until=wait_until)
            except PlaywrightError as e:
                raise_if_session_lost(e)
                raise
            logger.debug(f"Navigated to: {self.url}")

    def wait_for_url(self, *fragments: str, timeout_ms: Optional[int] = None) -> str:
        """Wait until the URL contains any of `fragments`; returns the URL."""
        return self.dispatcher.engine.wait_for_url(*fragments, timeout_ms=timeout_ms)

    def wait_for_overlay_to_clear(
        self,
        overlay: ElementLocator = SPINNER,
        timeout_ms: Optional[int] = None,
    ) -> None:
        """Explicit absence step for transient overlays."""
        self.dispatcher.wait_for_absence(overlay, timeout_ms)

    @contextmanager
    def irreversible(self, label: str):
        """
        Wrap the flow's single irreversible action (submit / save).

        Logged distinctly so a failure after this point is recognisable as
        "state on the server may have changed".
        """
        logger.info(f"Irreversible action: {label}")
        with self.step(label):
            yield


__all__ = [
    "PageFlow",
    "SPINNER",
    "URL_FRAGMENTS_LOGGED_IN",
]
