"""
================================================================================
Browser Manager
================================================================================

Browser lifecycle management for UI automation.

Features:
    - One Playwright driver + browser per worker (thread or xdist process)
    - Isolated sessions (context + page) per test
    - Default action / navigation timeouts from RunSettings
    - Idempotent session release

The sync Playwright API is thread-bound: a BrowserManager and every session
it creates must be used from the thread that started it.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from loguru import logger
from playwright.sync_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    sync_playwright,
)

from .config_loader import RunSettings
from .errors import summarize_error


class BrowserSession:
    """
    One browser session: an isolated context with a single page.

    The session handle is what a TestExecutionContext owns exclusively.
    """

    def __init__(self, context: BrowserContext, page: Page, label: str = ""):
        self.context = context
        self.page = page
        self.label = label
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def is_alive(self) -> bool:
        """True while the page is still reachable."""
        if self._closed:
            return False
        try:
            return not self.page.is_closed()
        except PlaywrightError:
            return False

    def close(self) -> None:
        """Close the context (and its page). Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self.context.close()
        except PlaywrightError as e:
            # Already gone with the browser; nothing left to release.
            logger.debug(f"Context close for {self.label or 'session'}: {summarize_error(e)}")
        logger.debug(f"Session closed: {self.label or 'session'}")


class BrowserManager:
    """
    Manages the browser instance for one worker.

    Usage:
        with BrowserManager(settings) as manager:
            session = manager.new_session("test_valid_login")
            session.page.goto(settings.app_url)
            ...
            session.close()
    """

    # Chrome options carried over for Lightning compatibility
    CHROMIUM_ARGS = [
        "--start-maximized",
        "--disable-notifications",
        "--disable-popup-blocking",
    ]

    DEFAULT_CONTEXT_OPTIONS: Dict[str, Any] = {
        "viewport": {"width": 1920, "height": 1080},
        "ignore_https_errors": True,
    }

    def __init__(self, settings: Optional[RunSettings] = None):
        """
        Initialize browser manager.

        Args:
            settings: Resolved run settings (browser, headless, timeouts)
        """
        self.settings = settings or RunSettings()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._sessions: list[BrowserSession] = []

    def __enter__(self) -> "BrowserManager":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def start(self) -> None:
        """Start Playwright and launch the configured browser."""
        self._playwright = sync_playwright().start()

        launcher = getattr(self._playwright, self.settings.browser)
        launch_options: Dict[str, Any] = {"headless": self.settings.headless}
        if self.settings.browser == "chromium":
            launch_options["args"] = list(self.CHROMIUM_ARGS)

        self._browser = launcher.launch(**launch_options)
        logger.debug(
            f"Browser started: {self.settings.browser} "
            f"(headless={self.settings.headless})"
        )

    def new_session(self, label: str = "", **options: Any) -> BrowserSession:
        """
        Create a new isolated session.

        Args:
            label: Name used in logs (usually the test name)
            **options: Extra Playwright context options

        Returns:
            New BrowserSession with default timeouts applied
        """
        if not self._browser:
            raise RuntimeError("Browser not started. Call start() first.")

        context = self._browser.new_context(**{**self.DEFAULT_CONTEXT_OPTIONS, **options})
        context.set_default_timeout(self.settings.implicit_wait_s * 1000)
        context.set_default_navigation_timeout(self.settings.page_load_timeout_s * 1000)
        page = context.new_page()

        session = BrowserSession(context, page, label)
        self._sessions.append(session)
        logger.debug(f"Session opened: {label or 'session'}")
        return session

    def close(self) -> None:
        """Close remaining sessions, the browser and Playwright."""
        for session in self._sessions:
            session.close()
        self._sessions.clear()

        if self._browser:
            self._browser.close()
            self._browser = None

        if self._playwright:
            self._playwright.stop()
            self._playwright = None

        logger.debug("Browser closed")

    @property
    def browser(self) -> Optional[Browser]:
        return self._browser


__all__ = [
    "BrowserManager",
    "BrowserSession",
]
