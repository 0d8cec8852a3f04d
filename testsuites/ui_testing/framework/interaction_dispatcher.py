"""
================================================================================
Interaction Dispatcher
================================================================================

Performs actions (click, type, read) against located elements.

Every call first obtains a ready node from the WaitEngine with the condition
appropriate to the action (clickable for click, visible for type/read) and
acts on that node immediately. If the node goes stale between resolution and
use, the locator is re-resolved and the action retried until the same
deadline; stale references never reach the caller.

Click policy (two attempts, no more):
    1. native input path (real pointer events through Playwright)
    2. if the native path reports Blocked (overlay, spinner, off-screen...),
       programmatic dispatch of `el.click()` on the node, exactly once

Obstruction by Lightning overlays is an expected part of the target
application's rendering model, so the fallback is logged as a warning, not an
error.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import allure
from loguru import logger
from playwright.sync_api import ElementHandle, Error as PlaywrightError

from .errors import (
    InteractionBlockedError,
    WaitTimeoutError,
    is_obstruction_error,
    is_stale_error,
    raise_if_session_lost,
    summarize_error,
)
from .locators import ElementLocator
from .wait_engine import ABSENT, CLICKABLE, PRESENT, VISIBLE, WaitCondition, WaitEngine


DEFAULT_NATIVE_CLICK_TIMEOUT_MS = 2000

PROGRAMMATIC_CLICK_SCRIPT = "el => el.click()"

SET_VALUE_SCRIPT = """
(el, value) => {
    el.value = value;
    el.dispatchEvent(new Event('input', { bubbles: true }));
    el.dispatchEvent(new Event('change', { bubbles: true }));
}
"""


# =============================================================================
# Outcome
# =============================================================================

class OutcomeStatus(Enum):
    PERFORMED = "performed"
    BLOCKED = "blocked"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class InteractionOutcome:
    """
    Result of one dispatched action.

    Attributes:
        status: PERFORMED, BLOCKED or TIMED_OUT
        action: Action name ('click', 'type', ...)
        locator: Locator description
        path: 'native' or 'programmatic'
        reason: Why the action was blocked / timed out
    """

    status: OutcomeStatus
    action: str
    locator: str
    path: str = "native"
    reason: str = ""

    @property
    def performed(self) -> bool:
        return self.status is OutcomeStatus.PERFORMED

    @classmethod
    def done(cls, action: str, locator: str, path: str = "native") -> "InteractionOutcome":
        return cls(OutcomeStatus.PERFORMED, action, locator, path)

    @classmethod
    def blocked(cls, action: str, locator: str, reason: str, path: str = "native") -> "InteractionOutcome":
        return cls(OutcomeStatus.BLOCKED, action, locator, path, reason)

    @classmethod
    def timed_out(cls, action: str, locator: str, reason: str) -> "InteractionOutcome":
        return cls(OutcomeStatus.TIMED_OUT, action, locator, "native", reason)


class _StaleNode(Exception):
    """Internal signal: the node left the document mid-action, re-resolve."""
    pass


# =============================================================================
# Dispatcher
# =============================================================================

class InteractionDispatcher:
    """
    Stateless action layer on top of a WaitEngine.

    Example:
        dispatcher = InteractionDispatcher(WaitEngine(page))
        dispatcher.click(NEW_BUTTON)
        dispatcher.type(NAME_FIELD, "Test Account 1700000000000")
        name = dispatcher.read_text(ACCOUNT_NAME)
    """

    def __init__(
        self,
        engine: WaitEngine,
        native_click_timeout_ms: int = DEFAULT_NATIVE_CLICK_TIMEOUT_MS,
    ):
        self.engine = engine
        self.native_click_timeout_ms = native_click_timeout_ms

    @property
    def page(self):
        return self.engine.page

    # =========================================================================
    # Click
    # =========================================================================

    def click(
        self,
        locator: ElementLocator,
        timeout_ms: Optional[int] = None,
        programmatic: bool = False,
    ) -> InteractionOutcome:
        """
        Click an element.

        Args:
            locator: Element to click
            timeout_ms: Deadline for the element to become clickable
            programmatic: Skip the native path and dispatch the click by script

        Returns:
            PERFORMED outcome (path tells which path succeeded)

        Raises:
            InteractionBlockedError: Native and programmatic paths both failed
            WaitTimeoutError: Element never became clickable
        """
        label = locator.describe()

        def act(node: ElementHandle) -> InteractionOutcome:
            if programmatic:
                outcome = self._programmatic_click(node, label)
            else:
                outcome = self._native_click(node, label)
                if outcome.status is OutcomeStatus.BLOCKED:
                    logger.warning(
                        f"Native click blocked on {label}: {outcome.reason}. "
                        f"Falling back to programmatic click"
                    )
                    native_reason = outcome.reason
                    outcome = self._programmatic_click(node, label)
                    if outcome.status is OutcomeStatus.BLOCKED:
                        outcome = InteractionOutcome.blocked(
                            "click",
                            label,
                            f"native: {native_reason}; programmatic: {outcome.reason}",
                            path="programmatic",
                        )
            if outcome.status is OutcomeStatus.BLOCKED:
                raise InteractionBlockedError("click", label, outcome.reason)
            logger.debug(f"Clicked {label} via {outcome.path} path")
            return outcome

        with allure.step(f"Click: {locator.name or locator.query}"):
            return self._with_ready_node("click", locator, CLICKABLE, timeout_ms, act)

    def try_click(
        self,
        locator: ElementLocator,
        timeout_ms: Optional[int] = None,
    ) -> InteractionOutcome:
        """Like click(), but reports BLOCKED / TIMED_OUT instead of raising."""
        try:
            return self.click(locator, timeout_ms)
        except InteractionBlockedError as e:
            return InteractionOutcome.blocked("click", e.locator, e.reason, path="programmatic")
        except WaitTimeoutError as e:
            return InteractionOutcome.timed_out("click", e.locator, e.last_state)

    def _native_click(self, node: ElementHandle, label: str) -> InteractionOutcome:
        try:
            node.click(timeout=self.native_click_timeout_ms)
        except PlaywrightError as e:
            self._raise_if_fatal(e)
            if is_stale_error(e):
                raise _StaleNode(summarize_error(e)) from e
            reason = summarize_error(e)
            if is_obstruction_error(e):
                reason = f"obstructed: {reason}"
            return InteractionOutcome.blocked("click", label, reason)
        return InteractionOutcome.done("click", label)

    def _programmatic_click(self, node: ElementHandle, label: str) -> InteractionOutcome:
        # Attempted once per call; a stale node here is a failure, not a retry.
        try:
            node.evaluate(PROGRAMMATIC_CLICK_SCRIPT)
        except PlaywrightError as e:
            self._raise_if_fatal(e)
            return InteractionOutcome.blocked(
                "click", label, summarize_error(e), path="programmatic"
            )
        return InteractionOutcome.done("click", label, path="programmatic")

    # =========================================================================
    # Typing
    # =========================================================================

    def type(
        self,
        locator: ElementLocator,
        text: str,
        fire_change: bool = False,
        timeout_ms: Optional[int] = None,
    ) -> InteractionOutcome:
        """
        Replace the content of an input with `text`.

        Args:
            locator: Input element
            text: Text to enter
            fire_change: Dispatch a bubbling 'change' event afterwards (widgets
                that ignore per-keystroke input)
            timeout_ms: Deadline for the element to become visible
        """
        label = locator.describe()

        def act(node: ElementHandle) -> InteractionOutcome:
            self._native(lambda: node.fill(text), "type", label)
            if fire_change:
                self._native(lambda: node.dispatch_event("change"), "type", label)
            return InteractionOutcome.done("type", label)

        with allure.step(f"Type into {locator.name or locator.query}: {self._shown(locator, text)}"):
            return self._with_ready_node("type", locator, VISIBLE, timeout_ms, act)

    def set_value(
        self,
        locator: ElementLocator,
        value: str,
        timeout_ms: Optional[int] = None,
    ) -> InteractionOutcome:
        """Set an input's value by script and fire input + change events."""
        label = locator.describe()

        def act(node: ElementHandle) -> InteractionOutcome:
            self._native(lambda: node.evaluate(SET_VALUE_SCRIPT, value), "set_value", label)
            return InteractionOutcome.done("set_value", label, path="programmatic")

        with allure.step(f"Set value of {locator.name or locator.query}: {self._shown(locator, value)}"):
            return self._with_ready_node("set_value", locator, VISIBLE, timeout_ms, act)

    def press(
        self,
        locator: ElementLocator,
        key: str,
        timeout_ms: Optional[int] = None,
    ) -> InteractionOutcome:
        """Press a key (e.g. 'Enter', 'Tab', 'Escape') with the element focused."""
        label = locator.describe()

        def act(node: ElementHandle) -> InteractionOutcome:
            self._native(lambda: node.press(key), "press", label)
            return InteractionOutcome.done("press", label)

        with allure.step(f"Press {key} on {locator.name or locator.query}"):
            return self._with_ready_node("press", locator, VISIBLE, timeout_ms, act)

    # =========================================================================
    # Reading
    # =========================================================================

    def read_text(self, locator: ElementLocator, timeout_ms: Optional[int] = None) -> str:
        """Rendered (visible) text of the element, stripped."""
        label = locator.describe()

        def act(node: ElementHandle) -> str:
            return (self._native(node.inner_text, "read_text", label) or "").strip()

        text = self._with_ready_node("read_text", locator, VISIBLE, timeout_ms, act)
        logger.debug(f"Read text from {label}: '{text}'")
        return text

    def read_text_content(self, locator: ElementLocator, timeout_ms: Optional[int] = None) -> str:
        """Raw textContent of the element, including hidden text."""
        label = locator.describe()

        def act(node: ElementHandle) -> str:
            return self._native(node.text_content, "read_text_content", label) or ""

        return self._with_ready_node("read_text_content", locator, PRESENT, timeout_ms, act)

    def is_displayed(self, locator: ElementLocator, timeout_ms: int = 2000) -> bool:
        """Visibility probe; a timeout means False."""
        try:
            self.engine.wait_until(locator, VISIBLE, timeout_ms)
            return True
        except WaitTimeoutError:
            return False

    # =========================================================================
    # Pointer / scrolling / overlays
    # =========================================================================

    def hover(self, locator: ElementLocator, timeout_ms: Optional[int] = None) -> InteractionOutcome:
        """Move the pointer over an element (hover menus)."""
        label = locator.describe()

        def act(node: ElementHandle) -> InteractionOutcome:
            self._native(lambda: node.hover(timeout=self.native_click_timeout_ms), "hover", label)
            return InteractionOutcome.done("hover", label)

        with allure.step(f"Hover: {locator.name or locator.query}"):
            return self._with_ready_node("hover", locator, VISIBLE, timeout_ms, act)

    def scroll_into_view(self, locator: ElementLocator, timeout_ms: Optional[int] = None) -> InteractionOutcome:
        label = locator.describe()

        def act(node: ElementHandle) -> InteractionOutcome:
            self._native(node.scroll_into_view_if_needed, "scroll_into_view", label)
            return InteractionOutcome.done("scroll_into_view", label)

        return self._with_ready_node("scroll_into_view", locator, PRESENT, timeout_ms, act)

    def wait_for_absence(self, locator: ElementLocator, timeout_ms: Optional[int] = None) -> None:
        """Wait for a transient overlay / spinner to disappear."""
        with allure.step(f"Wait for {locator.name or locator.query} to disappear"):
            try:
                self.engine.wait_until(locator, ABSENT, timeout_ms)
            except WaitTimeoutError as e:
                raise e.for_action("wait_for_absence") from e

    # =========================================================================
    # Internals
    # =========================================================================

    def _with_ready_node(
        self,
        action: str,
        locator: ElementLocator,
        condition: WaitCondition,
        timeout_ms: Optional[int],
        act: Callable[[ElementHandle], Any],
    ) -> Any:
        """Wait for a ready node and act on it, re-resolving on staleness."""
        timeout_ms = self.engine.default_timeout_ms if timeout_ms is None else timeout_ms
        clock = self.engine.clock
        deadline = clock() + timeout_ms / 1000.0
        stale_retries = 0

        while True:
            remaining_ms = max(0, int((deadline - clock()) * 1000))
            try:
                node = self.engine.wait_until(locator, condition, remaining_ms)
            except WaitTimeoutError as e:
                raise e.for_action(action) from e

            try:
                return act(node)
            except _StaleNode as e:
                stale_retries += 1
                logger.debug(
                    f"[{action}] {locator.describe()} went stale "
                    f"(retry {stale_retries}): {e}"
                )
                if clock() >= deadline:
                    raise WaitTimeoutError(
                        locator.describe(),
                        condition.name,
                        timeout_ms,
                        f"stale after {stale_retries} re-resolution(s): {e}",
                        action,
                    ) from e

    def _native(self, fn: Callable[[], Any], action: str, label: str) -> Any:
        """Run one Playwright call and translate its failure."""
        try:
            return fn()
        except PlaywrightError as e:
            self._raise_if_fatal(e)
            if is_stale_error(e):
                raise _StaleNode(summarize_error(e)) from e
            raise InteractionBlockedError(action, label, summarize_error(e)) from e

    @staticmethod
    def _raise_if_fatal(error: PlaywrightError) -> None:
        raise_if_session_lost(error)

    @staticmethod
    def _shown(locator: ElementLocator, value: str) -> str:
        if "password" in (locator.name or "").lower():
            return "*" * len(value)
        return value


__all__ = [
    "InteractionDispatcher",
    "InteractionOutcome",
    "OutcomeStatus",
    "DEFAULT_NATIVE_CLICK_TIMEOUT_MS",
]
