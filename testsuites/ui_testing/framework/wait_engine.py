"""
================================================================================
Wait Engine
================================================================================

Polls the live document until a condition over the currently matching nodes
becomes ready, the deadline elapses, or the polled nodes go stale.

Every poll tick re-resolves the ElementLocator into fresh node handles; a
handle observed on one tick is never evaluated again on the next one. A
`Stale` result is therefore just another reason to poll again.

Key Features:
    - Fixed poll interval (default 500ms)
    - Self-enforced deadline: never sleeps past it
    - Built-in conditions: presence, visibility, clickability, absence
    - Conditions compose with `&` (logical AND)

Usage:
    engine = WaitEngine(page, poll_interval_ms=500)
    node = engine.wait_until(SAVE_BUTTON, CLICKABLE, timeout_ms=15000)
    engine.wait_until(SPINNER, ABSENT)

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

from loguru import logger
from playwright.sync_api import ElementHandle, Error as PlaywrightError, Page

from .errors import (
    SessionLostError,
    WaitTimeoutError,
    is_session_lost_error,
    is_stale_error,
    summarize_error,
)
from .locators import ElementLocator


DEFAULT_POLL_INTERVAL_MS = 500
DEFAULT_TIMEOUT_MS = 15000


# =============================================================================
# Poll results
# =============================================================================

@dataclass(frozen=True)
class Ready:
    """Condition satisfied. `node` is None for set-level conditions (absence)."""
    node: Optional[ElementHandle] = None


@dataclass(frozen=True)
class NotYet:
    """Condition not satisfied on this tick."""
    state: str


@dataclass(frozen=True)
class Stale:
    """A resolved node left the document while being evaluated."""
    state: str


PollResult = Union[Ready, NotYet, Stale]


# =============================================================================
# Conditions
# =============================================================================

class WaitCondition:
    """
    Predicate over zero or more currently matching nodes.

    Subclasses implement `evaluate`. Conditions hold no resources and must
    not keep handles between calls.
    """

    name: str = "condition"

    def evaluate(self, handles: Sequence[ElementHandle]) -> PollResult:
        raise NotImplementedError

    def __and__(self, other: "WaitCondition") -> "WaitCondition":
        return AllOf(self, other)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class ElementCondition(WaitCondition):
    """Condition satisfied by the first matching node that passes `matches`."""

    def matches(self, handle: ElementHandle) -> bool:
        raise NotImplementedError

    def evaluate(self, handles: Sequence[ElementHandle]) -> PollResult:
        if not handles:
            return NotYet("no matching nodes")
        for handle in handles:
            if self.matches(handle):
                return Ready(handle)
        return NotYet(f"{len(handles)} node(s) matched, none {self.name}")

    def __and__(self, other: WaitCondition) -> WaitCondition:
        if isinstance(other, ElementCondition):
            return _BothElements(self, other)
        return AllOf(self, other)


class _BothElements(ElementCondition):
    """AND of two element-level conditions, checked on the same node."""

    def __init__(self, first: ElementCondition, second: ElementCondition):
        self.first = first
        self.second = second
        self.name = f"{first.name} and {second.name}"

    def matches(self, handle: ElementHandle) -> bool:
        return self.first.matches(handle) and self.second.matches(handle)


class AllOf(WaitCondition):
    """Generic AND: every condition must be ready on the same tick."""

    def __init__(self, *conditions: WaitCondition):
        self.conditions = conditions
        self.name = " and ".join(c.name for c in conditions)

    def evaluate(self, handles: Sequence[ElementHandle]) -> PollResult:
        node = None
        for condition in self.conditions:
            result = condition.evaluate(handles)
            if not isinstance(result, Ready):
                return result
            if node is None:
                node = result.node
        return Ready(node)


class Present(ElementCondition):
    """At least one node is attached to the document."""

    name = "present"

    def matches(self, handle: ElementHandle) -> bool:
        return True


class Visible(ElementCondition):
    """Node is rendered with a non-zero size."""

    name = "visible"

    def matches(self, handle: ElementHandle) -> bool:
        if not handle.is_visible():
            return False
        box = handle.bounding_box()
        return bool(box) and box["width"] > 0 and box["height"] > 0


class Clickable(Visible):
    """
    Visible and enabled.

    Overlays are not checked here; wait on `CLICKABLE & UNOBSTRUCTED` when
    the node must also be the topmost element at its centre.
    """

    name = "clickable"

    def matches(self, handle: ElementHandle) -> bool:
        return super().matches(handle) and handle.is_enabled()


# Hit test at the centre of the node: is the topmost element the node itself
# (or one of its descendants)?
HIT_TEST_SCRIPT = """
el => {
    const r = el.getBoundingClientRect();
    const top = document.elementFromPoint(r.left + r.width / 2, r.top + r.height / 2);
    return top !== null && (top === el || el.contains(top));
}
"""


class Unobstructed(ElementCondition):
    """Topmost element at the node's centre is the node (no overlay)."""

    name = "unobstructed"

    def matches(self, handle: ElementHandle) -> bool:
        return bool(handle.evaluate(HIT_TEST_SCRIPT))


class Absent(WaitCondition):
    """No matching node is visible (detached or hidden both count)."""

    name = "absent"

    def __init__(self) -> None:
        self._visible = Visible()

    def evaluate(self, handles: Sequence[ElementHandle]) -> PollResult:
        shown = sum(1 for handle in handles if self._visible.matches(handle))
        if shown == 0:
            return Ready(None)
        return NotYet(f"{shown} node(s) still visible")


PRESENT = Present()
VISIBLE = Visible()
CLICKABLE = Clickable()
UNOBSTRUCTED = Unobstructed()
ABSENT = Absent()


# =============================================================================
# Engine
# =============================================================================

class WaitEngine:
    """
    Polling engine bound to one page.

    The engine owns its deadline: each sleep is capped at the remaining time,
    so a wait that never becomes ready fails no earlier than `timeout_ms` and
    no later than `timeout_ms` plus one poll interval.

    Args:
        page: Playwright Page of the owning session
        poll_interval_ms: Fixed interval between poll ticks
        default_timeout_ms: Timeout used when a call does not pass one
        clock: Monotonic clock in seconds (injectable for tests)
        sleep: Sleep function in seconds (injectable for tests)
    """

    def __init__(
        self,
        page: Page,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        self.page = page
        self.poll_interval_ms = poll_interval_ms
        self.default_timeout_ms = default_timeout_ms
        self._clock = clock
        self._sleep = sleep

    @property
    def clock(self) -> Callable[[], float]:
        """Monotonic clock shared with callers that track the same deadline."""
        return self._clock

    def wait_until(
        self,
        locator: ElementLocator,
        condition: WaitCondition,
        timeout_ms: Optional[int] = None,
    ) -> Optional[ElementHandle]:
        """
        Wait until `condition` is ready for `locator`.

        Args:
            locator: Where to find the node(s)
            condition: Condition evaluated over the fresh matches on each tick
            timeout_ms: Deadline for this wait (defaults to engine default)

        Returns:
            The ready node, or None for set-level conditions such as ABSENT

        Raises:
            WaitTimeoutError: Deadline elapsed (carries locator + last state)
            SessionLostError: The browser session became unreachable
        """
        return self._run(
            lambda: self._poll_locator(locator, condition),
            target=locator.describe(),
            condition=condition.name,
            timeout_ms=timeout_ms,
        )

    def wait_for_url(
        self,
        *fragments: str,
        timeout_ms: Optional[int] = None,
    ) -> str:
        """
        Wait until the current URL contains any of `fragments`.

        Returns:
            The matching URL
        """
        def poll() -> PollResult:
            url = self._current_url()
            if any(fragment in url for fragment in fragments):
                return Ready(None)
            return NotYet(f"url={url}")

        self._run(
            poll,
            target="page url",
            condition=f"containing one of {list(fragments)}",
            timeout_ms=timeout_ms,
        )
        return self._current_url()

    # ----- internals -----

    def _run(
        self,
        poll: Callable[[], PollResult],
        target: str,
        condition: str,
        timeout_ms: Optional[int],
    ) -> Optional[ElementHandle]:
        timeout_ms = self.default_timeout_ms if timeout_ms is None else timeout_ms
        interval = self.poll_interval_ms / 1000.0
        start = self._clock()
        deadline = start + timeout_ms / 1000.0
        attempt = 0
        last_state = "not polled"

        while True:
            attempt += 1
            result = poll()

            if isinstance(result, Ready):
                logger.debug(
                    f"{target} is {condition} after {attempt} poll(s) "
                    f"({(self._clock() - start) * 1000:.0f}ms)"
                )
                return result.node

            last_state = result.state
            if isinstance(result, Stale):
                logger.debug(f"Stale node for {target}, re-resolving: {result.state}")

            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning(
                    f"Timeout after {timeout_ms}ms ({attempt} polls) waiting for "
                    f"{target} to be {condition}. Last state: {last_state}"
                )
                raise WaitTimeoutError(target, condition, timeout_ms, last_state)

            self._sleep(min(interval, remaining))

    def _poll_locator(
        self,
        locator: ElementLocator,
        condition: WaitCondition,
    ) -> PollResult:
        try:
            handles = locator.resolve(self.page).element_handles()
            return condition.evaluate(handles)
        except PlaywrightError as e:
            if is_session_lost_error(e):
                raise SessionLostError(summarize_error(e)) from e
            if is_stale_error(e):
                return Stale(summarize_error(e))
            logger.warning(f"Poll of {locator.describe()} failed: {summarize_error(e)}")
            return NotYet(f"error: {summarize_error(e)}")

    def _current_url(self) -> str:
        try:
            return self.page.url
        except PlaywrightError as e:
            if is_session_lost_error(e):
                raise SessionLostError(summarize_error(e)) from e
            raise


__all__ = [
    "WaitEngine",
    "WaitCondition",
    "ElementCondition",
    "AllOf",
    "Ready",
    "NotYet",
    "Stale",
    "PollResult",
    "Present",
    "Visible",
    "Clickable",
    "Unobstructed",
    "Absent",
    "PRESENT",
    "VISIBLE",
    "CLICKABLE",
    "UNOBSTRUCTED",
    "ABSENT",
    "DEFAULT_POLL_INTERVAL_MS",
    "DEFAULT_TIMEOUT_MS",
]
