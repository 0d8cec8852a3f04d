"""
================================================================================
UI Automation Errors
================================================================================

Exception hierarchy for the synchronization & interaction layer, plus helpers
that classify raw Playwright errors into the categories the layer cares about:

    - stale:        the node handle no longer belongs to the live document
    - session lost: the browser/context/page is gone
    - obstructed:   the native input path was refused (overlay, off-screen...)

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Optional


class UIAutomationError(Exception):
    """Base class for all UI automation failures."""
    pass


class WaitTimeoutError(UIAutomationError):
    """
    A wait deadline elapsed before the condition became ready.

    Attributes:
        locator: Description of the locator that was polled
        condition: Name of the condition that never became ready
        timeout_ms: Timeout that elapsed
        last_state: Last observed state, for diagnostics
        action: Interaction that was waiting (if any)
    """

    def __init__(
        self,
        locator: str,
        condition: str,
        timeout_ms: int,
        last_state: str = "",
        action: Optional[str] = None,
    ):
        self.locator = locator
        self.condition = condition
        self.timeout_ms = timeout_ms
        self.last_state = last_state
        self.action = action
        prefix = f"[{action}] " if action else ""
        super().__init__(
            f"{prefix}Timed out after {timeout_ms}ms waiting for {locator} "
            f"to be {condition}. Last state: {last_state or 'n/a'}"
        )

    def for_action(self, action: str) -> "WaitTimeoutError":
        """Return a copy tagged with the interaction that was waiting."""
        return WaitTimeoutError(
            self.locator, self.condition, self.timeout_ms, self.last_state, action
        )


class InteractionBlockedError(UIAutomationError):
    """An interaction could not be performed, even through the fallback path."""

    def __init__(self, action: str, locator: str, reason: str):
        self.action = action
        self.locator = locator
        self.reason = reason
        super().__init__(f"[{action}] {locator} is blocked: {reason}")


class SessionLostError(UIAutomationError):
    """The underlying browser session became unreachable."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Browser session lost: {detail}")


class SessionOwnershipError(UIAutomationError):
    """A second execution context tried to own an already owned session."""
    pass


class InvalidStateTransition(UIAutomationError):
    """Illegal lifecycle transition on a TestExecutionContext."""
    pass


class ConfigurationError(UIAutomationError):
    """Raised when configuration loading or access fails."""
    pass


# =============================================================================
# Playwright error classification
# =============================================================================

_STALE_MARKERS = (
    "not attached to the dom",
    "element is detached",
    "element is not attached",
    "stale element",
    "execution context was destroyed",
    "frame was detached",
)

_SESSION_LOST_MARKERS = (
    "target page, context or browser has been closed",
    "target closed",
    "browser has been closed",
    "browser has disconnected",
    "connection closed",
)

_OBSTRUCTION_MARKERS = (
    "intercepts pointer events",
    "element is not visible",
    "outside of the viewport",
    "element is not stable",
    "covered by",
    "not clickable",
)


def _first_line(exc: BaseException) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else exc.__class__.__name__


def _message(exc: BaseException) -> str:
    return str(exc).lower()


def is_stale_error(exc: BaseException) -> bool:
    """True when the error means the node left the document."""
    msg = _message(exc)
    return any(marker in msg for marker in _STALE_MARKERS)


def is_session_lost_error(exc: BaseException) -> bool:
    """True when the error means the browser session is unreachable."""
    msg = _message(exc)
    return any(marker in msg for marker in _SESSION_LOST_MARKERS)


def is_obstruction_error(exc: BaseException) -> bool:
    """True when a native click was refused because of geometry/overlay."""
    msg = _message(exc)
    return any(marker in msg for marker in _OBSTRUCTION_MARKERS)


def summarize_error(exc: BaseException) -> str:
    """Short, single-line description used in outcomes and reports."""
    return _first_line(exc)[:200]


def raise_if_session_lost(exc: BaseException) -> None:
    """Re-raise a Playwright error as SessionLostError when the session is gone."""
    if is_session_lost_error(exc):
        raise SessionLostError(summarize_error(exc)) from exc


__all__ = [
    "UIAutomationError",
    "WaitTimeoutError",
    "InteractionBlockedError",
    "SessionLostError",
    "SessionOwnershipError",
    "InvalidStateTransition",
    "ConfigurationError",
    "is_stale_error",
    "is_session_lost_error",
    "is_obstruction_error",
    "summarize_error",
    "raise_if_session_lost",
]
