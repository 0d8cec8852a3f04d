"""
================================================================================
Manual Pause
================================================================================

Bounded suspension point for out-of-band manual steps, e.g. typing the
verification code Salesforce e-mails on login from an unknown device.

The pause ends at the first of:
    - the deadline (`timeout_s`)
    - the resume event being set (another thread, a signal handler...)
    - the readiness predicate returning True (checked every poll interval)

This is inherently non-deterministic. Tests that need it carry the `manual`
marker and are skipped in non-interactive runs.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from loguru import logger


class PauseEnd(Enum):
    READY = "ready"
    RESUMED = "resumed"
    DEADLINE = "deadline"


@dataclass(frozen=True)
class PauseResult:
    ended_by: PauseEnd
    waited_s: float

    @property
    def early(self) -> bool:
        return self.ended_by is not PauseEnd.DEADLINE


class ManualPause:
    """
    Wait for a human, but never forever.

    Usage:
        pause = ManualPause(timeout_s=40, ready=lambda: "lightning" in page.url)
        result = pause.wait("Enter the verification code from your e-mail")
    """

    def __init__(
        self,
        timeout_s: float,
        resume_event: Optional[threading.Event] = None,
        ready: Optional[Callable[[], bool]] = None,
        poll_interval_s: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ):
        if timeout_s < 0:
            raise ValueError("timeout_s must not be negative")
        if poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be positive")
        self.timeout_s = timeout_s
        self.resume_event = resume_event or threading.Event()
        self.ready = ready
        self.poll_interval_s = poll_interval_s
        self._clock = clock

    def resume(self) -> None:
        """End the pause early."""
        self.resume_event.set()

    def wait(self, prompt: str = "Manual action required") -> PauseResult:
        start = self._clock()
        deadline = start + self.timeout_s
        logger.warning(f"=== MANUAL ACTION REQUIRED === {prompt} (up to {self.timeout_s:.0f}s)")

        while True:
            if self.ready is not None and self.ready():
                return self._finish(PauseEnd.READY, start)
            remaining = deadline - self._clock()
            if remaining <= 0:
                return self._finish(PauseEnd.DEADLINE, start)
            if self.resume_event.wait(min(self.poll_interval_s, remaining)):
                return self._finish(PauseEnd.RESUMED, start)

    def _finish(self, ended_by: PauseEnd, start: float) -> PauseResult:
        result = PauseResult(ended_by, self._clock() - start)
        logger.info(f"Manual pause ended ({ended_by.value}) after {result.waited_s:.1f}s, continuing")
        return result


__all__ = [
    "ManualPause",
    "PauseEnd",
    "PauseResult",
]
