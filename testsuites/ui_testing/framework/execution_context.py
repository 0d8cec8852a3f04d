"""
================================================================================
Test Execution Context
================================================================================

Owns one browser session for the lifetime of one test case.

State machine:

    CREATED --activate()--> ACTIVE --> PASSED | FAILED | SKIPPED --> CLOSED

    close() is allowed from any state and releases the session once.

Identity is carried by the context object itself and handed explicitly to
whatever needs it (artifact capture, listeners, flows). Log records get the
identity through `logger.contextualize`, which is scoped to the current thread
of execution, so concurrently running tests never see each other's id.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import itertools
import os
import threading
import time
import unittest
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional, Tuple, Type

import allure
from loguru import logger

from .artifact_capture import ArtifactCapture, CaptureResult
from .browser_manager import BrowserSession
from .config_loader import RunSettings
from .errors import InvalidStateTransition, SessionLostError, SessionOwnershipError
from .interaction_dispatcher import InteractionDispatcher
from .wait_engine import WaitEngine

if TYPE_CHECKING:
    from .lifecycle import LifecycleListener


# =============================================================================
# Identity
# =============================================================================

_sequence = itertools.count(1)
_sequence_lock = threading.Lock()


def worker_id() -> str:
    """pytest-xdist worker id ('gw0', 'gw1', ...) or 'main'."""
    return os.environ.get("PYTEST_XDIST_WORKER", "main")


@dataclass(frozen=True)
class TestIdentity:
    """Monotonic, worker-scoped test identity."""

    __test__ = False

    worker: str
    sequence: int
    name: str

    @property
    def key(self) -> str:
        return f"{self.worker}-{self.sequence:04d}"

    @classmethod
    def next(cls, name: str) -> "TestIdentity":
        with _sequence_lock:
            sequence = next(_sequence)
        return cls(worker_id(), sequence, name)


# =============================================================================
# States and steps
# =============================================================================

class ContextState(Enum):
    CREATED = "created"
    ACTIVE = "active"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CLOSED = "closed"


_ALLOWED: Dict[ContextState, Tuple[ContextState, ...]] = {
    ContextState.CREATED: (ContextState.ACTIVE, ContextState.CLOSED),
    ContextState.ACTIVE: (
        ContextState.PASSED,
        ContextState.FAILED,
        ContextState.SKIPPED,
        ContextState.CLOSED,
    ),
    ContextState.PASSED: (ContextState.CLOSED,),
    ContextState.FAILED: (ContextState.CLOSED,),
    ContextState.SKIPPED: (ContextState.CLOSED,),
    ContextState.CLOSED: (),
}


@dataclass
class StepRecord:
    """One step-level marker of the per-test log."""

    label: str
    status: str = "running"
    duration_ms: float = 0.0
    error: str = ""

    def marker(self) -> str:
        symbol = {"passed": "PASS", "failed": "FAIL"}.get(self.status, "....")
        line = f"[{symbol}] {self.label} ({self.duration_ms:.0f}ms)"
        return f"{line} - {self.error}" if self.error else line


# =============================================================================
# Session ownership
# =============================================================================

class SessionRegistry:
    """Enforces that a session handle is owned by at most one live context."""

    _owners: Dict[int, str] = {}
    _lock = threading.Lock()

    @classmethod
    def claim(cls, session: BrowserSession, owner: str) -> None:
        with cls._lock:
            current = cls._owners.get(id(session))
            if current is not None and current != owner:
                raise SessionOwnershipError(
                    f"Session {session.label or id(session)} is already owned by {current}"
                )
            cls._owners[id(session)] = owner

    @classmethod
    def release(cls, session: BrowserSession, owner: str) -> None:
        with cls._lock:
            if cls._owners.get(id(session)) == owner:
                del cls._owners[id(session)]

    @classmethod
    def owner_of(cls, session: BrowserSession) -> Optional[str]:
        with cls._lock:
            return cls._owners.get(id(session))


# =============================================================================
# Context
# =============================================================================

class TestExecutionContext:
    """
    Per-test execution context.

    Usage:
        with TestExecutionContext("test_account_creation", manager.new_session,
                                  settings=settings, capture=capture) as ctx:
            flow = AccountFlow.from_context(ctx)
            with ctx.step("Create account"):
                flow.create_account()

    Leaving the `with` block normally marks the context PASSED, an exception
    marks it FAILED (capturing artifacts first); the session is released in
    both cases.

    Args:
        name: Test name
        session_factory: Callable that acquires a fresh BrowserSession
        settings: Resolved run settings (poll interval, timeouts)
        capture: ArtifactCapture used on failure (optional)
        listener: LifecycleListener receiving start/pass/fail/skip events
        skip_exceptions: Exception types that mean "skipped", not "failed"
    """

    __test__ = False

    def __init__(
        self,
        name: str,
        session_factory: Callable[[], BrowserSession],
        settings: Optional[RunSettings] = None,
        capture: Optional[ArtifactCapture] = None,
        listener: Optional["LifecycleListener"] = None,
        skip_exceptions: Tuple[Type[BaseException], ...] = (unittest.SkipTest,),
    ):
        self.identity = TestIdentity.next(name)
        self.settings = settings or RunSettings()
        self.state = ContextState.CREATED
        self.current_step: Optional[str] = None
        self.steps: List[StepRecord] = []
        self.error: Optional[BaseException] = None
        self.capture_result: Optional[CaptureResult] = None
        self.warnings: List[str] = []
        self.log = logger.bind(test_id=self.identity.key, test_name=name)

        self._session_factory = session_factory
        self._capture = capture
        self._listener = listener
        self._skip_exceptions = skip_exceptions
        self._session: Optional[BrowserSession] = None
        self._dispatcher: Optional[InteractionDispatcher] = None
        self._log_scope = None
        self._lock = threading.RLock()

    # ----- accessors -----

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def session(self) -> BrowserSession:
        if self._session is None:
            raise InvalidStateTransition(
                f"Context {self.identity.key} has no session (state={self.state.value})"
            )
        return self._session

    @property
    def dispatcher(self) -> InteractionDispatcher:
        """Dispatcher bound to this context's session."""
        if self._dispatcher is None:
            engine = WaitEngine(
                self.session.page,
                poll_interval_ms=self.settings.poll_interval_ms,
                default_timeout_ms=self.settings.explicit_wait_ms,
            )
            self._dispatcher = InteractionDispatcher(
                engine, native_click_timeout_ms=self.settings.native_click_timeout_ms
            )
        return self._dispatcher

    @property
    def is_closed(self) -> bool:
        return self.state is ContextState.CLOSED

    # ----- transitions -----

    def _transition(self, target: ContextState) -> None:
        if target not in _ALLOWED[self.state]:
            raise InvalidStateTransition(
                f"{self.identity.key}: {self.state.value} -> {target.value} is not allowed"
            )
        self.log.debug(f"Context {self.state.value} -> {target.value}")
        self.state = target

    def activate(self) -> "TestExecutionContext":
        """CREATED -> ACTIVE: acquire and claim the session."""
        with self._lock:
            if self.state is not ContextState.CREATED:
                raise InvalidStateTransition(
                    f"{self.identity.key}: cannot activate from {self.state.value}"
                )
            session = self._session_factory()
            SessionRegistry.claim(session, self.identity.key)
            self._session = session
            self._log_scope = logger.contextualize(
                test_id=self.identity.key, test_name=self.identity.name
            )
            self._log_scope.__enter__()
            self._transition(ContextState.ACTIVE)

        self.log.info(f">>> Test Started: {self.name} [{self.identity.key}]")
        if self._listener:
            self._listener.on_start(self)
        return self

    def mark_passed(self) -> None:
        with self._lock:
            self._transition(ContextState.PASSED)
        if self._listener:
            self._listener.on_pass(self)

    def mark_skipped(self, reason: str = "") -> None:
        with self._lock:
            self._transition(ContextState.SKIPPED)
        if self._listener:
            self._listener.on_skip(self, reason)

    def mark_failed(self, error: Optional[BaseException] = None) -> Optional[CaptureResult]:
        """
        ACTIVE -> FAILED, capturing artifacts while the session is still open.

        A lost session skips capture and closes the context immediately.
        """
        with self._lock:
            self._transition(ContextState.FAILED)
            self.error = error

        if isinstance(error, SessionLostError):
            self.warnings.append(f"Capture skipped: {error}")
            self.log.warning(f"Session lost, closing context: {error}")
        elif self._capture is not None:
            self.capture_result = self._run_capture(error)

        if self._listener:
            self._listener.on_fail(self, error, self.capture_result)

        if isinstance(error, SessionLostError):
            self.close()
        return self.capture_result

    def _run_capture(self, error: Optional[BaseException]) -> CaptureResult:
        try:
            result = self._capture.capture_failure(self, error)
        except Exception as e:
            result = CaptureResult(warnings=(f"Artifact capture failed: {e}",))
        for warning in result.warnings:
            self.warnings.append(warning)
            self.log.warning(warning)
        return result

    def close(self) -> None:
        """Release the session. Runs once; later calls are no-ops."""
        with self._lock:
            if self.state is ContextState.CLOSED:
                return
            session = self._session
            try:
                if session is not None:
                    session.close()
            finally:
                if session is not None:
                    SessionRegistry.release(session, self.identity.key)
                self.state = ContextState.CLOSED
                self.log.debug(f"Context closed: {self.identity.key}")
                if self._log_scope is not None:
                    self._log_scope.__exit__(None, None, None)
                    self._log_scope = None

    # ----- steps -----

    @contextmanager
    def step(self, label: str) -> Iterator[StepRecord]:
        """
        Run one named step: sets `current_step`, records a pass/fail marker,
        and mirrors it as an Allure step.
        """
        record = StepRecord(label)
        self.steps.append(record)
        self.current_step = label
        started = time.monotonic()
        self.log.info(f"Step: {label}")
        try:
            with allure.step(label):
                yield record
        except BaseException as e:
            record.status = "failed"
            record.error = f"{type(e).__name__}: {e}"
            raise
        else:
            record.status = "passed"
        finally:
            record.duration_ms = (time.monotonic() - started) * 1000

    def step_log(self) -> str:
        """Ordered step-level markers for the report."""
        return "\n".join(step.marker() for step in self.steps)

    # ----- context manager -----

    def __enter__(self) -> "TestExecutionContext":
        return self.activate()

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if self.state is ContextState.ACTIVE:
                if exc is None:
                    self.mark_passed()
                elif isinstance(exc, self._skip_exceptions):
                    self.mark_skipped(str(exc))
                else:
                    self.mark_failed(exc)
        finally:
            self.close()
        return False

    def __repr__(self) -> str:
        return f"<TestExecutionContext {self.identity.key} {self.name} {self.state.value}>"


__all__ = [
    "ContextState",
    "SessionRegistry",
    "StepRecord",
    "TestExecutionContext",
    "TestIdentity",
    "worker_id",
]
