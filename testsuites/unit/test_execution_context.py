import re
import threading
import unittest
import warnings
from pathlib import Path

import pytest
from loguru import logger

from testsuites.ui_testing.framework import execution_context
from testsuites.ui_testing.framework.artifact_capture import CaptureResult
from testsuites.ui_testing.framework.errors import (
    InvalidStateTransition,
    SessionLostError,
    SessionOwnershipError,
)
from testsuites.ui_testing.framework.execution_context import (
    ContextState,
    SessionRegistry,
    TestExecutionContext,
    TestIdentity,
)
from testsuites.ui_testing.framework.lifecycle import LifecycleListener
from testsuites.unit.fakes import FakeSession


class RecordingListener(LifecycleListener):
    def __init__(self):
        self.events = []

    def on_start(self, context):
        self.events.append(("start", context.state))

    def on_pass(self, context):
        self.events.append(("pass", context.state))

    def on_fail(self, context, error, capture):
        self.events.append(("fail", context.state, error, capture))

    def on_skip(self, context, reason):
        self.events.append(("skip", context.state, reason))


class RecordingCapture:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def capture_failure(self, context, error=None):
        self.calls.append((context.identity.key, context.session.closed, error))
        if self.error:
            raise self.error
        return CaptureResult(warnings=("no screenshot in tests",))


def make_context(session=None, **kwargs):
    session = session or FakeSession()
    return TestExecutionContext("test_case", lambda: session, **kwargs), session


def test_identity_is_monotonic_and_worker_scoped(monkeypatch):
    monkeypatch.setenv("PYTEST_XDIST_WORKER", "gw3")
    first = TestIdentity.next("a")
    second = TestIdentity.next("b")

    assert re.fullmatch(r"gw3-\d{4,}", first.key)
    assert second.sequence == first.sequence + 1
    assert first.key != second.key


def test_identity_is_unique_across_threads():
    keys = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            key = TestIdentity.next("t").key
            with lock:
                keys.append(key)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(keys) == len(set(keys)) == 400


def test_passing_test_lifecycle():
    listener = RecordingListener()
    ctx, session = make_context(listener=listener)

    with ctx:
        assert ctx.state is ContextState.ACTIVE
        assert ctx.session is session

    assert ctx.state is ContextState.CLOSED
    assert session.close_calls == 1
    assert [event[0] for event in listener.events] == ["start", "pass"]
    assert listener.events[1][1] is ContextState.PASSED


def test_failure_captures_before_session_release():
    capture = RecordingCapture()
    listener = RecordingListener()
    ctx, session = make_context(capture=capture, listener=listener)
    error = AssertionError("toast text differs")

    with pytest.raises(AssertionError):
        with ctx:
            raise error

    assert capture.calls == [(ctx.identity.key, False, error)]
    assert ctx.state is ContextState.CLOSED
    assert session.close_calls == 1
    assert ctx.warnings == ["no screenshot in tests"]
    fail_event = listener.events[-1]
    assert fail_event[0] == "fail"
    assert fail_event[2] is error


def test_capture_failure_degrades_to_warning():
    ctx, session = make_context(capture=RecordingCapture(error=OSError("disk full")))

    with pytest.raises(ValueError):
        with ctx:
            raise ValueError("boom")

    assert ctx.state is ContextState.CLOSED
    assert session.close_calls == 1
    assert any("disk full" in w for w in ctx.warnings)


def test_session_lost_skips_capture_and_closes_immediately():
    capture = RecordingCapture()
    ctx, session = make_context(capture=capture)
    ctx.activate()

    ctx.mark_failed(SessionLostError("Browser has been closed"))

    assert ctx.state is ContextState.CLOSED
    assert capture.calls == []
    assert session.close_calls == 1
    ctx.close()
    assert session.close_calls == 1


def test_skip_is_not_a_failure():
    listener = RecordingListener()
    ctx, session = make_context(listener=listener, capture=RecordingCapture())

    with pytest.raises(unittest.SkipTest):
        with ctx:
            raise unittest.SkipTest("org has no Sales app")

    assert listener.events[-1] == ("skip", ContextState.SKIPPED, "org has no Sales app")
    assert session.close_calls == 1


def test_close_from_created_state_never_acquires_a_session():
    acquired = []
    ctx = TestExecutionContext("test_case", lambda: acquired.append(1) or FakeSession())

    ctx.close()
    ctx.close()

    assert acquired == []
    assert ctx.is_closed


def test_close_is_exactly_once_even_when_release_fails():
    class BrokenSession(FakeSession):
        def close(self):
            super().close()
            raise RuntimeError("driver crashed")

    ctx, session = make_context(session=BrokenSession())
    ctx.activate()

    with pytest.raises(RuntimeError):
        ctx.close()
    ctx.close()

    assert ctx.state is ContextState.CLOSED
    assert session.close_calls == 1
    assert SessionRegistry.owner_of(session) is None


def test_illegal_transitions_are_rejected():
    ctx, _ = make_context()

    with pytest.raises(InvalidStateTransition):
        ctx.mark_passed()

    ctx.activate()
    ctx.mark_passed()
    with pytest.raises(InvalidStateTransition):
        ctx.mark_failed(None)
    with pytest.raises(InvalidStateTransition):
        ctx.activate()
    ctx.close()


def test_session_is_owned_by_one_context_at_a_time():
    shared = FakeSession()
    first, _ = make_context(session=shared)
    second, _ = make_context(session=shared)

    first.activate()
    with pytest.raises(SessionOwnershipError):
        second.activate()

    first.close()
    second.activate()
    assert SessionRegistry.owner_of(shared) == second.identity.key
    second.close()


def test_steps_record_markers_in_order():
    ctx, _ = make_context()
    ctx.activate()

    with ctx.step("Open login page"):
        pass
    with pytest.raises(KeyError):
        with ctx.step("Read toast"):
            raise KeyError("toast")

    assert ctx.current_step == "Read toast"
    markers = ctx.step_log().splitlines()
    assert markers[0].startswith("[PASS] Open login page")
    assert markers[1].startswith("[FAIL] Read toast")
    assert "KeyError" in markers[1]
    ctx.close()


def test_log_identity_is_scoped_to_each_thread():
    records = []
    sink_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    barrier = threading.Barrier(2)
    keys = {}

    def run(name):
        ctx, _ = make_context()
        keys[name] = ctx.identity.key
        with ctx:
            barrier.wait(timeout=5)
            logger.info(f"working in {name}")
            barrier.wait(timeout=5)

    try:
        threads = [threading.Thread(target=run, args=(name,)) for name in ("one", "two")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        logger.info("outside any test")
    finally:
        logger.remove(sink_id)

    by_message = {r["message"]: r["extra"].get("test_id") for r in records}
    assert by_message["working in one"] == keys["one"]
    assert by_message["working in two"] == keys["two"]
    assert by_message["outside any test"] in (None, "-")


def test_framework_sources_compile_without_warnings():
    framework_dir = Path(execution_context.__file__).parent

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        for source in sorted(framework_dir.glob("*.py")):
            compile(source.read_text(encoding="utf-8"), str(source), "exec")
