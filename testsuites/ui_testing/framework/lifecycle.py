"""
================================================================================
Lifecycle Listeners
================================================================================

Boundary between test execution and reporting. A TestExecutionContext emits
start / pass / fail / skip events; listeners turn them into report entries.

    LifecycleListener          no-op base, override what you need
    AllureLifecycleListener    log lines + Allure attachments + RunSummary

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from loguru import logger

from salesflow_tools.report_tools.allure_utils import (
    RunSummary,
    attach_artifact,
    attach_json,
    attach_step_log,
    attach_text,
)

from .artifact_capture import CaptureResult, describe_failure

if TYPE_CHECKING:
    from .execution_context import TestExecutionContext


class LifecycleListener:
    """Receives lifecycle events of TestExecutionContexts."""

    def on_start(self, context: "TestExecutionContext") -> None:
        pass

    def on_pass(self, context: "TestExecutionContext") -> None:
        pass

    def on_fail(
        self,
        context: "TestExecutionContext",
        error: Optional[BaseException],
        capture: Optional[CaptureResult],
    ) -> None:
        pass

    def on_skip(self, context: "TestExecutionContext", reason: str) -> None:
        pass


class AllureLifecycleListener(LifecycleListener):
    """
    Reports test outcomes to the log and to Allure.

    One instance is shared by every test of a worker; all state lives in the
    thread-safe RunSummary.
    """

    def __init__(self, summary: Optional[RunSummary] = None):
        self.summary = summary or RunSummary()

    def on_start(self, context: "TestExecutionContext") -> None:
        context.log.debug(f"Session acquired: {context.session.label or context.identity.key}")

    def on_pass(self, context: "TestExecutionContext") -> None:
        context.log.info(f"<<< Test Passed: {context.name}")
        attach_step_log([step.marker() for step in context.steps])
        self.summary.record("passed", warnings=len(context.warnings))

    def on_fail(
        self,
        context: "TestExecutionContext",
        error: Optional[BaseException],
        capture: Optional[CaptureResult],
    ) -> None:
        context.log.error(f"<<< Test Failed: {context.name}: {error}")

        if error is not None:
            attach_json(describe_failure(error), name="Failure")
        if capture is not None:
            for artifact in capture.artifacts:
                attach_artifact(artifact.path, name=f"{artifact.kind}: {artifact.path.name}")
        if context.warnings:
            attach_text("\n".join(context.warnings), name="Capture Warnings")
        attach_step_log([step.marker() for step in context.steps])

        self.summary.record("failed", warnings=len(context.warnings))

    def on_skip(self, context: "TestExecutionContext", reason: str) -> None:
        context.log.info(f"<<< Test Skipped: {context.name} ({reason or 'no reason'})")
        self.summary.record("skipped")


def log_summary(summary: RunSummary) -> None:
    """Write the run summary as one log block."""
    logger.info(
        "Run summary: "
        f"{summary.total} total, {summary.passed} passed, {summary.failed} failed, "
        f"{summary.skipped} skipped ({summary.pass_rate:.2f}% pass rate), "
        f"exit code {summary.exit_code}"
    )


__all__ = [
    "AllureLifecycleListener",
    "LifecycleListener",
    "log_summary",
]
