"""
================================================================================
Artifact Capture
================================================================================

Failure diagnostics for UI tests:
    - viewport screenshot (PNG)
    - textual failure record (test identity, step, action, locator, reason)

Artifacts are write-once files keyed by test identity. Storage is the one
resource many workers write concurrently, so writes are serialized per key
(thread lock + file lock for xdist processes); different keys never wait on
each other.

Capture never raises: any failure while capturing degrades to a warning so
the original test failure stays the signal.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import re
import threading
import traceback
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from filelock import FileLock
from loguru import logger

from .errors import InteractionBlockedError, WaitTimeoutError

if TYPE_CHECKING:
    from .execution_context import TestExecutionContext


_UNSAFE_CHARS = re.compile(r"[^\w\-]")


def _safe_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)[:80] or "test"


@dataclass(frozen=True)
class Artifact:
    """A captured file. Never mutated once written."""

    path: Path
    kind: str  # "image" | "text"
    test_key: str
    created_at: datetime


@dataclass(frozen=True)
class CaptureResult:
    """What one capture produced, plus any warnings raised while capturing."""

    artifacts: Tuple[Artifact, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def image(self) -> Optional[Artifact]:
        return next((a for a in self.artifacts if a.kind == "image"), None)

    @property
    def record(self) -> Optional[Artifact]:
        return next((a for a in self.artifacts if a.kind == "text"), None)


class ArtifactStore:
    """
    Write-once artifact storage under `root`.

    Layout:
        <root>/screenshots/<test>_<key>_<timestamp>.png
        <root>/failures/<test>_<key>_<timestamp>.txt
    """

    SUBDIRS = {"image": "screenshots", "text": "failures"}
    LOCK_DIR = ".locks"

    def __init__(self, root: Path):
        self.root = Path(root)
        self._guard = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            return self._key_locks.setdefault(key, threading.Lock())

    def write(self, key: str, label: str, kind: str, suffix: str, data: bytes) -> Artifact:
        """
        Write a new artifact for `key`.

        The filename carries the test name, identity key and a timestamp; a
        counter is appended if the same key writes twice within one tick.
        """
        directory = self.root / self.SUBDIRS[kind]
        directory.mkdir(parents=True, exist_ok=True)
        lock_dir = self.root / self.LOCK_DIR
        lock_dir.mkdir(parents=True, exist_ok=True)

        with self._lock_for(key), FileLock(str(lock_dir / f"{key}.{kind}.lock")):
            created_at = datetime.now()
            stem = f"{_safe_name(label)}_{key}_{created_at.strftime('%Y-%m-%d_%H-%M-%S_%f')}"
            path = directory / f"{stem}{suffix}"
            counter = 1
            while path.exists():
                path = directory / f"{stem}-{counter}{suffix}"
                counter += 1
            with open(path, "xb") as f:
                f.write(data)
        with self._guard:
            self._key_locks.pop(key, None)

        logger.debug(f"Artifact written: {path}")
        return Artifact(path=path, kind=kind, test_key=key, created_at=created_at)


def describe_failure(error: BaseException) -> Dict[str, str]:
    """Structured description of a failure: action, locator, reason."""
    details = {
        "error_type": type(error).__name__,
        "message": str(error),
    }
    if isinstance(error, WaitTimeoutError):
        details.update(
            action=error.action or "wait",
            locator=error.locator,
            reason=f"timed out after {error.timeout_ms}ms waiting to be {error.condition}",
            last_state=error.last_state,
        )
    elif isinstance(error, InteractionBlockedError):
        details.update(action=error.action, locator=error.locator, reason=error.reason)
    return details


class ArtifactCapture:
    """
    Captures failure artifacts for a TestExecutionContext.

    Usage:
        capture = ArtifactCapture(ArtifactStore(Path("test-output")))
        result = capture.capture_failure(context, error)
    """

    def __init__(self, store: ArtifactStore, full_page: bool = False):
        self.store = store
        self.full_page = full_page

    def capture_failure(
        self,
        context: "TestExecutionContext",
        error: Optional[BaseException] = None,
    ) -> CaptureResult:
        """
        Capture a screenshot and a failure record for `context`.

        Uses only the context passed in (its identity and still-open
        session); never consults any shared "current test".
        """
        identity = context.identity
        artifacts: List[Artifact] = []
        warnings: List[str] = []

        url = "unavailable"
        try:
            page = context.session.page
            url = page.url
            png = page.screenshot(full_page=self.full_page)
            artifacts.append(self.store.write(identity.key, identity.name, "image", ".png", png))
        except Exception as e:
            warnings.append(f"Could not capture screenshot: {e}")
            logger.warning(f"Could not capture screenshot for {identity.key}: {e}")

        try:
            record = self._failure_record(context, error, url)
            artifacts.append(
                self.store.write(identity.key, identity.name, "text", ".txt", record.encode("utf-8"))
            )
        except Exception as e:
            warnings.append(f"Could not write failure record: {e}")
            logger.warning(f"Could not write failure record for {identity.key}: {e}")

        return CaptureResult(tuple(artifacts), tuple(warnings))

    @staticmethod
    def _failure_record(
        context: "TestExecutionContext",
        error: Optional[BaseException],
        url: str,
    ) -> str:
        identity = context.identity
        lines = [
            f"test:       {identity.name}",
            f"identity:   {identity.key}",
            f"step:       {context.current_step or '-'}",
            f"url:        {url}",
            f"captured:   {datetime.now().isoformat()}",
        ]
        if error is not None:
            details = describe_failure(error)
            for key in ("action", "locator", "reason", "last_state"):
                if key in details:
                    lines.append(f"{key + ':':<11} {details[key]}")
            lines.append(f"error:      {details['error_type']}: {details['message']}")
            lines.append("")
            lines.extend(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        if context.steps:
            lines.append("")
            lines.append("steps:")
            lines.extend(f"  {step.marker()}" for step in context.steps)
        return "\n".join(line.rstrip("\n") for line in lines) + "\n"


__all__ = [
    "Artifact",
    "ArtifactCapture",
    "ArtifactStore",
    "CaptureResult",
    "describe_failure",
]
