"""
================================================================================
Allure Report Utilities
================================================================================

Helpers for enriching Allure reports from UI test runs and for summarising
a finished run.

Features:
- Attachment helpers (text, JSON, failure screenshots and records)
- Thread-safe run summary fed by lifecycle events
- Allure results parsing and HTML report generation

================================================================================
"""

import json
import shutil
import subprocess
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import allure
from loguru import logger


# ================================================================================
# Attachment Helpers
# ================================================================================

def attach_json(data: Any, name: str = "Data"):
    """
    Attach JSON data to Allure report.

    Args:
        data: Data to attach (will be JSON serialized)
        name: Attachment name
    """
    allure.attach(
        json.dumps(data, indent=2, default=str),
        name=name,
        attachment_type=allure.attachment_type.JSON
    )


def attach_text(text: str, name: str = "Text"):
    """
    Attach text content to Allure report.

    Args:
        text: Text to attach
        name: Attachment name
    """
    allure.attach(
        text,
        name=name,
        attachment_type=allure.attachment_type.TEXT
    )


_ATTACHMENT_TYPES = {
    ".png": allure.attachment_type.PNG,
    ".txt": allure.attachment_type.TEXT,
    ".json": allure.attachment_type.JSON,
}


def attach_artifact(path: Path, name: Optional[str] = None):
    """
    Attach a captured artifact file, typed by its suffix.

    Args:
        path: Artifact file on disk
        name: Attachment name (defaults to the file name)
    """
    path = Path(path)
    allure.attach.file(
        str(path),
        name=name or path.name,
        attachment_type=_ATTACHMENT_TYPES.get(path.suffix, allure.attachment_type.TEXT)
    )


def attach_step_log(steps: List[str], name: str = "Step Log"):
    """Attach the ordered step-level markers of one test."""
    attach_text("\n".join(steps) or "(no steps recorded)", name=name)


# ================================================================================
# Run Summary
# ================================================================================

@dataclass
class RunSummary:
    """
    Aggregate pass/fail counts for one run.

    Fed concurrently by lifecycle listeners, so every mutation goes through
    `record()` under a lock.
    """
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    warnings: int = 0
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, outcome: str, warnings: int = 0) -> None:
        """
        Count one finished test.

        Args:
            outcome: "passed", "failed" or "skipped"
            warnings: Number of capture warnings raised by the test
        """
        if outcome not in ("passed", "failed", "skipped"):
            raise ValueError(f"Unknown outcome: {outcome}")
        with self._lock:
            self.total += 1
            setattr(self, outcome, getattr(self, outcome) + 1)
            self.warnings += warnings

    @property
    def pass_rate(self) -> float:
        """Pass rate percentage over executed (non-skipped) tests."""
        executed = self.passed + self.failed
        if executed == 0:
            return 0.0
        return (self.passed / executed) * 100

    @property
    def exit_code(self) -> int:
        """0 when nothing failed, 1 otherwise."""
        return 1 if self.failed else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "skipped": self.skipped,
            "warnings": self.warnings,
            "pass_rate": f"{self.pass_rate:.2f}%",
            "exit_code": self.exit_code,
            "started_at": self.started_at,
        }


# ================================================================================
# Report Processing
# ================================================================================

class AllureReportProcessor:
    """
    Processes Allure results and generates reports.

    Provides methods for analyzing results, generating summaries,
    and carrying history between reports.
    """

    def __init__(
        self,
        results_dir: Path,
        report_dir: Optional[Path] = None,
    ):
        """
        Initialize processor.

        Args:
            results_dir: Allure results directory
            report_dir: Output report directory
        """
        self.results_dir = Path(results_dir)
        self.report_dir = Path(report_dir or self.results_dir.parent / "allure-report")

    def parse_results(self) -> List[Dict[str, Any]]:
        """Parse Allure `*-result.json` files."""
        results = []

        for result_file in self.results_dir.glob("*-result.json"):
            try:
                with open(result_file, encoding="utf-8") as f:
                    results.append(json.load(f))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to parse {result_file}: {e}")

        return results

    def generate_summary(self) -> RunSummary:
        """
        Build a RunSummary from the Allure results.

        Allure's "broken" status counts as failed.
        """
        summary = RunSummary()
        for result in self.parse_results():
            status = result.get("status", "unknown")
            if status in ("failed", "broken"):
                summary.record("failed")
            elif status == "skipped":
                summary.record("skipped")
            elif status == "passed":
                summary.record("passed")
        return summary

    def copy_history(self):
        """Copy history from previous report to results."""
        history_source = self.report_dir / "history"
        history_dest = self.results_dir / "history"

        if history_source.exists():
            if history_dest.exists():
                shutil.rmtree(history_dest)
            shutil.copytree(history_source, history_dest)
            logger.info("Copied history from previous report")

    def generate_report(self) -> bool:
        """
        Generate Allure HTML report.

        Returns:
            True if successful
        """
        self.copy_history()
        cmd = [
            "allure", "generate",
            str(self.results_dir),
            "-o", str(self.report_dir),
            "--clean"
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            logger.error("Allure command not found. Install allure-commandline.")
            return False

        if result.returncode == 0:
            logger.info(f"Report generated at {self.report_dir}")
            return True

        logger.error(f"Report generation failed: {result.stderr}")
        return False

    def print_summary(self):
        """Print summary to console."""
        summary = self.generate_summary()

        print("\n" + "=" * 60)
        print("UI REGRESSION SUMMARY")
        print("=" * 60)
        print(f"Total Tests:    {summary.total}")
        print(f"Passed:         {summary.passed} ✅")
        print(f"Failed:         {summary.failed} ❌")
        print(f"Skipped:        {summary.skipped} ⏭️")
        print(f"Pass Rate:      {summary.pass_rate:.2f}%")
        print("=" * 60 + "\n")


# ================================================================================
# Convenience Functions
# ================================================================================

def generate_allure_report(
    results_dir: str,
    output_dir: Optional[str] = None,
    open_report: bool = False
) -> bool:
    """
    Generate Allure report from results.

    Args:
        results_dir: Path to allure-results directory
        output_dir: Optional output directory
        open_report: Whether to open report in browser

    Returns:
        True if successful
    """
    processor = AllureReportProcessor(
        Path(results_dir),
        Path(output_dir) if output_dir else None
    )

    success = processor.generate_report()

    if success:
        processor.print_summary()
        if open_report:
            subprocess.run(["allure", "open", str(processor.report_dir)])

    return success
