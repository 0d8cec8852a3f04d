"""
================================================================================
UI Testing Framework
================================================================================

Playwright-based (sync API) UI automation framework for Salesforce Lightning.

Components:
    - locators: Immutable element locators
    - wait_engine: Polling waits over freshly resolved nodes
    - interaction_dispatcher: Actions with native -> programmatic click fallback
    - page_flow: Base class for page flows
    - execution_context: Per-test session ownership and lifecycle
    - artifact_capture: Failure screenshots and records
    - lifecycle: Report listeners
    - browser_manager: Browser lifecycle management
    - config_loader: YAML + env configuration, RunSettings
    - manual_pause: Bounded pause for out-of-band manual steps

Author: Automation Team
License: MIT
================================================================================
"""

from .artifact_capture import Artifact, ArtifactCapture, ArtifactStore, CaptureResult
from .browser_manager import BrowserManager, BrowserSession
from .config_loader import ConfigLoader, RunSettings
from .errors import (
    ConfigurationError,
    InteractionBlockedError,
    InvalidStateTransition,
    SessionLostError,
    SessionOwnershipError,
    UIAutomationError,
    WaitTimeoutError,
)
from .execution_context import ContextState, TestExecutionContext, TestIdentity
from .interaction_dispatcher import InteractionDispatcher, InteractionOutcome, OutcomeStatus
from .lifecycle import AllureLifecycleListener, LifecycleListener
from .locators import ElementLocator
from .manual_pause import ManualPause
from .page_flow import PageFlow
from .wait_engine import ABSENT, CLICKABLE, PRESENT, UNOBSTRUCTED, VISIBLE, WaitEngine

__all__ = [
    "ABSENT",
    "CLICKABLE",
    "PRESENT",
    "UNOBSTRUCTED",
    "VISIBLE",
    "AllureLifecycleListener",
    "Artifact",
    "ArtifactCapture",
    "ArtifactStore",
    "BrowserManager",
    "BrowserSession",
    "CaptureResult",
    "ConfigLoader",
    "ConfigurationError",
    "ContextState",
    "ElementLocator",
    "InteractionBlockedError",
    "InteractionDispatcher",
    "InteractionOutcome",
    "InvalidStateTransition",
    "LifecycleListener",
    "ManualPause",
    "OutcomeStatus",
    "PageFlow",
    "RunSettings",
    "SessionLostError",
    "SessionOwnershipError",
    "TestExecutionContext",
    "TestIdentity",
    "UIAutomationError",
    "WaitEngine",
    "WaitTimeoutError",
]
