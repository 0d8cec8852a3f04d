"""
================================================================================
UI Testing Pytest Configuration
================================================================================

Fixtures for live UI tests against a Salesforce org.

Key Features:
- One browser per worker, one isolated session per test
- `execution_context` fixture driving the per-test lifecycle
  (Active -> Passed | Failed | Skipped -> Closed) from pytest's reports
- Failure artifacts (screenshot + failure record) attached to Allure
- Flow fixtures (login, app launcher, accounts)

Live tests are skipped unless `run.live` is enabled (RUN_LIVE=true); tests
marked `manual` additionally need `run.interactive` (RUN_INTERACTIVE=true).

================================================================================
"""

from pathlib import Path
from typing import Generator, Optional, Tuple

import pytest

from salesflow_tools.common import init_logger
from testsuites.ui_testing.framework.artifact_capture import ArtifactCapture, ArtifactStore
from testsuites.ui_testing.framework.browser_manager import BrowserManager
from testsuites.ui_testing.framework.config_loader import ConfigLoader, RunSettings
from testsuites.ui_testing.framework.execution_context import ContextState, TestExecutionContext
from testsuites.ui_testing.framework.lifecycle import AllureLifecycleListener, log_summary
from testsuites.ui_testing.framework.manual_pause import ManualPause
from testsuites.ui_testing.framework.page_flow import URL_FRAGMENTS_LOGGED_IN
from testsuites.ui_testing.pages.account_flow import AccountFlow
from testsuites.ui_testing.pages.app_launcher_flow import AppLauncherFlow
from testsuites.ui_testing.pages.login_flow import LoginFlow


# ================================================================================
# Collection
# ================================================================================

def pytest_collection_modifyitems(config, items):
    """Skip live UI tests unless enabled; skip manual ones in automated runs."""
    settings = RunSettings.from_loader()
    here = str(Path(__file__).parent)

    skip_live = pytest.mark.skip(reason="live UI tests disabled (set RUN_LIVE=true)")
    skip_manual = pytest.mark.skip(
        reason="needs manual verification code entry (set RUN_INTERACTIVE=true)"
    )

    for item in items:
        if not str(item.fspath).startswith(here):
            continue
        if not settings.live:
            item.add_marker(skip_live)
        elif "manual" in item.keywords and not settings.interactive:
            item.add_marker(skip_manual)


# ================================================================================
# Test Lifecycle Hooks
# ================================================================================

@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Keep each phase's report (and exception) on the item for fixtures."""
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)
    if call.excinfo is not None:
        setattr(item, f"exc_{report.when}", call.excinfo.value)


def _test_outcome(item) -> Tuple[str, Optional[BaseException]]:
    """'passed', 'failed' or 'skipped' for setup + call, with the exception."""
    for when in ("setup", "call"):
        report = getattr(item, f"rep_{when}", None)
        if report is None:
            continue
        error = getattr(item, f"exc_{when}", None)
        if report.skipped:
            return "skipped", error
        if report.failed:
            return "failed", error
    return "passed", None


# ================================================================================
# Session Fixtures
# ================================================================================

@pytest.fixture(scope="session")
def run_settings() -> RunSettings:
    """Run settings resolved once per worker."""
    loader = ConfigLoader()
    init_logger(loader)
    return RunSettings.from_loader(loader)


@pytest.fixture(scope="session")
def browser_manager(run_settings: RunSettings) -> Generator[BrowserManager, None, None]:
    """
    Session-scoped browser manager.

    One browser per worker; every test gets its own session from it.
    """
    with BrowserManager(run_settings) as manager:
        yield manager


@pytest.fixture(scope="session")
def artifact_capture(run_settings: RunSettings) -> ArtifactCapture:
    return ArtifactCapture(ArtifactStore(Path(run_settings.artifacts_dir)))


@pytest.fixture(scope="session")
def lifecycle_listener() -> Generator[AllureLifecycleListener, None, None]:
    listener = AllureLifecycleListener()
    yield listener
    log_summary(listener.summary)


# ================================================================================
# Execution Context
# ================================================================================

@pytest.fixture
def execution_context(
    request,
    run_settings: RunSettings,
    browser_manager: BrowserManager,
    artifact_capture: ArtifactCapture,
    lifecycle_listener: AllureLifecycleListener,
) -> Generator[TestExecutionContext, None, None]:
    """
    Active TestExecutionContext owning a fresh browser session.

    Teardown marks the outcome (capturing artifacts on failure while the
    session is still open) and then closes the context.
    """
    name = request.node.name
    ctx = TestExecutionContext(
        name,
        lambda: browser_manager.new_session(name),
        settings=run_settings,
        capture=artifact_capture,
        listener=lifecycle_listener,
    )
    ctx.activate()
    try:
        yield ctx
    finally:
        try:
            if ctx.state is ContextState.ACTIVE:
                outcome, error = _test_outcome(request.node)
                if outcome == "failed":
                    ctx.mark_failed(error)
                elif outcome == "skipped":
                    ctx.mark_skipped(str(error or ""))
                else:
                    ctx.mark_passed()
        finally:
            ctx.close()


# ================================================================================
# Flow Fixtures
# ================================================================================

@pytest.fixture
def login_flow(execution_context: TestExecutionContext) -> LoginFlow:
    """LoginFlow on an opened login page."""
    return LoginFlow.from_context(execution_context).open()


@pytest.fixture
def app_launcher_flow(execution_context: TestExecutionContext) -> AppLauncherFlow:
    return AppLauncherFlow.from_context(execution_context)


@pytest.fixture
def account_flow(execution_context: TestExecutionContext) -> AccountFlow:
    return AccountFlow.from_context(execution_context)


@pytest.fixture
def logged_in(
    request,
    login_flow: LoginFlow,
    run_settings: RunSettings,
) -> str:
    """
    Log in with the configured user; returns the landing URL.

    Tests marked `manual` get a bounded pause for the e-mailed verification
    code, ending early as soon as the org's landing page shows up.
    """
    login_flow.login(run_settings.username, run_settings.password)

    if request.node.get_closest_marker("manual"):
        page = login_flow.page
        ManualPause(
            run_settings.manual_pause_s,
            ready=lambda: any(fragment in page.url for fragment in URL_FRAGMENTS_LOGGED_IN),
            poll_interval_s=run_settings.poll_interval_ms / 1000.0,
        ).wait("Please enter the verification code from your email")

    return login_flow.wait_until_logged_in()


@pytest.fixture(scope="session")
def test_data() -> dict:
    """Common test data for UI tests."""
    config = ConfigLoader()
    return {
        "invalid_user": {
            "username": "invalid@email.com",
            "password": "wrongpassword",
        },
        "search_account": config.get("data.search_account", "Berardo"),
    }
