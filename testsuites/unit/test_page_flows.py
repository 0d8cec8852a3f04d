import re

import pytest
from playwright.sync_api import Error as PlaywrightError

from testsuites.ui_testing.framework.errors import SessionLostError
from testsuites.ui_testing.framework.execution_context import ContextState, TestExecutionContext
from testsuites.ui_testing.framework.interaction_dispatcher import InteractionDispatcher
from testsuites.ui_testing.framework.page_flow import SPINNER
from testsuites.ui_testing.framework.wait_engine import WaitEngine
from testsuites.ui_testing.pages.account_flow import AccountFlow, xpath_literal
from testsuites.ui_testing.pages.app_launcher_flow import AppLauncherFlow
from testsuites.ui_testing.pages.login_flow import LoginFlow
from testsuites.unit.fakes import CLOSED_MESSAGE, FakeClock, FakeHandle, FakePage, FakeSession

BASE_URL = "https://login.salesforce.com"


def make_flow(cls, page, **kwargs):
    clock = FakeClock()
    engine = WaitEngine(page, default_timeout_ms=3000, clock=clock, sleep=clock.sleep)
    return cls(InteractionDispatcher(engine), base_url=BASE_URL, **kwargs)


class FakeAccountApp:
    """New-account form whose Save opens the record's detail view."""

    def __init__(self):
        self.page = FakePage(auto=True)
        self.saved = False
        self.name_field = FakeHandle(name="name field", log=self.page.log)
        self.save_button = FakeHandle(name="save", log=self.page.log, on_click=self._save)

        primary, alternative = (AccountFlow.ACCOUNT_NAME,) + AccountFlow.ACCOUNT_NAME.alternatives
        self.page.add(AccountFlow.NAME_FIELD.query, [self.name_field])
        self.page.add(AccountFlow.SAVE_BUTTON.query, [self.save_button])
        self.page.add(SPINNER.query, [])
        self.page.add(primary.query, self._detail_name)
        self.page.add(alternative.query, [])
        self.page.add(AccountFlow.SUCCESS_TOAST.query, self._toast)

    def _save(self):
        self.saved = True
        self.page.url = "https://org.lightning.force.com/lightning/r/Account/001/view"

    def _detail_name(self):
        return [FakeHandle(text=self.name_field.value)] if self.saved else []

    def _toast(self):
        if not self.saved:
            return []
        return [FakeHandle(text=f'Account "{self.name_field.value}" was created.')]


def test_created_account_name_reads_back_on_detail_view():
    app = FakeAccountApp()
    flow = make_flow(AccountFlow, app.page, name_factory=lambda: "Test Account 1700000000000")

    name = flow.create_account()

    assert name == flow.created_account_name == "Test Account 1700000000000"
    assert flow.read_account_name() == name
    assert name in flow.read_success_toast()
    assert "Account" in flow.current_url


def test_save_is_the_single_irreversible_action_after_the_form_is_filled():
    app = FakeAccountApp()
    flow = make_flow(AccountFlow, app.page)

    flow.create_account()

    saves = [i for i, entry in enumerate(app.page.log) if entry[0] == "save"]
    fill = app.page.log.index(("name field", "fill", flow.created_account_name))
    assert len(saves) == 1
    assert fill < saves[0]
    assert re.fullmatch(r"Test Account \d{13}", flow.created_account_name)


def test_combobox_options_are_clicked_programmatically():
    app = FakeAccountApp()
    flow = make_flow(AccountFlow, app.page)

    flow.create_account()

    option = AccountFlow.combobox_option("Customer - Direct").query
    assert (option, "click", "programmatic") in app.page.log
    industry = AccountFlow.combobox_option("Technology").query
    assert (industry, "click", "programmatic") in app.page.log


def test_search_account_opens_matching_record():
    page = FakePage(auto=True)
    page.add(SPINNER.query, [])
    link = AccountFlow.record_link("Berardo")

    def open_record():
        page.url = "https://org.lightning.force.com/lightning/r/Account/001/view"

    page.add(link.query, [FakeHandle(name="link", log=page.log, on_click=open_record)])
    flow = make_flow(AccountFlow, page)

    flow.search_account("Berardo")

    assert (AccountFlow.LIST_SEARCH.query, "press", "Enter") in page.log
    assert ("link", "click", "native") in page.log
    assert "Account" in flow.current_url


def test_xpath_literal_handles_quotes():
    assert xpath_literal("Acme") == "'Acme'"
    assert xpath_literal("O'Brien") == '"O\'Brien"'
    assert xpath_literal("5\" O'Clock") == "concat('5\" O', \"'\", 'Clock')"


def test_login_flow_submits_and_waits_for_lightning():
    page = FakePage(auto=True)

    def land():
        page.url = "https://org.lightning.force.com/lightning/page/home"

    page.add(LoginFlow.LOGIN_BUTTON.query, [FakeHandle(name="login", log=page.log, on_click=land)])
    page.add(LoginFlow.ERROR.query, [])
    flow = make_flow(LoginFlow, page).open()

    flow.login("user@example.com", "secret")

    assert flow.wait_until_logged_in().endswith("/home")
    assert (LoginFlow.USERNAME.query, "fill", "user@example.com") in page.log
    assert not flow.is_error_displayed(timeout_ms=1000)


def test_login_error_is_displayed_for_bad_credentials():
    page = FakePage(auto=True)
    page.add(LoginFlow.ERROR.query, [FakeHandle(text="Please check your username and password.")])
    flow = make_flow(LoginFlow, page)

    flow.login("invalid@email.com", "wrongpassword")

    assert flow.is_error_displayed()
    assert "check your username" in flow.read_error()


def test_app_launcher_opens_sales_app():
    page = FakePage(auto=True)

    def open_app():
        page.url = "https://org.lightning.force.com/lightning/page/home"

    page.add(
        AppLauncherFlow.SALES_APP.query,
        [FakeHandle(name="sales", log=page.log, on_click=open_app)],
    )
    page.add(AppLauncherFlow.APP_HEADER.query, [FakeHandle(text="Sales")])
    flow = make_flow(AppLauncherFlow, page)

    assert "lightning" in flow.open_sales_app()
    assert ("sales", "click", "programmatic") in page.log
    assert (AppLauncherFlow.SEARCH.query, "fill", "Sales") in page.log
    assert flow.read_app_header() == "Sales"


def test_flow_steps_are_recorded_on_the_owning_context():
    session = FakeSession(FakePage(auto=True))
    with TestExecutionContext("test_valid_login", lambda: session) as ctx:
        flow = LoginFlow.from_context(ctx)
        flow.login("user@example.com", "secret")

    assert flow.base_url == ctx.settings.app_url
    assert [step.label for step in ctx.steps] == [
        "Login as user@example.com",
        "Submit login form",
    ]
    assert all(step.status == "passed" for step in ctx.steps)


def test_lost_session_during_navigation_closes_without_capture():
    page = FakePage(auto=True)
    page.goto_error = CLOSED_MESSAGE
    capture_calls = []

    class Capture:
        def capture_failure(self, context, error=None):
            capture_calls.append(error)

    ctx = TestExecutionContext("test_valid_login", lambda: FakeSession(page), capture=Capture())

    with pytest.raises(SessionLostError):
        with ctx:
            LoginFlow.from_context(ctx).open()

    assert capture_calls == []
    assert ctx.state is ContextState.CLOSED


def test_navigation_timeout_is_not_a_lost_session():
    page = FakePage()
    page.goto_error = "Timeout 30000ms exceeded.\nnavigating to \"https://login.salesforce.com/\""
    flow = make_flow(LoginFlow, page)

    with pytest.raises(PlaywrightError):
        flow.navigate()


def test_current_url_on_closed_page_is_a_lost_session():
    page = FakePage()
    page.closed = True

    with pytest.raises(SessionLostError):
        make_flow(LoginFlow, page).current_url
