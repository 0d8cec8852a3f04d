"""
Fake Playwright objects for offline framework tests.

FakePage maps selector queries ("xpath=//a[@title='New']") to element
handles. Entries may be a list or a callable returning a list, so tests can
make the document change over time.
"""

from typing import Callable, Dict, List, Optional, Sequence, Union

from playwright.sync_api import Error as PlaywrightError

from testsuites.ui_testing.framework.interaction_dispatcher import (
    PROGRAMMATIC_CLICK_SCRIPT,
    SET_VALUE_SCRIPT,
)
from testsuites.ui_testing.framework.wait_engine import HIT_TEST_SCRIPT

STALE_MESSAGE = "Element is not attached to the DOM"
CLOSED_MESSAGE = "Target page, context or browser has been closed"
OVERLAY_MESSAGE = (
    "Timeout 2000ms exceeded.\n"
    "<div class=\"slds-spinner_container\"></div> intercepts pointer events"
)

Flag = Union[bool, Callable[[], bool]]


def _flag(value: Flag) -> bool:
    return value() if callable(value) else value


class FakeClock:
    """Monotonic clock advanced only by `sleep`."""

    def __init__(self, now: float = 0.0):
        self.now = now
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeHandle:
    def __init__(
        self,
        name: str = "node",
        visible: Flag = True,
        enabled: Flag = True,
        unobstructed: Flag = True,
        size=(100, 20),
        text: str = "",
        detached: Flag = False,
        click_error: Optional[str] = None,
        script_click_error: Optional[str] = None,
        on_click: Optional[Callable[[], None]] = None,
        log: Optional[List] = None,
    ):
        self.name = name
        self.visible = visible
        self.enabled = enabled
        self.unobstructed = unobstructed
        self.size = size
        self.text = text
        self.value = ""
        self.detached = detached
        self.click_error = click_error
        self.script_click_error = script_click_error
        self.on_click = on_click
        self.log = log if log is not None else []
        self.calls: List[str] = []

    def _touch(self, call: str) -> None:
        self.calls.append(call)
        if _flag(self.detached):
            raise PlaywrightError(STALE_MESSAGE)

    def _record(self, action: str, detail=None) -> None:
        self.log.append((self.name, action, detail))

    # geometry / state
    def is_visible(self) -> bool:
        self._touch("is_visible")
        return _flag(self.visible)

    def bounding_box(self):
        self._touch("bounding_box")
        width, height = self.size
        return {"x": 0, "y": 0, "width": width, "height": height}

    def is_enabled(self) -> bool:
        self._touch("is_enabled")
        return _flag(self.enabled)

    # actions
    def click(self, timeout=None) -> None:
        self._touch("click")
        if self.click_error:
            raise PlaywrightError(self.click_error)
        self._record("click", "native")
        if self.on_click:
            self.on_click()

    def evaluate(self, script: str, arg=None):
        self._touch("evaluate")
        if script == HIT_TEST_SCRIPT:
            return _flag(self.unobstructed)
        if script == PROGRAMMATIC_CLICK_SCRIPT:
            self.calls.append("script_click")
            if self.script_click_error:
                raise PlaywrightError(self.script_click_error)
            self._record("click", "programmatic")
            if self.on_click:
                self.on_click()
            return None
        if script == SET_VALUE_SCRIPT:
            self.value = arg
            self._record("set_value", arg)
            return None
        raise AssertionError(f"unexpected script: {script}")

    def fill(self, text: str) -> None:
        self._touch("fill")
        self.value = text
        self._record("fill", text)

    def dispatch_event(self, event_type: str) -> None:
        self._touch("dispatch_event")
        self._record("event", event_type)

    def press(self, key: str) -> None:
        self._touch("press")
        self._record("press", key)

    def hover(self, timeout=None) -> None:
        self._touch("hover")
        self._record("hover")

    def scroll_into_view_if_needed(self) -> None:
        self._touch("scroll")

    def inner_text(self) -> str:
        self._touch("inner_text")
        return self.text

    def text_content(self) -> str:
        self._touch("text_content")
        return self.text

    def __repr__(self) -> str:
        return f"<FakeHandle {self.name}>"


class FakeLocator:
    def __init__(self, page: "FakePage", queries: Sequence[str]):
        self.page = page
        self.queries = list(queries)

    def or_(self, other: "FakeLocator") -> "FakeLocator":
        return FakeLocator(self.page, self.queries + other.queries)

    def element_handles(self) -> List[FakeHandle]:
        self.page.resolutions += 1
        if self.page.closed:
            raise PlaywrightError(CLOSED_MESSAGE)
        handles: List[FakeHandle] = []
        for query in self.queries:
            handles.extend(self.page.handles_for(query))
        return handles


class FakePage:
    def __init__(
        self,
        elements: Optional[Dict[str, object]] = None,
        url: str = "https://example.my.salesforce.com/",
        auto: bool = False,
    ):
        self.elements: Dict[str, object] = dict(elements or {})
        self.url = url
        self.auto = auto
        self.closed = False
        self.resolutions = 0
        self.queries: List[str] = []
        self.log: List = []
        self.screenshot_error: Optional[str] = None
        self.goto_error: Optional[str] = None
        self.screenshots = 0

    def add(self, query: str, entry) -> None:
        self.elements[query] = entry

    def handles_for(self, query: str) -> List[FakeHandle]:
        if query not in self.elements:
            if not self.auto:
                return []
            self.elements[query] = [FakeHandle(name=query, log=self.log)]
        entry = self.elements[query]
        return list(entry() if callable(entry) else entry)

    def locator(self, query: str) -> FakeLocator:
        self.queries.append(query)
        return FakeLocator(self, [query])

    def goto(self, url: str, wait_until=None) -> None:
        if self.goto_error:
            raise PlaywrightError(self.goto_error)
        self.url = url

    def is_closed(self) -> bool:
        return self.closed

    def screenshot(self, full_page: bool = False) -> bytes:
        if self.screenshot_error:
            raise PlaywrightError(self.screenshot_error)
        self.screenshots += 1
        return b"\x89PNG\r\n\x1a\nfake"


class FakeSession:
    """Stands in for BrowserSession: counts releases."""

    def __init__(self, page: Optional[FakePage] = None, label: str = "session"):
        self.page = page or FakePage()
        self.label = label
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def is_alive(self) -> bool:
        return not self.closed

    def close(self) -> None:
        self.close_calls += 1
