"""
BrowserBridge - Test Configuration

Shared fixtures for all tests.

FakePage / FakeContext stand in for Playwright objects. Every browser
interaction is appended to a shared ``calls`` log so tests can assert on
ordering. ``wait_for_timeout`` yields to the event loop, so concurrent
calls *would* interleave if nothing serialized them.
"""

import asyncio
from typing import Any

import pytest
from playwright.async_api import Error as PlaywrightError

from browserbridge.config import BrowserSettings
from browserbridge.session import BrowserSession, SessionManager
from browserbridge.tools import create_dispatcher
from browserbridge.tools.messenger import MessengerWorkflows, WorkflowTimings
from browserbridge.tools.web import WebTools


# ═══════════════════════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════════════════════


class FakeElement:
    def __init__(self, page: "FakePage", selector: str, text: str = ""):
        self.page = page
        self.selector = selector
        self.text = text

    async def click(self):
        self.page.record("click", self.selector, self.text)

    async def fill(self, value: str):
        self.page.record("fill", self.selector, value)

    async def set_input_files(self, path: str):
        self.page.record("set_input_files", self.selector, path)

    async def text_content(self):
        return self.text


class FakeKeyboard:
    def __init__(self, page: "FakePage"):
        self.page = page

    async def press(self, key: str):
        self.page.record("press", key)


class FakePage:
    def __init__(self, context: "FakeContext", url: str = "about:blank", title: str = ""):
        self.context = context
        self.url = url
        self._title = title
        self.elements: dict[str, list[FakeElement]] = {}
        self.eval_results: dict[str, Any] = {}
        self.errors: dict[tuple, Exception] = {}
        self.timeouts: dict[str, int] = {}
        self.keyboard = FakeKeyboard(self)
        self.closed = False
        # Elements that show up once goto() has loaded the page
        self.on_goto: dict[str, list[str]] = {}

    # ── helpers for tests ──

    def add(self, selector: str, *texts: str) -> list[FakeElement]:
        elements = [FakeElement(self, selector, text) for text in (texts or ("",))]
        self.elements.setdefault(selector, []).extend(elements)
        return elements

    def fail(self, exc: Exception, *key: str):
        """Raise ``exc`` on the recorded call matching ``key`` (e.g. ('fill', sel))."""
        self.errors[key] = exc

    def record(self, *call):
        self.context.calls.append((self,) + call)
        for key, exc in self.errors.items():
            if call[:len(key)] == key:
                raise exc

    # ── Playwright Page surface ──

    def is_closed(self) -> bool:
        return self.closed

    def set_default_timeout(self, ms: int):
        self.timeouts["action"] = ms

    def set_default_navigation_timeout(self, ms: int):
        self.timeouts["navigation"] = ms

    async def goto(self, url: str):
        self.record("goto", url)
        self.url = url
        for selector, texts in self.on_goto.items():
            self.add(selector, *texts)

    async def wait_for_load_state(self, state: str = "load"):
        self.record("wait_for_load_state", state)

    async def query_selector(self, selector: str):
        self.record("query", selector)
        found = self.elements.get(selector)
        return found[0] if found else None

    async def query_selector_all(self, selector: str):
        self.record("query_all", selector)
        return list(self.elements.get(selector, []))

    async def eval_on_selector_all(self, selector: str, expression: str, arg: Any = None):
        self.record("eval_all", selector, arg)
        if selector in self.eval_results:
            return self.eval_results[selector]
        return [el.text for el in self.elements.get(selector, []) if el.text]

    async def wait_for_timeout(self, ms: int):
        self.record("wait", ms)
        await asyncio.sleep(0)

    async def title(self) -> str:
        return self._title

    async def click(self, selector: str):
        self.record("page_click", selector)

    async def fill(self, selector: str, value: str):
        self.record("page_fill", selector, value)

    async def evaluate(self, expression: str, arg: Any = None):
        self.record("evaluate", expression)
        return self.eval_results.get("__evaluate__")

    async def wait_for_selector(self, selector: str, timeout: float | None = None):
        self.record("wait_for_selector", selector, timeout)

    async def screenshot(self, full_page: bool = False) -> bytes:
        self.record("screenshot", full_page)
        return b"\x89PNG fake"

    async def bring_to_front(self):
        self.record("bring_to_front")

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self):
        self.pages: list[FakePage] = []
        self.calls: list[tuple] = []
        self.closed = False

    def close_window(self):
        """Simulate the user closing the browser window: every page and the context die."""
        for page in self.pages:
            page.closed = True
        self.pages.clear()
        self.closed = True

    async def new_page(self) -> FakePage:
        if self.closed:
            raise PlaywrightError("Target page, context or browser has been closed")
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakePlaywright:
    def __init__(self):
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakeLauncher:
    """Launcher that builds fake sessions; can be told to fail."""

    def __init__(self, failures: int = 0):
        self.attempts = 0
        self.failures = failures
        self.sessions: list[BrowserSession] = []
        self.setup = None  # callable(page) to prepare each new page

    async def __call__(self, settings: BrowserSettings) -> BrowserSession:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise RuntimeError("Executable doesn't exist at /ms-playwright/msedge")
        context = FakeContext()
        page = await context.new_page()
        if self.setup:
            self.setup(page)
        session = BrowserSession(playwright=FakePlaywright(), browser=None, context=context, active_page=page)
        self.sessions.append(session)
        return session


def messenger_page(page: FakePage, results: tuple[str, ...] = ("Alice Smith",)):
    """Prepare a logged-in Messenger page with search results."""
    from browserbridge.tools.messenger import SELECTORS

    page.url = "https://www.messenger.com/t/1"
    page.add(SELECTORS["search_input"])
    if results:
        page.add(SELECTORS["search_result"], *results)
    page.add(SELECTORS["message_input"])
    page.add(SELECTORS["file_input"])
    return page


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def settings():
    return BrowserSettings(browser_type="chromium", headless=True)


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def failing_launcher():
    """Launcher whose first attempt fails like a missing browser install."""
    return FakeLauncher(failures=1)


@pytest.fixture
def prepare_messenger():
    return messenger_page


@pytest.fixture
def session(settings, launcher):
    return SessionManager(settings, launcher=launcher)


@pytest.fixture
def no_wait():
    return WorkflowTimings(search_settle=0, select_settle=0, send_settle=0, upload_settle=0)


@pytest.fixture
def workflows(session, settings, no_wait):
    return MessengerWorkflows(session, settings, no_wait)


@pytest.fixture
def web(session):
    return WebTools(session)


@pytest.fixture
def dispatcher(settings, session, no_wait):
    return create_dispatcher(settings, session=session, timings=no_wait)
