"""Fake Playwright objects for exercising the session without a real browser."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from zypin_mcp.browser import BrowserSession
from zypin_mcp.config import ServerConfig


class FakePage:
    def __init__(self):
        self.url = "about:blank"
        self.page_title = ""
        self.default_timeout: Optional[int] = None
        self.values: Dict[str, str] = {}
        self.texts: Dict[str, str] = {}
        self.clicked: List[str] = []
        self.history: List[str] = []
        self.present: set = set()
        self.elements: List[Dict[str, Any]] = []
        self.evaluate_result: Any = None
        self.evaluate_error: Optional[Exception] = None
        self.wait_calls: List[tuple] = []

    def set_default_timeout(self, timeout: int) -> None:
        self.default_timeout = timeout

    async def goto(self, url: str):
        if url.startswith("bad://"):
            raise PlaywrightError(f"net::ERR_ABORTED at {url}")
        self.history.append(url)
        self.url = url

    async def go_back(self):
        if len(self.history) > 1:
            self.history.pop()
            self.url = self.history[-1]

    async def go_forward(self):
        return None

    async def reload(self):
        return None

    async def click(self, selector: str):
        if selector.startswith("##"):
            raise PlaywrightError(f'Unexpected token "#" while parsing css selector "{selector}"')
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout 30000ms exceeded waiting for {selector}")
        self.clicked.append(selector)

    async def fill(self, selector: str, value: str):
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout 30000ms exceeded waiting for {selector}")
        self.values[selector] = value

    async def select_option(self, selector: str, value: str):
        self.values[selector] = value
        return [value]

    async def text_content(self, selector: str):
        if selector in self.values:
            return self.values[selector]
        return self.texts.get(selector)

    async def title(self) -> str:
        return self.page_title

    async def wait_for_selector(self, selector: str, timeout: Optional[int] = None):
        self.wait_calls.append((selector, timeout))
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def evaluate(self, script: str, arg: Any = None):
        if self.evaluate_error is not None:
            raise self.evaluate_error
        if arg is not None:
            return self.elements
        return self.evaluate_result

    async def screenshot(self, path: Optional[str] = None, full_page: bool = False) -> bytes:
        data = b"\x89PNG fake"
        if path:
            with open(path, "wb") as fh:
                fh.write(data)
        return data

    async def query_selector(self, selector: str):
        return None


class FakeContext:
    def __init__(self, viewport: Dict[str, int]):
        self.viewport = viewport
        self.page = FakePage()
        self.closed = False

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, headless: bool):
        self.headless = headless
        self.context: Optional[FakeContext] = None
        self.closed = False
        self.close_error: Optional[Exception] = None

    async def new_context(self, viewport: Dict[str, int]) -> FakeContext:
        self.context = FakeContext(viewport)
        return self.context

    async def close(self):
        if self.close_error is not None:
            raise self.close_error
        self.closed = True


class FakeBrowserType:
    def __init__(self, name: str):
        self.name = name
        self.launch_count = 0
        self.failures_left = 0
        self.browser: Optional[FakeBrowser] = None
        self.launch_started = asyncio.Event()
        self.release_launch: Optional[asyncio.Event] = None

    async def launch(self, headless: bool = True) -> FakeBrowser:
        self.launch_count += 1
        self.launch_started.set()
        if self.release_launch is not None:
            await self.release_launch.wait()
        if self.failures_left:
            self.failures_left -= 1
            raise PlaywrightError("Executable doesn't exist")
        self.browser = FakeBrowser(headless)
        return self.browser


class FakePlaywright:
    def __init__(self):
        self.chromium = FakeBrowserType("chromium")
        self.firefox = FakeBrowserType("firefox")
        self.webkit = FakeBrowserType("webkit")
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakePlaywrightFactory:
    """Stands in for ``async_playwright``; every start returns the same driver."""

    def __init__(self):
        self.playwright = FakePlaywright()
        self.start_count = 0

    def __call__(self):
        return self

    async def start(self) -> FakePlaywright:
        self.start_count += 1
        return self.playwright


@pytest.fixture
def fake_playwright() -> FakePlaywrightFactory:
    return FakePlaywrightFactory()


@pytest.fixture
def session(fake_playwright) -> BrowserSession:
    return BrowserSession(ServerConfig(), playwright_factory=fake_playwright)


@pytest.fixture
def fake_page(session, fake_playwright):
    """Return a function that opens ``session`` and hands back its fake page."""

    async def _open() -> FakePage:
        await session.ensure_open()
        return fake_playwright.playwright.chromium.browser.context.page

    return _open
