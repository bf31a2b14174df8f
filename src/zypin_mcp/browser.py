"""Lazily opened Playwright browser session shared by all browser tools."""

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from zypin_mcp.config import ServerConfig
from zypin_mcp.errors import (
    AutomationFailure,
    ElementNotFoundError,
    LaunchFailedError,
    OperationTimeoutError,
    ResourceClosedError,
    ScriptError,
    ZypinError,
)


logger = logging.getLogger(__name__)

DEFAULT_WAIT_TIMEOUT = 5000

INTERACTIVE_SELECTOR = 'a, button, input, select, textarea, [onclick], [role="button"]'

SNAPSHOT_SCRIPT = """
(selector) => Array.from(document.querySelectorAll(selector)).map((el, index) => ({
  index,
  tag: el.tagName.toLowerCase(),
  text: (el.textContent || '').trim() || el.value || el.placeholder || '',
  type: el.getAttribute('type') || el.type || '',
  role: el.getAttribute('role') || '',
  id: el.id || '',
  className: typeof el.className === 'string' ? el.className : (el.getAttribute('class') || ''),
}))
"""

# Engine messages that mean the selector itself is unusable or matched nothing.
_SELECTOR_ERROR_MARKERS = (
    "while parsing",
    "is not a valid selector",
    "unknown engine",
    "no node found",
    "failed to find element",
    "element is not attached",
)


class SessionState(str, Enum):
    """Lifecycle of a browser session. CLOSED is terminal."""

    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class BrowserHandle:
    """Playwright objects owned by an open session."""

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page


def _translate_error(exc: Exception, action: str) -> ZypinError:
    """Map a Playwright failure onto the session error types."""
    message = str(exc)
    if isinstance(exc, PlaywrightTimeoutError):
        return OperationTimeoutError(f"{action} timed out: {message}")
    lowered = message.lower()
    if any(marker in lowered for marker in _SELECTOR_ERROR_MARKERS):
        return ElementNotFoundError(f"{action} failed: {message}")
    return AutomationFailure(f"{action} failed: {message}")


def _keep_snapshot_element(element: Dict[str, Any]) -> bool:
    return bool(element.get("text") or element.get("id") or element.get("className"))


class BrowserSession:
    """One browser, one context, one page, opened on first use.

    The session moves ``UNOPENED -> OPEN -> CLOSED``. Every primitive calls
    :meth:`ensure_open` first, so the engine is only launched once a tool
    actually needs it. A failed launch leaves the session ``UNOPENED`` and can
    be retried; once closed the session stays closed.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        self.config = config or ServerConfig()
        self._playwright_factory = playwright_factory
        self._handle: Optional[BrowserHandle] = None
        self._state = SessionState.UNOPENED
        self._open_lock = asyncio.Lock()
        self.launch_count = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is SessionState.OPEN

    async def ensure_open(self) -> BrowserHandle:
        """Open the browser if needed and return the live handle."""
        if self._state is SessionState.OPEN and self._handle is not None:
            return self._handle
        if self._state is SessionState.CLOSED:
            raise ResourceClosedError()

        async with self._open_lock:
            # Another caller may have finished opening (or closed) while we waited.
            if self._state is SessionState.CLOSED:
                raise ResourceClosedError()
            if self._state is SessionState.OPEN and self._handle is not None:
                return self._handle
            self._handle = await self._launch()
            self._state = SessionState.OPEN
            self.launch_count += 1
            return self._handle

    open = ensure_open

    async def _launch(self) -> BrowserHandle:
        """Start Playwright and create the browser, context and page."""
        kind = self.config.browser.value
        logger.info(
            "Starting %s browser (headless=%s, viewport=%sx%s)",
            kind,
            self.config.headless,
            self.config.viewport.width,
            self.config.viewport.height,
        )
        playwright = None
        browser = None
        context = None
        try:
            playwright = await self._playwright_factory().start()
            browser_type = getattr(playwright, kind)
            browser = await browser_type.launch(headless=self.config.headless)
            context = await browser.new_context(
                viewport={
                    "width": self.config.viewport.width,
                    "height": self.config.viewport.height,
                }
            )
            page = await context.new_page()
            page.set_default_timeout(self.config.timeout)
        except Exception as exc:
            logger.error("Failed to launch browser: %s", exc)
            await _release(playwright, browser, context)
            raise LaunchFailedError(f"Failed to launch browser: {exc}") from exc
        except BaseException:
            # Cancelled mid-launch: stop whatever already started before propagating.
            await _release(playwright, browser, context)
            raise

        logger.info("Browser started successfully")
        return BrowserHandle(playwright=playwright, browser=browser, context=context, page=page)

    async def _page(self) -> Page:
        handle = await self.ensure_open()
        return handle.page

    # Navigation

    async def navigate(self, url: str) -> str:
        page = await self._page()
        try:
            await page.goto(url)
        except PlaywrightError as exc:
            raise _translate_error(exc, f"Navigation to {url}") from exc
        return page.url

    async def go_back(self) -> str:
        page = await self._page()
        try:
            await page.go_back()
        except PlaywrightError as exc:
            raise _translate_error(exc, "Go back") from exc
        return page.url

    async def go_forward(self) -> str:
        page = await self._page()
        try:
            await page.go_forward()
        except PlaywrightError as exc:
            raise _translate_error(exc, "Go forward") from exc
        return page.url

    async def reload(self) -> str:
        page = await self._page()
        try:
            await page.reload()
        except PlaywrightError as exc:
            raise _translate_error(exc, "Reload") from exc
        return page.url

    # Interaction

    async def click(self, selector: str) -> None:
        page = await self._page()
        try:
            await page.click(selector)
        except PlaywrightError as exc:
            raise _translate_error(exc, f"Click on {selector}") from exc

    async def type_into(self, selector: str, text: str) -> None:
        """Replace the content of an input with ``text``."""
        page = await self._page()
        try:
            await page.fill(selector, text)
        except PlaywrightError as exc:
            raise _translate_error(exc, f"Typing into {selector}") from exc

    async def select_option(self, selector: str, value: str) -> List[str]:
        page = await self._page()
        try:
            return await page.select_option(selector, value)
        except PlaywrightError as exc:
            raise _translate_error(exc, f"Selecting {value!r} in {selector}") from exc

    async def fill_fields(self, fields: Dict[str, str]) -> int:
        """Fill each selector in insertion order, one after another."""
        page = await self._page()
        for selector, value in fields.items():
            try:
                await page.fill(selector, value)
            except PlaywrightError as exc:
                raise _translate_error(exc, f"Filling {selector}") from exc
        return len(fields)

    # Inspection

    async def read_text(self, selector: str) -> Optional[str]:
        page = await self._page()
        try:
            return await page.text_content(selector)
        except PlaywrightError as exc:
            raise _translate_error(exc, f"Reading text of {selector}") from exc

    async def current_url(self) -> str:
        page = await self._page()
        return page.url

    async def current_title(self) -> str:
        page = await self._page()
        try:
            return await page.title()
        except PlaywrightError as exc:
            raise _translate_error(exc, "Reading title") from exc

    async def wait_for_selector(self, selector: str, timeout_ms: int = DEFAULT_WAIT_TIMEOUT) -> None:
        page = await self._page()
        try:
            await page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightError as exc:
            raise _translate_error(exc, f"Waiting for {selector}") from exc

    async def run_script(self, code: str) -> Any:
        page = await self._page()
        try:
            return await page.evaluate(code)
        except PlaywrightTimeoutError as exc:
            raise OperationTimeoutError(f"Script timed out: {exc}") from exc
        except PlaywrightError as exc:
            raise ScriptError(f"Script error: {exc}") from exc

    async def capture_screenshot(
        self,
        path_hint: Optional[str] = None,
        full_page: bool = False,
        selector: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Save a PNG of the page (or one element) and return where it went."""
        page = await self._page()
        path = self._screenshot_path(path_hint)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            if selector:
                element = await page.query_selector(selector)
                if element is None:
                    raise ElementNotFoundError(f"Element not found: {selector}")
                data = await element.screenshot(path=str(path))
            else:
                data = await page.screenshot(path=str(path), full_page=full_page)
        except PlaywrightError as exc:
            raise _translate_error(exc, "Screenshot") from exc

        return {
            "path": str(path),
            "byte_size": len(data),
            "sha256": hashlib.sha256(data).hexdigest(),
        }

    def _screenshot_path(self, path_hint: Optional[str]) -> Path:
        if path_hint:
            path = Path(path_hint).expanduser()
        else:
            path = Path(f"screenshot-{int(time.time() * 1000)}.png")
        if not path.is_absolute() and self.config.screenshot_dir is not None:
            path = Path(self.config.screenshot_dir).expanduser() / path
        return path.absolute()

    async def capture_snapshot(self) -> Dict[str, Any]:
        """Return the page URL, title and its labelled interactive elements.

        Elements are listed in DOM order with their zero-based index among all
        matches; entries without text, id or class are dropped.
        """
        page = await self._page()
        try:
            title = await page.title()
            elements = await page.evaluate(SNAPSHOT_SCRIPT, INTERACTIVE_SELECTOR)
        except PlaywrightError as exc:
            raise _translate_error(exc, "Snapshot") from exc

        return {
            "url": page.url,
            "title": title,
            "elements": [el for el in elements or [] if _keep_snapshot_element(el)],
        }

    async def close(self) -> None:
        """Release the browser. Idempotent; teardown errors are only logged.

        Waits for an in-flight launch so a browser started concurrently is not leaked.
        """
        async with self._open_lock:
            if self._state is not SessionState.OPEN:
                return
            handle = self._handle
            self._state = SessionState.CLOSED
            self._handle = None
            logger.info("Closing browser...")
            if handle is not None:
                await _release(handle.playwright, handle.browser, handle.context)


async def _release(
    playwright: Optional[Playwright],
    browser: Optional[Browser],
    context: Optional[BrowserContext],
) -> None:
    """Close whatever part of a Playwright stack exists, logging failures."""
    try:
        if context is not None:
            await context.close()
    except Exception as exc:
        logger.error("Error closing browser context: %s", exc)

    try:
        if browser is not None:
            await browser.close()
    except Exception as exc:
        logger.error("Error closing browser: %s", exc)

    try:
        if playwright is not None:
            await playwright.stop()
    except Exception as exc:
        logger.error("Error stopping playwright: %s", exc)
