"""Browser automation tools bound to a :class:`BrowserSession`.

Handlers only translate validated arguments into session calls and shape the
envelope; session errors propagate to the dispatcher.
"""

from typing import List

from zypin_mcp.browser import BrowserSession
from zypin_mcp.models import (
    CallEnvelope,
    EvaluateInput,
    FillFormInput,
    NavigateInput,
    NoArguments,
    ScreenshotInput,
    SelectOptionInput,
    SelectorInput,
    TypeTextInput,
    WaitForElementInput,
)
from zypin_mcp.registry import Tool


def create_browser_tools(session: BrowserSession) -> List[Tool]:
    """Build the browser tool catalog in listing order."""

    # Navigation Tools
    async def navigate(args: NavigateInput) -> CallEnvelope:
        url = await session.navigate(args.url)
        return CallEnvelope.ok(f"Navigated to {url}", {"url": url})

    async def go_back(args: NoArguments) -> CallEnvelope:
        url = await session.go_back()
        return CallEnvelope.ok("Navigated back", {"url": url})

    async def go_forward(args: NoArguments) -> CallEnvelope:
        url = await session.go_forward()
        return CallEnvelope.ok("Navigated forward", {"url": url})

    async def reload(args: NoArguments) -> CallEnvelope:
        url = await session.reload()
        return CallEnvelope.ok("Page reloaded", {"url": url})

    # DOM Interaction Tools
    async def click(args: SelectorInput) -> CallEnvelope:
        await session.click(args.selector)
        return CallEnvelope.ok(f"Clicked {args.selector}", {"selector": args.selector})

    async def type_text(args: TypeTextInput) -> CallEnvelope:
        await session.type_into(args.selector, args.text)
        return CallEnvelope.ok(
            f"Typed into {args.selector}", {"selector": args.selector, "text": args.text}
        )

    async def select_option(args: SelectOptionInput) -> CallEnvelope:
        selected = await session.select_option(args.selector, args.value)
        return CallEnvelope.ok(
            f"Selected {args.value!r} in {args.selector}",
            {"selector": args.selector, "selected": selected},
        )

    async def fill_form(args: FillFormInput) -> CallEnvelope:
        count = await session.fill_fields(args.fields)
        return CallEnvelope.ok(f"Filled {count} fields", {"fields": list(args.fields)})

    # Inspection Tools
    async def snapshot(args: NoArguments) -> CallEnvelope:
        page = await session.capture_snapshot()
        return CallEnvelope.ok(
            f"Snapshot of {page['url']} with {len(page['elements'])} interactive elements",
            page,
        )

    async def screenshot(args: ScreenshotInput) -> CallEnvelope:
        saved = await session.capture_screenshot(
            args.filename, full_page=args.full_page, selector=args.selector
        )
        return CallEnvelope.ok(f"Screenshot saved to {saved['path']}", saved)

    async def get_text(args: SelectorInput) -> CallEnvelope:
        text = await session.read_text(args.selector)
        return CallEnvelope.ok(data={"selector": args.selector, "text": text})

    async def get_current_url(args: NoArguments) -> CallEnvelope:
        url = await session.current_url()
        return CallEnvelope.ok(data={"url": url})

    async def get_title(args: NoArguments) -> CallEnvelope:
        title = await session.current_title()
        return CallEnvelope.ok(data={"title": title})

    # Utility Tools
    async def wait_for_element(args: WaitForElementInput) -> CallEnvelope:
        await session.wait_for_selector(args.selector, args.timeout)
        return CallEnvelope.ok(
            f"Element {args.selector} appeared",
            {"selector": args.selector, "timeout": args.timeout},
        )

    async def evaluate(args: EvaluateInput) -> CallEnvelope:
        result = await session.run_script(args.script)
        return CallEnvelope.ok("Script executed", {"result": result})

    async def close_browser(args: NoArguments) -> CallEnvelope:
        await session.close()
        return CallEnvelope.ok("Browser closed")

    return [
        Tool("navigate", "Navigate the browser to a URL", NavigateInput, navigate, "navigation"),
        Tool("go_back", "Go back in browser history", NoArguments, go_back, "navigation"),
        Tool("go_forward", "Go forward in browser history", NoArguments, go_forward, "navigation"),
        Tool("reload", "Reload the current page", NoArguments, reload, "navigation"),
        Tool("click", "Click an element", SelectorInput, click, "interaction"),
        Tool("type_text", "Type text into an input, replacing its value", TypeTextInput, type_text, "interaction"),
        Tool("select_option", "Select an option in a dropdown", SelectOptionInput, select_option, "interaction"),
        Tool("fill_form", "Fill several form fields in order", FillFormInput, fill_form, "interaction"),
        Tool(
            "snapshot",
            "Get the page URL, title and its interactive elements",
            NoArguments,
            snapshot,
            "inspection",
        ),
        Tool("screenshot", "Save a PNG screenshot of the page or an element", ScreenshotInput, screenshot, "inspection"),
        Tool("get_text", "Get the text content of an element", SelectorInput, get_text, "inspection"),
        Tool("get_current_url", "Get the current page URL", NoArguments, get_current_url, "inspection"),
        Tool("get_title", "Get the current page title", NoArguments, get_title, "inspection"),
        Tool(
            "wait_for_element",
            "Wait for an element to appear in the DOM",
            WaitForElementInput,
            wait_for_element,
            "utility",
        ),
        Tool("evaluate", "Execute JavaScript in the page", EvaluateInput, evaluate, "utility"),
        Tool("close_browser", "Close the browser session", NoArguments, close_browser, "utility"),
    ]
