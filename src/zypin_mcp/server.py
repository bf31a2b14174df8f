"""Zypin MCP Server - MCP transport wiring and command-line entry point."""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from typing import Any, Callable, Dict, List, Optional

import mcp.server.stdio
import mcp.types as types
from mcp.server.lowlevel import Server

from zypin_mcp import __version__
from zypin_mcp.browser import BrowserSession
from zypin_mcp.config import BrowserKind, ServerConfig, apply_overrides, load_config
from zypin_mcp.dispatcher import Dispatcher
from zypin_mcp.errors import InvalidConfigError
from zypin_mcp.registry import ToolRegistry
from zypin_mcp.scaffold import create_scaffold_tools
from zypin_mcp.tools import create_browser_tools


logger = logging.getLogger(__name__)

SERVER_NAME = "zypin-mcp"
SHUTDOWN_TIMEOUT = 10.0


def build_registry(session: BrowserSession, config: ServerConfig) -> ToolRegistry:
    """Register every tool, browser tools first."""
    registry = ToolRegistry()
    registry.extend(create_browser_tools(session))
    registry.extend(create_scaffold_tools(config))
    return registry


def create_server(dispatcher: Dispatcher) -> Server:
    """Expose ``dispatcher`` through an MCP server."""
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def handle_list_tools() -> List[types.Tool]:
        return [
            types.Tool(
                name=entry["name"],
                description=entry["description"],
                inputSchema=entry["inputSchema"],
            )
            for entry in dispatcher.list_tools()
        ]

    # Arguments are validated by the dispatcher so failures come back as envelopes.
    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> types.CallToolResult:
        outcome = await dispatcher.call_tool(name, arguments)
        text = json.dumps(outcome.to_payload(), indent=2, default=str)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=text)],
            isError=outcome.is_error,
        )

    return server


class ShutdownHook:
    """Closes the browser session and ends the process on the first termination signal.

    The stdio transport reads stdin from a worker thread that cancellation
    cannot interrupt, so the signal path releases the session itself and then
    exits instead of waiting for the server task to unwind.
    """

    def __init__(
        self,
        session: BrowserSession,
        timeout: float = SHUTDOWN_TIMEOUT,
        exit_process: Callable[[int], Any] = os._exit,
    ):
        self.session = session
        self.timeout = timeout
        self.triggered = False
        self._exit_process = exit_process
        self._shutdown_task: Optional[asyncio.Task] = None
        self._signals: List[signal.Signals] = []

    def install(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
                self._signals.append(sig)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handler for %s not supported on this platform", sig.name)

    def uninstall(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals = []

    def _on_signal(self, sig: signal.Signals) -> None:
        if self.triggered:
            logger.debug("Ignoring %s, shutdown already in progress", sig.name)
            return
        self.triggered = True
        logger.info("Received %s, shutting down...", sig.name)
        self._shutdown_task = asyncio.get_running_loop().create_task(self._shutdown())

    async def _shutdown(self) -> None:
        await self.release()
        logger.info("Shutdown complete")
        logging.shutdown()
        self._exit_process(0)

    async def release(self) -> None:
        """Close the session within ``timeout`` seconds; failures are only logged."""
        try:
            await asyncio.wait_for(self.session.close(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("Browser did not close within %.1fs", self.timeout)
        except Exception as exc:
            logger.error("Error during shutdown: %s", exc)


async def serve(config: ServerConfig) -> None:
    """Run the MCP server on stdio until the client disconnects or a signal arrives."""
    # The browser is launched lazily by the first tool that needs it.
    session = BrowserSession(config)
    dispatcher = Dispatcher(build_registry(session, config))
    server = create_server(dispatcher)

    hook = ShutdownHook(session)
    hook.install()
    try:
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            logger.info("Zypin MCP Server started successfully")
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        hook.uninstall()
        await hook.release()
        logger.info("Server stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zypin-mcp", description="Simple MCP server for browser automation"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-b",
        "--browser",
        choices=[kind.value for kind in BrowserKind],
        help="Browser to use (default: chromium)",
    )
    parser.add_argument(
        "--headless",
        dest="headless",
        action="store_true",
        default=None,
        help="Run browser in headless mode (default)",
    )
    parser.add_argument(
        "--headed",
        dest="headless",
        action="store_false",
        help="Run browser in headed mode",
    )
    parser.add_argument("-w", "--width", type=int, help="Viewport width (default: 1280)")
    parser.add_argument("-l", "--height", type=int, help="Viewport height (default: 720)")
    parser.add_argument(
        "-t", "--timeout", type=int, help="Default timeout in milliseconds (default: 30000)"
    )
    parser.add_argument("-c", "--config", help="Path to a JSON config file")
    parser.add_argument(
        "--templates-dir",
        dest="templates_dir",
        help="Directory of <package>/<template> folders used to list templates",
    )
    parser.add_argument(
        "--screenshot-dir",
        dest="screenshot_dir",
        help="Directory relative screenshot paths are saved under",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (logs go to stderr)",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> ServerConfig:
    """Config file values first, then explicit command-line flags."""
    config = load_config(args.config)
    return apply_overrides(
        config,
        {
            "browser": args.browser,
            "headless": args.headless,
            "width": args.width,
            "height": args.height,
            "timeout": args.timeout,
            "templates_dir": args.templates_dir,
            "screenshot_dir": args.screenshot_dir,
        },
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # stdout carries the protocol, so logs must go to stderr.
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = resolve_config(args)
    except InvalidConfigError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    logger.info("Starting Zypin MCP Server...")
    logger.info("Browser: %s, Headless: %s", config.browser.value, config.headless)
    logger.info("Viewport: %sx%s", config.viewport.width, config.viewport.height)

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
