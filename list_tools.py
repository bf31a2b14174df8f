#!/usr/bin/env python3
"""List available tools in the Zypin MCP server."""

import json
import sys

from zypin_mcp.browser import BrowserSession
from zypin_mcp.config import ServerConfig
from zypin_mcp.server import build_registry


def list_tools(show_schema: bool = False):
    """Print the registered tools grouped by category."""
    config = ServerConfig()
    # Listing never launches the browser; the session stays unopened.
    registry = build_registry(BrowserSession(config), config)

    print("🛠️  Zypin MCP Server - Available Tools")
    print("=" * 50)
    print(f"📊 Total: {len(registry)} tools\n")

    categories = {}
    for tool in registry:
        categories.setdefault(tool.category or "other", []).append(tool)

    for category, tools in categories.items():
        print(f"📋 {category.title()}:")
        for tool in tools:
            print(f"   • {tool.name:25} - {tool.description}")
            if show_schema:
                print(json.dumps(tool.input_schema, indent=2))
        print()

    print("🚀 Usage:")
    print("   zypin-mcp                      # Start MCP server (stdio)")
    print("   zypin-mcp --headed             # Start with visible browser")
    print("   zypin-mcp --config config.json # Load settings from a JSON file")


if __name__ == "__main__":
    list_tools(show_schema="--schema" in sys.argv[1:])
