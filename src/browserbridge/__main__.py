"""
BrowserBridge — Entry Point

Usage:
    browserbridge                  # MCP server on stdio (Claude Desktop, Cursor, ...)
    browserbridge --http           # MCP server on streamable HTTP
    browserbridge --list-tools     # Show the tool table and exit
    browserbridge --setup-claude   # Register with Claude Desktop
    browserbridge --verbose        # Debug logging on stderr
"""

import argparse
import asyncio
import dataclasses
import sys

from browserbridge import __version__


def _suppress_shutdown_noise(loop: asyncio.AbstractEventLoop):
    """Suppress 'Future exception was never retrieved' from Playwright during shutdown."""
    original_handler = loop.get_exception_handler()

    def handler(loop, context):
        msg = context.get("message", "")
        exc = context.get("exception")
        # Suppress Playwright driver disconnection noise on shutdown
        if exc and "Connection closed while reading from the driver" in str(exc):
            return
        if "Future exception was never retrieved" in msg:
            if exc and "driver" in str(exc).lower():
                return
        if original_handler:
            original_handler(loop, context)
        else:
            loop.default_exception_handler(context)

    loop.set_exception_handler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="browserbridge",
        description="BrowserBridge — browser automation and Messenger tools over MCP",
        epilog="Examples:\n"
               "  browserbridge                 Run on stdio (for Claude Desktop)\n"
               "  browserbridge --http          Run on streamable HTTP\n"
               "  browserbridge --list-tools    Show available tools\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"browserbridge {__version__}")
    parser.add_argument("--http", action="store_true", help="Use the streamable HTTP transport instead of stdio")
    parser.add_argument("--headless", action="store_true", help="Run the browser without a window")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging (stderr)")
    parser.add_argument("--list-tools", action="store_true", help="Print the available tools and exit")
    parser.add_argument("--setup-claude", action="store_true", help="Add BrowserBridge to Claude Desktop config")
    return parser


def print_tool_table():
    """Render the tool list with rich (stderr, stdout may be a transport)."""
    from rich.console import Console
    from rich.table import Table

    from browserbridge.config import BrowserSettings
    from browserbridge.tools import create_dispatcher

    dispatcher = create_dispatcher(BrowserSettings())
    table = Table(title=f"BrowserBridge {__version__} tools")
    table.add_column("Tool", style="bold cyan", no_wrap=True)
    table.add_column("Required")
    table.add_column("Description")
    for schema in dispatcher.get_schemas():
        required = ", ".join(schema["inputSchema"].get("required", [])) or "-"
        table.add_row(schema["name"], required, schema["description"])
    Console(stderr=True).print(table)


async def async_main(argv: list[str] | None = None):
    """Async main entry point."""
    _suppress_shutdown_noise(asyncio.get_running_loop())

    args = build_parser().parse_args(argv)

    if args.list_tools:
        print_tool_table()
        return

    if args.setup_claude:
        from browserbridge.mcp_server import setup_claude_desktop
        setup_claude_desktop()
        return

    from browserbridge.logging_config import setup_logging
    logger = setup_logging(verbose=args.verbose)

    from browserbridge.config import load_settings
    from browserbridge.errors import ConfigError

    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"[!] Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    if args.headless:
        settings = dataclasses.replace(settings, headless=True)

    logger.info("BrowserBridge starting", extra={"url": settings.messenger_url})

    from browserbridge.mcp_server import run_mcp_server
    await run_mcp_server(transport="http" if args.http else "stdio", settings=settings)


def main():
    """Sync entry point for console_scripts (pyproject.toml)."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    main()
