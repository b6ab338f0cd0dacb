"""
BrowserBridge — MCP Server

Integration point for Claude Desktop, Cursor, VS Code Copilot,
and any MCP-compliant host.

Exposes:
    - 6 Messenger tools (list, search, send message, read, send file, info)
    - 12 web tools (navigate, click, type, screenshot, tabs, ...)

Transports:
    - stdio (default): For local MCP hosts (Claude Desktop)
    - streamable-http: For remote clients

Architecture:
    FastMCP declares the tools and their parameters. Every tool body is a
    one-line forward to ToolDispatcher, which validates, serializes and
    runs the call and returns the JSON text of its ToolResult.
"""

import json
import logging
import platform
import shutil
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from browserbridge.config import BrowserSettings, load_settings
from browserbridge.errors import ToolProtocolError
from browserbridge.tools import ToolDispatcher, create_dispatcher

logger = logging.getLogger("browserbridge.mcp")

_READ_ONLY = {"readOnlyHint": True, "destructiveHint": False, "idempotentHint": True, "openWorldHint": True}
_ACTION = {"readOnlyHint": False, "destructiveHint": False, "idempotentHint": False, "openWorldHint": True}
_SENDING = {"readOnlyHint": False, "destructiveHint": True, "idempotentHint": False, "openWorldHint": True}


def create_mcp_server(
    settings: Optional[BrowserSettings] = None,
    dispatcher: Optional[ToolDispatcher] = None,
) -> FastMCP:
    """Create and configure the BrowserBridge MCP server.

    Returns:
        FastMCP server instance with all tools registered.
    """
    if dispatcher is None:
        dispatcher = create_dispatcher(settings or load_settings())

    @asynccontextmanager
    async def lifespan(server: FastMCP):
        try:
            yield {"dispatcher": dispatcher}
        finally:
            # Don't leave a browser window behind when the host disconnects
            await dispatcher.close()

    mcp = FastMCP(
        "browserbridge",
        instructions=(
            "Drive a real browser: Messenger conversations (list, search, send, read) "
            "and generic page actions. All tools act on one shared active tab and run "
            "one at a time. If a Messenger tool reports that login is required, ask the "
            "user to log in in the browser window and try again."
        ),
        lifespan=lifespan,
    )

    async def _call(name: str, **args: Any) -> str:
        try:
            return await dispatcher.call(name, {k: v for k, v in args.items() if v is not None})
        except ToolProtocolError as e:
            raise ToolError(str(e)) from e

    # ═════════════════════════════════════════════════════════════════════
    # Messenger
    # ═════════════════════════════════════════════════════════════════════

    @mcp.tool(annotations={"title": "List Messenger Conversations", **_READ_ONLY})
    async def messenger_list_conversations() -> str:
        """List recent Messenger conversations (up to 20 names from the sidebar).

        Returns an empty list plus an 'error' string when Messenger needs a manual login.
        """
        return await _call("messenger_list_conversations")

    @mcp.tool(annotations={"title": "Search Messenger", **_READ_ONLY})
    async def messenger_search_conversation(
        query: Annotated[str, "Search query for finding a conversation"],
    ) -> str:
        """Search for a Messenger conversation by name."""
        return await _call("messenger_search_conversation", query=query)

    @mcp.tool(annotations={"title": "Send Messenger Message", **_SENDING})
    async def messenger_send_message(
        conversationName: Annotated[str, "Name of the conversation/contact"],
        message: Annotated[str, "Message text to send"],
    ) -> str:
        """Send a message to a Messenger conversation.

        Opens the FIRST search result for the name. Use messenger_search_conversation
        first when several conversations could match.
        """
        return await _call("messenger_send_message", conversationName=conversationName, message=message)

    @mcp.tool(annotations={"title": "Read Messenger Messages", **_READ_ONLY})
    async def messenger_read_messages(
        count: Annotated[int, "Number of messages to read (default: 20)"] = 20,
    ) -> str:
        """Read the last messages from the currently open Messenger conversation."""
        return await _call("messenger_read_messages", count=count)

    @mcp.tool(annotations={"title": "Send File on Messenger", **_SENDING})
    async def messenger_send_file(
        conversationName: Annotated[str, "Name of the conversation/contact"],
        filePath: Annotated[str, "Absolute path to the file"],
    ) -> str:
        """Send a file to a Messenger conversation (FIRST search result for the name)."""
        return await _call("messenger_send_file", conversationName=conversationName, filePath=filePath)

    @mcp.tool(annotations={"title": "Messenger Conversation Info", **_READ_ONLY})
    async def messenger_get_info() -> str:
        """Get information about the current Messenger conversation."""
        return await _call("messenger_get_info")

    # ═════════════════════════════════════════════════════════════════════
    # Web
    # ═════════════════════════════════════════════════════════════════════

    @mcp.tool(annotations={"title": "Navigate", **_ACTION})
    async def web_navigate(
        url: Annotated[str, "The URL to navigate to (http:// or https://)"],
    ) -> str:
        """Navigate the active tab to a URL and wait for the page to load."""
        return await _call("web_navigate", url=url)

    @mcp.tool(annotations={"title": "Screenshot", **_READ_ONLY})
    async def web_screenshot(
        fullPage: Annotated[bool, "Whether to capture the full page"] = False,
    ) -> str:
        """Take a screenshot of the current page (base64 PNG)."""
        return await _call("web_screenshot", fullPage=fullPage)

    @mcp.tool(annotations={"title": "Click", **_ACTION})
    async def web_click(
        selector: Annotated[str, "CSS selector of the element to click"],
    ) -> str:
        """Click on an element by CSS selector."""
        return await _call("web_click", selector=selector)

    @mcp.tool(annotations={"title": "Type", **_ACTION})
    async def web_type(
        selector: Annotated[str, "CSS selector of the input field"],
        text: Annotated[str, "Text to type"],
    ) -> str:
        """Type text into an input field."""
        return await _call("web_type", selector=selector, text=text)

    @mcp.tool(annotations={"title": "Extract Text", **_READ_ONLY})
    async def web_extract_text(
        selector: Annotated[Optional[str], "CSS selector (default: body)"] = None,
    ) -> str:
        """Extract text content from the page or a specific element."""
        return await _call("web_extract_text", selector=selector)

    @mcp.tool(annotations={"title": "Execute JavaScript", **_ACTION})
    async def web_execute_js(
        script: Annotated[str, "JavaScript code to execute"],
    ) -> str:
        """Execute JavaScript on the current page."""
        return await _call("web_execute_js", script=script)

    @mcp.tool(annotations={"title": "Wait For Element", **_READ_ONLY})
    async def web_wait_for(
        selector: Annotated[str, "CSS selector to wait for"],
        timeout: Annotated[float, "Timeout in milliseconds (default: 5000)"] = 5000,
    ) -> str:
        """Wait for an element to appear on the page."""
        return await _call("web_wait_for", selector=selector, timeout=timeout)

    @mcp.tool(annotations={"title": "Current URL", **_READ_ONLY})
    async def web_get_url() -> str:
        """Get the current page URL."""
        return await _call("web_get_url")

    @mcp.tool(annotations={"title": "List Tabs", **_READ_ONLY})
    async def web_list_tabs() -> str:
        """List all open tabs in the browser context."""
        return await _call("web_list_tabs")

    @mcp.tool(annotations={"title": "Switch Tab", **_ACTION})
    async def web_switch_tab(
        index: Annotated[int, "Tab index as returned by web_list_tabs"],
    ) -> str:
        """Switch the active tab. All following tools act on it."""
        return await _call("web_switch_tab", index=index)

    @mcp.tool(annotations={"title": "Accessibility Snapshot", **_READ_ONLY})
    async def web_accessibility_snapshot() -> str:
        """Get an accessibility snapshot of the page for AI understanding."""
        return await _call("web_accessibility_snapshot")

    @mcp.tool(annotations={"title": "Close Browser", **_ACTION})
    async def browser_close() -> str:
        """Close the browser. The next tool call starts a fresh one."""
        return await _call("browser_close")

    return mcp


# ═══════════════════════════════════════════════════════════════════════════
# Server Runner
# ═══════════════════════════════════════════════════════════════════════════


async def run_mcp_server(transport: str = "stdio", settings: Optional[BrowserSettings] = None):
    """Start the MCP server with the specified transport.

    Args:
        transport: 'stdio' for local clients, 'http' for remote clients
        settings: Browser settings (default: loaded from config)
    """
    mcp = create_mcp_server(settings)

    logger.info(f"BrowserBridge MCP server starting (transport={transport})")

    if transport == "http":
        await mcp.run_streamable_http_async()
    else:
        await mcp.run_stdio_async()


# ═══════════════════════════════════════════════════════════════════════════
# Claude Desktop Auto-Setup
# ═══════════════════════════════════════════════════════════════════════════


def claude_desktop_config_path() -> Optional[Path]:
    system = platform.system()
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json"
    if system == "Linux":
        return Path.home() / ".config" / "Claude" / "claude_desktop_config.json"
    if system == "Windows":
        return Path.home() / "AppData" / "Roaming" / "Claude" / "claude_desktop_config.json"
    return None


def setup_claude_desktop(config_path: Optional[Path] = None) -> Optional[Path]:
    """Add BrowserBridge to the Claude Desktop MCP config.

    Idempotent: safe to run multiple times. Returns the config path written,
    or None when the OS is not supported.
    """
    config_path = config_path or claude_desktop_config_path()
    if config_path is None:
        print(f"Unsupported OS: {platform.system()}")
        print("Manually add BrowserBridge to your MCP client configuration.")
        return None

    # Load existing config or create new
    config: dict = {}
    if config_path.exists():
        try:
            config = json.loads(config_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            config = {}

    command = _find_executable()

    config.setdefault("mcpServers", {})
    if command == sys.executable:
        config["mcpServers"]["browserbridge"] = {"command": command, "args": ["-m", "browserbridge"]}
    else:
        config["mcpServers"]["browserbridge"] = {"command": command, "args": []}

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config, indent=2), encoding="utf-8")

    print("BrowserBridge configured for Claude Desktop.")
    print(f"   Config: {config_path}")
    print(f"   Command: {command}")
    print("   Restart Claude Desktop to see the browser tools.")
    return config_path


def _find_executable() -> str:
    """Find the browserbridge executable path."""
    which = shutil.which("browserbridge")
    if which:
        return which

    candidates = [
        Path(sys.executable).parent / "browserbridge",
        Path.home() / ".local" / "bin" / "browserbridge",
    ]
    for candidate in candidates:
        if candidate.exists():
            return str(candidate)

    # Fallback: python -m browserbridge
    return sys.executable
