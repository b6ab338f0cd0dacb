"""
BrowserBridge - Messenger Workflows

Selector-driven flows against messenger.com:

    open    -> make sure Messenger is loaded and logged in
    locate  -> type the name into the search box, wait for results
    select  -> click the first result ("first result wins", no ranking)
    act     -> type + Enter, or attach a file + Enter
    settle  -> give the UI time to reflect the action

A missing required element fails the workflow with "<step>: <what>".
Steps already done are not undone: if ``act`` times out, the conversation
stays open.

Selectors change whenever Messenger ships a redesign. They all live in
SELECTORS below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlparse

from playwright.async_api import Page

from browserbridge.config import BrowserSettings
from browserbridge.errors import LoginRequiredError, StepFailed
from browserbridge.results import ToolResult
from browserbridge.session import SessionManager
from browserbridge.tools.steps import step

logger = logging.getLogger("browserbridge.tools.messenger")


# Messenger selectors (may need updates as Messenger changes)
SELECTORS = {
    "search_input": '[aria-label="Search Messenger"]',
    "search_result": '[role="listbox"] [role="option"]',
    "conversation_list": '[role="navigation"] [role="row"]',
    "message_input": '[aria-label="Message"]',
    "message_list": '[role="main"] [role="row"]',
    "conversation_header": '[role="main"] h1, [role="main"] [dir="auto"]',
    "file_input": 'input[type="file"]',
    "attach_button": '[aria-label="Attach a file"]',
    "login_marker": 'input[name="email"]',
}

LOGIN_REQUIRED_MESSAGE = "Please log in to Messenger manually in the browser window, then try again."

MAX_LISTED_CONVERSATIONS = 20

_CONVERSATION_NAMES_JS = """
(rows, limit) => rows.slice(0, limit).map((row) => {
    const nameEl = row.querySelector('[dir="auto"]');
    return nameEl && nameEl.textContent ? nameEl.textContent.trim() : '';
}).filter(Boolean)
"""

_OPTION_TEXTS_JS = """
(options) => options.map((opt) => (opt.textContent || '').trim()).filter(Boolean)
"""

_LAST_ROW_TEXTS_JS = """
(rows, limit) => rows.slice(-limit).map((row) => (row.textContent || '').trim()).filter(Boolean)
"""


@dataclass(frozen=True)
class WorkflowTimings:
    """Fixed settle delays (ms) standing in for real readiness signals."""

    search_settle: int = 1000
    select_settle: int = 500
    send_settle: int = 500
    upload_settle: int = 1000


class MessengerWorkflows:
    """Messenger tools. Every public coroutine returns a ToolResult."""

    def __init__(
        self,
        session: SessionManager,
        settings: BrowserSettings,
        timings: WorkflowTimings | None = None,
    ):
        self.session = session
        self.settings = settings
        self.timings = timings or WorkflowTimings()
        host = urlparse(settings.messenger_url).hostname or settings.messenger_url
        self._domain = host[4:] if host.startswith("www.") else host

    # ─────────────────────────────────────────────────────────────────────
    # Steps
    # ─────────────────────────────────────────────────────────────────────

    async def ensure_open(self, page: Page):
        """Step ``open``: navigate to Messenger if needed, refuse when logged out."""
        with step("open"):
            if self._domain not in (page.url or ""):
                logger.info(f"Opening {self.settings.messenger_url}")
                await page.goto(self.settings.messenger_url)
                await page.wait_for_load_state("networkidle")

            if await page.query_selector(SELECTORS["login_marker"]):
                raise LoginRequiredError(LOGIN_REQUIRED_MESSAGE)

    async def _search(self, page: Page, query: str):
        """Step ``locate``: fill the search box and wait for results to render."""
        with step("locate"):
            search_input = await page.query_selector(SELECTORS["search_input"])
            if not search_input:
                raise StepFailed("locate", f"Could not find search input ({SELECTORS['search_input']})")
            await search_input.click()
            await search_input.fill(query)
            await page.wait_for_timeout(self.timings.search_settle)
        return search_input

    async def open_conversation(self, page: Page, conversation_name: str):
        """Steps ``locate`` + ``select``."""
        await self._search(page, conversation_name)

        with step("select"):
            results = await page.query_selector_all(SELECTORS["search_result"])
            if not results:
                raise StepFailed("select", f"Could not find conversation: {conversation_name}")
            await results[0].click()
            await page.wait_for_timeout(self.timings.select_settle)

    # ─────────────────────────────────────────────────────────────────────
    # Composite workflows
    # ─────────────────────────────────────────────────────────────────────

    async def send_message(self, conversation_name: str, message: str) -> ToolResult:
        """Send ``message`` to the first conversation matching ``conversation_name``."""
        try:
            page = await self.session.ensure_active_page()
            await self.ensure_open(page)
            await self.open_conversation(page, conversation_name)

            with step("act"):
                message_input = await page.query_selector(SELECTORS["message_input"])
                if not message_input:
                    raise StepFailed("act", f"Could not find message input ({SELECTORS['message_input']})")
                await message_input.click()
                await message_input.fill(message)
                await page.keyboard.press("Enter")

            with step("settle"):
                await page.wait_for_timeout(self.timings.send_settle)
        except StepFailed as e:
            logger.warning(f"send_message failed: {e}", extra={"step": e.step})
            return ToolResult.failure(str(e))

        logger.info(f"Message sent to {conversation_name}")
        return ToolResult.success({"success": True, "conversation": conversation_name})

    async def send_file(self, conversation_name: str, file_path: str) -> ToolResult:
        """Attach ``file_path`` in the matching conversation and send it.

        The path is handed to the file input untouched; Playwright reports
        missing files.
        """
        try:
            page = await self.session.ensure_active_page()
            await self.ensure_open(page)
            await self.open_conversation(page, conversation_name)

            with step("act"):
                # Some layouts have no attach button; the file input is enough
                attach_button = await page.query_selector(SELECTORS["attach_button"])
                if attach_button:
                    await attach_button.click()

                file_input = await page.query_selector(SELECTORS["file_input"])
                if not file_input:
                    raise StepFailed("act", f"Could not find file input ({SELECTORS['file_input']})")
                await file_input.set_input_files(file_path)
                await page.wait_for_timeout(self.timings.upload_settle)
                await page.keyboard.press("Enter")

            with step("settle"):
                await page.wait_for_timeout(self.timings.upload_settle)
        except StepFailed as e:
            logger.warning(f"send_file failed: {e}", extra={"step": e.step})
            return ToolResult.failure(str(e))

        logger.info(f"File sent to {conversation_name}")
        return ToolResult.success({"success": True, "conversation": conversation_name, "file": file_path})

    # ─────────────────────────────────────────────────────────────────────
    # Best-effort reads (soft failures)
    # ─────────────────────────────────────────────────────────────────────

    async def list_conversations(self) -> ToolResult:
        try:
            page = await self.session.ensure_active_page()
            await self.ensure_open(page)
            with step("read"):
                conversations = await page.eval_on_selector_all(
                    SELECTORS["conversation_list"], _CONVERSATION_NAMES_JS, MAX_LISTED_CONVERSATIONS
                )
        except StepFailed as e:
            return ToolResult.soft_failure({"conversations": []}, _soft_message(e))
        return ToolResult.success({"conversations": conversations})

    async def search_conversation(self, query: str) -> ToolResult:
        try:
            page = await self.session.ensure_active_page()
            await self.ensure_open(page)
            search_input = await self._search(page, query)
            with step("read"):
                results = await page.eval_on_selector_all(SELECTORS["search_result"], _OPTION_TEXTS_JS)
                # Leave the sidebar as we found it
                await search_input.fill("")
                await page.keyboard.press("Escape")
        except StepFailed as e:
            return ToolResult.soft_failure({"results": []}, _soft_message(e))
        return ToolResult.success({"results": results})

    async def read_messages(self, count: int = 20) -> ToolResult:
        """Last ``count`` message rows of the conversation currently open."""
        count = max(1, int(count))
        try:
            page = await self.session.ensure_active_page()
            await self.ensure_open(page)
            with step("read"):
                messages = await page.eval_on_selector_all(SELECTORS["message_list"], _LAST_ROW_TEXTS_JS, count)
        except StepFailed as e:
            return ToolResult.soft_failure({"messages": []}, _soft_message(e))
        return ToolResult.success({"messages": messages})

    async def get_conversation_info(self) -> ToolResult:
        try:
            page = await self.session.ensure_active_page()
            await self.ensure_open(page)
            with step("read"):
                header = await page.query_selector(SELECTORS["conversation_header"])
                name = (await header.text_content() or "").strip() if header else ""
        except StepFailed as e:
            return ToolResult.soft_failure({}, _soft_message(e))
        return ToolResult.success({"name": name or None, "participants": [name] if name else []})


def _soft_message(error: StepFailed) -> str:
    # The login prompt is shown verbatim; everything else keeps its step prefix
    if isinstance(error, LoginRequiredError):
        return error.detail
    return str(error)


# ═══════════════════════════════════════════════════════════════════════════
# Tool bindings (argument names follow the MCP schemas)
# ═══════════════════════════════════════════════════════════════════════════


def bind_tools(workflows: MessengerWorkflows) -> dict[str, Callable]:
    return {
        "messenger_list_conversations": lambda: workflows.list_conversations(),
        "messenger_search_conversation": lambda query: workflows.search_conversation(query),
        "messenger_send_message": lambda conversationName, message: workflows.send_message(
            conversationName, message
        ),
        "messenger_read_messages": lambda count=20: workflows.read_messages(count),
        "messenger_send_file": lambda conversationName, filePath: workflows.send_file(
            conversationName, filePath
        ),
        "messenger_get_info": lambda: workflows.get_conversation_info(),
    }


# ═══════════════════════════════════════════════════════════════════════════
# Tool Schemas
# ═══════════════════════════════════════════════════════════════════════════


TOOL_SCHEMAS = {
    "messenger_list_conversations": {
        "description": (
            "List recent Messenger conversations (up to 20 names from the sidebar). "
            "If Messenger is not logged in, returns an empty list with an 'error' explaining how to log in."
        ),
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
    "messenger_search_conversation": {
        "description": (
            "Search for a Messenger conversation by name and return the matching result names. "
            "The search box is cleared afterwards."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query for finding a conversation"},
            },
            "required": ["query"],
        },
    },
    "messenger_send_message": {
        "description": (
            "Send a message to a Messenger conversation. Searches for the name, opens the FIRST "
            "search result, types the message and presses Enter."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "conversationName": {"type": "string", "description": "Name of the conversation/contact"},
                "message": {"type": "string", "description": "Message text to send"},
            },
            "required": ["conversationName", "message"],
        },
    },
    "messenger_read_messages": {
        "description": "Read the last messages from the Messenger conversation currently open.",
        "parameters": {
            "type": "object",
            "properties": {
                "count": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Number of messages to read (default: 20)",
                    "default": 20,
                },
            },
            "required": [],
        },
    },
    "messenger_send_file": {
        "description": (
            "Send a file to a Messenger conversation. Opens the FIRST search result for the name "
            "and uploads the file from an absolute local path."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "conversationName": {"type": "string", "description": "Name of the conversation/contact"},
                "filePath": {"type": "string", "description": "Absolute path to the file"},
            },
            "required": ["conversationName", "filePath"],
        },
    },
    "messenger_get_info": {
        "description": "Get information (name, participants) about the Messenger conversation currently open.",
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
}
