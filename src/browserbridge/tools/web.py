"""
BrowserBridge - Web Tools (Playwright)

Generic page actions on the active tab:
- Navigation, clicks, typing, waits
- Text extraction, JavaScript evaluation
- Screenshots (base64 PNG)
- Tab listing / switching
- Simplified accessibility tree for LLM page understanding

Failures come back as ``{"success": false, "error": "<action>: ..."}``.
get_url and list_tabs are best-effort and use soft failures instead.
"""

import base64
import logging
from typing import Any, Callable, Optional
from urllib.parse import urlparse

from browserbridge.errors import PageNotFoundError, StepFailed
from browserbridge.results import ToolResult
from browserbridge.session import SessionManager
from browserbridge.tools.steps import step

logger = logging.getLogger("browserbridge.tools.web")

SNAPSHOT_MAX_DEPTH = 5

_ACCESSIBILITY_TREE_JS = """
(maxDepth) => {
    const walk = (element, depth) => {
        if (depth > maxDepth) return null;

        const role = element.getAttribute('role') || element.tagName.toLowerCase();
        const label = element.getAttribute('aria-label') ||
            element.getAttribute('title') ||
            (element.innerText || '').slice(0, 100);

        const children = [];
        for (const child of element.children) {
            const childTree = walk(child, depth + 1);
            if (childTree) children.push(childTree);
        }

        const node = { role };
        if (label) node.name = label;
        if (children.length > 0) node.children = children;
        return node;
    };
    return document.body ? walk(document.body, 0) : null;
}
"""


class WebTools:
    """Direct page actions. Every public coroutine returns a ToolResult."""

    def __init__(self, session: SessionManager):
        self.session = session

    async def navigate(self, url: str) -> ToolResult:
        """Load ``url`` and wait for the network to go idle."""
        if urlparse(url).scheme not in ("http", "https"):
            return ToolResult.failure(f"navigate: URL must start with http:// or https://, got {url!r}")
        try:
            page = await self.session.ensure_active_page()
            with step("navigate"):
                await page.goto(url)
                await page.wait_for_load_state("networkidle")
                title = await page.title()
        except StepFailed as e:
            return ToolResult.failure(str(e))
        return ToolResult.success({"success": True, "title": title, "url": page.url})

    async def screenshot(self, full_page: bool = False) -> ToolResult:
        try:
            page = await self.session.ensure_active_page()
            with step("screenshot"):
                data = await page.screenshot(full_page=full_page)
        except StepFailed as e:
            return ToolResult.failure(str(e))
        return ToolResult.success({"success": True, "base64": base64.b64encode(data).decode("ascii")})

    async def click(self, selector: str) -> ToolResult:
        try:
            page = await self.session.ensure_active_page()
            with step("click"):
                await page.click(selector)
        except StepFailed as e:
            return ToolResult.failure(str(e))
        return ToolResult.success()

    async def type_text(self, selector: str, text: str) -> ToolResult:
        """Replace the value of an input with ``text``."""
        try:
            page = await self.session.ensure_active_page()
            with step("type"):
                await page.fill(selector, text)
        except StepFailed as e:
            return ToolResult.failure(str(e))
        return ToolResult.success()

    async def extract_text(self, selector: Optional[str] = None) -> ToolResult:
        target = selector or "body"
        try:
            page = await self.session.ensure_active_page()
            with step("extract"):
                element = await page.query_selector(target)
                if not element:
                    raise StepFailed("extract", f"Element not found: {target}")
                text = await element.text_content()
        except StepFailed as e:
            return ToolResult.failure(str(e))
        return ToolResult.success({"success": True, "text": (text or "").strip()})

    async def execute_js(self, script: str) -> ToolResult:
        try:
            page = await self.session.ensure_active_page()
            with step("evaluate"):
                result = await page.evaluate(script)
        except StepFailed as e:
            return ToolResult.failure(str(e))
        return ToolResult.success({"success": True, "result": result})

    async def wait_for(self, selector: str, timeout: int = 5000) -> ToolResult:
        try:
            page = await self.session.ensure_active_page()
            with step("wait"):
                await page.wait_for_selector(selector, timeout=timeout)
        except StepFailed as e:
            return ToolResult.failure(str(e))
        return ToolResult.success()

    async def get_url(self) -> ToolResult:
        page = await self.session.ensure_active_page()
        return ToolResult.success({"url": page.url})

    async def list_tabs(self) -> ToolResult:
        """All open tabs with their index, title and URL."""
        try:
            active = await self.session.ensure_active_page()
            tabs: list[dict[str, Any]] = []
            with step("tabs"):
                for index, page in enumerate(self.session.list_pages()):
                    tabs.append({
                        "index": index,
                        "title": await page.title(),
                        "url": page.url,
                        "active": page is active,
                    })
        except StepFailed as e:
            return ToolResult.soft_failure({"tabs": []}, str(e))
        return ToolResult.success({"tabs": tabs})

    async def switch_tab(self, index: int) -> ToolResult:
        await self.session.ensure_active_page()
        try:
            page = self.session.select_page(int(index))
            with step("switch"):
                await page.bring_to_front()
        except (PageNotFoundError, StepFailed) as e:
            return ToolResult.failure(str(e))
        logger.info(f"Switched to tab {index}")
        return ToolResult.success({"success": True, "index": int(index), "url": page.url})

    async def accessibility_snapshot(self) -> ToolResult:
        """Role/name tree of the page, SNAPSHOT_MAX_DEPTH levels deep."""
        try:
            page = await self.session.ensure_active_page()
            with step("snapshot"):
                snapshot = await page.evaluate(_ACCESSIBILITY_TREE_JS, SNAPSHOT_MAX_DEPTH)
            if snapshot is None:
                raise StepFailed("snapshot", "Could not get page body")
        except StepFailed as e:
            return ToolResult.failure(str(e))
        return ToolResult.success({"success": True, "snapshot": snapshot})

    async def close_browser(self) -> ToolResult:
        await self.session.close()
        return ToolResult.success()


# ═══════════════════════════════════════════════════════════════════════════
# Tool bindings (argument names follow the MCP schemas)
# ═══════════════════════════════════════════════════════════════════════════


def bind_tools(web: WebTools) -> dict[str, Callable]:
    return {
        "web_navigate": lambda url: web.navigate(url),
        "web_screenshot": lambda fullPage=False: web.screenshot(fullPage),
        "web_click": lambda selector: web.click(selector),
        "web_type": lambda selector, text: web.type_text(selector, text),
        "web_extract_text": lambda selector=None: web.extract_text(selector),
        "web_execute_js": lambda script: web.execute_js(script),
        "web_wait_for": lambda selector, timeout=5000: web.wait_for(selector, int(timeout)),
        "web_get_url": lambda: web.get_url(),
        "web_list_tabs": lambda: web.list_tabs(),
        "web_switch_tab": lambda index: web.switch_tab(index),
        "web_accessibility_snapshot": lambda: web.accessibility_snapshot(),
        "browser_close": lambda: web.close_browser(),
    }


# ═══════════════════════════════════════════════════════════════════════════
# Tool Schemas
# ═══════════════════════════════════════════════════════════════════════════


TOOL_SCHEMAS = {
    "web_navigate": {
        "description": "Navigate the active tab to a URL and wait for the page to finish loading. Returns the page title.",
        "parameters": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "The URL to navigate to (http:// or https://)"},
            },
            "required": ["url"],
        },
    },
    "web_screenshot": {
        "description": "Take a screenshot of the current page. Returns a base64-encoded PNG.",
        "parameters": {
            "type": "object",
            "properties": {
                "fullPage": {"type": "boolean", "description": "Whether to capture the full page", "default": False},
            },
            "required": [],
        },
    },
    "web_click": {
        "description": "Click on an element by CSS selector.",
        "parameters": {
            "type": "object",
            "properties": {
                "selector": {"type": "string", "description": "CSS selector of the element to click"},
            },
            "required": ["selector"],
        },
    },
    "web_type": {
        "description": "Type text into an input field (replaces its current value).",
        "parameters": {
            "type": "object",
            "properties": {
                "selector": {"type": "string", "description": "CSS selector of the input field"},
                "text": {"type": "string", "description": "Text to type"},
            },
            "required": ["selector", "text"],
        },
    },
    "web_extract_text": {
        "description": "Extract text content from the page or a specific element.",
        "parameters": {
            "type": "object",
            "properties": {
                "selector": {"type": "string", "description": "CSS selector (default: body)"},
            },
            "required": [],
        },
    },
    "web_execute_js": {
        "description": "Execute JavaScript on the current page and return the (JSON-serializable) result.",
        "parameters": {
            "type": "object",
            "properties": {
                "script": {"type": "string", "description": "JavaScript code to execute"},
            },
            "required": ["script"],
        },
    },
    "web_wait_for": {
        "description": "Wait for an element to appear on the page.",
        "parameters": {
            "type": "object",
            "properties": {
                "selector": {"type": "string", "description": "CSS selector to wait for"},
                "timeout": {
                    "type": "number",
                    "minimum": 0,
                    "description": "Timeout in milliseconds (default: 5000)",
                    "default": 5000,
                },
            },
            "required": ["selector"],
        },
    },
    "web_get_url": {
        "description": "Get the current page URL.",
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
    "web_list_tabs": {
        "description": "List all open tabs (index, title, URL, active flag) in the browser context.",
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
    "web_switch_tab": {
        "description": "Make the tab at the given index (from web_list_tabs) the active tab for all following tools.",
        "parameters": {
            "type": "object",
            "properties": {
                "index": {"type": "integer", "description": "Tab index as returned by web_list_tabs"},
            },
            "required": ["index"],
        },
    },
    "web_accessibility_snapshot": {
        "description": "Get a simplified accessibility tree (role + name, 5 levels deep) of the page for AI understanding.",
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
    "browser_close": {
        "description": "Close the browser. The next tool call starts a fresh browser.",
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
}
