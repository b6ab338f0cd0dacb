"""
BrowserBridge - Error Types

Execution failures (session start, missing elements, timeouts) are turned
into ToolResult errors before they leave the dispatcher.
ToolProtocolError subclasses are the exception: they reach the MCP layer
as protocol errors.
"""

from __future__ import annotations


class BrowserBridgeError(Exception):
    """Base class for all BrowserBridge errors."""


class ConfigError(BrowserBridgeError):
    """Invalid configuration value."""


class SessionInitError(BrowserBridgeError):
    """Browser engine or context could not be started."""


class PageNotFoundError(BrowserBridgeError):
    """Tab index out of range, or page not owned by the current context."""


class StepFailed(BrowserBridgeError):
    """A workflow step could not complete.

    The step name is kept separately so the message can always be rendered
    as ``"<step>: <detail>"``.
    """

    def __init__(self, step: str, detail: str):
        self.step = step
        self.detail = detail
        super().__init__(f"{step}: {detail}")


class LoginRequiredError(StepFailed):
    """The target application shows its login form."""

    def __init__(self, detail: str):
        super().__init__("open", detail)


# ═══════════════════════════════════════════════════════════════════════════
# Protocol-level errors (never wrapped into a ToolResult)
# ═══════════════════════════════════════════════════════════════════════════


class ToolProtocolError(BrowserBridgeError):
    """Base class for errors reported to the client as protocol errors."""


class UnknownToolError(ToolProtocolError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class InvalidArgumentsError(ToolProtocolError):
    def __init__(self, name: str, detail: str):
        self.name = name
        self.detail = detail
        super().__init__(f"Invalid arguments for {name}: {detail}")


class ToolExecutionError(ToolProtocolError):
    """Unexpected internal fault while running a tool handler."""
