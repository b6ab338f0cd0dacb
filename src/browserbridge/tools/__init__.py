"""
BrowserBridge - Tools

Messenger workflows + generic web actions, behind one dispatcher.
Every call is validated before it is queued, and queued before it touches
the browser.
"""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from browserbridge.config import BrowserSettings
from browserbridge.errors import (
    BrowserBridgeError,
    InvalidArgumentsError,
    SessionInitError,
    ToolExecutionError,
    ToolProtocolError,
    UnknownToolError,
)
from browserbridge.recovery import get_hint
from browserbridge.results import ToolResult
from browserbridge.serializer import CallSerializer
from browserbridge.session import SessionManager
from browserbridge.tools.messenger import (
    MessengerWorkflows,
    WorkflowTimings,
    TOOL_SCHEMAS as MESSENGER_SCHEMAS,
    bind_tools as bind_messenger_tools,
)
from browserbridge.tools.web import (
    WebTools,
    TOOL_SCHEMAS as WEB_SCHEMAS,
    bind_tools as bind_web_tools,
)

logger = logging.getLogger("browserbridge.tools")

TOOL_SCHEMAS = {**MESSENGER_SCHEMAS, **WEB_SCHEMAS}


@dataclass
class RegisteredTool:
    name: str
    func: Callable[..., Any]
    schema: dict
    validator: Draft7Validator


# ═══════════════════════════════════════════════════════════════════════════
# Tool Dispatcher
# ═══════════════════════════════════════════════════════════════════════════


class ToolDispatcher:
    """Maps tool names to handlers and runs them one at a time."""

    def __init__(self, session: SessionManager, serializer: CallSerializer | None = None):
        self.session = session
        self.serializer = serializer or CallSerializer()
        self.tools: dict[str, RegisteredTool] = {}

    def register(self, name: str, func: Callable[..., Any], schema: dict):
        """Register a tool."""
        parameters = schema.get("parameters", {"type": "object", "properties": {}})
        Draft7Validator.check_schema(parameters)
        self.tools[name] = RegisteredTool(
            name=name,
            func=func,
            schema=schema,
            validator=Draft7Validator(parameters),
        )

    @property
    def names(self) -> list[str]:
        return list(self.tools)

    async def close(self):
        """Close the browser session."""
        await self.session.close()

    def _prepare_args(self, tool: RegisteredTool, args: Any) -> dict[str, Any]:
        """Validate ``args`` against the tool schema. Returns a filtered copy."""
        if args is None:
            args = {}
        if not isinstance(args, dict):
            raise InvalidArgumentsError(tool.name, "arguments must be an object")

        error = best_match(tool.validator.iter_errors(args))
        if error is not None:
            where = ".".join(str(p) for p in error.absolute_path)
            detail = f"{where}: {error.message}" if where else error.message
            raise InvalidArgumentsError(tool.name, detail)

        # Unknown keys are ignored rather than passed to the handler
        properties = tool.schema.get("parameters", {}).get("properties", {})
        return {k: v for k, v in args.items() if k in properties}

    async def dispatch(self, name: str, args: dict[str, Any] | None = None) -> ToolResult:
        """Run one tool call and return its result envelope.

        Raises:
            UnknownToolError, InvalidArgumentsError: before anything is queued
            ToolExecutionError: the handler failed in an unexpected way
        """
        tool = self.tools.get(name)
        if tool is None:
            logger.warning(f"Unknown tool requested: {name}")
            raise UnknownToolError(name)

        call_args = self._prepare_args(tool, args)

        async with self.serializer.admit(name):
            started = time.monotonic()
            try:
                result = tool.func(**call_args)
                if inspect.isawaitable(result):
                    result = await result
            except ToolProtocolError:
                raise
            except SessionInitError as e:
                result = ToolResult.failure(f"initialize: {e}")
            except BrowserBridgeError as e:
                result = ToolResult.failure(str(e))
            except Exception as e:
                logger.error(f"Tool execution error for {name}: {e}", exc_info=True)
                raise ToolExecutionError(f"Tool execution failed: {e}") from e
            duration_ms = round((time.monotonic() - started) * 1000)

        if not isinstance(result, ToolResult):
            result = ToolResult.success(result)
        if not result.ok and not result.hint:
            result = result.with_hint(get_hint(result.error))

        if result.ok and not result.is_soft_failure:
            logger.info(f"Tool call: {name} ok", extra={"tool_name": name, "duration_ms": duration_ms})
        else:
            logger.warning(
                f"Tool call: {name} failed: {result.error}",
                extra={"tool_name": name, "duration_ms": duration_ms},
            )
        return result

    async def call(self, name: str, args: dict[str, Any] | None = None) -> str:
        """Dispatch and return the JSON text sent back to the client."""
        result = await self.dispatch(name, args)
        return result.to_json()

    def get_schemas(self) -> list[dict]:
        """Tool declarations in MCP shape (name, description, inputSchema)."""
        return [
            {
                "name": name,
                "description": tool.schema.get("description", ""),
                "inputSchema": tool.schema.get("parameters", {"type": "object", "properties": {}}),
            }
            for name, tool in self.tools.items()
        ]


# ═══════════════════════════════════════════════════════════════════════════
# Create Default Dispatcher
# ═══════════════════════════════════════════════════════════════════════════


def create_dispatcher(
    settings: BrowserSettings,
    session: SessionManager | None = None,
    timings: WorkflowTimings | None = None,
) -> ToolDispatcher:
    """Create a dispatcher with every tool registered."""
    session = session or SessionManager(settings)
    dispatcher = ToolDispatcher(session)

    workflows = MessengerWorkflows(session, settings, timings)
    web = WebTools(session)

    handlers = {**bind_messenger_tools(workflows), **bind_web_tools(web)}
    for name, schema in TOOL_SCHEMAS.items():
        dispatcher.register(name, handlers[name], schema)

    return dispatcher
