"""
BrowserBridge - Tool Result Envelope

Every tool call produces exactly one ToolResult:

    Ok   -> payload is returned to the client as-is
    Err  -> {"success": false, "error": "...", "hint": "..."}

Best-effort read tools use the soft-failure form: an Ok result whose
payload carries an ``error`` string next to an empty collection.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class ToolResult:
    ok: bool
    payload: Any = None
    error: str | None = None
    hint: str | None = None

    @classmethod
    def success(cls, payload: Any = None) -> "ToolResult":
        if payload is None:
            payload = {"success": True}
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(cls, message: str, hint: str | None = None) -> "ToolResult":
        return cls(ok=False, error=message, hint=hint)

    @classmethod
    def soft_failure(cls, payload: dict[str, Any], message: str) -> "ToolResult":
        """Ok result with an embedded error string (empty results, not a fault)."""
        return cls(ok=True, payload={**payload, "error": message}, error=message)

    @property
    def is_soft_failure(self) -> bool:
        return self.ok and self.error is not None

    def with_hint(self, hint: str | None) -> "ToolResult":
        if not hint or self.ok:
            return self
        return replace(self, hint=hint)

    def to_dict(self) -> Any:
        if self.ok:
            return self.payload
        data: dict[str, Any] = {"success": False, "error": self.error}
        if self.hint:
            data["hint"] = self.hint
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)
