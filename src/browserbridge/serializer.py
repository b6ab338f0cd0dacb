"""
BrowserBridge - Call Serializer

All tools share one active page. Two calls interleaving keystrokes or clicks
on it produce garbage, so every tool call holds this lock from admission
until its handler returns.

asyncio.Lock wakes waiters in arrival order and does not let a new caller
jump ahead of queued ones, which gives strict FIFO admission.
There is no queue-wait timeout: a stuck handler blocks the calls behind it,
bounded only by the handler's own Playwright timeouts.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable

logger = logging.getLogger("browserbridge.serializer")


class CallSerializer:
    """FIFO mutex for browser-touching tool calls."""

    def __init__(self):
        self._lock: asyncio.Lock | None = None  # Lazily initialised
        self._pending = 0
        self._admitted = 0

    def _get_lock(self) -> asyncio.Lock:
        """Lazy init for the lock (avoids binding to wrong event loop)."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @property
    def pending(self) -> int:
        """Calls waiting for admission plus the one running."""
        return self._pending

    @property
    def admitted(self) -> int:
        """Total number of calls admitted so far."""
        return self._admitted

    @asynccontextmanager
    async def admit(self, label: str = "") -> AsyncIterator[int]:
        """Hold exclusive access to the active page for one call.

        Yields the admission sequence number.
        """
        self._pending += 1
        queued_at = time.monotonic()
        try:
            async with self._get_lock():
                self._admitted += 1
                seq = self._admitted
                started = time.monotonic()
                logger.debug(
                    f"Admitted {label} #{seq} after {(started - queued_at) * 1000:.0f}ms",
                    extra={"tool_name": label, "queue_depth": self._pending - 1},
                )
                try:
                    yield seq
                finally:
                    logger.debug(
                        f"Released {label} #{seq}",
                        extra={
                            "tool_name": label,
                            "duration_ms": round((time.monotonic() - started) * 1000),
                        },
                    )
        finally:
            self._pending -= 1

    async def run(self, label: str, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Run ``func`` once admitted."""
        async with self.admit(label):
            return await func(*args, **kwargs)
