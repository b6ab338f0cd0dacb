"""
BrowserBridge - Browser Session Manager

Owns one Playwright browser, one browsing context and one *active page*.

- Lazy: nothing is launched until the first tool call needs a page
- Persistent profile: EDGE_USER_DATA_DIR reuses a logged-in browser profile
  across restarts (launch_persistent_context), otherwise an ephemeral context
- Timeouts are a per-page property in Playwright, so they are re-applied every
  time the active page changes
- A failed launch leaves the manager uninitialized; the next call retries
- A browser the user closed (window gone, or disconnected) is relaunched on
  the next call

The manager is an explicit object handed to the tools (no module singleton),
and the launcher is injectable so tests can run without a browser.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from playwright.async_api import BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from browserbridge.config import BrowserSettings
from browserbridge.errors import PageNotFoundError, SessionInitError

logger = logging.getLogger("browserbridge.session")

# Playwright channels for Chromium-based browsers
_CHANNELS = {
    "msedge": "msedge",
    "chrome": "chrome",
}


@dataclass
class BrowserSession:
    """Handles for one running browser. ``browser`` is None for persistent contexts."""

    playwright: Any
    browser: Any
    context: BrowserContext
    active_page: Page


Launcher = Callable[[BrowserSettings], Awaitable[BrowserSession]]


# ═══════════════════════════════════════════════════════════════════════════
# Default launcher (real Playwright)
# ═══════════════════════════════════════════════════════════════════════════


async def launch_browser(settings: BrowserSettings) -> BrowserSession:
    """Start Playwright and open a context with one page.

    Raises whatever Playwright raises; SessionManager wraps it.
    """
    playwright = await async_playwright().start()
    try:
        if settings.browser_type == "firefox":
            engine = playwright.firefox
            launch_kwargs: dict[str, Any] = {"headless": settings.headless}
        else:
            engine = playwright.chromium
            launch_kwargs = {"headless": settings.headless}
            channel = _CHANNELS.get(settings.browser_type)
            if channel:
                launch_kwargs["channel"] = channel

        if settings.user_data_dir:
            if settings.browser_type != "firefox":
                launch_kwargs["args"] = [f"--profile-directory={settings.profile}"]
            context = await engine.launch_persistent_context(settings.user_data_dir, **launch_kwargs)
            browser = None
            page = context.pages[0] if context.pages else await context.new_page()
        else:
            browser = await engine.launch(**launch_kwargs)
            context = await browser.new_context()
            page = await context.new_page()
    except Exception:
        with contextlib.suppress(Exception):
            await playwright.stop()
        raise

    return BrowserSession(playwright=playwright, browser=browser, context=context, active_page=page)


# ═══════════════════════════════════════════════════════════════════════════
# Session Manager
# ═══════════════════════════════════════════════════════════════════════════


class SessionManager:
    """Lifecycle of the single browser session and its active-page slot.

    Only this class writes the active page. Tools ask for it per call via
    ensure_active_page() and never keep it between calls.
    """

    def __init__(self, settings: BrowserSettings, launcher: Launcher | None = None):
        self.settings = settings
        self._launcher = launcher or launch_browser
        self._session: BrowserSession | None = None
        self._launch_lock: asyncio.Lock | None = None  # Lazily initialised
        self.launch_count = 0

    def _get_launch_lock(self) -> asyncio.Lock:
        """Lazy init for the launch lock (avoids binding to wrong event loop)."""
        if self._launch_lock is None:
            self._launch_lock = asyncio.Lock()
        return self._launch_lock

    @property
    def is_initialized(self) -> bool:
        return self._session is not None

    @property
    def context(self) -> BrowserContext | None:
        return self._session.context if self._session else None

    def _apply_timeouts(self, page: Page):
        page.set_default_timeout(self.settings.action_timeout)
        page.set_default_navigation_timeout(self.settings.navigation_timeout)

    async def ensure_active_page(self) -> Page:
        """Return the active page, launching the browser first if needed."""
        async with self._get_launch_lock():
            if self._session is None:
                await self._initialize()

            session = self._session
            if session.browser is not None and not session.browser.is_connected():
                await self._relaunch("Browser disconnected")
                return self._session.active_page

            if session.active_page.is_closed():
                # The user closed our tab by hand: fall back to another open tab
                try:
                    pages = [p for p in session.context.pages if not p.is_closed()]
                    page = pages[-1] if pages else await session.context.new_page()
                except PlaywrightError as e:
                    # Whole window closed: the context is gone with it
                    await self._relaunch(f"Browser context is gone ({e})")
                    return self._session.active_page
                logger.info("Active page was closed, switching to another tab")
                session.active_page = page
                self._apply_timeouts(page)

            return session.active_page

    async def _relaunch(self, reason: str):
        """Drop a dead session and start a new one. Caller holds the launch lock."""
        logger.warning(f"{reason}, relaunching")
        await self.close()
        await self._initialize()

    async def _initialize(self):
        logger.info(
            "Launching browser",
            extra={"url": self.settings.messenger_url},
        )
        try:
            session = await self._launcher(self.settings)
        except Exception as e:
            # Nothing is kept: the next call starts from scratch
            self._session = None
            logger.error(f"Browser launch failed: {e}")
            raise SessionInitError(
                f"Browser launch failed: {e}. "
                f"Check that '{self.settings.browser_type}' is installed "
                "(playwright install) and that the profile directory is not in use."
            ) from e

        self.launch_count += 1
        self._session = session
        self._apply_timeouts(session.active_page)
        logger.debug(f"Browser ready (launch #{self.launch_count})")

    def list_pages(self) -> list[Page]:
        """Snapshot of the context's open pages. Indices may go stale."""
        if self._session is None:
            return []
        return list(self._session.context.pages)

    def set_active_page(self, page: Page):
        """Make ``page`` the active page and re-apply default timeouts."""
        if self._session is None or page not in self._session.context.pages:
            raise PageNotFoundError("Page does not belong to the current browser context")
        self._session.active_page = page
        self._apply_timeouts(page)

    def select_page(self, index: int) -> Page:
        """Activate the tab at ``index`` in list_pages() order."""
        pages = self.list_pages()
        if index < 0 or index >= len(pages):
            raise PageNotFoundError(f"Invalid tab index: {index}")
        page = pages[index]
        self.set_active_page(page)
        return page

    async def close(self):
        """Close context, browser and driver. Suppresses errors during shutdown."""
        session = self._session
        if session is None:
            return
        self._session = None

        try:
            await session.context.close()
        except Exception as e:
            logger.debug(f"Context close failed: {e}")

        try:
            if session.browser is not None:
                await session.browser.close()
        except Exception as e:
            logger.debug(f"Browser close failed: {e}")

        try:
            if session.playwright is not None:
                await session.playwright.stop()
        except Exception as e:
            logger.debug(f"Playwright stop failed: {e}")

        logger.info("Browser closed")
