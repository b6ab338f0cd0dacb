"""
Tests for SessionManager — lazy launch, active page slot, tab selection, close.
"""

import asyncio

import pytest

from browserbridge.config import BrowserSettings
from browserbridge.errors import PageNotFoundError, SessionInitError
from browserbridge.session import SessionManager


class TestLazyLaunch:
    def test_nothing_launched_on_construction(self, session, launcher):
        assert not session.is_initialized
        assert session.context is None
        assert session.list_pages() == []
        assert launcher.attempts == 0

    @pytest.mark.asyncio
    async def test_ensure_active_page_is_idempotent(self, session, launcher):
        first = await session.ensure_active_page()
        second = await session.ensure_active_page()
        assert first is second
        assert launcher.attempts == 1
        assert session.launch_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_calls_launch_once(self, session, launcher):
        pages = await asyncio.gather(*(session.ensure_active_page() for _ in range(5)))
        assert all(p is pages[0] for p in pages)
        assert launcher.attempts == 1

    @pytest.mark.asyncio
    async def test_timeouts_applied_to_first_page(self, launcher):
        settings = BrowserSettings(navigation_timeout=45000, action_timeout=7000)
        session = SessionManager(settings, launcher=launcher)
        page = await session.ensure_active_page()
        assert page.timeouts == {"action": 7000, "navigation": 45000}

    @pytest.mark.asyncio
    async def test_launch_failure_leaves_uninitialized(self, settings, failing_launcher):
        session = SessionManager(settings, launcher=failing_launcher)

        with pytest.raises(SessionInitError, match="Browser launch failed"):
            await session.ensure_active_page()
        assert not session.is_initialized
        assert session.launch_count == 0

        # Next call starts over
        page = await session.ensure_active_page()
        assert page is not None
        assert failing_launcher.attempts == 2


class TestActivePage:
    @pytest.mark.asyncio
    async def test_select_page_switches_and_reapplies_timeouts(self, session, settings):
        first = await session.ensure_active_page()
        second = await session.context.new_page()
        assert second.timeouts == {}

        selected = session.select_page(1)
        assert selected is second
        assert await session.ensure_active_page() is second
        assert second.timeouts == {
            "action": settings.action_timeout,
            "navigation": settings.navigation_timeout,
        }
        assert first is not second

    @pytest.mark.asyncio
    @pytest.mark.parametrize("index", [-1, 1, 99])
    async def test_invalid_index_keeps_active_page(self, session, index):
        page = await session.ensure_active_page()
        with pytest.raises(PageNotFoundError, match=f"Invalid tab index: {index}"):
            session.select_page(index)
        assert await session.ensure_active_page() is page

    @pytest.mark.asyncio
    async def test_foreign_page_rejected(self, session):
        page = await session.ensure_active_page()
        other = SessionManager(session.settings, launcher=session._launcher)
        foreign = await other.ensure_active_page()

        with pytest.raises(PageNotFoundError):
            session.set_active_page(foreign)
        assert await session.ensure_active_page() is page

    @pytest.mark.asyncio
    async def test_closed_active_page_falls_back(self, session):
        first = await session.ensure_active_page()
        second = await session.context.new_page()
        first.closed = True

        assert await session.ensure_active_page() is second
        assert second.timeouts["action"] == session.settings.action_timeout

    @pytest.mark.asyncio
    async def test_all_pages_closed_opens_new_one(self, session):
        first = await session.ensure_active_page()
        first.closed = True

        page = await session.ensure_active_page()
        assert page is not first
        assert not page.is_closed()

    @pytest.mark.asyncio
    async def test_closed_window_relaunches(self, session, launcher):
        first = await session.ensure_active_page()
        launcher.sessions[0].context.close_window()

        page = await session.ensure_active_page()
        assert page is not first
        assert page is launcher.sessions[1].active_page
        assert launcher.sessions[0].playwright.stopped
        assert launcher.attempts == 2
        assert page.timeouts["navigation"] == session.settings.navigation_timeout

    @pytest.mark.asyncio
    async def test_disconnected_browser_relaunches(self, session, launcher):
        class GoneBrowser:
            def is_connected(self):
                return False

            async def close(self):
                raise RuntimeError("Browser has been closed")

        await session.ensure_active_page()
        launcher.sessions[0].browser = GoneBrowser()

        await session.ensure_active_page()
        assert launcher.attempts == 2
        assert session.is_initialized

    @pytest.mark.asyncio
    async def test_failed_relaunch_leaves_uninitialized(self, session, launcher):
        await session.ensure_active_page()
        launcher.sessions[0].context.close_window()
        launcher.failures = 2

        with pytest.raises(SessionInitError):
            await session.ensure_active_page()
        assert not session.is_initialized


class TestClose:
    @pytest.mark.asyncio
    async def test_close_uninitialized_is_noop(self, session, launcher):
        await session.close()
        assert launcher.attempts == 0

    @pytest.mark.asyncio
    async def test_close_then_relaunch(self, session, launcher):
        first = await session.ensure_active_page()
        await session.close()

        bundle = launcher.sessions[0]
        assert bundle.context.closed
        assert bundle.playwright.stopped
        assert not session.is_initialized

        second = await session.ensure_active_page()
        assert second is not first
        assert launcher.attempts == 2

    @pytest.mark.asyncio
    async def test_close_suppresses_errors(self, session, launcher):
        await session.ensure_active_page()

        async def broken_close():
            raise RuntimeError("Target page, context or browser has been closed")

        launcher.sessions[0].context.close = broken_close
        await session.close()
        assert launcher.sessions[0].playwright.stopped
        assert not session.is_initialized
