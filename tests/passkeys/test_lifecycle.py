"""
Tests for BrowserModuleHandle and CancellationScope.
"""

import asyncio

import pytest

from passkeys.bridge import BrowserModule, BrowserModuleHandle
from passkeys.exceptions import CeremonyCancelledError, ProviderClosedError
from passkeys.lifecycle import CancellationScope
from tests.passkeys.factories import CountingLoader, FakeBrowserModule


class TestBrowserModuleHandle:
    """Tests for one-time module loading."""

    async def test_loads_once_for_concurrent_callers(self, browser: FakeBrowserModule):
        """Should run the loader once and share the module."""
        loader = CountingLoader(browser, delay=0.05)
        handle = BrowserModuleHandle(loader)

        modules = await asyncio.gather(*(handle.get() for _ in range(20)))

        assert loader.loads == 1
        assert all(module is browser for module in modules)
        assert handle.is_loaded is True

    async def test_failed_load_not_cached(self, browser: FakeBrowserModule):
        """Should retry the loader after a failure."""
        attempts = 0

        async def loader():
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("import failed")
            return browser

        handle = BrowserModuleHandle(loader)

        with pytest.raises(RuntimeError):
            await handle.get()
        assert handle.is_loaded is False

        assert await handle.get() is browser
        assert attempts == 2

    async def test_dispose(self, browser: FakeBrowserModule, loader: CountingLoader):
        """Should dispose a loaded module and forget it."""
        handle = BrowserModuleHandle(loader)
        await handle.get()

        await handle.dispose()

        assert browser.disposed is True
        assert handle.is_loaded is False

    async def test_dispose_without_load(self, browser: FakeBrowserModule, loader: CountingLoader):
        """Should not load the module just to dispose it."""
        handle = BrowserModuleHandle(loader)

        await handle.dispose()

        assert loader.loads == 0
        assert browser.disposed is False

    def test_fake_module_satisfies_protocol(self, browser: FakeBrowserModule):
        """Should accept any object with invoke and dispose."""
        assert isinstance(browser, BrowserModule)


class TestCancellationScope:
    """Tests for structured cancellation."""

    async def test_run_returns_result(self):
        """Should return the awaited value."""

        async def answer(value):
            return value

        with CancellationScope().child() as scope:
            assert await scope.run(answer, 42) == 42

    async def test_cancel_parent_cancels_child_task(self):
        """Should convert scope cancellation into CeremonyCancelledError."""
        root = CancellationScope()
        started = asyncio.Event()

        async def wait_forever():
            started.set()
            await asyncio.Event().wait()

        scope = root.child()
        task = asyncio.create_task(scope.run(wait_forever))
        await started.wait()

        root.cancel()

        with pytest.raises(CeremonyCancelledError):
            await task
        assert scope.cancelled is True

    async def test_cancel_child_leaves_siblings(self):
        """Should only cancel the cancelled branch."""
        root = CancellationScope()
        first, second = root.child(), root.child()

        first.cancel()

        assert first.cancelled is True
        assert second.cancelled is False
        assert root.cancelled is False

    async def test_run_on_cancelled_scope(self):
        """Should fail without calling the function."""
        calls = []

        async def record():
            calls.append(1)

        scope = CancellationScope()
        scope.cancel()

        with pytest.raises(CeremonyCancelledError):
            await scope.run(record)
        assert calls == []

    def test_child_of_cancelled_scope(self):
        """Should refuse new children once cancelled."""
        root = CancellationScope()
        root.cancel()

        with pytest.raises(ProviderClosedError):
            root.child()

    async def test_outer_cancellation_propagates(self):
        """Should re-raise CancelledError when the caller's task is cancelled."""
        started = asyncio.Event()

        async def wait_forever():
            started.set()
            await asyncio.Event().wait()

        scope = CancellationScope().child()
        task = asyncio.create_task(scope.run(wait_forever))
        await started.wait()

        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert scope.cancelled is False

    def test_close_detaches_from_parent(self):
        """Should stop tracking a closed child."""
        root = CancellationScope()
        with root.child() as scope:
            assert scope in root._children

        assert scope not in root._children
