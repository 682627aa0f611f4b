"""Tests for the shared client library loader."""

import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from kiosk_dashboard.adapters.calendar.base import LibraryLoadError
from kiosk_dashboard.adapters.calendar.bootstrap import ClientLibraryBootstrapper


class TestClientLibraryBootstrapper:
    async def test_loads_once_for_concurrent_callers(self, fake_library):
        release = threading.Event()
        calls = []

        def loader():
            calls.append(1)
            release.wait(timeout=5)
            return fake_library

        bootstrapper = ClientLibraryBootstrapper(loader=loader)
        pending = asyncio.gather(*(bootstrapper.ensure_library_loaded() for _ in range(5)))
        await asyncio.sleep(0.05)
        release.set()
        results = await pending

        assert len(calls) == 1
        assert all(result is fake_library for result in results)
        assert bootstrapper.is_loaded

    async def test_cached_after_first_load(self, fake_library):
        loader = MagicMock(return_value=fake_library)
        bootstrapper = ClientLibraryBootstrapper(loader=loader)

        await bootstrapper.ensure_library_loaded()
        await bootstrapper.ensure_library_loaded()

        loader.assert_called_once()

    async def test_failure_raises_and_is_not_cached(self, fake_library):
        loader = MagicMock(side_effect=[ImportError("no module named googleapiclient"), fake_library])
        bootstrapper = ClientLibraryBootstrapper(loader=loader)

        with pytest.raises(LibraryLoadError, match="Unable to load calendar client library") as excinfo:
            await bootstrapper.ensure_library_loaded()

        assert excinfo.value.retryable
        assert isinstance(excinfo.value.__cause__, ImportError)
        assert not bootstrapper.is_loaded

        assert await bootstrapper.ensure_library_loaded() is fake_library
        assert loader.call_count == 2

    async def test_concurrent_callers_share_failure(self):
        release = threading.Event()

        def loader():
            release.wait(timeout=5)
            raise ImportError("broken install")

        bootstrapper = ClientLibraryBootstrapper(loader=loader)
        pending = asyncio.gather(
            bootstrapper.ensure_library_loaded(),
            bootstrapper.ensure_library_loaded(),
            return_exceptions=True,
        )
        await asyncio.sleep(0.05)
        release.set()
        results = await pending

        assert all(isinstance(result, LibraryLoadError) for result in results)
