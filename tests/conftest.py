"""
Root conftest.py for socket-infra tests.

This file provides:
1. Marker registration and path-based auto-marking
2. Settings cache isolation so WS_* env overrides in one test never leak
3. Fake transport fixtures shared by the websocket tests
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterable

import pytest

from socket_infra.websocket.config import get_websocket_settings
from socket_infra.websocket.testing import FakeTransport


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Tag tests by folder so `-m websocket` / `-m integration` select them."""
    for item in items:
        norm = str(item.fspath).replace("\\", "/")
        if "/tests/unit/websocket/" in norm:
            item.add_marker(pytest.mark.websocket)
        if "/tests/integration/" in norm:
            item.add_marker(pytest.mark.integration)


def pytest_configure(config):
    # Ensure custom markers are registered even if pyproject.toml isn't picked up
    for name, desc in [
        ("websocket", "websocket client tests"),
        ("integration", "tests that open real sockets on localhost"),
        ("cli", "command line interface tests"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_websocket_settings.cache_clear()
    yield
    get_websocket_settings.cache_clear()


# =============================================================================
# TRANSPORT & STREAM HELPERS
# =============================================================================


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Transport whose handles accept the handshake on the next loop tick."""
    return FakeTransport()


@pytest.fixture
def drain():
    """Collect everything from a stream until it ends (bounded by a timeout)."""

    async def _drain(stream: AsyncIterable[Any], timeout: float = 2.0) -> list[Any]:
        async def _collect() -> list[Any]:
            return [item async for item in stream]

        return await asyncio.wait_for(_collect(), timeout)

    return _drain


@pytest.fixture
def eventually():
    """Poll ``predicate`` on the running loop until it holds (or fail)."""

    async def _eventually(predicate, timeout: float = 2.0, interval: float = 0.005) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(interval)

    return _eventually


@pytest.fixture
def take():
    """Collect exactly ``n`` items from a stream (bounded by a timeout)."""

    async def _take(stream: AsyncIterable[Any], n: int, timeout: float = 2.0) -> list[Any]:
        async def _collect() -> list[Any]:
            items: list[Any] = []
            async for item in stream:
                items.append(item)
                if len(items) >= n:
                    break
            return items

        return await asyncio.wait_for(_collect(), timeout)

    return _take
