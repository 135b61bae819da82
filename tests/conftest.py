"""
Pytest configuration and shared fixtures for ws_rpc_connection tests.

This module provides:
- Custom pytest markers for test categorization
- Shared fixtures built on the fakes in tests/fakes.py
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from fakes import LOCAL_URL, EventRecorder, FakeSocketFactory, drain

from ws_rpc_connection.ws_connection import WsConnection


def pytest_configure(config: pytest.Config) -> None:
    """
    Register custom pytest markers.
    """
    config.addinivalue_line(
        "markers",
        "concurrency: mark test as exercising concurrent connect/send requests",
    )


# ============================================================================
# Shared Fixtures
# ============================================================================


@pytest.fixture
def socket_factory() -> FakeSocketFactory:
    return FakeSocketFactory()


@pytest_asyncio.fixture
async def connection(socket_factory: FakeSocketFactory) -> WsConnection:
    """Create an idle connection to a local endpoint using the fake factory."""
    conn = WsConnection(LOCAL_URL, socket_factory=socket_factory)
    yield conn
    socket_factory.release()
    if conn.connected:
        await conn.close()
    await drain()


@pytest.fixture
def recorder(connection: WsConnection) -> EventRecorder:
    return EventRecorder(connection)
