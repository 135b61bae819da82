"""
Tests for connect coalescing and establishment failure handling.

This test module covers:
- Concurrent open()/send() callers sharing a single establishment attempt
- Every attached waiter settled exactly once from that attempt
- Establishment failures delivered to every waiter with the same error
- A fresh attempt after a failed one
- Cancellation of waiters and of the initiating caller
"""

from __future__ import annotations

import asyncio
import socket as socket_module

import pytest
from fakes import LOCAL_URL, EventRecorder, FakeSocketFactory, drain

from ws_rpc_connection.exceptions import RpcEstablishmentError, RpcTransportError
from ws_rpc_connection.schemas import ConnectionState
from ws_rpc_connection.ws_connection import WsConnection

NUM_CALLERS = 10


# ============================================================================
# Successful Coalescing
# ============================================================================


@pytest.mark.concurrency
class TestConcurrentOpen:
    """Test that concurrent connect requests share one attempt."""

    @pytest.mark.asyncio
    async def test_concurrent_open_creates_single_socket(
        self,
        connection: WsConnection,
        socket_factory: FakeSocketFactory,
        recorder: EventRecorder,
    ) -> None:
        """
        Verifies that:
        - N concurrent open() calls while IDLE trigger one establishment
        - All N callers complete successfully
        - ``open`` is emitted once
        """
        socket_factory.hold()
        tasks = [asyncio.create_task(connection.open()) for _ in range(NUM_CALLERS)]
        await drain()

        assert connection.connecting
        assert len(socket_factory.calls) == 1

        socket_factory.release()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert results == [None] * NUM_CALLERS
        assert len(socket_factory.calls) == 1
        assert connection.connected
        assert recorder.count("open") == 1

    @pytest.mark.asyncio
    async def test_concurrent_sends_share_attempt(
        self, connection: WsConnection, socket_factory: FakeSocketFactory
    ) -> None:
        """
        Verifies that:
        - N concurrent send() calls while IDLE trigger one establishment
        - Every payload is written to the single socket
        """
        socket_factory.hold()
        tasks = [
            asyncio.create_task(
                connection.send({"jsonrpc": "2.0", "id": i, "method": "ping"})
            )
            for i in range(NUM_CALLERS)
        ]
        await drain()
        socket_factory.release()
        await asyncio.gather(*tasks)

        assert len(socket_factory.calls) == 1
        assert len(socket_factory.socket.sent) == NUM_CALLERS

    @pytest.mark.asyncio
    async def test_mixed_open_and_send_share_attempt(
        self, connection: WsConnection, socket_factory: FakeSocketFactory
    ) -> None:
        socket_factory.hold()
        open_task = asyncio.create_task(connection.open())
        send_task = asyncio.create_task(
            connection.send({"jsonrpc": "2.0", "id": "a", "method": "ping"})
        )
        second_open = asyncio.create_task(connection.open())
        await drain()
        socket_factory.release()
        await asyncio.gather(open_task, send_task, second_open)

        assert len(socket_factory.calls) == 1
        assert socket_factory.socket.sent == [
            '{"jsonrpc": "2.0", "id": "a", "method": "ping"}'
        ]

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_attempt(
        self, connection: WsConnection, socket_factory: FakeSocketFactory
    ) -> None:
        """
        Verifies that:
        - Cancelling a waiter leaves the shared attempt running
        - The initiating caller still connects
        """
        socket_factory.hold()
        initiator = asyncio.create_task(connection.open())
        await drain()
        waiter = asyncio.create_task(connection.open())
        await drain()

        waiter.cancel()
        await drain()
        socket_factory.release()
        await initiator

        assert waiter.cancelled()
        assert connection.connected
        assert len(socket_factory.calls) == 1


# ============================================================================
# Establishment Failures
# ============================================================================


@pytest.mark.concurrency
class TestEstablishmentFailure:
    """Test that failed attempts settle every waiter consistently."""

    @pytest.mark.asyncio
    async def test_failure_rejects_all_waiters_with_same_error(
        self,
        connection: WsConnection,
        socket_factory: FakeSocketFactory,
        recorder: EventRecorder,
    ) -> None:
        """
        Verifies that:
        - Every caller attached to the failed attempt gets an error
        - All callers receive the very same RpcEstablishmentError
        - ``register_error`` is emitted once; ``open`` is not emitted
        - State returns to IDLE
        """
        socket_factory.hold()
        socket_factory.error = OSError("handshake exploded")
        tasks = [asyncio.create_task(connection.open()) for _ in range(NUM_CALLERS)]
        await drain()
        socket_factory.release()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, RpcEstablishmentError) for r in results)
        assert all(r is results[0] for r in results)
        assert results[0].message == "handshake exploded"
        assert results[0].endpoint == LOCAL_URL
        assert results[0].kind == "WS"

        assert connection.state is ConnectionState.IDLE
        assert recorder.count("register_error") == 1
        assert recorder.of("register_error")[0][0] is results[0]
        assert recorder.count("open") == 0
        assert len(socket_factory.calls) == 1

    @pytest.mark.asyncio
    async def test_refused_connection_is_classified_unavailable(
        self, connection: WsConnection, socket_factory: FakeSocketFactory
    ) -> None:
        socket_factory.error = ConnectionRefusedError(111, "Connect call failed")

        with pytest.raises(RpcEstablishmentError) as exc_info:
            await connection.open()

        assert exc_info.value.message == f"Unavailable WS RPC url at {LOCAL_URL}"
        assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)

    @pytest.mark.asyncio
    async def test_unresolvable_host_is_classified_unavailable(
        self, connection: WsConnection, socket_factory: FakeSocketFactory
    ) -> None:
        socket_factory.error = socket_module.gaierror(-2, "Name or service not known")

        with pytest.raises(RpcEstablishmentError, match="Unavailable WS RPC url"):
            await connection.open()

    @pytest.mark.asyncio
    async def test_send_propagates_establishment_failure(
        self, connection: WsConnection, socket_factory: FakeSocketFactory
    ) -> None:
        socket_factory.error = OSError("no route to host")

        with pytest.raises(RpcEstablishmentError):
            await connection.send({"jsonrpc": "2.0", "id": 1, "method": "ping"})

    @pytest.mark.asyncio
    async def test_fresh_attempt_after_failure(
        self, connection: WsConnection, socket_factory: FakeSocketFactory
    ) -> None:
        """
        Verifies that:
        - After a failed attempt the state is IDLE
        - The next open() starts a new establishment and succeeds
        """
        socket_factory.error = OSError("temporarily down")
        with pytest.raises(RpcEstablishmentError):
            await connection.open()
        assert connection.state is ConnectionState.IDLE

        socket_factory.error = None
        await connection.open()

        assert len(socket_factory.calls) == 2
        assert connection.connected

    @pytest.mark.asyncio
    async def test_failure_is_not_surfaced_as_close(
        self,
        connection: WsConnection,
        socket_factory: FakeSocketFactory,
        recorder: EventRecorder,
    ) -> None:
        socket_factory.error = OSError("down")

        with pytest.raises(RpcEstablishmentError):
            await connection.open()

        assert recorder.count("close") == 0

    @pytest.mark.asyncio
    async def test_cancelled_initiator_fails_waiters(
        self, connection: WsConnection, socket_factory: FakeSocketFactory
    ) -> None:
        """
        Verifies that:
        - Cancelling the caller running the establishment returns to IDLE
        - Attached waiters are rejected rather than left hanging
        """
        socket_factory.hold()
        initiator = asyncio.create_task(connection.open())
        await drain()
        waiter = asyncio.create_task(connection.open())
        await drain()

        initiator.cancel()

        with pytest.raises(asyncio.CancelledError):
            await initiator
        with pytest.raises(RpcEstablishmentError, match="cancelled"):
            await waiter
        assert connection.state is ConnectionState.IDLE

    @pytest.mark.asyncio
    async def test_establishment_error_is_transport_error(
        self, connection: WsConnection, socket_factory: FakeSocketFactory
    ) -> None:
        socket_factory.error = RuntimeError("")

        with pytest.raises(RpcTransportError) as exc_info:
            await connection.open()

        # empty messages fall back to the exception type name
        assert exc_info.value.message == "RuntimeError"

    @pytest.mark.asyncio
    async def test_unawaited_failed_attempt_does_not_warn(
        self,
        socket_factory: FakeSocketFactory,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        connection = WsConnection(LOCAL_URL, socket_factory=socket_factory)
        socket_factory.error = OSError("down")

        with pytest.raises(RpcEstablishmentError):
            await connection.open()
        await drain()

        assert "exception was never retrieved" not in caplog.text
