"""
WsConnection manages the lifecycle of a single WebSocket connection carrying
JSON-RPC payloads, coalescing concurrent connect requests into one attempt.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from websockets.exceptions import ConnectionClosed, WebSocketException

from ._internal.classifier import classify_error
from ._internal.events import EventEmitter, Listener
from .config import WsConnectionConfig
from .exceptions import (
    RpcEstablishmentError,
    RpcInvalidAddressError,
    RpcMalformedPayloadError,
    RpcNotConnectedError,
    RpcSendError,
)
from .logger import get_logger
from .schemas import ConnectionState, format_json_rpc_error
from .serialization import JsonPayloadSerializer, PayloadSerializer
from .socket_factory import REJECT_UNAUTHORIZED_OPTION, connect_websocket
from .utils import is_localhost_url, is_ws_url

if TYPE_CHECKING:
    from ._internal.protocols import SocketFactory, SocketProtocol

logger = get_logger("WS_CONNECTION")

# Event names emitted to subscribers
EVENT_OPEN = "open"
EVENT_CLOSE = "close"
EVENT_ERROR = "error"
EVENT_PAYLOAD = "payload"
# Terminal failure signal of a connect attempt
EVENT_REGISTER_ERROR = "register_error"


def _get_request_id(payload: Any) -> Any:
    if isinstance(payload, dict):
        return payload.get("id")
    return getattr(payload, "id", None)


def _is_empty_frame(message: Any) -> bool:
    if message is None:
        return True
    return isinstance(message, (str, bytes, bytearray)) and len(message) == 0


def _consume_attempt_result(attempt: asyncio.Future[Any]) -> None:
    # Attempts nobody else waited on must not log "exception never retrieved"
    if not attempt.cancelled():
        attempt.exception()


class WsConnection:
    """
    Connection manager for one logical WebSocket connection.

    Callers open, send and close without caring whether a socket currently
    exists: send() connects on demand, and any number of concurrent
    open()/send() calls made while a connect attempt is in flight all attach
    to that single attempt.

    The connection moves through three states (see ConnectionState)::

        IDLE -> CONNECTING -> OPEN -> IDLE
                     \\-> IDLE (establishment failed)

    Subscribers observe the connection through events:

    - ``open``: the socket was established
    - ``close``: the connection went back to idle (explicit or by the peer)
    - ``error``: a classified RpcTransportError (transport or malformed frame)
    - ``payload``: a decoded inbound message, or a synthesized JSON-RPC error
      reply for a failed send
    - ``register_error``: the RpcEstablishmentError of a failed attempt

    Examples
    --------
    >>> connection = WsConnection("wss://relay.example.org")
    >>> connection.on("payload", correlate_response)
    >>> await connection.send({"jsonrpc": "2.0", "id": 1, "method": "ping"})
    >>> await connection.close()

    As an async context manager::

        async with WsConnection("ws://localhost:8545") as connection:
            await connection.send(request)
    """

    def __init__(
        self,
        url: str,
        config: WsConnectionConfig | None = None,
        socket_factory: SocketFactory | None = None,
        serializer: PayloadSerializer | None = None,
    ) -> None:
        """Initialize the WsConnection.

        Parameters
        ----------
        url : str
            WebSocket endpoint (``ws://`` or ``wss://``).
        config : WsConnectionConfig | None, optional
            Connection configuration. Defaults to WsConnectionConfig().
        socket_factory : SocketFactory | None, optional
            Factory establishing the underlying socket. Defaults to
            connect_websocket (websockets library).
        serializer : PayloadSerializer | None, optional
            Payload serializer. Defaults to JsonPayloadSerializer limited to
            ``config.max_message_size``.

        Raises
        ------
        RpcInvalidAddressError
            If ``url`` is not a WebSocket URL.
        """
        if not is_ws_url(url):
            raise RpcInvalidAddressError(url)
        self.url = url

        self.config = config or WsConnectionConfig()
        self.config.validate()

        self.events = EventEmitter(max_listeners=self.config.max_listeners)
        self._socket_factory: SocketFactory = socket_factory or connect_websocket
        self._serializer: PayloadSerializer = serializer or JsonPayloadSerializer(
            max_message_size=self.config.max_message_size
        )

        # State variables
        self._state = ConnectionState.IDLE
        self._socket: SocketProtocol | None = None
        self._attempt: asyncio.Future[SocketProtocol] | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._close_tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def connecting(self) -> bool:
        return self._state is ConnectionState.CONNECTING

    def on(self, event: str, listener: Listener) -> None:
        self.events.on(event, listener)

    def once(self, event: str, listener: Listener) -> None:
        self.events.once(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        self.events.off(event, listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        self.events.remove_listener(event, listener)

    async def __aenter__(self) -> WsConnection:
        await self.open()
        return self

    async def __aexit__(self, *args: Any, **kwargs: Any) -> None:
        if self.connected:
            await self.close()

    async def open(self, url: str | None = None) -> None:
        """Open the connection, or wait for the attempt already in flight.

        Parameters
        ----------
        url : str | None, optional
            Endpoint to connect to. Defaults to the last-known address.

        Raises
        ------
        RpcInvalidAddressError
            If the address is not a WebSocket URL.
        RpcEstablishmentError
            If the connect attempt (this call's or the one it attached to)
            failed.
        """
        await self._register(url)

    async def close(self) -> None:
        """Close the open connection.

        State returns to IDLE and ``close`` is emitted before this coroutine
        returns; the socket's closing handshake runs in the background and is
        not awaited.

        Raises
        ------
        RpcNotConnectedError
            If no socket is open.
        """
        socket = self._socket
        if socket is None:
            raise RpcNotConnectedError("Connection already closed")

        logger.info("Closing connection to %s...", self.url)
        self._on_close()
        self._schedule_socket_close(socket)

    async def send(self, payload: Any, context: Any = None) -> None:
        """Send a payload, connecting first if needed.

        A failure while serializing or writing is not raised. It is classified
        and emitted as a ``payload`` event carrying a JSON-RPC error reply
        addressed to the payload's id, so the correlation layer sees an
        ordinary error response.

        Parameters
        ----------
        payload : Any
            A JSON-RPC message, as a dict or pydantic model.
        context : Any, optional
            Accepted for interface compatibility; unused.

        Raises
        ------
        RpcInvalidAddressError
            If a connect is needed and the last-known address is invalid.
        RpcEstablishmentError
            If a connect is needed and it failed.
        """
        socket = self._socket
        if socket is None:
            socket = await self._register()

        try:
            await socket.send(self._serializer.serialize(payload))
        except Exception as e:
            self._on_send_error(_get_request_id(payload), e)

    async def _register(self, url: str | None = None) -> SocketProtocol:
        """Return an open socket, establishing at most one at a time.

        Notes
        -----
        The IDLE -> CONNECTING transition happens before the first await, so
        a call arriving while an attempt is running always takes the waiter
        branch and never starts a second attempt.
        """
        url = self.url if url is None else url
        if not is_ws_url(url):
            raise RpcInvalidAddressError(url)

        if self._state is ConnectionState.OPEN and self._socket is not None:
            if url != self.url:
                logger.warning(
                    f"Already connected to {self.url}; close() before connecting to {url}"
                )
            return self._socket

        if self._state is ConnectionState.CONNECTING and self._attempt is not None:
            logger.debug(f"Connect to {self.url} already in progress, waiting on it")
            # shield: a cancelled waiter must not cancel the shared attempt
            return await asyncio.shield(self._attempt)

        self.url = url
        self._state = ConnectionState.CONNECTING
        attempt: asyncio.Future[SocketProtocol] = (
            asyncio.get_running_loop().create_future()
        )
        attempt.add_done_callback(_consume_attempt_result)
        self._attempt = attempt

        logger.info("Connecting to %s...", url)
        try:
            socket = await self._socket_factory(
                url,
                self.config.websocket.subprotocols,
                self._prepare_socket_options(url),
            )
        except asyncio.CancelledError:
            error = RpcEstablishmentError(
                "Connection attempt was cancelled",
                kind=self.config.error_kind,
                endpoint=url,
            )
            self._on_register_error(attempt, error)
            raise
        except Exception as e:
            error = classify_error(
                e, url, kind=self.config.error_kind, error_cls=RpcEstablishmentError
            )
            logger.info(f"RPC connection failed - {error.message}")
            self._on_register_error(attempt, error)
            if error is e:
                raise
            raise error from e

        self._on_open(socket)
        attempt.set_result(socket)
        return socket

    def _prepare_socket_options(self, url: str) -> dict[str, Any] | None:
        """Build the options handed to the socket factory.

        Returns
        -------
        dict[str, Any] | None
            None when the runtime does not support custom socket options;
            otherwise the configured websocket kwargs plus certificate, size
            and compression settings.
        """
        if not self.config.socket_options_supported:
            logger.debug("Socket options not supported, connecting without options")
            return None

        options: dict[str, Any] = self.config.websocket_kwargs.copy()
        options[REJECT_UNAUTHORIZED_OPTION] = not is_localhost_url(url)
        # None explicitly disables compression in websockets
        options.setdefault("compression", self.config.websocket.compression)
        options.setdefault("max_size", self.config.max_message_size)
        options.setdefault("open_timeout", self.config.websocket.open_timeout)
        return options

    def _on_open(self, socket: SocketProtocol) -> None:
        self._socket = socket
        self._state = ConnectionState.OPEN
        self._attempt = None
        self._read_task = asyncio.create_task(self._reader(socket))
        logger.info("Connected to %s", self.url)
        self.events.emit(EVENT_OPEN)

    def _on_register_error(
        self, attempt: asyncio.Future[SocketProtocol], error: RpcEstablishmentError
    ) -> None:
        self._state = ConnectionState.IDLE
        self._attempt = None
        self.events.emit(EVENT_REGISTER_ERROR, error)
        if not attempt.done():
            attempt.set_exception(error)

    def _on_close(self) -> None:
        self._socket = None
        self._state = ConnectionState.IDLE

        read_task = self._read_task
        self._read_task = None
        if read_task is not None and read_task is not asyncio.current_task():
            read_task.cancel()

        self.events.emit(EVENT_CLOSE)

    def _on_socket_closed(self, socket: SocketProtocol) -> None:
        # A reader of an already replaced socket must not close the new one
        if self._socket is not socket:
            return
        self._on_close()

    def _on_payload(self, message: Any) -> None:
        if _is_empty_frame(message):
            logger.debug("Dropping frame without payload")
            return

        try:
            payload = self._serializer.deserialize(message)
        except Exception as e:
            error = classify_error(
                e,
                self.url,
                kind=self.config.error_kind,
                error_cls=RpcMalformedPayloadError,
            )
            logger.warning(f"Malformed payload from {self.url}: {error.message}")
            self.events.emit(EVENT_ERROR, error)
            return

        self.events.emit(EVENT_PAYLOAD, payload)

    def _on_transport_error(self, e: BaseException) -> None:
        error = classify_error(e, self.url, kind=self.config.error_kind)
        logger.warning(f"Transport error on {self.url}: {error.message}")
        self.events.emit(EVENT_ERROR, error)

    def _on_send_error(self, request_id: Any, e: Exception) -> None:
        error = classify_error(
            e, self.url, kind=self.config.error_kind, error_cls=RpcSendError
        )
        logger.warning(
            f"Failed to send request {request_id!r} to {self.url}: {error.message}"
        )
        self.events.emit(EVENT_PAYLOAD, format_json_rpc_error(request_id, error.message))

    async def _reader(self, socket: SocketProtocol) -> None:
        """Background task reading frames from one socket until it closes.

        Notes
        -----
        - Each frame goes through _on_payload (decoded, emitted as ``payload``)
        - ConnectionClosed ends the loop and runs the close path
        - Other transport errors are emitted as ``error`` without closing,
          unless the socket reports itself closed
        - Any other failure is emitted as ``error``; the socket is then closed
          and the connection returns to IDLE
        """
        try:
            while True:
                try:
                    message = await socket.recv()
                except ConnectionClosed as e:
                    close_info = getattr(e, "rcvd", None)
                    close_code = getattr(close_info, "code", None)
                    if close_code is not None:
                        logger.info(
                            "Connection was terminated. Close code: %d, reason: %s",
                            close_code,
                            getattr(close_info, "reason", None) or "(no reason provided)",
                        )
                    else:
                        logger.info("Connection was terminated.")
                    break
                except (WebSocketException, OSError) as e:
                    self._on_transport_error(e)
                    if getattr(socket, "closed", False):
                        break
                    continue

                self._on_payload(message)

        except asyncio.CancelledError:
            logger.debug("Reader task was cancelled.")
            raise
        except Exception as e:
            logger.error(
                f"Reader task for {self.url} failed: {type(e).__name__}: {e}",
                exc_info=True,
            )
            self._on_transport_error(e)
            if self._socket is socket:
                self._on_close()
                self._schedule_socket_close(socket)
            return

        self._on_socket_closed(socket)

    def _schedule_socket_close(self, socket: SocketProtocol) -> None:
        task = asyncio.create_task(self._close_socket(socket))
        self._close_tasks.add(task)
        task.add_done_callback(self._close_tasks.discard)

    async def _close_socket(self, socket: SocketProtocol) -> None:
        # Connection may already be broken; the state is already IDLE
        try:
            await socket.close()
        except (RuntimeError, OSError, WebSocketException) as e:
            logger.debug(f"Ignoring error while closing socket: {type(e).__name__}: {e}")
