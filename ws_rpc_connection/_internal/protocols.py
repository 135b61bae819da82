"""
Protocol definitions for the socket primitive collaborator.

These protocols let WsConnection depend on abstractions rather than on the
websockets library directly, so the socket factory can be injected (and
faked in tests).
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SocketProtocol(Protocol):
    """
    Protocol defining the interface for WebSocket-like objects.

    This is the minimal capability set WsConnection needs from an established
    socket: write a frame, read the next frame, close. The websockets
    library's client connection satisfies it.

    Examples
    --------
    >>> async def echo_once(socket: SocketProtocol) -> None:
    ...     message = await socket.recv()
    ...     await socket.send(message)
    ...     await socket.close()
    """

    async def send(self, message: Any) -> None:
        """
        Send a raw frame over the socket.

        Notes
        -----
        Should raise if the socket is closed or the write fails.
        """
        ...

    async def recv(self) -> Any:
        """
        Receive the next raw frame (str or bytes).

        Notes
        -----
        Blocks until a frame is available. Raises
        ``websockets.exceptions.ConnectionClosed`` once the connection is gone.
        """
        ...

    async def close(self, code: int = 1000) -> None:
        """
        Close the socket connection.

        Parameters
        ----------
        code : int, optional
            WebSocket close code (default is 1000 for normal closure).
        """
        ...


@runtime_checkable
class SocketFactory(Protocol):
    """
    Protocol for the injected socket factory.

    A factory establishes one socket for ``uri``. ``options`` is None when the
    runtime does not support custom socket options; otherwise it holds
    ``reject_unauthorized`` plus any connection keywords from configuration.

    Examples
    --------
    >>> async def factory(uri, subprotocols, options):
    ...     return await websockets.connect(uri, subprotocols=subprotocols)
    >>> connection = WsConnection("ws://localhost:8545", socket_factory=factory)
    """

    async def __call__(
        self,
        uri: str,
        subprotocols: list[str] | None,
        options: dict[str, Any] | None,
    ) -> SocketProtocol: ...
