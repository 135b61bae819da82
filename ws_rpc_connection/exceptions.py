"""
Exception classes for ws_rpc_connection.

This module defines all custom exceptions raised (or emitted) by the library.
All exceptions inherit from RpcError, which inherits from Exception.
"""

from __future__ import annotations

DEFAULT_ERROR_KIND = "WS"


class RpcError(Exception):
    """
    Base exception for all connection-related errors.

    Catching this exception will catch all library-specific errors.
    """


class RpcInvalidAddressError(RpcError):
    """
    Raised when an address is not compatible with a WebSocket connection.

    Raised synchronously by the WsConnection constructor and on every
    open()/send() entry. It is never retried, and no socket is created.
    """

    def __init__(self, url: str) -> None:
        super().__init__(
            f"Provided URL is not compatible with WebSocket connection: {url}"
        )
        self.url = url


class RpcNotConnectedError(RpcError):
    """
    Raised when close() is requested while no socket is open.
    """


class RpcTransportError(RpcError):
    """
    A transport failure classified into a (kind, message, endpoint) triple.

    Instances are emitted on the ``error`` event and form the base of the
    establishment / send / malformed-payload errors. The raw exception that
    was classified (if any) is available as ``__cause__``.

    Parameters
    ----------
    message : str
        Human-readable description of the failure.
    kind : str, optional
        Transport kind tag, "WS" by default.
    endpoint : str | None, optional
        The endpoint the failure relates to, for diagnostics.
    """

    def __init__(
        self,
        message: str,
        kind: str = DEFAULT_ERROR_KIND,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.endpoint = endpoint

    def as_tuple(self) -> tuple[str, str, str | None]:
        return (self.kind, self.message, self.endpoint)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind!r}, message={self.message!r}, "
            f"endpoint={self.endpoint!r})"
        )


class RpcEstablishmentError(RpcTransportError):
    """
    Raised when the underlying socket could not be established.

    Every caller attached to the failed attempt receives the same instance.
    This layer never retries; call open()/send() again to start a new attempt.
    """


class RpcSendError(RpcTransportError):
    """
    A write to an open socket failed.

    Never raised to the caller of send(). Its message is wrapped into a
    JSON-RPC error reply and emitted as a ``payload`` event instead.
    """


class RpcMalformedPayloadError(RpcTransportError):
    """
    An inbound frame could not be decoded.

    Emitted on the ``error`` event. The connection stays open.
    """


class RpcMessageTooLargeError(RpcError):
    """
    Raised when a received frame exceeds the configured size limit.

    The size is checked before deserialization so a huge payload is rejected
    without being parsed.
    """
