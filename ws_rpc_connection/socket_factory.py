"""
Default socket factory backed by the websockets library.
"""

from __future__ import annotations

import ssl
from typing import Any

import websockets

from ._internal.protocols import SocketProtocol
from .logger import get_logger

logger = get_logger("socket_factory")

# Option consumed by the factory itself rather than forwarded to websockets
REJECT_UNAUTHORIZED_OPTION = "reject_unauthorized"


def build_unverified_ssl_context() -> ssl.SSLContext:
    """
    TLS client context that skips hostname and certificate verification.

    Only used for loopback endpoints, where self-signed development
    certificates are the norm.
    """
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def build_connect_kwargs(
    uri: str,
    subprotocols: list[str] | None,
    options: dict[str, Any] | None,
) -> dict[str, Any]:
    """
    Translate factory options into ``websockets.connect`` keyword arguments.

    Parameters
    ----------
    uri : str
        Endpoint to connect to.
    subprotocols : list[str] | None
        Subprotocols to negotiate, omitted when empty.
    options : dict[str, Any] | None
        Socket options, or None when the runtime does not support them (in
        which case only the subprotocols are passed).

    Returns
    -------
    dict[str, Any]
        Keyword arguments for websockets.connect().
    """
    connect_kwargs: dict[str, Any] = dict(options) if options else {}
    reject_unauthorized = connect_kwargs.pop(REJECT_UNAUTHORIZED_OPTION, True)

    if (
        not reject_unauthorized
        and uri.lower().startswith("wss:")
        and "ssl" not in connect_kwargs
    ):
        logger.debug(f"Relaxing certificate validation for local endpoint {uri}")
        connect_kwargs["ssl"] = build_unverified_ssl_context()

    if subprotocols:
        connect_kwargs["subprotocols"] = list(subprotocols)

    return connect_kwargs


async def connect_websocket(
    uri: str,
    subprotocols: list[str] | None,
    options: dict[str, Any] | None,
) -> SocketProtocol:
    """
    Establish a WebSocket client connection.

    Exactly one websockets.connect() call is made; failures propagate
    unchanged so the caller can classify them.
    """
    connect_kwargs = build_connect_kwargs(uri, subprotocols, options)
    logged_kwargs = {k: v for k, v in connect_kwargs.items() if k != "ssl"}
    logger.debug(
        f"Creating WebSocket connection to {uri} with parameters: {logged_kwargs}"
    )
    return await websockets.connect(uri, **connect_kwargs)
