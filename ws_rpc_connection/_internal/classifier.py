"""
Classification of raw transport failures.

Every exception that crosses the socket boundary is mapped to an
RpcTransportError carrying a (kind, message, endpoint) triple, so subscribers
and waiters always receive a structured error with the endpoint attached.
"""

from __future__ import annotations

import socket

from ..exceptions import DEFAULT_ERROR_KIND, RpcTransportError

# Failures that mean nothing is listening at the endpoint (name does not
# resolve, or the connection is actively refused)
UNAVAILABLE_ENDPOINT_ERRORS: tuple[type[BaseException], ...] = (
    socket.gaierror,
    ConnectionRefusedError,
)


def is_unavailable_endpoint(error: BaseException) -> bool:
    if isinstance(error, UNAVAILABLE_ENDPOINT_ERRORS):
        return True
    # OSError subclasses raised by some loops wrap the original failure
    cause = error.__cause__ or error.__context__
    return cause is not None and isinstance(cause, UNAVAILABLE_ENDPOINT_ERRORS)


def describe_error(error: BaseException) -> str:
    message = str(error)
    return message if message else type(error).__name__


def classify_error(
    error: BaseException,
    endpoint: str | None,
    kind: str = DEFAULT_ERROR_KIND,
    error_cls: type[RpcTransportError] = RpcTransportError,
) -> RpcTransportError:
    """
    Map a raw transport failure to a classified error.

    Parameters
    ----------
    error : BaseException
        The raw failure raised by the socket primitive or serializer.
    endpoint : str | None
        The endpoint the failure relates to.
    kind : str, optional
        Transport kind tag, "WS" by default.
    error_cls : type[RpcTransportError], optional
        Concrete class of the returned error (establishment, send, ...).

    Returns
    -------
    RpcTransportError
        An instance of ``error_cls``. Unreachable endpoints get the message
        "Unavailable <kind> RPC url at <endpoint>"; anything else keeps its own
        message. The raw error is chained as ``__cause__``.

    Examples
    --------
    >>> error = classify_error(ConnectionRefusedError(111, "refused"), "ws://node:8546")
    >>> error.as_tuple()
    ('WS', 'Unavailable WS RPC url at ws://node:8546', 'ws://node:8546')
    """
    if isinstance(error, error_cls):
        return error

    if is_unavailable_endpoint(error):
        message = f"Unavailable {kind} RPC url at {endpoint}"
    elif isinstance(error, RpcTransportError):
        message = error.message
    else:
        message = describe_error(error)

    classified = error_cls(message, kind=kind, endpoint=endpoint)
    classified.__cause__ = error
    return classified
