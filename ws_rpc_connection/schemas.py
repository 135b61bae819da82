from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, field_validator

# Maximum length for request ID strings (prevents memory issues)
MAX_REQUEST_ID_LENGTH = 256

RequestId = Optional[Union[str, int]]


# JSON-RPC 2.0 Error Codes
# https://www.jsonrpc.org/specification#error_object
class JsonRpcErrorCode(int, Enum):
    """
    Standard JSON-RPC 2.0 error codes.

    Attributes
    ----------
    PARSE_ERROR : int
        Invalid JSON was received (-32700).
    INVALID_REQUEST : int
        The JSON sent is not a valid Request object (-32600).
    METHOD_NOT_FOUND : int
        The method does not exist or is not available (-32601).
    INVALID_PARAMS : int
        Invalid method parameters (-32602).
    INTERNAL_ERROR : int
        Internal JSON-RPC error (-32603). Used for synthesized replies when
        a send fails at the transport level.
    """

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class ConnectionState(str, Enum):
    """
    Lifecycle state of a WsConnection.

    Exactly one state holds at any instant. A socket handle exists if and only
    if the state is OPEN.
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"


class JsonRpcRequest(BaseModel):
    """
    JSON-RPC 2.0 request format.

    Attributes:
        jsonrpc: Protocol version (always "2.0")
        id: Request identifier. If None, this is a notification (no response expected)
        method: Name of the method to call
        params: Named (dict) or positional (list) parameters, or None
    """

    jsonrpc: str = "2.0"
    id: RequestId = None
    method: str
    params: Optional[Union[dict[str, Any], list[Any]]] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: Union[str, int, None]) -> Union[str, int, None]:
        """Validate request ID format and constraints.

        - String IDs: 1-256 characters (no empty strings)
        - Integer IDs: non-negative (>= 0)
        - null: allowed for notifications

        Raises
        ------
        ValueError
            If the ID fails validation (empty string, too long, negative int)
        """
        if v is None:
            return v

        if isinstance(v, str):
            if len(v) == 0:
                raise ValueError("Request ID string cannot be empty")
            if len(v) > MAX_REQUEST_ID_LENGTH:
                raise ValueError(
                    f"Request ID string cannot exceed {MAX_REQUEST_ID_LENGTH} characters"
                )
        elif isinstance(v, int):
            if v < 0:
                raise ValueError("Request ID integer must be non-negative")

        return v


class JsonRpcError(BaseModel):
    """
    JSON-RPC 2.0 error object format.

    Parameters
    ----------
    code : int
        Numeric error code, usually a JsonRpcErrorCode value.
    message : str
        Short human-readable description of the error.
    data : Any, optional
        Additional error information (default is None).
    """

    code: int
    message: str
    data: Optional[Any] = None


def format_json_rpc_error(
    request_id: Any,
    message: str,
    code: int = JsonRpcErrorCode.INTERNAL_ERROR,
    data: Any = None,
) -> dict[str, Any]:
    """
    Build a JSON-RPC error reply addressed to ``request_id``.

    The reply is returned as a plain dict, the same shape the correlation
    layer receives for decoded inbound messages. ``id`` is always present
    (null for notifications) and is copied as-is: whatever id the failed
    payload carried, the reply can be built.

    Examples
    --------
    >>> format_json_rpc_error(7, "socket is closed")
    {'jsonrpc': '2.0', 'id': 7, 'error': {'code': -32603, 'message': 'socket is closed'}}
    """
    error = JsonRpcError(code=int(code), message=message, data=data)
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": error.model_dump(exclude_none=True),
    }
