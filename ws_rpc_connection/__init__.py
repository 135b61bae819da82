"""
ws_rpc_connection - WebSocket connection lifecycle for JSON-RPC clients

Manages a single duplex WebSocket connection carrying JSON-RPC payloads:
coalesced connects, on-demand connect from send(), and transport failures
turned into structured errors and JSON-RPC error replies.
"""

# Protocol definitions
from ws_rpc_connection._internal.classifier import classify_error
from ws_rpc_connection._internal.events import EventEmitter
from ws_rpc_connection._internal.protocols import SocketFactory, SocketProtocol

# Configuration classes
from ws_rpc_connection.config import WebSocketConnectionConfig, WsConnectionConfig

# Exceptions
from ws_rpc_connection.exceptions import (
    RpcError,
    RpcEstablishmentError,
    RpcInvalidAddressError,
    RpcMalformedPayloadError,
    RpcMessageTooLargeError,
    RpcNotConnectedError,
    RpcSendError,
    RpcTransportError,
)

# Logging utilities
from ws_rpc_connection.logger import LoggingModes, get_logger, logging_config

# JSON-RPC schemas
from ws_rpc_connection.schemas import (
    ConnectionState,
    JsonRpcError,
    JsonRpcErrorCode,
    JsonRpcRequest,
    format_json_rpc_error,
)
from ws_rpc_connection.serialization import JsonPayloadSerializer, PayloadSerializer
from ws_rpc_connection.socket_factory import connect_websocket

# Utility functions
from ws_rpc_connection.utils import is_localhost_url, is_ws_url
from ws_rpc_connection.ws_connection import WsConnection

__version__ = "0.1.0"

__all__ = [
    "ConnectionState",
    "EventEmitter",
    "JsonPayloadSerializer",
    "JsonRpcError",
    "JsonRpcErrorCode",
    "JsonRpcRequest",
    "LoggingModes",
    "PayloadSerializer",
    "RpcError",
    "RpcEstablishmentError",
    "RpcInvalidAddressError",
    "RpcMalformedPayloadError",
    "RpcMessageTooLargeError",
    "RpcNotConnectedError",
    "RpcSendError",
    "RpcTransportError",
    "SocketFactory",
    "SocketProtocol",
    "WebSocketConnectionConfig",
    "WsConnection",
    "WsConnectionConfig",
    "classify_error",
    "connect_websocket",
    "format_json_rpc_error",
    "get_logger",
    "is_localhost_url",
    "is_ws_url",
    "logging_config",
]
