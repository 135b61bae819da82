"""Configuration dataclasses for the WebSocket connection manager.

This module provides immutable, validated configuration objects for the
socket options, message limits, subscriber diagnostics and runtime
capabilities used by WsConnection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import DEFAULT_ERROR_KIND

DEFAULT_MAX_LISTENERS = 10
DEFAULT_MAX_MESSAGE_SIZE = 10 * 1024 * 1024  # 10MB


@dataclass(frozen=True)
class WebSocketConnectionConfig:
    """Configuration for WebSocket-specific connection settings.

    Parameters
    ----------
    subprotocols : list[str] | None, default None
        WebSocket subprotocols to negotiate. None (or an empty list) disables
        subprotocol negotiation.
    compression : str | None, default "deflate"
        Compression method. Supports "deflate" for the permessage-deflate
        extension (RFC 7692), or None to disable compression.
    open_timeout : float | None, default 30.0
        Timeout in seconds applied by the websockets library to the opening
        handshake. None waits indefinitely.

    Examples
    --------
    >>> config = WebSocketConnectionConfig()
    >>> assert config.subprotocols is None
    >>> assert config.compression == "deflate"

    >>> config = WebSocketConnectionConfig(subprotocols=["jsonrpc2.0"], compression=None)
    >>> config.validate()
    """

    subprotocols: list[str] | None = None
    compression: str | None = "deflate"
    open_timeout: float | None = 30.0

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Explicitly validate the configuration.

        Raises
        ------
        ValueError
            If compression is not None or "deflate", or if open_timeout is
            negative.
        """
        if self.compression is not None and self.compression != "deflate":
            raise ValueError(
                f"Invalid compression method: '{self.compression}'. "
                f"Supported values: None (disabled) or 'deflate' (permessage-deflate)"
            )

        if self.open_timeout is not None and self.open_timeout < 0:
            raise ValueError(
                f"open_timeout must be non-negative, got {self.open_timeout}"
            )


@dataclass(frozen=True)
class WsConnectionConfig:
    """Complete configuration for a WsConnection.

    Parameters
    ----------
    websocket : WebSocketConnectionConfig, default WebSocketConnectionConfig()
        WebSocket protocol-level settings.
    max_message_size : int, default 10485760
        Maximum size in bytes of an inbound frame. Larger frames are reported
        as malformed payloads (and rejected by the websockets library itself
        when socket options are supported).
    max_listeners : int, default 10
        Subscriber count per event above which a diagnostic warning is
        logged. Not a hard limit. 0 disables the warning.
    socket_options_supported : bool, default True
        Whether the runtime supports custom socket options. When False the
        socket factory receives ``options=None`` (no certificate relaxation,
        no compression or size settings).
    error_kind : str, default "WS"
        Transport kind tag attached to every classified error.
    websocket_kwargs : dict[str, Any], default {}
        Extra keyword arguments forwarded to the socket factory (headers,
        proxy settings, etc.).

    Examples
    --------
    >>> config = WsConnectionConfig()
    >>> config.validate()

    >>> config = WsConnectionConfig(socket_options_supported=False)
    >>> assert not config.socket_options_supported

    >>> config = WsConnectionConfig.production_defaults()
    >>> assert config.websocket.open_timeout == 15.0
    """

    websocket: WebSocketConnectionConfig = field(
        default_factory=WebSocketConnectionConfig
    )
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE
    max_listeners: int = DEFAULT_MAX_LISTENERS
    socket_options_supported: bool = True
    error_kind: str = DEFAULT_ERROR_KIND
    websocket_kwargs: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Raises
        ------
        ValueError
            If max_message_size is not positive, max_listeners is negative
            or error_kind is empty.
        """
        if self.max_message_size <= 0:
            raise ValueError(
                f"max_message_size must be positive, got {self.max_message_size}"
            )

        if self.max_listeners < 0:
            raise ValueError(
                f"max_listeners must be non-negative (0 to disable), got {self.max_listeners}"
            )

        if not self.error_kind:
            raise ValueError("error_kind must be a non-empty string")

    def validate(self) -> None:
        """Validate all sub-configurations.

        Validation of this object is already done in __post_init__.
        """
        self.websocket.validate()

    @classmethod
    def production_defaults(cls) -> WsConnectionConfig:
        """Configuration with production-oriented defaults.

        - 15-second opening handshake timeout
        - permessage-deflate compression
        - 10MB inbound frame limit
        """
        return cls(
            websocket=WebSocketConnectionConfig(
                compression="deflate",
                open_timeout=15.0,
            ),
            max_message_size=10 * 1024 * 1024,
            max_listeners=DEFAULT_MAX_LISTENERS,
        )

    @classmethod
    def development_defaults(cls) -> WsConnectionConfig:
        """Configuration with development-friendly defaults.

        - No handshake timeout, to allow stepping through a debugger
        - Compression disabled so frames are readable on the wire
        - Larger inbound frame limit
        """
        return cls(
            websocket=WebSocketConnectionConfig(
                compression=None,
                open_timeout=None,
            ),
            max_message_size=20 * 1024 * 1024,
            max_listeners=DEFAULT_MAX_LISTENERS,
        )
