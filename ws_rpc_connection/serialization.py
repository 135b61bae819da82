"""
Payload serializers converting between payload objects and wire frames.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from .config import DEFAULT_MAX_MESSAGE_SIZE
from .exceptions import RpcMessageTooLargeError
from .logger import get_logger

logger = get_logger("serialization")


class PayloadSerializer(ABC):
    """
    Abstract base class for payload serializers.

    WsConnection uses a serializer to turn outbound payloads into frames and
    inbound frames into payloads. Failures are reported by raising; the
    connection decides how to surface them (error reply for outbound,
    ``error`` event for inbound).

    Examples
    --------
    Implement a custom serializer:

    >>> class Utf8Serializer(PayloadSerializer):
    ...     def serialize(self, payload):
    ...         return str(payload)
    ...
    ...     def deserialize(self, data):
    ...         return data.decode("utf-8") if isinstance(data, bytes) else data
    """

    @abstractmethod
    def serialize(self, payload: Any) -> str | bytes:
        """
        Convert an outbound payload to a frame.

        Raises
        ------
        TypeError, ValueError
            If the payload cannot be encoded.
        """
        ...

    @abstractmethod
    def deserialize(self, data: str | bytes) -> Any:
        """
        Convert an inbound frame to a payload.

        Raises
        ------
        ValueError
            If the frame cannot be decoded.
        RpcMessageTooLargeError
            If the frame exceeds the size limit.
        """
        ...


class JsonPayloadSerializer(PayloadSerializer):
    """
    JSON serializer with inbound size validation.

    Parameters
    ----------
    max_message_size : int, optional
        Maximum allowed inbound frame size in bytes (default is 10MB). Frames
        exceeding it are rejected before parsing.

    Examples
    --------
    >>> serializer = JsonPayloadSerializer()
    >>> serializer.serialize({"jsonrpc": "2.0", "id": 1, "method": "ping"})
    '{"jsonrpc": "2.0", "id": 1, "method": "ping"}'
    >>> serializer.deserialize(b'{"id": 1, "result": "pong"}')
    {'id': 1, 'result': 'pong'}
    """

    def __init__(self, max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE) -> None:
        self._max_message_size = max_message_size

    @property
    def max_message_size(self) -> int:
        return self._max_message_size

    def serialize(self, payload: Any) -> str:
        """
        Serialize a payload to a JSON string.

        Notes
        -----
        pydantic models are dumped with ``exclude_none=True`` so notifications
        do not carry a null id. Anything else goes through json.dumps().
        """
        if isinstance(payload, BaseModel):
            return payload.model_dump_json(exclude_none=True)
        return json.dumps(payload)

    def deserialize(self, data: str | bytes) -> Any:
        # Already-decoded frames (custom sockets) pass through untouched
        if not isinstance(data, (str, bytes, bytearray)):
            return data

        # Validate message size BEFORE deserialization
        if isinstance(data, str):
            message_size = len(data.encode("utf-8"))
        else:
            message_size = len(data)

        if message_size > self._max_message_size:
            logger.error(
                f"Received message exceeds size limit: {message_size} bytes "
                f"(limit: {self._max_message_size} bytes)"
            )
            raise RpcMessageTooLargeError(
                f"Incoming message size ({message_size} bytes) exceeds limit "
                f"({self._max_message_size} bytes)"
            )

        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")

        logger.debug(f"Deserializing message ({message_size} bytes)")
        return json.loads(data)
