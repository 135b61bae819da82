"""
Unit tests for URL helpers and JSON-RPC error reply formatting.
"""

from __future__ import annotations

import pytest

from ws_rpc_connection.schemas import JsonRpcErrorCode, format_json_rpc_error
from ws_rpc_connection.utils import get_url_scheme, is_localhost_url, is_ws_url


class TestUrlHelpers:
    @pytest.mark.parametrize(
        "url",
        [
            "ws://localhost:8545",
            "wss://relay.example.org/v1?projectId=abc",
            "WSS://relay.example.org",
        ],
    )
    def test_ws_urls_accepted(self, url: str) -> None:
        assert is_ws_url(url)

    @pytest.mark.parametrize(
        "url",
        ["http://localhost:8545", "https://relay.example.org", "localhost:8545", ""],
    )
    def test_non_ws_urls_rejected(self, url: str) -> None:
        assert not is_ws_url(url)

    def test_non_string_rejected(self) -> None:
        assert not is_ws_url(None)  # type: ignore[arg-type]
        assert get_url_scheme(8545) is None  # type: ignore[arg-type]

    def test_get_url_scheme(self) -> None:
        assert get_url_scheme("wss://relay.example.org") == "wss:"
        assert get_url_scheme("/relative/path") is None

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("ws://localhost", True),
            ("ws://localhost:8545", True),
            ("wss://localhost:8546/rpc", True),
            ("ws://127.0.0.1:8545", False),
            ("wss://relay.example.org", False),
        ],
    )
    def test_is_localhost_url(self, url: str, expected: bool) -> None:
        assert is_localhost_url(url) is expected


class TestFormatJsonRpcError:
    def test_error_reply_shape(self) -> None:
        reply = format_json_rpc_error(5, "socket hang up")

        assert reply == {
            "jsonrpc": "2.0",
            "id": 5,
            "error": {"code": -32603, "message": "socket hang up"},
        }

    def test_notification_reply_keeps_null_id(self) -> None:
        assert format_json_rpc_error(None, "gone")["id"] is None

    def test_custom_code_and_data(self) -> None:
        reply = format_json_rpc_error(
            "a1", "bad frame", code=JsonRpcErrorCode.PARSE_ERROR, data={"offset": 3}
        )

        assert reply["error"] == {
            "code": -32700,
            "message": "bad frame",
            "data": {"offset": 3},
        }

    def test_any_id_value_is_echoed(self) -> None:
        reply = format_json_rpc_error(2.5, "broken pipe")

        assert reply["id"] == 2.5
        assert reply["error"]["message"] == "broken pipe"
