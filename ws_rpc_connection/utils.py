from __future__ import annotations

import re

WS_SCHEME_REGEX = re.compile(r"^wss?:", re.IGNORECASE)
URL_SCHEME_REGEX = re.compile(r"^\w+:", re.IGNORECASE)
LOCALHOST_REGEX = re.compile(r"wss?://localhost(:\d{2,5})?")


def get_url_scheme(url: str) -> str | None:
    """Return the leading ``scheme:`` of ``url`` or None if there is none."""
    if not isinstance(url, str):
        return None
    match = URL_SCHEME_REGEX.match(url)
    return match.group(0) if match else None


def is_ws_url(url: str) -> bool:
    scheme = get_url_scheme(url)
    if scheme is None:
        return False
    return WS_SCHEME_REGEX.match(scheme) is not None


def is_localhost_url(url: str) -> bool:
    """
    Check if ``url`` points at a loopback WebSocket endpoint.

    Loopback endpoints get relaxed certificate validation when the socket
    options are built.
    """
    if not isinstance(url, str):
        return False
    return LOCALHOST_REGEX.search(url) is not None

