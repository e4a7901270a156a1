"""Utility functions for aioturntable."""

from __future__ import annotations

import socket

from yarl import URL

from aioturntable.exceptions import InvalidURL


def get_local_ip() -> str | None:
    """Get a local IP address that can be used for mDNS advertising.

    Returns the IP address of the interface that would be used to connect
    to an external address, or None if no network is available.
    """
    try:
        # Connecting a UDP socket sends nothing, it only selects the interface
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            result: str = s.getsockname()[0]
            return result
    except OSError:
        return None


def validate_url(url: str) -> str:
    """
    Check that url is an absolute URL with a scheme and a host.

    Returns:
        The URL with surrounding whitespace removed.

    Raises:
        InvalidURL: If the URL cannot be parsed or is not absolute.
    """
    url = url.strip()
    try:
        parsed = URL(url)
    except (TypeError, ValueError) as err:
        raise InvalidURL(url) from err
    if not parsed.scheme or not parsed.host:
        raise InvalidURL(url)
    return url
