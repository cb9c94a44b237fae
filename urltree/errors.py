"""Error kinds raised while fetching items and building trees."""
from __future__ import annotations


class UrlTreeError(Exception):
    """Base class for failures surfaced by a rebuild."""

    status_code = 500
    detail = "Failed to fetch data"


class MalformedUrlError(UrlTreeError):
    """An item's URL could not be parsed into host and path."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Malformed URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class UpstreamError(UrlTreeError):
    """Failure talking to the upstream item source."""


class UpstreamTimeout(UpstreamError):
    """Upstream answered with a gateway timeout."""

    status_code = 504
    detail = "Gateway Timeout"


class UpstreamBadGateway(UpstreamError):
    """Upstream answered with a bad gateway."""

    status_code = 502
    detail = "Bad Gateway"


class UpstreamUnreachable(UpstreamError):
    """The request was sent but no response came back."""

    status_code = 502
    detail = "Bad Gateway"


class UpstreamOther(UpstreamError):
    """Any other upstream failure."""
