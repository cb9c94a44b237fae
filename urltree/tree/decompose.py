"""Split absolute URLs into host and decoded path segments."""
from __future__ import annotations

from urllib.parse import quote, unquote, urlsplit

from urltree.errors import MalformedUrlError
from urltree.tree.models import PathSegments

# Reserved characters left untouched when encoding; "%" keeps existing escapes intact.
_SAFE_CHARS = ";,/?:@&=+$!*'()#[]%"


def _encode_path(path: str) -> str:
    return quote(path, safe=_SAFE_CHARS)


def _ascii_host(raw: str, host: str) -> str:
    if "%" in host or any(char.isspace() for char in host):
        raise MalformedUrlError(raw, "invalid characters in host")
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise MalformedUrlError(raw, f"invalid host {host!r}") from exc


def decompose_url(raw: str) -> PathSegments:
    """Return the host and decoded path segments of ``raw``.

    Internationalized hosts are converted to punycode. ``is_directory`` is
    taken from the raw string, before any decoding, so a trailing ``%2F`` never
    counts as a directory marker.
    """
    try:
        parsed = urlsplit(raw)
        host = parsed.hostname
        _ = parsed.port  # raises on an out-of-range port
    except ValueError as exc:
        raise MalformedUrlError(raw, str(exc)) from exc
    if not parsed.scheme:
        raise MalformedUrlError(raw, "missing scheme")
    if not host:
        raise MalformedUrlError(raw, "missing host")

    segments = [_ascii_host(raw, host)]
    for part in _encode_path(parsed.path).split("/"):
        if not part:
            continue
        try:
            segments.append(unquote(part, errors="strict"))
        except UnicodeDecodeError as exc:
            raise MalformedUrlError(raw, f"undecodable segment {part!r}") from exc
    return PathSegments(segments=tuple(segments), is_directory=raw.endswith("/"))
