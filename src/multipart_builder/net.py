# pyright: standard

"""Shared networking helpers for request targets, timeouts and log-safe URLs."""

from __future__ import annotations

from dataclasses import dataclass

from urllib3.exceptions import LocationParseError
from urllib3.util import Timeout, parse_url

__all__ = [
    "RequestTarget",
    "default_timeouts",
    "redact_url_for_logs",
    "resolve_request_target",
]

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True, slots=True)
class RequestTarget:
    """Connection coordinates and request path derived from a URL."""

    scheme: str
    host: str
    port: int
    path: str

    @property
    def secure(self) -> bool:
        return self.scheme == "https"


def default_timeouts(connect: float = 10.0, read: float = 30.0) -> Timeout:
    """Return a urllib3 Timeout with project defaults for body uploads."""

    return Timeout(connect=float(connect), read=float(read))


def resolve_request_target(url: str) -> RequestTarget:
    """
    Split *url* into the pieces needed to open a connection and send a request.

    Raises:
        ValueError: If the URL cannot be parsed, has no host, or is not http(s).
    """

    try:
        parsed = parse_url(url)
    except LocationParseError as exc:
        raise ValueError(f"Invalid URL: {redact_url_for_logs(url)}") from exc
    scheme = (parsed.scheme or "").lower()
    if scheme not in _DEFAULT_PORTS:
        raise ValueError(f"Unsupported URL scheme {scheme or '<none>'!r}; use http or https")
    if not parsed.host:
        raise ValueError(f"URL has no host: {redact_url_for_logs(url)}")
    return RequestTarget(
        scheme=scheme,
        host=parsed.host,
        port=parsed.port or _DEFAULT_PORTS[scheme],
        path=parsed.request_uri,
    )


def redact_url_for_logs(url: str) -> str:
    """Return a safe identifier for URLs when logging sensitive endpoints."""

    try:
        parsed = parse_url(url)
    except LocationParseError:
        return "url"
    if parsed.host:
        return parsed.host
    return parsed.path or "url"
