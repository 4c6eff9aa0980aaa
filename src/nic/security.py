"""Redaction and URL validation helpers."""

from __future__ import annotations

from typing import Mapping

import httpx

from .exceptions import InvalidURLError

SENSITIVE_HEADERS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
}

PROXY_SCHEMES = {"http", "https", "socks5", "socks5h"}


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return headers with sensitive values redacted for logging."""
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = value
    return redacted


def redact_url_credentials(url: str | httpx.URL) -> str:
    """Strip ``user:password@`` from a URL before it is logged."""
    try:
        parsed = httpx.URL(str(url))
    except httpx.InvalidURL:
        return "[INVALID URL]"
    if not parsed.userinfo:
        return str(parsed)
    return str(parsed.copy_with(username="redacted", password=None))


def parse_url(url: str) -> httpx.URL:
    """Parse an absolute http(s) request URL."""
    if "\x00" in url:
        raise InvalidURLError("invalid url characters")
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise InvalidURLError(f"invalid url {url!r}", cause=exc) from exc
    if parsed.scheme not in {"http", "https"} or not parsed.host:
        raise InvalidURLError(f"url must be absolute http(s), got {url!r}")
    return parsed


def validate_proxy_url(proxy: str) -> httpx.URL:
    """Validate a ``scheme://host[:port]`` proxy URL, SOCKS5 included."""
    try:
        parsed = httpx.URL(proxy)
    except (httpx.InvalidURL, TypeError) as exc:
        raise InvalidURLError("invalid proxy url", cause=exc) from exc
    if parsed.scheme not in PROXY_SCHEMES:
        raise InvalidURLError(f"unsupported proxy scheme: {parsed.scheme or '<none>'}")
    if not parsed.host:
        raise InvalidURLError("proxy url must include a host")
    return parsed
