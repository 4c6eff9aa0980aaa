"""Turn an OptionSet into a wire-ready ``httpx.Request``."""

from __future__ import annotations

import base64
import json
import os
from pathlib import Path
from typing import Iterable, Iterator, Mapping
from urllib.parse import quote_plus

import httpx

from .exceptions import FileInfoError, InvalidMethodError, ParamConflictError
from .request_options import FilePart, OptionSet
from .security import parse_url

HTTP_METHODS = frozenset({"HEAD", "GET", "POST", "DELETE", "OPTIONS", "PUT", "PATCH", "CONNECT", "TRACE"})

DEFAULT_USER_AGENT = "nic-python/0.1.1"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

# Only used as a carrier for httpx's multipart encoder; never sent.
_MULTIPART_CARRIER_URL = "http://multipart.invalid/"


def normalize_method(method: str) -> str:
    if not isinstance(method, str) or method.upper() not in HTTP_METHODS:
        raise InvalidMethodError(f"method {method!r} is invalid")
    return method.upper()


def encode_pairs(pairs: Mapping[str, str]) -> str:
    """Percent-encode ``key=value`` pairs joined by ``&``."""
    return "&".join(f"{quote_plus(key)}={quote_plus(value)}" for key, value in pairs.items())


def apply_query(url: httpx.URL, query: Mapping[str, str] | None) -> httpx.URL:
    if not query:
        return url
    extra = encode_pairs(query)
    existing = url.query.decode("ascii")
    combined = f"{existing}&{extra}" if existing else extra
    return url.copy_with(query=combined.encode("ascii"))


def encode_json(payload: Mapping[str, object]) -> bytes:
    return json.dumps(dict(payload), separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")


def _file_content(name: str, part: FilePart) -> bytes:
    if part.content and part.path is not None:
        raise FileInfoError(f"file field {name!r} has both inline content and a path")
    if part.content:
        return part.content
    if part.path is not None:
        # I/O errors surface unchanged
        return Path(os.fspath(part.path)).read_bytes()
    raise FileInfoError(f"file field {name!r} has no content")


def encode_multipart(files: Mapping[str, FilePart | str]) -> tuple[bytes, str]:
    """Encode ``files`` as multipart/form-data, returning ``(body, content_type)``."""
    fields: list[tuple[str, tuple[str | None, bytes] | tuple[str, bytes, str]]] = []
    for name, value in files.items():
        if isinstance(value, FilePart):
            if not value.filename:
                raise FileInfoError(f"file field {name!r} has no filename")
            fields.append((name, (value.filename, _file_content(name, value), value.content_type)))
            for extra_name, extra_value in value.fields.items():
                fields.append((extra_name, (None, extra_value.encode("utf-8"))))
        elif isinstance(value, str):
            fields.append((name, (None, value.encode("utf-8"))))
        else:
            raise FileInfoError(f"file field {name!r} has unsupported type {type(value).__name__}")

    if not fields:
        boundary = os.urandom(16).hex()
        return f"--{boundary}--\r\n".encode("ascii"), f"multipart/form-data; boundary={boundary}"

    carrier = httpx.Request("POST", _MULTIPART_CARRIER_URL, files=fields)
    return carrier.read(), carrier.headers["Content-Type"]


def encode_body(options: OptionSet) -> tuple[bytes, str | None] | None:
    """Return ``(body, content_type)`` for the populated body variant, if any."""
    kind = options.body_kind
    if kind == "data":
        return encode_pairs(options.data or {}).encode("ascii"), FORM_CONTENT_TYPE
    if kind == "raw":
        return options.raw_bytes, None
    if kind == "json":
        return encode_json(options.json or {}), JSON_CONTENT_TYPE
    if kind == "files":
        return encode_multipart(options.files or {})
    return None


def _chunks(body: bytes) -> Iterator[bytes]:
    yield body


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def cookie_header(*sources: Iterable[tuple[str, str]]) -> str:
    """Join cookie pairs; a later pair with the same name replaces an earlier one."""
    merged: dict[str, str] = {}
    for source in sources:
        for name, value in source:
            merged[name] = value
    return "; ".join(f"{name}={value}" for name, value in merged.items())


def build_request(
    method: str,
    url: str,
    options: OptionSet | None = None,
    *,
    cookies: Iterable[tuple[str, str]] = (),
    user_agent: str = DEFAULT_USER_AGENT,
) -> httpx.Request:
    """Build the request for one call.

    Raises ``ParamConflictError``, ``InvalidMethodError``, ``InvalidURLError``
    or ``FileInfoError`` before anything touches the network. Reading a
    multipart ``path`` is the only I/O performed.
    """
    options = options or OptionSet()
    if options.is_conflicting():
        raise ParamConflictError(f"body options conflict: {', '.join(options.populated_bodies())}")
    method = normalize_method(method)

    target = apply_query(parse_url(url), options.query)

    headers = httpx.Headers(
        {
            "User-Agent": user_agent,
            "Accept": "*/*",
            "Accept-Encoding": "gzip, deflate",
        }
    )
    encoded = encode_body(options)
    content: bytes | Iterator[bytes] | None = None
    if encoded is not None:
        body, content_type = encoded
        if content_type is not None:
            headers["Content-Type"] = content_type
        content = _chunks(body) if options.chunked else body

    for name, value in (options.headers or {}).items():
        headers[name] = value

    pairs = cookie_header(cookies, (options.cookies or {}).items())
    if pairs:
        existing = headers.get("Cookie")
        headers["Cookie"] = f"{existing}; {pairs}" if existing else pairs

    for username, password in (options.auth or {}).items():
        headers["Authorization"] = basic_auth_header(username, password)

    return httpx.Request(method, target, headers=headers, content=content)
