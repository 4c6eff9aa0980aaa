"""Buffered, re-decodable view of a completed exchange."""

from __future__ import annotations

import codecs
import json
import os
from pathlib import Path
from typing import Any, Sequence, TypeVar, overload

import httpx
from pydantic import TypeAdapter, ValidationError

from .exceptions import ResponseDecodeError, UnrecognizedEncodingError

T = TypeVar("T")

DEFAULT_ENCODING = "utf-8"


def parse_set_cookie(header: str) -> tuple[str, str] | None:
    """Return the ``(name, value)`` pair of a Set-Cookie header, ignoring attributes."""
    pair = header.split(";", 1)[0]
    name, sep, value = pair.partition("=")
    name = name.strip()
    if not sep or not name:
        return None
    return name, value.strip().strip('"')


def _lookup_codec(name: str) -> codecs.CodecInfo:
    try:
        info = codecs.lookup(name)
    except (LookupError, TypeError) as exc:
        raise UnrecognizedEncodingError(f"unrecognized encoding {name!r}", cause=exc) from exc
    if not getattr(info, "_is_text_encoding", True):
        raise UnrecognizedEncodingError(f"{name!r} is not a text encoding")
    return info


class Response:
    """Wraps an ``httpx.Response`` whose body has been read exactly once."""

    def __init__(self, raw: httpx.Response, *, hook_errors: Sequence[Exception] = ()) -> None:
        raw.read()
        self.raw = raw
        self.content: bytes = raw.content
        self.hook_errors: tuple[Exception, ...] = tuple(hook_errors)
        self._encoding = DEFAULT_ENCODING
        self._text = self.content.decode(DEFAULT_ENCODING, errors="replace")

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"

    @property
    def status_code(self) -> int:
        return self.raw.status_code

    @property
    def reason_phrase(self) -> str:
        return self.raw.reason_phrase

    @property
    def headers(self) -> httpx.Headers:
        return self.raw.headers

    @property
    def url(self) -> httpx.URL:
        return self.raw.url

    @property
    def request(self) -> httpx.Request:
        return self.raw.request

    @property
    def history(self) -> list[httpx.Response]:
        return self.raw.history

    @property
    def is_redirect(self) -> bool:
        return self.raw.is_redirect

    @property
    def cookies(self) -> list[tuple[str, str]]:
        """Cookies set by this exchange, redirect hops included, in arrival order."""
        found: list[tuple[str, str]] = []
        for hop in [*self.raw.history, self.raw]:
            for header in hop.headers.get_list("set-cookie"):
                pair = parse_set_cookie(header)
                if pair is not None:
                    found.append(pair)
        return found

    @property
    def encoding(self) -> str:
        return self._encoding

    @property
    def text(self) -> str:
        return self._text

    def set_encoding(self, name: str) -> None:
        """Re-decode the buffered body with another charset.

        An unknown charset raises ``UnrecognizedEncodingError`` and leaves
        ``text`` and ``encoding`` untouched.
        """
        info = _lookup_codec(name)
        if info.name == _lookup_codec(self._encoding).name:
            return
        self._text = self.content.decode(info.name, errors="replace")
        self._encoding = name.lower()

    @overload
    def parse_json(self) -> Any: ...

    @overload
    def parse_json(self, target: type[T]) -> T: ...

    def parse_json(self, target: Any = None) -> Any:
        """Deserialize the buffered body, whatever the Content-Type says.

        Without ``target`` the plain JSON value is returned; otherwise the body
        is validated into ``target`` (a pydantic model, dataclass, TypedDict or
        any type pydantic understands).
        """
        if target is None:
            try:
                return json.loads(self.content)
            except (ValueError, UnicodeDecodeError) as exc:
                raise ResponseDecodeError("response body is not valid JSON", cause=exc) from exc
        try:
            return TypeAdapter(target).validate_json(self.content)
        except ValidationError as exc:
            raise ResponseDecodeError(f"response body does not match {target!r}", cause=exc) from exc

    def save_to_file(self, path: str | os.PathLike[str]) -> int:
        return Path(os.fspath(path)).write_bytes(self.content)
