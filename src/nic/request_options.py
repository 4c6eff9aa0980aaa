"""Per-call request options for nic sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

from .exceptions import NicValidationError, TypeMismatchError

DEFAULT_MIME_TYPE = "application/octet-stream"

BODY_FIELDS = ("data", "raw", "json", "files")


@dataclass(frozen=True)
class FilePart:
    """One multipart file field.

    Exactly one of ``content`` or ``path`` is expected. ``fields`` are sent
    as plain form fields next to the file. Quotes in the field name and
    filename go out percent-encoded (``%22``), as httpx writes them, rather
    than backslash-escaped.
    """

    filename: str = ""
    content: bytes | None = None
    path: str | os.PathLike[str] | None = None
    mime_type: str | None = None
    fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @classmethod
    def from_bytes(cls, filename: str, data: bytes) -> "FilePart":
        return cls(filename=filename, content=data)

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> "FilePart":
        return cls(filename=os.path.basename(os.fspath(path)), path=path)

    def with_filename(self, filename: str) -> "FilePart":
        return replace(self, filename=filename)

    def with_mime(self, mime_type: str) -> "FilePart":
        return replace(self, mime_type=mime_type)

    @property
    def content_type(self) -> str:
        return self.mime_type or DEFAULT_MIME_TYPE


def _freeze_str_map(name: str, value: Mapping[str, Any] | None) -> Mapping[str, str] | None:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise TypeMismatchError(f"{name} must be a mapping, got {type(value).__name__}")
    for key, item in value.items():
        if not isinstance(key, str):
            raise TypeMismatchError(f"{name} key {key!r}[{type(key).__name__}] must be string type")
        if not isinstance(item, str):
            raise TypeMismatchError(f"{name} {key!r} value {item!r}[{type(item).__name__}] must be string type")
    return MappingProxyType(dict(value))


@dataclass(frozen=True)
class OptionSet:
    """Declarative configuration for one request.

    At most one body variant (``data``, ``raw``, ``json``, ``files``) may be
    populated; the conflict is reported when the request is built.
    """

    query: Mapping[str, str] | None = None
    data: Mapping[str, str] | None = None
    raw: bytes | str = b""
    json: Mapping[str, Any] | None = None
    files: Mapping[str, FilePart | str] | None = None
    headers: Mapping[str, str] | None = None
    cookies: Mapping[str, str] | None = None
    auth: Mapping[str, str] | None = None
    proxy: str | None = None
    allow_redirects: bool = True
    timeout: int = 0
    chunked: bool = False
    disable_keep_alive: bool = False
    disable_compression: bool = False
    skip_verify_tls: bool = False

    def __post_init__(self) -> None:
        for name in ("query", "data", "headers", "cookies", "auth"):
            object.__setattr__(self, name, _freeze_str_map(name, getattr(self, name)))
        if not isinstance(self.raw, (bytes, str)):
            raise TypeMismatchError(f"raw body must be bytes or str, got {type(self.raw).__name__}")
        if self.timeout < 0:
            raise NicValidationError("timeout must be zero or greater")
        if self.files is not None:
            object.__setattr__(self, "files", MappingProxyType(dict(self.files)))
        if self.json is not None:
            object.__setattr__(self, "json", MappingProxyType(dict(self.json)))

    def populated_bodies(self) -> list[str]:
        populated = []
        for name in BODY_FIELDS:
            value = getattr(self, name)
            if name == "raw":
                if value:
                    populated.append(name)
            elif value is not None:
                populated.append(name)
        return populated

    def is_conflicting(self) -> bool:
        return len(self.populated_bodies()) > 1

    @property
    def body_kind(self) -> str:
        populated = self.populated_bodies()
        if not populated:
            return "none"
        return populated[0] if len(populated) == 1 else "conflict"

    @property
    def raw_bytes(self) -> bytes:
        return self.raw.encode("utf-8") if isinstance(self.raw, str) else self.raw
