from __future__ import annotations

import json
from email.parser import BytesParser
from email.policy import HTTP
from typing import Callable

import httpx
import pytest


def parse_multipart(content_type: str, body: bytes) -> dict[str, dict[str, object]]:
    message = BytesParser(policy=HTTP).parsebytes(
        f"Content-Type: {content_type}\r\n\r\n".encode("ascii") + body
    )
    fields: dict[str, dict[str, object]] = {}
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        fields[name] = {
            "filename": part.get_filename(),
            "content_type": part.get("Content-Type"),
            "payload": part.get_payload(decode=True),
        }
    return fields


class FakeServer:
    """In-process stand-in for the HTTP test server, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.path
        cookie = request.headers.get("cookie", "")
        if path == "/get":
            return httpx.Response(200, text="ok" + cookie)
        if path == "/redirect":
            return httpx.Response(302, headers={"Location": "/redirect-dst"})
        if path == "/redirect-dst":
            return httpx.Response(200, text="redirect_ok")
        if path == "/loop":
            return httpx.Response(302, headers={"Location": "/loop"})
        if path == "/cookie":
            return httpx.Response(200, headers={"Set-Cookie": "nic=nic; Path=/session; HttpOnly"})
        if path == "/session":
            if "nic=nic" in cookie:
                return httpx.Response(200, text="session_keep_ok")
            return httpx.Response(200, text="")
        if path == "/json-resp":
            return httpx.Response(200, text=json.dumps({"p1": "1", "p2": "2"}))
        if path == "/echo":
            content_type = request.headers.get("content-type", "")
            payload: dict[str, object] = {
                "method": request.method,
                "query": request.url.query.decode(),
                "headers": dict(request.headers),
                "body": request.content.decode("utf-8", errors="replace"),
            }
            if content_type.startswith("multipart/form-data"):
                payload["form"] = {
                    name: field["payload"].decode()
                    for name, field in parse_multipart(content_type, request.content).items()
                }
            return httpx.Response(200, json=payload)
        return httpx.Response(404, text="not found")


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def transport(server: FakeServer) -> httpx.MockTransport:
    return httpx.MockTransport(server)


@pytest.fixture
def multipart() -> Callable[[str, bytes], dict[str, dict[str, object]]]:
    return parse_multipart
