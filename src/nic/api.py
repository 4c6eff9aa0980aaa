"""One-shot helpers that run a single call on a throwaway Session."""

from __future__ import annotations

from .request_options import OptionSet
from .response import Response
from .session import Session


def request(method: str, url: str, options: OptionSet | None = None) -> Response:
    with Session() as session:
        return session.request(method, url, options)


def get(url: str, options: OptionSet | None = None) -> Response:
    return request("GET", url, options)


def post(url: str, options: OptionSet | None = None) -> Response:
    return request("POST", url, options)


def head(url: str, options: OptionSet | None = None) -> Response:
    return request("HEAD", url, options)


def delete(url: str, options: OptionSet | None = None) -> Response:
    return request("DELETE", url, options)


def options(url: str, options: OptionSet | None = None) -> Response:
    return request("OPTIONS", url, options)


def put(url: str, options: OptionSet | None = None) -> Response:
    return request("PUT", url, options)


def patch(url: str, options: OptionSet | None = None) -> Response:
    return request("PATCH", url, options)
