"""Stateful HTTP sessions built on httpx."""

from .api import delete, get, head, options, patch, post, put, request
from .builder import HTTP_METHODS, build_request
from .configurator import ClientConfigurator, TransportSettings
from .exceptions import (
    FileInfoError,
    HookCapacityError,
    HookIndexError,
    InvalidMethodError,
    InvalidURLError,
    NicError,
    NicNetworkError,
    NicTimeoutError,
    NicValidationError,
    ParamConflictError,
    ResponseDecodeError,
    TooManyRedirectsError,
    TypeMismatchError,
    UnrecognizedEncodingError,
)
from .hooks import HookPipeline
from .observability import configure_logging
from .request_options import FilePart, OptionSet
from .response import Response
from .session import Session, SessionState

__version__ = "0.1.1"

__all__ = [
    "ClientConfigurator",
    "FileInfoError",
    "FilePart",
    "HTTP_METHODS",
    "HookCapacityError",
    "HookIndexError",
    "HookPipeline",
    "InvalidMethodError",
    "InvalidURLError",
    "NicError",
    "NicNetworkError",
    "NicTimeoutError",
    "NicValidationError",
    "OptionSet",
    "ParamConflictError",
    "Response",
    "ResponseDecodeError",
    "Session",
    "SessionState",
    "TooManyRedirectsError",
    "TransportSettings",
    "TypeMismatchError",
    "UnrecognizedEncodingError",
    "build_request",
    "configure_logging",
    "delete",
    "get",
    "head",
    "options",
    "patch",
    "post",
    "put",
    "request",
]
