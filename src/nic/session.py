"""Stateful session: one client, a flat cookie store, and hook pipelines."""

from __future__ import annotations

import threading
import time
from enum import Enum, auto

import httpx
import structlog

from .builder import DEFAULT_USER_AGENT, build_request
from .configurator import (
    DEFAULT_TRANSPORT_SETTINGS,
    ClientConfigurator,
    SwitchableTransport,
    TransportFactory,
    default_transport_factory,
)
from .exceptions import NicNetworkError, NicTimeoutError, TooManyRedirectsError
from .hooks import DEFAULT_HOOK_CAPACITY, AfterResponseHook, BeforeRequestHook, HookPipeline
from .request_options import OptionSet
from .response import Response
from .security import redact_url_credentials, sanitize_headers

logger = structlog.get_logger()


class SessionState(Enum):
    """Lifecycle of one ``Session.request`` call.

    IDLE -> BUILDING -> CONFIGURING -> HOOKING_BEFORE -> EXECUTING
         -> HOOKING_AFTER -> WRAPPING -> RESTORING -> IDLE

    A failure after CONFIGURING still passes through RESTORING.
    """

    IDLE = auto()
    BUILDING = auto()
    CONFIGURING = auto()
    HOOKING_BEFORE = auto()
    EXECUTING = auto()
    HOOKING_AFTER = auto()
    WRAPPING = auto()
    RESTORING = auto()


class Session:
    """Serializes calls over one reusable ``httpx.Client``.

    Cookies received on any response are kept in a flat, ordered store and
    sent with every later request regardless of host. There is no domain or
    path scoping.

    Hooks run on the calling thread while the session lock is held, so a hook
    must not call back into the same session.
    """

    default_user_agent = DEFAULT_USER_AGENT
    default_max_redirects = 10
    max_hooks = DEFAULT_HOOK_CAPACITY

    def __init__(
        self,
        *,
        user_agent: str | None = None,
        max_redirects: int = default_max_redirects,
        transport_factory: TransportFactory | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.user_agent = user_agent or self.default_user_agent
        if transport is not None:
            # A fixed transport (e.g. httpx.MockTransport) is never swapped.
            factory = None
            inner = transport
        else:
            factory = transport_factory or default_transport_factory
            inner = factory(DEFAULT_TRANSPORT_SETTINGS)
        self._switch = SwitchableTransport(inner)
        self._client = httpx.Client(
            transport=self._switch,
            follow_redirects=True,
            max_redirects=max_redirects,
            timeout=None,
            trust_env=False,
        )
        self._configurator = ClientConfigurator(self._client, self._switch, factory)
        self._before_hooks: HookPipeline[httpx.Request] = HookPipeline("before_request", self.max_hooks)
        self._after_hooks: HookPipeline[httpx.Response] = HookPipeline("after_response", self.max_hooks)
        self._cookies: list[tuple[str, str]] = []
        self._lock = threading.Lock()
        self._state = SessionState.IDLE
        self._last_request: httpx.Request | None = None
        self._log = logger.bind(component="session")

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def client(self) -> httpx.Client:
        return self._client

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def last_request(self) -> httpx.Request | None:
        return self._last_request

    @property
    def cookies(self) -> tuple[tuple[str, str], ...]:
        return tuple(self._cookies)

    def clear_cookies(self) -> None:
        with self._lock:
            self._cookies = []

    def _transition(self, state: SessionState) -> None:
        self._log.debug("state_transition", from_state=self._state.name, to_state=state.name)
        self._state = state

    def request(self, method: str, url: str, options: OptionSet | None = None) -> Response:
        options = options or OptionSet()
        with self._lock:
            try:
                return self._request(method, url, options)
            finally:
                self._transition(SessionState.IDLE)

    def _request(self, method: str, url: str, options: OptionSet) -> Response:
        self._transition(SessionState.BUILDING)
        request = build_request(method, url, options, cookies=self._cookies, user_agent=self.user_agent)
        self._last_request = request
        log = self._log.bind(method=request.method, url=redact_url_credentials(request.url))
        log.info(
            "request_start",
            body=options.body_kind,
            headers=sanitize_headers(dict(request.headers)),
            allow_redirects=options.allow_redirects,
            timeout=options.timeout,
        )

        self._transition(SessionState.CONFIGURING)
        started = time.perf_counter()
        hop_cookies = [*self._cookies, *(options.cookies or {}).items()]
        with self._configurator.configure(options, cookies=hop_cookies) as client:
            try:
                self._configurator.bind(request)
                hook_errors: list[Exception] = []

                self._transition(SessionState.HOOKING_BEFORE)
                failed = self._before_hooks.run(request)
                if failed is not None:
                    hook_errors.append(failed)

                self._transition(SessionState.EXECUTING)
                raw = self._send(client, request, options, started)

                self._transition(SessionState.HOOKING_AFTER)
                failed = self._after_hooks.run(raw)
                if failed is not None:
                    hook_errors.append(failed)

                self._transition(SessionState.WRAPPING)
                response = Response(raw, hook_errors=hook_errors)
            except Exception as exc:
                log.warning("request_failed", error_class=type(exc).__name__, error=str(exc))
                raise
            finally:
                self._transition(SessionState.RESTORING)

        self._cookies.extend(response.cookies)
        log.info(
            "request_complete",
            status_code=response.status_code,
            bytes=len(response.content),
            redirects=len(response.history),
            hook_errors=len(response.hook_errors),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response

    @staticmethod
    def _send(client: httpx.Client, request: httpx.Request, options: OptionSet, started: float) -> httpx.Response:
        try:
            raw = client.send(request)
            raw.read()
        except httpx.TimeoutException as exc:
            raise NicTimeoutError("Request timed out", timeout=options.timeout, cause=exc) from exc
        except httpx.TooManyRedirects as exc:
            raise TooManyRedirectsError("Too many redirects", cause=exc) from exc
        except httpx.HTTPError as exc:
            raise NicNetworkError("Network error", cause=exc) from exc

        if options.timeout > 0 and time.perf_counter() - started > options.timeout:
            raw.close()
            raise NicTimeoutError(
                f"Request exceeded its {options.timeout}s deadline",
                timeout=options.timeout,
            )
        return raw

    def get(self, url: str, options: OptionSet | None = None) -> Response:
        return self.request("GET", url, options)

    def post(self, url: str, options: OptionSet | None = None) -> Response:
        return self.request("POST", url, options)

    def head(self, url: str, options: OptionSet | None = None) -> Response:
        return self.request("HEAD", url, options)

    def delete(self, url: str, options: OptionSet | None = None) -> Response:
        return self.request("DELETE", url, options)

    def options(self, url: str, options: OptionSet | None = None) -> Response:
        return self.request("OPTIONS", url, options)

    def put(self, url: str, options: OptionSet | None = None) -> Response:
        return self.request("PUT", url, options)

    def patch(self, url: str, options: OptionSet | None = None) -> Response:
        return self.request("PATCH", url, options)

    def register_before_hook(self, hook: BeforeRequestHook) -> None:
        with self._lock:
            self._before_hooks.register(hook)

    def register_after_hook(self, hook: AfterResponseHook) -> None:
        with self._lock:
            self._after_hooks.register(hook)

    def unregister_before_hook(self, index: int) -> None:
        with self._lock:
            self._before_hooks.unregister(index)

    def unregister_after_hook(self, index: int) -> None:
        with self._lock:
            self._after_hooks.unregister(index)

    def reset_before_hooks(self) -> None:
        with self._lock:
            self._before_hooks.reset()

    def reset_after_hooks(self) -> None:
        with self._lock:
            self._after_hooks.reset()

    @property
    def before_hooks(self) -> tuple[BeforeRequestHook, ...]:
        return tuple(self._before_hooks)

    @property
    def after_hooks(self) -> tuple[AfterResponseHook, ...]:
        return tuple(self._after_hooks)
