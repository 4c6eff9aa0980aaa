"""Per-call transport configuration with guaranteed restore."""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

import httpx
import structlog

from .request_options import OptionSet
from .security import redact_url_credentials, validate_proxy_url

logger = structlog.get_logger()


@dataclass(frozen=True)
class TransportSettings:
    proxy: str | None = None
    verify: bool = True
    keep_alive: bool = True


TransportFactory = Callable[[TransportSettings], httpx.BaseTransport]

DEFAULT_TRANSPORT_SETTINGS = TransportSettings()


def default_transport_factory(settings: TransportSettings) -> httpx.BaseTransport:
    limits = httpx.Limits() if settings.keep_alive else httpx.Limits(max_keepalive_connections=0)
    return httpx.HTTPTransport(verify=settings.verify, proxy=settings.proxy, limits=limits)


class DeadlineStream(httpx.SyncByteStream):
    """Response body stream that fails once the call's deadline has passed."""

    def __init__(self, stream: httpx.SyncByteStream, deadline: float, request: httpx.Request) -> None:
        self._stream = stream
        self._deadline = deadline
        self._request = request

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._stream:
            if time.monotonic() > self._deadline:
                raise httpx.ReadTimeout("Deadline exceeded while reading the response body", request=self._request)
            yield chunk

    def close(self) -> None:
        self._stream.close()


class SwitchableTransport(httpx.BaseTransport):
    """Transport installed once in the session client; the active inner transport changes per call.

    When ``deadline`` (a ``time.monotonic()`` value) is set, every hop of the
    call, redirects included, gets its phase timeouts cut to the time left
    and its body is read against the same deadline.
    """

    def __init__(self, inner: httpx.BaseTransport) -> None:
        self.inner = inner
        self.compression = True
        self.deadline: float | None = None

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if not self.compression:
            request.headers["Accept-Encoding"] = "identity"
        if self.deadline is None:
            return self.inner.handle_request(request)

        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            raise httpx.PoolTimeout("Deadline exceeded before the request was sent", request=request)
        request.extensions["timeout"] = httpx.Timeout(remaining).as_dict()
        response = self.inner.handle_request(request)
        if not isinstance(response.stream, httpx.SyncByteStream):
            return response
        return httpx.Response(
            status_code=response.status_code,
            headers=response.headers,
            stream=DeadlineStream(response.stream, self.deadline, request),
            extensions=response.extensions,
            request=request,
        )

    def swap(self, inner: httpx.BaseTransport) -> None:
        previous, self.inner = self.inner, inner
        if previous is not inner:
            previous.close()

    def close(self) -> None:
        self.inner.close()


class ClientConfigurator:
    """Applies the transport-affecting fields of an OptionSet to a client for one call.

    ``configure`` is a context manager: whatever happens inside the block, the
    client leaves it with redirects allowed, no timeout, no proxy, a fresh
    default transport and an empty redirect cookie jar.
    """

    def __init__(
        self,
        client: httpx.Client,
        switch: SwitchableTransport,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._client = client
        self._switch = switch
        self._factory = transport_factory
        self._log = logger.bind(component="configurator")

    @staticmethod
    def transport_settings(options: OptionSet) -> TransportSettings:
        proxy = None
        if options.proxy:
            validate_proxy_url(options.proxy)
            proxy = options.proxy
        return TransportSettings(
            proxy=proxy,
            verify=not options.skip_verify_tls,
            keep_alive=not options.disable_keep_alive,
        )

    @staticmethod
    def timeout_for(options: OptionSet) -> httpx.Timeout:
        return httpx.Timeout(float(options.timeout) if options.timeout > 0 else None)

    @contextmanager
    def configure(
        self,
        options: OptionSet,
        cookies: Iterable[tuple[str, str]] = (),
    ) -> Iterator[httpx.Client]:
        """Apply ``options`` for the duration of the block.

        ``cookies`` seed the client jar so redirect hops carry them too.
        """
        settings = self.transport_settings(options)
        try:
            for name, value in cookies:
                self._client.cookies.set(name, value)
            self._client.follow_redirects = options.allow_redirects
            self._client.timeout = self.timeout_for(options)
            self._switch.compression = not options.disable_compression
            self._switch.deadline = time.monotonic() + options.timeout if options.timeout > 0 else None
            if self._factory is not None and settings != DEFAULT_TRANSPORT_SETTINGS:
                self._switch.swap(self._factory(settings))
                self._log.debug(
                    "transport_configured",
                    proxy=redact_url_credentials(settings.proxy) if settings.proxy else None,
                    verify=settings.verify,
                    keep_alive=settings.keep_alive,
                )
            yield self._client
        finally:
            self.restore()

    def bind(self, request: httpx.Request) -> httpx.Request:
        """Stamp the client's current timeout on a request built outside the client."""
        request.extensions["timeout"] = self._client.timeout.as_dict()
        return request

    def restore(self) -> None:
        self._client.follow_redirects = True
        self._client.timeout = httpx.Timeout(None)
        self._client.cookies.clear()
        self._switch.compression = True
        self._switch.deadline = None
        if self._factory is not None:
            self._switch.swap(self._factory(DEFAULT_TRANSPORT_SETTINGS))
        self._log.debug("transport_restored")
