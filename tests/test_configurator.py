from __future__ import annotations

import time

import httpx
import pytest

from nic.configurator import (
    DEFAULT_TRANSPORT_SETTINGS,
    ClientConfigurator,
    SwitchableTransport,
    TransportSettings,
)
from nic.exceptions import InvalidURLError
from nic.request_options import OptionSet


class RecordingFactory:
    def __init__(self) -> None:
        self.settings: list[TransportSettings] = []
        self.transports: list[httpx.MockTransport] = []

    def __call__(self, settings: TransportSettings) -> httpx.BaseTransport:
        self.settings.append(settings)
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="ok"))
        self.transports.append(transport)
        return transport


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def configured(factory: RecordingFactory) -> tuple[httpx.Client, SwitchableTransport, ClientConfigurator]:
    switch = SwitchableTransport(factory(DEFAULT_TRANSPORT_SETTINGS))
    client = httpx.Client(transport=switch, follow_redirects=True, timeout=None)
    return client, switch, ClientConfigurator(client, switch, factory)


def _assert_defaults(client: httpx.Client, switch: SwitchableTransport) -> None:
    assert client.follow_redirects is True
    assert client.timeout == httpx.Timeout(None)
    assert switch.compression is True
    assert len(client.cookies) == 0


def test_overrides_apply_inside_block_and_revert_after(configured, factory) -> None:
    client, switch, configurator = configured
    options = OptionSet(
        allow_redirects=False,
        timeout=1,
        proxy="socks5://127.0.0.1:8088",
        skip_verify_tls=True,
        disable_keep_alive=True,
        disable_compression=True,
    )
    with configurator.configure(options) as active:
        assert active is client
        assert client.follow_redirects is False
        assert client.timeout == httpx.Timeout(1.0)
        assert switch.compression is False
        assert switch.inner is factory.transports[-1]

    assert factory.settings[1] == TransportSettings(proxy="socks5://127.0.0.1:8088", verify=False, keep_alive=False)
    assert factory.settings[-1] == DEFAULT_TRANSPORT_SETTINGS
    assert switch.inner is factory.transports[-1]
    _assert_defaults(client, switch)


def test_restore_runs_when_the_block_raises(configured) -> None:
    client, switch, configurator = configured
    client.cookies.set("hop", "1")
    with pytest.raises(RuntimeError):
        with configurator.configure(OptionSet(allow_redirects=False, timeout=3)):
            raise RuntimeError("network down")
    _assert_defaults(client, switch)


def test_default_options_do_not_swap_transport_until_restore(configured, factory) -> None:
    _, switch, configurator = configured
    with configurator.configure(OptionSet()):
        assert len(factory.settings) == 1
    assert factory.settings == [DEFAULT_TRANSPORT_SETTINGS, DEFAULT_TRANSPORT_SETTINGS]
    assert switch.inner is factory.transports[1]


@pytest.mark.parametrize("proxy", ["ftp://proxy:21", "127.0.0.1:8080", "socks5://"])
def test_bad_proxy_fails_before_touching_the_client(configured, factory, proxy: str) -> None:
    client, switch, configurator = configured
    with pytest.raises(InvalidURLError):
        with configurator.configure(OptionSet(proxy=proxy, allow_redirects=False)):
            pytest.fail("block must not run")
    assert factory.settings == [DEFAULT_TRANSPORT_SETTINGS]
    _assert_defaults(client, switch)


def test_bind_stamps_timeout_on_request(configured) -> None:
    _, _, configurator = configured
    request = httpx.Request("GET", "http://example.com/")
    with configurator.configure(OptionSet(timeout=2)):
        configurator.bind(request)
    assert request.extensions["timeout"] == httpx.Timeout(2.0).as_dict()


def test_compression_disabled_requests_identity_encoding() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Accept-Encoding", ""))
        return httpx.Response(200)

    switch = SwitchableTransport(httpx.MockTransport(handler))
    with httpx.Client(transport=switch) as client:
        switch.compression = False
        client.get("http://example.com/")
        switch.compression = True
        client.get("http://example.com/")

    assert seen[0] == "identity"
    assert seen[1] != "identity"


def test_deadline_cuts_phase_timeouts_and_clears_on_restore(configured) -> None:
    client, switch, configurator = configured
    seen: list[dict[str, float | None]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.extensions["timeout"])
        return httpx.Response(200, text="ok")

    switch.inner = httpx.MockTransport(handler)
    with configurator.configure(OptionSet(timeout=5)):
        assert switch.deadline is not None
        assert client.get("http://example.com/").text == "ok"

    assert 0 < seen[0]["read"] <= 5.0
    assert seen[0]["connect"] == seen[0]["read"]
    assert switch.deadline is None


def test_expired_deadline_refuses_to_send(configured) -> None:
    client, switch, _ = configured
    switch.deadline = time.monotonic() - 1
    with pytest.raises(httpx.TimeoutException):
        client.get("http://example.com/")


def test_expired_deadline_stops_body_read(configured) -> None:
    client, switch, _ = configured

    class Body(httpx.SyncByteStream):
        def __iter__(self):
            yield b"a"
            time.sleep(0.3)
            yield b"b"

    switch.inner = httpx.MockTransport(lambda request: httpx.Response(200, stream=Body()))
    switch.deadline = time.monotonic() + 0.2
    with pytest.raises(httpx.ReadTimeout):
        client.get("http://example.com/")
