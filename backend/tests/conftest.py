"""
Test Configuration Module
"""

import socket
from typing import Any, Optional

import httpcore
import pytest

from httpstat.common.timer import NS_PER_MS as MS
from httpstat.config import Settings

# Arbitrary monotonic origin for literal timelines
T0 = 1_000_000_000

RESPONSE_BODY = b"hello, world"
RESPONSE_BYTES = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/plain\r\n"
    b"Content-Length: " + str(len(RESPONSE_BODY)).encode() + b"\r\n"
    b"\r\n" + RESPONSE_BODY
)


class FakeNetworkStream(httpcore.AsyncNetworkStream):
    """Stream replaying a canned HTTP response and recording what was written"""

    def __init__(self, response: bytes = RESPONSE_BYTES, tls_error: Optional[Exception] = None):
        self._buffer = response
        self._tls_error = tls_error
        self.written = b""
        self.closed = False
        self.tls_server_hostname: Optional[str] = None

    async def read(self, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        chunk, self._buffer = self._buffer[:max_bytes], self._buffer[max_bytes:]
        return chunk

    async def write(self, buffer: bytes, timeout: Optional[float] = None) -> None:
        self.written += buffer

    async def aclose(self) -> None:
        self.closed = True

    async def start_tls(self, ssl_context, server_hostname=None, timeout=None):
        if self._tls_error is not None:
            raise self._tls_error
        self.tls_server_hostname = server_hostname
        return self

    def get_extra_info(self, info: str) -> Any:
        return None


class FakeNetworkBackend(httpcore.AsyncNetworkBackend):
    """Backend handing out FakeNetworkStreams, optionally failing to connect"""

    def __init__(
        self,
        response: bytes = RESPONSE_BYTES,
        connect_error: Optional[Exception] = None,
        tls_error: Optional[Exception] = None,
    ):
        self._response = response
        self._connect_error = connect_error
        self._tls_error = tls_error
        self.connected: list[tuple[str, int]] = []
        self.streams: list[FakeNetworkStream] = []

    async def connect_tcp(self, host, port, timeout=None, local_address=None, socket_options=None):
        self.connected.append((host, port))
        if self._connect_error is not None:
            raise self._connect_error
        stream = FakeNetworkStream(self._response, tls_error=self._tls_error)
        self.streams.append(stream)
        return stream

    async def connect_unix_socket(self, path, timeout=None, socket_options=None):
        raise NotImplementedError

    async def sleep(self, seconds: float) -> None:
        return None


class FakeClock:
    """Clock returning instants from a script, then advancing by 1 ms"""

    def __init__(self, *instants: int):
        self._instants = list(instants)
        self._last = T0

    def __call__(self) -> int:
        if self._instants:
            self._last = self._instants.pop(0)
        else:
            self._last += MS
        return self._last


@pytest.fixture
def make_backend():
    """Factory for fake network backends (FakeNetworkBackend)"""
    return FakeNetworkBackend


@pytest.fixture
def make_clock():
    """Factory for scripted clocks (FakeClock)"""
    return FakeClock


@pytest.fixture
def resolve_to(monkeypatch):
    """
    Make DNS resolution return fixed addresses

    Usage: resolve_to("93.184.216.34") before issuing a request.
    Returns the list of resolved hostnames.
    """
    lookups: list[str] = []

    def _install(*addresses: str):
        async def fake_getaddrinfo(host, port, *args, **kwargs):
            lookups.append(host)
            infos = []
            for address in addresses:
                family = socket.AF_INET6 if ":" in address else socket.AF_INET
                infos.append((family, socket.SOCK_STREAM, 6, "", (address, port)))
            return infos

        monkeypatch.setattr("anyio.getaddrinfo", fake_getaddrinfo)
        return lookups

    return _install


@pytest.fixture
def settings():
    """Settings for tests, independent of environment and .env"""
    return Settings(
        _env_file=None,
        HTTP_TIMEOUT=5,
        RATE_LIMIT_ENABLED=False,
        BLOCK_PRIVATE_ADDRESSES=False,
    )

