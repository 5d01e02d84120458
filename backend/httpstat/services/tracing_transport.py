"""
Tracing Transport Module

httpx transport that reports the connection lifecycle of a request to a
TraceRecorder.

httpcore resolves names inside connect_tcp and has no DNS trace step, so the
network backend is wrapped: it resolves explicitly (dns-start/dns-done),
connects to the resolved address (connect-start/connect-done), wraps
start_tls (tls-start/tls-done) and watches the first read after the request
was written (first-response-byte). connection-established and
request-written come from httpcore's `trace` request extension.
"""

import contextlib
import logging
import socket
import ssl
from typing import Any, AsyncIterator, Iterable, Iterator, Optional

import anyio
import certifi
import httpcore
import httpx

from httpstat.common.url_validator import ensure_public_address, is_ip_literal
from httpstat.services.trace_recorder import Phase, TraceEvent, TraceRecorder

logger = logging.getLogger(__name__)

# httpcore exception -> httpx exception, looked up along the exception's MRO.
# Same table and wrapping as httpx.AsyncHTTPTransport (httpx/_transports/default.py);
# keep in step with it when upgrading httpx.
HTTPCORE_EXC_MAP: dict[type[Exception], type[httpx.HTTPError]] = {
    httpcore.TimeoutException: httpx.TimeoutException,
    httpcore.ConnectTimeout: httpx.ConnectTimeout,
    httpcore.ReadTimeout: httpx.ReadTimeout,
    httpcore.WriteTimeout: httpx.WriteTimeout,
    httpcore.PoolTimeout: httpx.PoolTimeout,
    httpcore.NetworkError: httpx.NetworkError,
    httpcore.ConnectError: httpx.ConnectError,
    httpcore.ReadError: httpx.ReadError,
    httpcore.WriteError: httpx.WriteError,
    httpcore.ProxyError: httpx.ProxyError,
    httpcore.UnsupportedProtocol: httpx.UnsupportedProtocol,
    httpcore.ProtocolError: httpx.ProtocolError,
    httpcore.LocalProtocolError: httpx.LocalProtocolError,
    httpcore.RemoteProtocolError: httpx.RemoteProtocolError,
}


@contextlib.contextmanager
def map_httpcore_exceptions() -> Iterator[None]:
    """Re-raise httpcore exceptions as their httpx counterparts"""
    try:
        yield
    except Exception as exc:
        for cls in type(exc).__mro__:
            mapped = HTTPCORE_EXC_MAP.get(cls)
            if mapped is not None:
                raise mapped(str(exc)) from exc
        raise


def _format_address(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class TracingNetworkStream(httpcore.AsyncNetworkStream):
    """
    Network stream reporting TLS handshake and first response byte
    """

    def __init__(self, stream: httpcore.AsyncNetworkStream, recorder: TraceRecorder):
        self._stream = stream
        self._recorder = recorder

    async def read(self, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        data = await self._stream.read(max_bytes, timeout=timeout)
        if data and self._recorder.phase is Phase.WAITING:
            self._recorder.dispatch(TraceEvent.FIRST_RESPONSE_BYTE)
        return data

    async def write(self, buffer: bytes, timeout: Optional[float] = None) -> None:
        await self._stream.write(buffer, timeout=timeout)

    async def aclose(self) -> None:
        await self._stream.aclose()

    async def start_tls(
        self,
        ssl_context: ssl.SSLContext,
        server_hostname: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> httpcore.AsyncNetworkStream:
        self._recorder.dispatch(TraceEvent.TLS_START)
        try:
            stream = await self._stream.start_tls(
                ssl_context,
                server_hostname=server_hostname,
                timeout=timeout,
            )
        except Exception as exc:
            self._recorder.dispatch(TraceEvent.TLS_DONE, error=exc)
            raise
        self._recorder.dispatch(
            TraceEvent.TLS_DONE,
            connection_state=stream.get_extra_info("ssl_object"),
        )
        return TracingNetworkStream(stream, self._recorder)

    def get_extra_info(self, info: str) -> Any:
        return self._stream.get_extra_info(info)


class TracingNetworkBackend(httpcore.AsyncNetworkBackend):
    """
    Network backend reporting DNS resolution and TCP connect

    An IP literal host is connected to directly, without DNS events.
    """

    def __init__(
        self,
        recorder: TraceRecorder,
        backend: Optional[httpcore.AsyncNetworkBackend] = None,
        block_private: bool = False,
    ):
        """
        Initialize Backend

        Args:
            recorder: Recorder receiving lifecycle events
            backend: Backend doing the actual I/O, AnyIO by default
            block_private: Refuse private/loopback addresses
        """
        self._recorder = recorder
        self._backend = backend or httpcore.AnyIOBackend()
        self._block_private = block_private

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        local_address: Optional[str] = None,
        socket_options: Optional[Iterable[Any]] = None,
    ) -> httpcore.AsyncNetworkStream:
        if is_ip_literal(host):
            addresses = [host.strip("[]")]
        else:
            addresses = await self._resolve(host, port, timeout)

        if self._block_private:
            for address in addresses:
                ensure_public_address(address)

        self._recorder.dispatch(
            TraceEvent.CONNECT_START,
            network="tcp",
            address=_format_address(addresses[0], port),
        )

        error: Optional[Exception] = None
        for address in addresses:
            try:
                stream = await self._backend.connect_tcp(
                    address,
                    port,
                    timeout=timeout,
                    local_address=local_address,
                    socket_options=socket_options,
                )
            except httpcore.ConnectError as exc:
                logger.debug("Connect to %s failed: %s", _format_address(address, port), exc)
                error = exc
                continue
            except httpcore.ConnectTimeout as exc:
                error = exc
                break

            self._recorder.dispatch(
                TraceEvent.CONNECT_DONE,
                network="tcp",
                address=_format_address(address, port),
            )
            return TracingNetworkStream(stream, self._recorder)

        self._recorder.dispatch(
            TraceEvent.CONNECT_DONE,
            network="tcp",
            address=_format_address(addresses[-1], port),
            error=error,
        )
        raise error

    async def connect_unix_socket(
        self,
        path: str,
        timeout: Optional[float] = None,
        socket_options: Optional[Iterable[Any]] = None,
    ) -> httpcore.AsyncNetworkStream:
        return await self._backend.connect_unix_socket(
            path, timeout=timeout, socket_options=socket_options
        )

    async def sleep(self, seconds: float) -> None:
        await self._backend.sleep(seconds)

    async def _resolve(self, host: str, port: int, timeout: Optional[float]) -> list[str]:
        """
        Resolve a hostname, reporting dns-start/dns-done

        Returns:
            list[str]: Distinct addresses, in resolver order

        Raises:
            httpcore.ConnectTimeout: If resolution exceeded the timeout
            httpcore.ConnectError: If resolution failed
        """
        self._recorder.dispatch(TraceEvent.DNS_START)
        try:
            with anyio.fail_after(timeout):
                infos = await anyio.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except TimeoutError as exc:
            self._recorder.dispatch(TraceEvent.DNS_DONE, error=exc)
            raise httpcore.ConnectTimeout(f"DNS lookup for {host} timed out") from exc
        except OSError as exc:
            self._recorder.dispatch(TraceEvent.DNS_DONE, error=exc)
            raise httpcore.ConnectError(f"DNS lookup for {host} failed: {exc}") from exc

        self._recorder.dispatch(TraceEvent.DNS_DONE)
        return list(dict.fromkeys(str(sockaddr[0]) for *_, sockaddr in infos))


class ResponseStream(httpx.AsyncByteStream):
    """httpcore response body exposed as an httpx byte stream (as httpx.AsyncResponseStream)"""

    def __init__(self, stream: Any):
        self._stream = stream

    async def __aiter__(self) -> AsyncIterator[bytes]:
        with map_httpcore_exceptions():
            async for part in self._stream:
                yield part

    async def aclose(self) -> None:
        if hasattr(self._stream, "aclose"):
            await self._stream.aclose()


def create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """
    Create the TLS context for measured requests

    Args:
        verify: Verify certificates against the certifi CA bundle

    Returns:
        ssl.SSLContext: Client TLS context
    """
    context = ssl.create_default_context(cafile=certifi.where())
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class TracingTransport(httpx.AsyncBaseTransport):
    """
    httpx Transport for one measured request

    Owns a connection pool with keep-alive disabled, whose connections report
    to the recorder.
    """

    def __init__(
        self,
        recorder: TraceRecorder,
        verify: bool = True,
        block_private: bool = False,
        network_backend: Optional[httpcore.AsyncNetworkBackend] = None,
    ):
        """
        Initialize Transport

        Args:
            recorder: Recorder receiving lifecycle events
            verify: Verify the target's TLS certificate
            block_private: Refuse private/loopback addresses
            network_backend: Backend doing the actual I/O, AnyIO by default
        """
        self._recorder = recorder
        self._pool = httpcore.AsyncConnectionPool(
            ssl_context=create_ssl_context(verify),
            max_keepalive_connections=0,
            network_backend=TracingNetworkBackend(
                recorder,
                backend=network_backend,
                block_private=block_private,
            ),
        )

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        assert isinstance(request.stream, httpx.AsyncByteStream)

        core_request = httpcore.Request(
            method=request.method,
            url=httpcore.URL(
                scheme=request.url.raw_scheme,
                host=request.url.raw_host,
                port=request.url.port,
                target=request.url.raw_path,
            ),
            headers=request.headers.raw,
            content=request.stream,
            extensions={**request.extensions, "trace": self._recorder.trace},
        )
        with map_httpcore_exceptions():
            core_response = await self._pool.handle_async_request(core_request)

        return httpx.Response(
            status_code=core_response.status,
            headers=core_response.headers,
            stream=ResponseStream(core_response.stream),
            extensions=core_response.extensions,
        )

    async def aclose(self) -> None:
        await self._pool.aclose()
