"""
Timed HTTP(S) transfers against the Cloudflare speed endpoint.

Every probe is a single request whose connection lifecycle is observed via
``aiohttp.TraceConfig`` signals::

    on_request_start        -> started
    on_dns_resolvehost_end  -> dns_lookup
    TLS layer attached      -> tcp_handshake   (plain HTTP: connection ready)
    on_connection_create_end-> ssl_handshake   (TLS only)
    on_request_end          -> time_to_first_byte (response headers readable)
    body drained            -> ended

Phases that did not happen (pooled connection, DNS cache hit, no TLS) stay
``None`` rather than being reported as zero.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import re
import ssl
import time
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Callable, Optional

import aiohttp

from .constants import (
    CHUNK_SIZE,
    COMMON_HEADERS,
    DEFAULT_HOST,
    DEFAULT_TIMEOUT,
    DOWNLOAD_PATH,
    SERVER_TIMING_HEADER,
    SERVER_TIMING_OFFSET,
    UPLOAD_FILL_BYTE,
    UPLOAD_PATH,
)
from .errors import InvalidInput, MalformedServerResponse, TransferFailed

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"\s*(\d+(?:\.\d*)?|\.\d+)")


def _now_ms() -> float:
    return time.perf_counter() * 1000


class Direction(str, enum.Enum):
    DOWNLOAD = "download"
    UPLOAD = "upload"


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TimingSample:
    """Lifecycle timestamps (ms, monotonic clock) of one completed transfer."""

    started: float
    time_to_first_byte: float
    ended: float
    server_processing_time_ms: float
    dns_lookup: Optional[float] = None
    tcp_handshake: Optional[float] = None
    ssl_handshake: Optional[float] = None

    def __post_init__(self) -> None:
        marks = [
            self.started,
            self.dns_lookup,
            self.tcp_handshake,
            self.ssl_handshake,
            self.time_to_first_byte,
            self.ended,
        ]
        observed = [m for m in marks if m is not None]
        if any(later < earlier for earlier, later in zip(observed, observed[1:])):
            raise InvalidInput(f"lifecycle timestamps out of order: {marks}")
        if self.server_processing_time_ms < 0:
            raise InvalidInput(
                f"server processing time must not be negative, "
                f"got {self.server_processing_time_ms}"
            )

    # -- Phase durations ----------------------------------------------------

    @staticmethod
    def _span(start: Optional[float], end: Optional[float]) -> Optional[float]:
        if start is None or end is None:
            return None
        return end - start

    @property
    def dns_ms(self) -> Optional[float]:
        return self._span(self.started, self.dns_lookup)

    @property
    def tcp_ms(self) -> Optional[float]:
        start = self.started if self.dns_lookup is None else self.dns_lookup
        return self._span(start, self.tcp_handshake)

    @property
    def tls_ms(self) -> Optional[float]:
        return self._span(self.tcp_handshake, self.ssl_handshake)

    @property
    def ttfb_ms(self) -> float:
        return self.time_to_first_byte - self.started

    @property
    def transfer_ms(self) -> float:
        return self.ended - self.time_to_first_byte

    @property
    def network_latency_ms(self) -> float:
        """Time to first byte minus the time the server spent on the request."""
        return self.ttfb_ms - self.server_processing_time_ms

    def to_dict(self) -> dict:
        def _r(v: Optional[float]) -> Optional[float]:
            return None if v is None else round(v, 3)

        return {
            "dns_ms": _r(self.dns_ms),
            "tcp_ms": _r(self.tcp_ms),
            "tls_ms": _r(self.tls_ms),
            "ttfb_ms": _r(self.ttfb_ms),
            "transfer_ms": _r(self.transfer_ms),
            "server_ms": _r(self.server_processing_time_ms),
        }


def parse_server_timing(value: Optional[str]) -> float:
    """Extract the duration from ``cfRequestDuration;dur=<ms>``.

    The number is read from a fixed offset; anything after it is ignored.
    """
    if not value:
        raise MalformedServerResponse(f"response carries no {SERVER_TIMING_HEADER} header")
    match = _DURATION_RE.match(value, SERVER_TIMING_OFFSET)
    if match is None:
        raise MalformedServerResponse(
            f"cannot read a duration from {SERVER_TIMING_HEADER}: {value!r}"
        )
    return float(match.group(1))


# ---------------------------------------------------------------------------
# Lifecycle capture
# ---------------------------------------------------------------------------

@dataclass
class _PhaseRecorder:
    """Mutable timing slots filled in by trace callbacks while a probe runs."""

    started: Optional[float] = None
    dns_lookup: Optional[float] = None
    tls_attached: Optional[float] = None
    connected: Optional[float] = None
    time_to_first_byte: Optional[float] = None
    ended: Optional[float] = None

    def freeze(self, server_ms: float, secure: bool) -> TimingSample:
        if self.started is None or self.time_to_first_byte is None or self.ended is None:
            raise TransferFailed("transfer finished without a complete set of timestamps")

        if secure:
            tcp, tls = self.tls_attached, self.connected
        else:
            tcp, tls = self.connected, None

        return TimingSample(
            started=self.started,
            dns_lookup=self.dns_lookup,
            tcp_handshake=tcp,
            ssl_handshake=tls,
            time_to_first_byte=self.time_to_first_byte,
            ended=self.ended,
            server_processing_time_ms=server_ms,
        )


class _TimedSSLContext(ssl.SSLContext):
    """Client context that reports when TLS is layered onto a connected socket.

    asyncio wraps the socket's BIO pair right after the TCP connection is
    established and before the handshake starts.
    """

    on_wrap: Optional[Callable[[], None]] = None

    def wrap_bio(self, *args, **kwargs):  # noqa: ANN002, ANN003
        if self.on_wrap is not None:
            self.on_wrap()
        return super().wrap_bio(*args, **kwargs)


def _build_ssl_context() -> _TimedSSLContext:
    ctx = _TimedSSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.load_default_certs()
    return ctx


def _recorder(trace_config_ctx: SimpleNamespace) -> Optional[_PhaseRecorder]:
    ctx = trace_config_ctx.trace_request_ctx
    return ctx if isinstance(ctx, _PhaseRecorder) else None


async def _on_request_start(session, trace_config_ctx, params) -> None:  # noqa: ANN001
    rec = _recorder(trace_config_ctx)
    if rec is not None:
        rec.started = _now_ms()


async def _on_dns_resolvehost_end(session, trace_config_ctx, params) -> None:  # noqa: ANN001
    rec = _recorder(trace_config_ctx)
    if rec is not None:
        rec.dns_lookup = _now_ms()


async def _on_connection_create_end(session, trace_config_ctx, params) -> None:  # noqa: ANN001
    rec = _recorder(trace_config_ctx)
    if rec is not None:
        rec.connected = _now_ms()


async def _on_request_end(session, trace_config_ctx, params) -> None:  # noqa: ANN001
    rec = _recorder(trace_config_ctx)
    if rec is not None:
        rec.time_to_first_byte = _now_ms()


def _trace_config() -> aiohttp.TraceConfig:
    trace = aiohttp.TraceConfig()
    trace.on_request_start.append(_on_request_start)
    trace.on_dns_resolvehost_end.append(_on_dns_resolvehost_end)
    trace.on_connection_create_end.append(_on_connection_create_end)
    trace.on_request_end.append(_on_request_end)
    return trace


# ---------------------------------------------------------------------------
# Transfer
# ---------------------------------------------------------------------------

class TimedTransfer:
    """Issue one instrumented request at a time against a fixed host.

    Use as an async context manager::

        async with TimedTransfer() as t:
            sample = await t.download(1000)
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        *,
        scheme: str = "https",
        timeout: float = DEFAULT_TIMEOUT,
        reuse_connections: bool = False,
    ) -> None:
        self.host = host
        self.scheme = scheme
        self.timeout = timeout
        self.reuse_connections = reuse_connections
        self._session: Optional[aiohttp.ClientSession] = None
        self._ssl_context: Optional[_TimedSSLContext] = None
        self._active: Optional[_PhaseRecorder] = None

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> TimedTransfer:
        if self.secure:
            self._ssl_context = _build_ssl_context()
            self._ssl_context.on_wrap = self._mark_tls_attached

        connector = aiohttp.TCPConnector(
            ssl=self._ssl_context if self.secure else False,
            limit=1,
            force_close=not self.reuse_connections,
            use_dns_cache=self.reuse_connections,
        )
        self._session = aiohttp.ClientSession(
            headers=COMMON_HEADERS,
            connector=connector,
            # bounds a stalled connect or read, not the whole transfer
            timeout=aiohttp.ClientTimeout(
                total=None,
                sock_connect=self.timeout,
                sock_read=self.timeout,
            ),
            trace_configs=[_trace_config()],
            auto_decompress=False,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._session:
            await self._session.close()
            self._session = None

    # -- Internal helpers ---------------------------------------------------

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError(
                "TimedTransfer must be used as an async context manager "
                "(async with TimedTransfer() as t: ...)"
            )
        return self._session

    def _mark_tls_attached(self) -> None:
        if self._active is not None:
            self._active.tls_attached = _now_ms()

    @property
    def secure(self) -> bool:
        return self.scheme == "https"

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}"

    @staticmethod
    async def _drain(resp: aiohttp.ClientResponse) -> int:
        received = 0
        while True:
            chunk = await resp.content.read(CHUNK_SIZE)
            if not chunk:
                break
            received += len(chunk)
        return received

    # -- Public methods -----------------------------------------------------

    async def download(self, num_bytes: int) -> TimingSample:
        return await self.transfer(Direction.DOWNLOAD, num_bytes)

    async def upload(self, num_bytes: int) -> TimingSample:
        return await self.transfer(Direction.UPLOAD, num_bytes)

    async def transfer(self, direction: Direction, num_bytes: int) -> TimingSample:
        """Run a single probe and return its lifecycle timestamps.

        Raises ``TransferFailed`` on any network, TLS or HTTP-level failure
        and ``MalformedServerResponse`` if the timing header is unusable.
        """
        session = self._ensure_session()
        if self._active is not None:
            raise RuntimeError("another transfer is already in flight")
        if num_bytes < 0:
            raise InvalidInput(f"payload size must not be negative, got {num_bytes}")

        rec = _PhaseRecorder()
        self._active = rec

        if direction is Direction.DOWNLOAD:
            request = session.get(
                self.base_url + DOWNLOAD_PATH,
                params={"bytes": str(num_bytes)},
                allow_redirects=False,
                trace_request_ctx=rec,
            )
        else:
            request = session.post(
                self.base_url + UPLOAD_PATH,
                data=UPLOAD_FILL_BYTE * num_bytes,
                headers={
                    "Content-Length": str(num_bytes),
                    "Content-Type": "application/octet-stream",
                },
                allow_redirects=False,
                trace_request_ctx=rec,
            )

        try:
            async with request as resp:
                if resp.status >= 300:
                    raise TransferFailed(
                        f"HTTP {resp.status} for {direction.value} of {num_bytes} bytes",
                        status=resp.status,
                    )
                received = await self._drain(resp)
                rec.ended = _now_ms()
                timing_header = resp.headers.get(SERVER_TIMING_HEADER)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            raise TransferFailed(
                f"{direction.value} of {num_bytes} bytes failed: {exc!r}"
            ) from exc
        finally:
            self._active = None

        if direction is Direction.DOWNLOAD and received != num_bytes:
            raise TransferFailed(
                f"download delivered {received} of {num_bytes} bytes", status=resp.status
            )

        sample = rec.freeze(parse_server_timing(timing_header), secure=self.secure)
        logger.debug(
            "%s %d bytes: ttfb=%.2f ms transfer=%.2f ms server=%.2f ms",
            direction.value,
            num_bytes,
            sample.ttfb_ms,
            sample.transfer_ms,
            sample.server_processing_time_ms,
        )
        return sample
