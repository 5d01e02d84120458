"""
Trace Recorder Module

Turns the lifecycle events of one outbound request into a timeline and its
phase durations.

Events enter through a single dispatch() entry point. Each accepted event
stamps one milestone and updates the durations it completes, so DNS, TCP and
TLS durations are available even if the request later fails. Skipped phases
(direct-IP connect, reused connection, plain HTTP) are reconciled by
backfilling milestones with a later known instant.

Example:
    recorder = TraceRecorder()
    recorder.dispatch(TraceEvent.DNS_START)
    ...
    recorder.dispatch(TraceEvent.FIRST_RESPONSE_BYTE)
    # ... drain the response body ...
    durations = recorder.finalize()
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Optional, Union

from httpstat.common.timer import Clock, monotonic_ns
from httpstat.domain.timeline import PhaseDurations, Timeline
from httpstat.services import duration_calculator
from httpstat.services.duration_calculator import elapsed

logger = logging.getLogger(__name__)


class TraceEvent(str, Enum):
    """Request lifecycle events, in causal order"""

    DNS_START = "dns-start"
    DNS_DONE = "dns-done"
    CONNECT_START = "connect-start"
    CONNECT_DONE = "connect-done"
    TLS_START = "tls-start"
    TLS_DONE = "tls-done"
    CONNECTION_ESTABLISHED = "connection-established"
    REQUEST_WRITTEN = "request-written"
    FIRST_RESPONSE_BYTE = "first-response-byte"


class Phase(str, Enum):
    """Recorder phase, advanced by each accepted event"""

    IDLE = "idle"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    HANDSHAKING = "handshaking"
    SECURED = "secured"
    WAITING = "waiting"
    TRANSFERRING = "transferring"
    DONE = "done"


# event -> (phases it may arrive in, phase it moves to)
_TRANSITIONS: dict[TraceEvent, tuple[frozenset[Phase], Phase]] = {
    TraceEvent.DNS_START: (frozenset({Phase.IDLE}), Phase.RESOLVING),
    TraceEvent.DNS_DONE: (frozenset({Phase.RESOLVING}), Phase.RESOLVED),
    TraceEvent.CONNECT_START: (frozenset({Phase.IDLE, Phase.RESOLVED}), Phase.CONNECTING),
    TraceEvent.CONNECT_DONE: (frozenset({Phase.CONNECTING}), Phase.CONNECTED),
    TraceEvent.TLS_START: (frozenset({Phase.CONNECTED}), Phase.HANDSHAKING),
    TraceEvent.TLS_DONE: (frozenset({Phase.HANDSHAKING}), Phase.SECURED),
    TraceEvent.REQUEST_WRITTEN: (
        frozenset({Phase.IDLE, Phase.CONNECTED, Phase.SECURED}),
        Phase.WAITING,
    ),
    TraceEvent.FIRST_RESPONSE_BYTE: (frozenset({Phase.WAITING}), Phase.TRANSFERRING),
}

# connection-established only sets a flag, it may arrive in any of these
_PRE_REQUEST_PHASES = frozenset({
    Phase.IDLE,
    Phase.RESOLVING,
    Phase.RESOLVED,
    Phase.CONNECTING,
    Phase.CONNECTED,
    Phase.HANDSHAKING,
    Phase.SECURED,
})

# httpcore trace names that carry a lifecycle event; DNS, TCP and TLS come
# from the network backend instead
_CONNECTION_ESTABLISHED_TRACES = frozenset({
    "http11.send_request_headers.started",
    "http2.send_request_headers.started",
})
_REQUEST_WRITTEN_TRACES = frozenset({
    "http11.send_request_body.complete",
    "http2.send_request_body.complete",
})
_REQUEST_FAILED_TRACES = frozenset({
    "http11.send_request_headers.failed",
    "http11.send_request_body.failed",
    "http2.send_request_headers.failed",
    "http2.send_request_body.failed",
})


class TraceRecorder:
    """
    Request Lifecycle Recorder

    One recorder serves exactly one request. Events must be delivered
    sequentially; out-of-order or duplicate events are logged and ignored.
    """

    def __init__(
        self,
        timeline: Optional[Timeline] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize Recorder

        Args:
            timeline: Timeline to stamp, a new one by default
            clock: Instant source (ns), defaults to the monotonic clock
        """
        self.timeline = timeline if timeline is not None else Timeline()
        self.durations = PhaseDurations()
        self.phase = Phase.IDLE
        self._clock = clock or monotonic_ns
        self._established = False
        self._last_instant: Optional[int] = None
        self._handlers: dict[TraceEvent, Callable[..., None]] = {
            TraceEvent.DNS_START: self._on_dns_start,
            TraceEvent.DNS_DONE: self._on_dns_done,
            TraceEvent.CONNECT_START: self._on_connect_start,
            TraceEvent.CONNECT_DONE: self._on_connect_done,
            TraceEvent.TLS_START: self._on_tls_start,
            TraceEvent.TLS_DONE: self._on_tls_done,
            TraceEvent.CONNECTION_ESTABLISHED: self._on_connection_established,
            TraceEvent.REQUEST_WRITTEN: self._on_request_written,
            TraceEvent.FIRST_RESPONSE_BYTE: self._on_first_response_byte,
        }

    def dispatch(
        self,
        event: Union[TraceEvent, str],
        at: Optional[int] = None,
        **info: Any,
    ) -> bool:
        """
        Apply one lifecycle event

        Args:
            event: Event (or its name, e.g. "dns-start")
            at: Instant (ns) the event happened, read from the clock if omitted
            **info: Event payload (network, address, error, reused, connection_state)

        Returns:
            bool: True if applied, False if ignored as out of order

        Raises:
            ValueError: If the event name is unknown
        """
        event = TraceEvent(event)
        now = self._clock() if at is None else at

        if not self._accepts(event, now):
            logger.warning(
                "Ignoring out-of-order trace event %s (phase=%s)",
                event.value,
                self.phase.value,
            )
            return False

        logger.debug("Trace event %s at %d (phase=%s)", event.value, now, self.phase.value)
        self._handlers[event](now, **info)

        if event is not TraceEvent.CONNECTION_ESTABLISHED:
            self.phase = _TRANSITIONS[event][1]
            self._last_instant = now
        return True

    def finalize(self, at: Optional[int] = None) -> PhaseDurations:
        """
        Record the end of content transfer

        Must be called exactly once, after the response body was fully
        drained.

        Args:
            at: Completion instant (ns), read from the clock if omitted

        Returns:
            PhaseDurations: Final durations

        Raises:
            TimelineStateError: If already finalized, or `at` precedes the
                first response byte
        """
        completion = self._clock() if at is None else at
        self.durations = duration_calculator.finalize(self.timeline, self.durations, completion)
        self.phase = Phase.DONE
        return self.durations

    def content_transfer(self, at: int) -> int:
        """Duration from the first response byte to `at` (ns), without finalizing"""
        return elapsed(self.timeline.server_done, at)

    def total(self, at: int) -> int:
        """Duration from DNS start to `at` (ns), without finalizing"""
        return elapsed(self.timeline.dns_start, at)

    async def trace(self, event_name: str, info: dict[str, Any]) -> None:
        """
        httpcore `trace` request extension

        Maps the request-level steps httpcore reports to lifecycle events.

        Args:
            event_name: httpcore step name, e.g. "http11.send_request_body.complete"
            info: Step arguments, plus "return_value" or "exception"
        """
        if event_name in _CONNECTION_ESTABLISHED_TRACES:
            # no connect was traced for this request: the pool handed out an idle connection
            self.dispatch(
                TraceEvent.CONNECTION_ESTABLISHED,
                reused=self.timeline.tcp_start is None,
            )
        elif event_name in _REQUEST_WRITTEN_TRACES:
            self.dispatch(TraceEvent.REQUEST_WRITTEN)
        elif event_name in _REQUEST_FAILED_TRACES:
            self.dispatch(TraceEvent.REQUEST_WRITTEN, error=repr(info.get("exception")))

    def _accepts(self, event: TraceEvent, now: int) -> bool:
        if event is TraceEvent.CONNECTION_ESTABLISHED:
            return not self._established and self.phase in _PRE_REQUEST_PHASES
        if self._last_instant is not None and now < self._last_instant:
            return False
        return self.phase in _TRANSITIONS[event][0]

    def _record_error(self, event: TraceEvent, error: Any) -> None:
        if error is not None:
            self.timeline.errors[event.value] = str(error)
            logger.debug("Trace event %s reported error: %s", event.value, error)

    def _on_dns_start(self, now: int) -> None:
        self.timeline.dns_start = now

    def _on_dns_done(self, now: int, error: Any = None) -> None:
        tl = self.timeline
        tl.dns_done = now
        self._record_error(TraceEvent.DNS_DONE, error)

        lookup = elapsed(tl.dns_start, tl.dns_done)
        self.durations = replace(self.durations, dns_lookup=lookup, name_lookup=lookup)

    def _on_connect_start(
        self,
        now: int,
        network: Optional[str] = None,
        address: Optional[str] = None,
    ) -> None:
        tl = self.timeline
        tl.tcp_start = now
        tl.network = network
        tl.remote_address = address

        # Connecting to an IP literal: no DNS lookup happened
        if tl.dns_start is None:
            tl.dns_start = now
            tl.dns_done = now

    def _on_connect_done(
        self,
        now: int,
        network: Optional[str] = None,
        address: Optional[str] = None,
        error: Any = None,
    ) -> None:
        tl = self.timeline
        tl.tcp_done = now
        if address is not None:
            tl.network = network
            tl.remote_address = address
        self._record_error(TraceEvent.CONNECT_DONE, error)

        self.durations = replace(
            self.durations,
            tcp_connection=elapsed(tl.tcp_start, tl.tcp_done),
            connect=elapsed(tl.dns_start, tl.tcp_done),
        )

    def _on_tls_start(self, now: int) -> None:
        self.timeline.uses_tls = True
        self.timeline.tls_start = now

    def _on_tls_done(self, now: int, connection_state: Any = None, error: Any = None) -> None:
        tl = self.timeline
        tl.tls_done = now
        self._record_error(TraceEvent.TLS_DONE, error)

        self.durations = replace(
            self.durations,
            tls_handshake=elapsed(tl.tls_start, tl.tls_done),
            pretransfer=elapsed(tl.dns_start, tl.tls_done),
        )

    def _on_connection_established(self, now: int, reused: bool = False) -> None:
        self._established = True
        if reused:
            self.timeline.connection_reused = True

    def _on_request_written(self, now: int, error: Any = None) -> None:
        tl = self.timeline
        tl.server_start = now
        self._record_error(TraceEvent.REQUEST_WRITTEN, error)

        # The transport bypassed the DNS/connect hooks
        if tl.dns_start is None and tl.tcp_start is None:
            tl.dns_start = tl.dns_done = now
            tl.tcp_start = tl.tcp_done = now
            self.durations = replace(
                self.durations, dns_lookup=0, name_lookup=0, tcp_connection=0, connect=0
            )

        # A reused connection legitimately skips DNS, TCP and TLS
        if tl.connection_reused:
            tl.dns_start = tl.dns_done = now
            tl.tcp_start = tl.tcp_done = now
            tl.tls_start = tl.tls_done = now
            self.durations = replace(
                self.durations,
                dns_lookup=0,
                name_lookup=0,
                tcp_connection=0,
                connect=0,
                tls_handshake=0,
                pretransfer=0,
            )

        if tl.uses_tls:
            return

        self.durations = replace(
            self.durations, tls_handshake=0, pretransfer=self.durations.connect
        )

    def _on_first_response_byte(self, now: int) -> None:
        tl = self.timeline
        tl.server_done = now
        tl.transfer_start = now

        self.durations = replace(
            self.durations,
            server_processing=elapsed(tl.server_start, tl.server_done),
            start_transfer=elapsed(tl.dns_start, tl.server_done),
        )
