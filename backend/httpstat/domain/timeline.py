"""
Timeline Domain Model

Raw lifecycle milestones of one request, and the durations derived from them.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Timeline:
    """
    Request Timeline

    One instance per in-flight request, owned by that request only. Every
    milestone is a monotonic instant in nanoseconds, or None while unset.
    No behavior beyond field storage.
    """

    # DNS resolution
    dns_start: Optional[int] = None
    dns_done: Optional[int] = None
    # TCP connect
    tcp_start: Optional[int] = None
    tcp_done: Optional[int] = None
    # TLS handshake
    tls_start: Optional[int] = None
    tls_done: Optional[int] = None
    # Request fully written (server processing starts)
    server_start: Optional[int] = None
    # First response byte (server processing ends)
    server_done: Optional[int] = None
    # Content transfer
    transfer_start: Optional[int] = None
    # Set by the caller after the body is drained, never by an event
    transfer_done: Optional[int] = None

    # True only if a TLS handshake started
    uses_tls: bool = False
    # True only if the connection came from a keep-alive pool
    connection_reused: bool = False

    # Connected peer, from the connect events
    network: Optional[str] = None
    remote_address: Optional[str] = None
    # Errors reported by events, keyed by event name
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_finalized(self) -> bool:
        """Whether transfer completion has been recorded"""
        return self.transfer_done is not None


@dataclass(frozen=True)
class PhaseDurations:
    """
    Phase Durations Snapshot

    Immutable. All values are nanoseconds. content_transfer and total are
    None (unknown) until the timeline is finalized with DNS start known.
    """

    # Per-phase durations
    dns_lookup: int = 0
    tcp_connection: int = 0
    tls_handshake: int = 0
    server_processing: int = 0
    content_transfer: Optional[int] = None

    # Cumulative durations, measured from DNS start
    name_lookup: int = 0
    connect: int = 0
    pretransfer: int = 0
    start_transfer: int = 0
    total: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        """Whether content transfer and total are known"""
        return self.total is not None
