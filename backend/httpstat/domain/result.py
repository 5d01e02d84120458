"""
Measurement Result Domain Model

Defines the result record returned to API callers.
"""

from dataclasses import dataclass

from pydantic import BaseModel, Field

from httpstat.domain.timeline import PhaseDurations


class StatResult(BaseModel):
    """
    Latency Breakdown Result

    All values are whole milliseconds (truncated). content_transfer and total
    are 0 when the transfer never completed.
    """

    dns_lookup: int = Field(0, ge=0, description="DNS lookup (ms)")
    tcp_connection: int = Field(0, ge=0, description="TCP connection (ms)")
    tls_handshake: int = Field(0, ge=0, description="TLS handshake (ms)")
    server_processing: int = Field(0, ge=0, description="Server processing (ms)")
    content_transfer: int = Field(0, ge=0, description="Content transfer (ms)")
    total: int = Field(0, ge=0, description="Total (ms)")


@dataclass
class MeasurementResult:
    """
    Measurement Result Data Class

    Encapsulates one finished measurement.
    """

    # Measured URL
    url: str
    # Target HTTP status code
    status_code: int
    # Raw durations (ns)
    durations: PhaseDurations
    # Millisecond record
    result: StatResult
    # Aligned text rendering
    text: str
