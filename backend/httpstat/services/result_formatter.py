"""
Result Formatter Module

Pure projections of phase durations: the millisecond result record and
human-readable text. No mutation, no I/O.
"""

from typing import Optional

from httpstat.common.timer import ns_to_ms
from httpstat.domain.result import StatResult
from httpstat.domain.timeline import PhaseDurations

# Shown instead of a number when content transfer / total are unknown
PLACEHOLDER = "-"

LABEL_WIDTH = 19
VALUE_WIDTH = 4


def to_result(durations: PhaseDurations) -> StatResult:
    """
    Build the millisecond result record

    Args:
        durations: Durations snapshot

    Returns:
        StatResult: Truncated milliseconds, unknown values as 0
    """
    return StatResult(
        dns_lookup=ns_to_ms(durations.dns_lookup),
        tcp_connection=ns_to_ms(durations.tcp_connection),
        tls_handshake=ns_to_ms(durations.tls_handshake),
        server_processing=ns_to_ms(durations.server_processing),
        content_transfer=ns_to_ms(durations.content_transfer),
        total=ns_to_ms(durations.total),
    )


def _ms_or_placeholder(duration_ns: Optional[int]) -> str:
    if duration_ns is None:
        return PLACEHOLDER
    return str(ns_to_ms(duration_ns))


def _line(label: str, duration_ns: Optional[int]) -> str:
    value = _ms_or_placeholder(duration_ns)
    return f"{label + ':':<{LABEL_WIDTH}}{value:>{VALUE_WIDTH}} ms"


def format_text(durations: PhaseDurations, include_timeline: bool = False) -> str:
    """
    Render durations as aligned multi-line text

    Content transfer and total show a placeholder until finalized.

    Args:
        durations: Durations snapshot
        include_timeline: Also render cumulative durations from DNS start

    Returns:
        str: Text for terminal display, newline terminated
    """
    lines = [
        _line("DNS lookup", durations.dns_lookup),
        _line("TCP connection", durations.tcp_connection),
        _line("TLS handshake", durations.tls_handshake),
        _line("Server processing", durations.server_processing),
        _line("Content transfer", durations.content_transfer),
        "",
    ]
    if include_timeline:
        lines += [
            _line("Name lookup", durations.name_lookup),
            _line("Connect", durations.connect),
            _line("Pre transfer", durations.pretransfer),
            _line("Start transfer", durations.start_transfer),
        ]
    lines.append(_line("Total", durations.total))
    return "\n".join(lines) + "\n"


def format_summary(durations: PhaseDurations) -> str:
    """
    Render durations on one line, phases then cumulative durations

    Example:
        "DNSLookup: 10 ms, TCPConnection: 20 ms, ..., Total: - ms"
    """
    fields = [
        ("DNSLookup", durations.dns_lookup),
        ("TCPConnection", durations.tcp_connection),
        ("TLSHandshake", durations.tls_handshake),
        ("ServerProcessing", durations.server_processing),
        ("ContentTransfer", durations.content_transfer),
        ("NameLookup", durations.name_lookup),
        ("Connect", durations.connect),
        ("Pretransfer", durations.pretransfer),
        ("StartTransfer", durations.start_transfer),
        ("Total", durations.total),
    ]
    return ", ".join(f"{name}: {_ms_or_placeholder(value)} ms" for name, value in fields)
