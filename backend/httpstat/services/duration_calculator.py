"""
Duration Calculator Module

Derives phase and cumulative durations from a request timeline, and records
transfer completion (finalize).
"""

import logging
from dataclasses import replace
from typing import Optional

from httpstat.common.errors import TimelineStateError
from httpstat.domain.timeline import PhaseDurations, Timeline

logger = logging.getLogger(__name__)


def elapsed(start: Optional[int], end: Optional[int]) -> int:
    """
    Duration between two instants

    Args:
        start: Start instant (ns), or None if unset
        end: End instant (ns), or None if unset

    Returns:
        int: end - start, or 0 when either instant is unset
    """
    if start is None or end is None:
        return 0
    return end - start


def calculate(timeline: Timeline) -> PhaseDurations:
    """
    Derive all durations from a timeline

    Pure: reads the timeline, never mutates it. Gives the same values the
    trace recorder computes eagerly once request-written has been seen.

    Args:
        timeline: Request timeline

    Returns:
        PhaseDurations: Durations snapshot
    """
    connect = elapsed(timeline.dns_start, timeline.tcp_done)

    if timeline.uses_tls:
        tls_handshake = elapsed(timeline.tls_start, timeline.tls_done)
        pretransfer = elapsed(timeline.dns_start, timeline.tls_done)
    else:
        tls_handshake = 0
        pretransfer = connect

    content_transfer, total = _transfer_durations(timeline)

    return PhaseDurations(
        dns_lookup=elapsed(timeline.dns_start, timeline.dns_done),
        tcp_connection=elapsed(timeline.tcp_start, timeline.tcp_done),
        tls_handshake=tls_handshake,
        server_processing=elapsed(timeline.server_start, timeline.server_done),
        content_transfer=content_transfer,
        name_lookup=elapsed(timeline.dns_start, timeline.dns_done),
        connect=connect,
        pretransfer=pretransfer,
        start_transfer=elapsed(timeline.dns_start, timeline.server_done),
        total=total,
    )


def finalize(
    timeline: Timeline,
    durations: PhaseDurations,
    completion: int,
) -> PhaseDurations:
    """
    Record transfer completion and derive content transfer and total

    Must be called exactly once, after the response body was fully drained.
    When DNS start was never recorded (the trace never fired) content
    transfer and total stay unknown.

    Args:
        timeline: Request timeline, mutated (transfer_done)
        durations: Durations computed so far
        completion: Instant (ns) the body drain finished

    Returns:
        PhaseDurations: Durations including content transfer and total

    Raises:
        TimelineStateError: On a second finalize, or a completion instant
            earlier than the first response byte
    """
    if timeline.is_finalized:
        raise TimelineStateError(
            message="Timeline is already finalized",
            code="already_finalized",
        )
    if timeline.transfer_start is not None and completion < timeline.transfer_start:
        raise TimelineStateError(
            message="Completion time precedes the first response byte",
            code="completion_before_first_byte",
            details={
                "completion": completion,
                "transfer_start": timeline.transfer_start,
            },
        )

    timeline.transfer_done = completion

    if timeline.dns_start is None:
        logger.debug("Finalized a timeline with no recorded events")
        return durations

    content_transfer, total = _transfer_durations(timeline)
    return replace(durations, content_transfer=content_transfer, total=total)


def _transfer_durations(timeline: Timeline) -> tuple[Optional[int], Optional[int]]:
    """Content transfer and total, or (None, None) while unknown"""
    if timeline.transfer_done is None or timeline.dns_start is None:
        return None, None
    return (
        elapsed(timeline.transfer_start, timeline.transfer_done),
        timeline.transfer_done - timeline.dns_start,
    )
