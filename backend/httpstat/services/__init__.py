"""
Service Layer Module Initialization
"""

from httpstat.services.httpstat_service import HttpStatService
from httpstat.services.trace_recorder import Phase, TraceEvent, TraceRecorder
from httpstat.services.tracing_transport import TracingNetworkBackend, TracingTransport

__all__ = [
    "HttpStatService",
    "Phase",
    "TraceEvent",
    "TraceRecorder",
    "TracingNetworkBackend",
    "TracingTransport",
]
