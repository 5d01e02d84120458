"""
Domain Model Module
"""

from httpstat.domain.result import MeasurementResult, StatResult
from httpstat.domain.timeline import PhaseDurations, Timeline

__all__ = [
    "MeasurementResult",
    "PhaseDurations",
    "StatResult",
    "Timeline",
]
