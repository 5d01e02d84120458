"""
API Router Module Initialization
"""

from httpstat.api.measure import router as measure_router

__all__ = ["measure_router"]
