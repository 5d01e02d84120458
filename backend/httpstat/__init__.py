"""
HTTPStat

Latency breakdown of a single outbound HTTP request.
"""

__version__ = "1.0.0"
