"""
Timer Unit Tests
"""

from httpstat.common.timer import NS_PER_MS, monotonic_ns, ns_to_ms


class TestMonotonicNs:
    def test_never_goes_backwards(self):
        first = monotonic_ns()
        second = monotonic_ns()

        assert isinstance(first, int)
        assert second >= first


class TestConversions:
    """ns -> ms conversion"""

    def test_truncates(self):
        assert ns_to_ms(19 * NS_PER_MS + 999_999) == 19
        assert ns_to_ms(999_999) == 0

    def test_unset_is_zero(self):
        assert ns_to_ms(None) == 0

