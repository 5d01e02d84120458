"""
Domain Model Unit Tests
"""

import dataclasses

import pytest
from pydantic import ValidationError as PydanticValidationError

from httpstat.domain import PhaseDurations, StatResult, Timeline


class TestTimeline:
    def test_starts_unset(self):
        tl = Timeline()

        assert tl.dns_start is None
        assert tl.transfer_done is None
        assert tl.uses_tls is False
        assert tl.connection_reused is False
        assert tl.errors == {}
        assert tl.is_finalized is False

    def test_errors_not_shared(self):
        first, second = Timeline(), Timeline()
        first.errors["dns-done"] = "no such host"

        assert second.errors == {}

    def test_finalized(self):
        assert Timeline(transfer_done=1).is_finalized is True


class TestPhaseDurations:
    def test_defaults(self):
        d = PhaseDurations()

        assert d.dns_lookup == 0
        assert d.content_transfer is None
        assert d.total is None
        assert d.is_complete is False

    def test_immutable(self):
        d = PhaseDurations()

        with pytest.raises(dataclasses.FrozenInstanceError):
            d.dns_lookup = 5

    def test_complete_with_zero_total(self):
        assert PhaseDurations(content_transfer=0, total=0).is_complete is True


class TestStatResult:
    def test_defaults_to_zero(self):
        assert StatResult().model_dump() == {
            "dns_lookup": 0,
            "tcp_connection": 0,
            "tls_handshake": 0,
            "server_processing": 0,
            "content_transfer": 0,
            "total": 0,
        }

    def test_negative_rejected(self):
        with pytest.raises(PydanticValidationError):
            StatResult(total=-1)
