"""
Result Formatter Unit Tests
"""

from httpstat.common.timer import NS_PER_MS as MS
from httpstat.domain.timeline import PhaseDurations
from httpstat.services.result_formatter import format_summary, format_text, to_result

FINALIZED = PhaseDurations(
    dns_lookup=10 * MS,
    tcp_connection=20 * MS,
    tls_handshake=35 * MS,
    server_processing=50 * MS,
    content_transfer=1234 * MS,
    name_lookup=10 * MS,
    connect=30 * MS,
    pretransfer=65 * MS,
    start_transfer=115 * MS,
    total=1349 * MS,
)

UNFINALIZED = PhaseDurations(
    dns_lookup=10 * MS,
    tcp_connection=20 * MS,
    server_processing=50 * MS,
    name_lookup=10 * MS,
    connect=30 * MS,
    pretransfer=30 * MS,
    start_transfer=80 * MS,
)


class TestToResult:
    """Millisecond record"""

    def test_values(self):
        result = to_result(FINALIZED)

        assert result.dns_lookup == 10
        assert result.tcp_connection == 20
        assert result.tls_handshake == 35
        assert result.server_processing == 50
        assert result.content_transfer == 1234
        assert result.total == 1349

    def test_truncates(self):
        """Sub-millisecond remainders are dropped, never rounded up"""
        result = to_result(PhaseDurations(dns_lookup=19 * MS + 999_999, tcp_connection=999_999))

        assert result.dns_lookup == 19
        assert result.tcp_connection == 0

    def test_unknown_as_zero(self):
        result = to_result(UNFINALIZED)

        assert result.content_transfer == 0
        assert result.total == 0

    def test_json_keys(self):
        assert set(to_result(FINALIZED).model_dump()) == {
            "dns_lookup",
            "tcp_connection",
            "tls_handshake",
            "server_processing",
            "content_transfer",
            "total",
        }


class TestFormatText:
    """Aligned text rendering"""

    def test_finalized(self):
        assert format_text(FINALIZED) == (
            "DNS lookup:          10 ms\n"
            "TCP connection:      20 ms\n"
            "TLS handshake:       35 ms\n"
            "Server processing:   50 ms\n"
            "Content transfer:  1234 ms\n"
            "\n"
            "Total:             1349 ms\n"
        )

    def test_placeholder_when_not_finalized(self):
        lines = format_text(UNFINALIZED).splitlines()

        assert lines[4] == "Content transfer:     - ms"
        assert lines[-1] == "Total:                - ms"
        assert "0 ms" not in lines[4]

    def test_zero_is_not_placeholder(self):
        text = format_text(PhaseDurations(content_transfer=0, total=0))

        assert "Content transfer:     0 ms" in text
        assert "Total:                0 ms" in text

    def test_lines_aligned(self):
        lines = [line for line in format_text(FINALIZED, include_timeline=True).splitlines() if line]

        assert len({line.index(" ms") for line in lines}) == 1

    def test_include_timeline(self):
        text = format_text(FINALIZED, include_timeline=True)

        assert "Name lookup:         10 ms" in text
        assert "Connect:             30 ms" in text
        assert "Pre transfer:        65 ms" in text
        assert "Start transfer:     115 ms" in text
        assert text.index("Start transfer") < text.index("Total")


class TestFormatSummary:
    """One-line rendering"""

    def test_finalized(self):
        assert format_summary(FINALIZED) == (
            "DNSLookup: 10 ms, TCPConnection: 20 ms, TLSHandshake: 35 ms, "
            "ServerProcessing: 50 ms, ContentTransfer: 1234 ms, NameLookup: 10 ms, "
            "Connect: 30 ms, Pretransfer: 65 ms, StartTransfer: 115 ms, Total: 1349 ms"
        )

    def test_placeholder_when_not_finalized(self):
        summary = format_summary(UNFINALIZED)

        assert "ContentTransfer: - ms" in summary
        assert summary.endswith("Total: - ms")
        assert "Pretransfer: 30 ms" in summary
