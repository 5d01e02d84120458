"""
HTTPStat Service Module

Measures the latency breakdown of one GET request to a target URL.
"""

import logging
from typing import Callable, Optional

import httpx

from httpstat.common.errors import UpstreamError, ValidationError
from httpstat.common.url_validator import validate_target_url
from httpstat.config import Settings, get_settings
from httpstat.domain.result import MeasurementResult
from httpstat.services import duration_calculator
from httpstat.services.result_formatter import format_summary, format_text, to_result
from httpstat.services.trace_recorder import TraceRecorder
from httpstat.services.tracing_transport import TracingTransport

logger = logging.getLogger(__name__)

# Builds the transport for one measurement, bound to its recorder
TransportFactory = Callable[[TraceRecorder], httpx.AsyncBaseTransport]


class HttpStatService:
    """
    Measurement Service

    Each measurement gets its own recorder, transport and client; nothing is
    shared between concurrent measurements.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport_factory: Optional[TransportFactory] = None,
    ):
        """
        Initialize Service

        Args:
            settings: Configuration, defaults to get_settings()
            transport_factory: Transport builder, a TracingTransport by default
        """
        self.settings = settings or get_settings()
        self._transport_factory = transport_factory or self._default_transport

    def _default_transport(self, recorder: TraceRecorder) -> httpx.AsyncBaseTransport:
        return TracingTransport(
            recorder,
            verify=self.settings.VERIFY_TLS,
            block_private=self.settings.BLOCK_PRIVATE_ADDRESSES,
        )

    async def measure(self, url: str) -> MeasurementResult:
        """
        Measure one request

        The response body is drained completely before the recorder is
        finalized, so content transfer covers the whole body.

        Args:
            url: Target URL (http or https)

        Returns:
            MeasurementResult: Status code, durations and renderings

        Raises:
            ValidationError: If the URL is invalid or not allowed
            UpstreamError: If the request failed
        """
        validate_target_url(url, block_private=self.settings.BLOCK_PRIVATE_ADDRESSES)

        recorder = TraceRecorder()
        transport = self._transport_factory(recorder)

        try:
            async with httpx.AsyncClient(
                transport=transport,
                timeout=httpx.Timeout(self.settings.HTTP_TIMEOUT),
                headers={"User-Agent": self.settings.USER_AGENT},
                follow_redirects=False,
            ) as client:
                async with client.stream("GET", url) as response:
                    # aiter_bytes also covers bodies the transport already loaded
                    async for _ in response.aiter_bytes():
                        pass
                    durations = recorder.finalize()
                    status_code = response.status_code

        except httpx.InvalidURL as e:
            raise ValidationError(details={"reason": str(e)})

        except httpx.HTTPError as e:
            logger.error(
                "Measurement failed: url=%s error=%s: %s partial=[%s]",
                url,
                type(e).__name__,
                e,
                format_summary(duration_calculator.calculate(recorder.timeline)),
            )
            raise UpstreamError(
                message="Request to target failed",
                details={"url": url, "error": type(e).__name__, "reason": str(e)},
            )

        if not durations.is_complete:
            logger.warning("No lifecycle events recorded for url=%s, durations unknown", url)

        logger.info(
            "Measured url=%s status=%d remote=%s [%s]",
            url,
            status_code,
            recorder.timeline.remote_address,
            format_summary(durations),
        )

        return MeasurementResult(
            url=url,
            status_code=status_code,
            durations=durations,
            result=to_result(durations),
            text=format_text(durations),
        )
