"""
Measurement API

Catch-all route: GET /<target url> measures a request to the target.
"""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from httpstat.api.deps import HttpStatServiceDep
from httpstat.domain.result import StatResult

router = APIRouter(tags=["Measurement"])


def _target_url(url: str, request: Request) -> str:
    """Rebuild the target URL, keeping the incoming query string"""
    # Some proxies merge "//" in paths: "https:/example.com"
    for scheme in ("http:/", "https:/"):
        if url.startswith(scheme) and not url.startswith(scheme + "/"):
            url = scheme + url[len(scheme) - 1:]
            break

    query = request.url.query
    if query:
        return f"{url}?{query}"
    return url


def _wants_text(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "text/plain" in accept and "application/json" not in accept


@router.get(
    "/{url:path}",
    response_model=dict[str, StatResult],
    responses={200: {"content": {"text/plain": {}}}},
)
async def measure(url: str, request: Request, service: HttpStatServiceDep):
    """
    Measure a URL

    Returns the latency breakdown in milliseconds as `{"data": {...}}`, or the
    aligned text rendering when the client accepts `text/plain`.
    """
    measurement = await service.measure(_target_url(url, request))

    if _wants_text(request):
        return PlainTextResponse(measurement.text)
    return {"data": measurement.result}
