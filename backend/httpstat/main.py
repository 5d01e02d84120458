"""
HTTPStat Application Entry Point

FastAPI application main entry, including router registration and application configuration.
"""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from httpstat.api import measure_router
from httpstat.common.errors import AppError
from httpstat.config import get_settings
from httpstat.logging_config import setup_logging
from httpstat.middleware.rate_limit import RateLimitMiddleware

logger = logging.getLogger(__name__)

# Initialize logging configuration
setup_logging()

settings = get_settings()

app = FastAPI(
    title=settings.APP_NAME,
    description="Latency breakdown (DNS, TCP, TLS, server processing, transfer) of an HTTP request",
    version=settings.VERSION,
)

# Configure CORS
# Parse ALLOWED_ORIGINS from comma-separated string to list
allowed_origins = [
    origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",") if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Add Rate Limit Middleware (should be added after CORS)
app.add_middleware(RateLimitMiddleware)


# Global Exception Handler
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """
    Handle application custom exceptions

    In production mode, error details are hidden to prevent information leakage.
    """
    settings = get_settings()
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(include_details=settings.DEBUG),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions

    Stack traces are logged but only returned to clients in debug mode.
    """
    settings = get_settings()
    logger.error(
        "Uncaught exception: %s\nPath: %s\nTraceback:\n%s",
        str(exc),
        request.url.path,
        traceback.format_exc(),
    )

    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "message": str(exc),
                    "type": type(exc).__name__,
                    "code": "internal_error",
                    "traceback": traceback.format_exc().split("\n"),
                }
            },
        )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "message": "Internal server error",
                "type": "internal_error",
                "code": "internal_error",
            }
        },
    )


# Health Check Endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health Check

    Used for service liveness probe.
    """
    return {"status": "healthy"}


@app.get("/", tags=["Health"])
async def root():
    """Basic service information"""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "usage": "GET /<url> measures a request to <url>",
    }


# Catch-all measurement route, registered last
app.include_router(measure_router)


def run():
    """Run the service with uvicorn"""
    import uvicorn

    uvicorn.run(
        "httpstat.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
