"""Middleware setup for the FastAPI application."""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)

access_logger = logging.getLogger("userstore_api.access")


def get_allowed_origins(ui_url: str | None = None) -> list[str]:
    """Origins allowed to call the API: the configured UI, if any."""
    return [ui_url.rstrip("/")] if ui_url else []


def get_cors_headers(origin: str | None, ui_url: str | None = None) -> dict[str, str]:
    """CORS headers for error responses built outside the CORS middleware.

    Returns:
        Dictionary of CORS headers, empty if origin is not allowed
    """
    if not origin or origin not in get_allowed_origins(ui_url):
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Credentials": "true",
    }


async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Log one line per request with its status and duration."""
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    access_logger.info(
        "%s %s %d %.1fms",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


def setup_middleware(app: FastAPI, ui_url: str | None = None) -> None:
    """Setup middleware for the FastAPI application.

    Args:
        app: FastAPI application instance
        ui_url: URL of the UI application for CORS
    """
    allowed_origins = get_allowed_origins(ui_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
    )
    app.middleware("http")(log_requests)

    logger.info("CORS enabled for origins: %s", allowed_origins)
