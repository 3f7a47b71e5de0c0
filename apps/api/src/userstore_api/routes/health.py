"""Health check and welcome routes."""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from userstore_api.config import Settings
from userstore_api.models.health import HealthCheckResponse
from userstore_api.services import get_app_settings

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
async def welcome() -> str:
    return "Hello, World!\n"


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    settings: Settings = Depends(get_app_settings),
) -> HealthCheckResponse:
    """Health check endpoint.

    Returns:
        HealthCheckResponse with status and version information
    """
    return HealthCheckResponse(
        status="ok",
        version=settings.app_version,
        environment=settings.environment,
        storage_backend=settings.storage_backend,
    )
