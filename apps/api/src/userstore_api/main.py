"""Main FastAPI application."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse
from userstore_api.config import Settings, get_settings
from userstore_api.middleware import get_cors_headers, setup_middleware
from userstore_api.routes import api_router
from userstore_api.services.cosmos_db_init import initialize_user_repository
from userstore_common.errors import StorageError, UserStoreError
from userstore_common.services.user_repository import UserRepository

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Handle application lifespan events."""
    settings: Settings = app.state.settings
    logger.info(f"{settings.app_name} v{settings.app_version} started")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Storage backend: {settings.storage_backend}")

    # Repositories passed to create_app are owned by the caller
    owns_repository = app.state.user_repository is None
    if owns_repository:
        app.state.user_repository = await initialize_user_repository(settings)

    yield

    logger.info(f"{settings.app_name} shutting down")
    if owns_repository:
        await app.state.user_repository.close()
        app.state.user_repository = None


def create_app(settings: Settings | None = None, repository: UserRepository | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings. If None, loaded from the environment.
        repository: User repository to serve from. If None, one is built at startup.

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="User record store - FastAPI backend service",
        version=settings.app_version,
        lifespan=lifespan,
        redirect_slashes=False,
    )
    app.state.settings = settings
    app.state.user_repository = repository

    # Setup middleware (must be before exception handlers)
    setup_middleware(app, ui_url=settings.ui_url)

    @app.exception_handler(UserStoreError)
    async def user_store_exception_handler(request: Request, exc: UserStoreError) -> JSONResponse:
        """Map record store errors to their HTTP status."""
        origin = request.headers.get("origin")
        cors_headers = get_cors_headers(origin, ui_url=settings.ui_url)

        if isinstance(exc, StorageError):
            logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
            detail = "Storage operation failed"
        else:
            logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
            detail = exc.message

        return JSONResponse(status_code=exc.http_status, content={"detail": detail}, headers=cors_headers)

    # Exception handler to ensure CORS headers are present on all error responses
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler to ensure CORS headers are present on all errors."""
        # Let FastAPI handle HTTPException normally (CORS middleware handles it)
        if isinstance(exc, HTTPException):
            raise exc

        logger.error("Unhandled exception: %s", exc, exc_info=True)

        origin = request.headers.get("origin")
        cors_headers = get_cors_headers(origin, ui_url=settings.ui_url)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc)},
            headers=cors_headers,
        )

    app.include_router(api_router)
    return app


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


settings = get_settings()
configure_logging(settings)

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "userstore_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
