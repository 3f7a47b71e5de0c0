"""Service initialization and dependency injection."""

import logging

from fastapi import Depends, Request
from userstore_api.config import Settings
from userstore_api.handlers import UserHandlers
from userstore_common.errors import StorageError
from userstore_common.infra.cosmos.cosmos_base import BaseCosmosClient
from userstore_common.services.memory_user_repository import InMemoryUserRepository
from userstore_common.services.user_repository import CosmosUserRepository, UserRepository

logger = logging.getLogger(__name__)


def build_user_repository(settings: Settings) -> UserRepository:
    """Build the user repository for the configured storage backend.

    Args:
        settings: Application settings

    Returns:
        UserRepository instance
    """
    if settings.storage_backend == "memory":
        logger.info("Initialized InMemoryUserRepository")
        return InMemoryUserRepository()

    if not settings.azure_cosmosdb_endpoint:
        raise ValueError("AZURE_COSMOSDB_ENDPOINT is required")

    use_managed_identity = settings.azure_cosmosdb_key is None

    cosmos = BaseCosmosClient(
        cosmos_endpoint=settings.azure_cosmosdb_endpoint,
        cosmos_key=settings.azure_cosmosdb_key,
        database_name=settings.database_name,
        container_name=settings.users_container,
        timeout_seconds=settings.storage_timeout_seconds,
        use_managed_identity=use_managed_identity,
    )
    logger.info("Initialized CosmosUserRepository")
    return CosmosUserRepository(cosmos)


def get_app_settings(request: Request) -> Settings:
    """Get the settings the running application was built with."""
    return request.app.state.settings


def get_user_repository(request: Request) -> UserRepository:
    """Get the process-wide user repository.

    Args:
        request: Current request

    Returns:
        UserRepository shared by all requests
    """
    repository = getattr(request.app.state, "user_repository", None)
    if repository is None:
        raise StorageError("connect", "user repository is not initialized")
    return repository


def get_user_handlers(repository: UserRepository = Depends(get_user_repository)) -> UserHandlers:
    """Get user handlers bound to the shared repository."""
    return UserHandlers(repository)
