"""Storage initialization service."""

import logging

from userstore_api.config import Settings
from userstore_api.services import build_user_repository
from userstore_common.errors import StorageError
from userstore_common.services.user_repository import CosmosUserRepository, UserRepository

logger = logging.getLogger(__name__)


async def initialize_user_repository(settings: Settings) -> UserRepository:
    """Build the user repository and make sure its container exists.

    Args:
        settings: Application settings

    Returns:
        Repository ready to be shared by all requests
    """
    repository = build_user_repository(settings)
    if not isinstance(repository, CosmosUserRepository):
        return repository

    try:
        await repository.cosmos.ensure_container()
        logger.info("Cosmos DB initialization completed successfully")
    except StorageError as e:
        logger.error("Failed to initialize Cosmos DB: %s", e)
        if settings.is_production:
            await repository.close()
            raise
        # In development, log warning but allow app to continue
        logger.warning("Continuing without Cosmos DB initialization (development mode)")
    return repository
