"""Common services package."""

from userstore_common.services.memory_user_repository import InMemoryUserRepository
from userstore_common.services.user_repository import CosmosUserRepository, UserRepository

__all__ = [
    "CosmosUserRepository",
    "InMemoryUserRepository",
    "UserRepository",
]
