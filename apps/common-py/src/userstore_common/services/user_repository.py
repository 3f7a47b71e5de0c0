"""User repository with Cosmos DB implementation."""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

from userstore_common.errors import UserNotFoundError
from userstore_common.infra.cosmos.cosmos_base import BaseCosmosClient
from userstore_common.models.user import User

logger = logging.getLogger(__name__)


class UserRepository(ABC):
    """Abstract interface for user storage.

    ``id`` is not unique in the store. Lookups and replacements act on the
    oldest matching document; deletion removes every match.
    """

    @abstractmethod
    async def insert(self, user: User) -> str:
        """Store a new user document.

        Returns:
            Storage-internal identifier of the new document
        """

    @abstractmethod
    async def find_by_id(self, user_id: str) -> User:
        """Get the user whose ``id`` matches.

        Raises:
            UserNotFoundError: No document matches
        """

    @abstractmethod
    async def replace_by_id(self, user_id: str, user: User) -> int:
        """Overwrite the matching document with every field of ``user``.

        Returns:
            Matched count, 0 or 1. Nothing is created on 0.
        """

    @abstractmethod
    async def delete_by_id(self, user_id: str) -> int:
        """Delete every document whose ``id`` matches.

        Returns:
            Number of documents deleted
        """

    async def close(self) -> None:
        """Release the storage session."""


def to_document(user: User, document_id: str, created_at: str) -> dict[str, Any]:
    """Build the stored document for a user."""
    return {
        "id": document_id,
        "created_at": created_at,
        "user_id": user.id,
        "name": user.name,
        "email": user.email,
    }


def from_document(document: dict[str, Any]) -> User:
    """Build a user from a stored document."""
    return User(
        id=document.get("user_id", ""),
        name=document.get("name", ""),
        email=document.get("email", ""),
    )


class CosmosUserRepository(UserRepository):
    """Cosmos DB implementation of UserRepository.

    Documents are keyed by a generated uuid4 (``id``, also the partition
    key) and carry the caller's identifier in ``user_id``. Cosmos rewrites
    ``_ts`` on every replace, so ``created_at`` (ISO-8601, UTC) is what orders
    duplicates oldest first.
    """

    MATCH_QUERY = "SELECT * FROM c WHERE c.user_id = @user_id ORDER BY c.created_at ASC"

    def __init__(self, cosmos: BaseCosmosClient) -> None:
        """Initialize the repository.

        Args:
            cosmos: Container client for the users container
        """
        self.cosmos = cosmos

    async def _matches(self, user_id: str) -> list[dict[str, Any]]:
        return await self.cosmos.query_items(
            query=self.MATCH_QUERY,
            parameters=[{"name": "@user_id", "value": user_id}],
        )

    async def insert(self, user: User) -> str:
        document_id = str(uuid.uuid4())
        created_at = datetime.now(UTC).isoformat()
        created = await self.cosmos.create_item(to_document(user, document_id, created_at))
        logger.info("Inserted user %s as document %s", user.id, created["id"])
        return created["id"]

    async def find_by_id(self, user_id: str) -> User:
        matches = await self._matches(user_id)
        if not matches:
            raise UserNotFoundError(user_id)
        logger.debug("Found %d document(s) for user %s", len(matches), user_id)
        return from_document(matches[0])

    async def replace_by_id(self, user_id: str, user: User) -> int:
        matches = await self._matches(user_id)
        if not matches:
            return 0
        oldest = matches[0]
        document_id = oldest["id"]
        replaced = await self.cosmos.replace_item(
            document_id, to_document(user, document_id, oldest.get("created_at", ""))
        )
        if replaced is None:
            # Deleted between the lookup and the replace
            logger.info("User %s vanished before replace of document %s", user_id, document_id)
            return 0
        logger.info("Replaced user %s in document %s", user_id, document_id)
        return 1

    async def delete_by_id(self, user_id: str) -> int:
        deleted = 0
        for document in await self._matches(user_id):
            if await self.cosmos.delete_item(document["id"], partition_key=document["id"]):
                deleted += 1
        logger.info("Deleted %d document(s) for user %s", deleted, user_id)
        return deleted

    async def close(self) -> None:
        await self.cosmos.close()
