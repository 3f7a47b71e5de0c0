"""In-memory user repository for local development and tests."""

import asyncio
import logging
import uuid

from userstore_common.errors import UserNotFoundError
from userstore_common.models.user import User
from userstore_common.services.user_repository import UserRepository

logger = logging.getLogger(__name__)


class InMemoryUserRepository(UserRepository):
    """Repository keeping user documents in process memory.

    Documents are held in insertion order, which stands in for the
    oldest-first ordering of the Cosmos implementation.
    """

    def __init__(self) -> None:
        self._documents: list[tuple[str, User]] = []
        self._lock = asyncio.Lock()

    async def insert(self, user: User) -> str:
        document_id = str(uuid.uuid4())
        async with self._lock:
            self._documents.append((document_id, user.model_copy()))
        logger.info("Inserted user %s as document %s", user.id, document_id)
        return document_id

    async def find_by_id(self, user_id: str) -> User:
        async with self._lock:
            for _, stored in self._documents:
                if stored.id == user_id:
                    return stored.model_copy()
        raise UserNotFoundError(user_id)

    async def replace_by_id(self, user_id: str, user: User) -> int:
        async with self._lock:
            for index, (document_id, stored) in enumerate(self._documents):
                if stored.id == user_id:
                    self._documents[index] = (document_id, user.model_copy())
                    return 1
        return 0

    async def delete_by_id(self, user_id: str) -> int:
        async with self._lock:
            kept = [(doc_id, stored) for doc_id, stored in self._documents if stored.id != user_id]
            deleted = len(self._documents) - len(kept)
            self._documents = kept
        logger.info("Deleted %d document(s) for user %s", deleted, user_id)
        return deleted

    def __len__(self) -> int:
        return len(self._documents)
