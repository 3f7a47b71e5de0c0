"""Async base class for Cosmos DB container operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from azure.core.exceptions import AzureError
from azure.cosmos import PartitionKey
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential

from userstore_common.errors import StorageError

logger = logging.getLogger(__name__)

COSMOS_SYSTEM_FIELDS = frozenset({"_rid", "_self", "_etag", "_attachments", "_ts"})

R = TypeVar("R")


class BaseCosmosClient:
    """Infrastructure layer: async Cosmos DB access to a single container.

    The underlying ``azure.cosmos.aio.CosmosClient`` is safe for concurrent
    use, so one instance is shared by every in-flight request. Each call is
    bounded by ``timeout_seconds`` and every SDK failure is surfaced as a
    ``StorageError``.
    """

    def __init__(
        self,
        cosmos_endpoint: str,
        container_name: str,
        cosmos_key: str | None = None,
        database_name: str = "userstore",
        partition_key_path: str = "/id",
        timeout_seconds: float = 10.0,
        use_managed_identity: bool = False,
        client: CosmosClient | None = None,
    ) -> None:
        """Initialize Cosmos DB client.

        Args:
            cosmos_endpoint: Cosmos DB endpoint URL
            container_name: Container name
            cosmos_key: Cosmos DB key (if not using managed identity)
            database_name: Database name
            partition_key_path: Partition key path (default: "/id")
            timeout_seconds: Deadline applied to every container call
            use_managed_identity: Use managed identity for authentication
            client: Pre-built client, mainly for tests
        """
        self.cosmos_endpoint = cosmos_endpoint
        self.database_name = database_name
        self.container_name = container_name
        self.partition_key_path = partition_key_path
        self.timeout_seconds = timeout_seconds
        self._credential: DefaultAzureCredential | None = None

        if client is not None:
            self.client = client
        elif use_managed_identity:
            self._credential = DefaultAzureCredential()
            self.client = CosmosClient(url=cosmos_endpoint, credential=self._credential)
        else:
            if not cosmos_key:
                raise ValueError("cosmos_key is required when not using managed identity")
            self.client = CosmosClient(url=cosmos_endpoint, credential=cosmos_key)

        self.database = self.client.get_database_client(database_name)
        self.container = self.database.get_container_client(container_name)

    @staticmethod
    def strip_system_fields(item: dict[str, Any]) -> dict[str, Any]:
        """Remove Cosmos DB system fields from a stored item."""
        return {k: v for k, v in item.items() if k not in COSMOS_SYSTEM_FIELDS}

    async def _run(self, operation: str, call: Callable[[], Awaitable[R]]) -> R:
        """Run one container call under the deadline, translating SDK errors.

        Task cancellation is not caught, so an aborted request also aborts
        the storage round trip.
        """
        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await call()
        except TimeoutError as e:
            logger.error(
                "Cosmos %s on %s timed out after %ss", operation, self.container_name, self.timeout_seconds
            )
            raise StorageError(operation, f"timed out after {self.timeout_seconds}s") from e
        except AzureError as e:
            logger.error("Cosmos %s on %s failed: %s", operation, self.container_name, e, exc_info=True)
            raise StorageError(operation, str(e)) from e
        except (TypeError, ValueError) as e:
            logger.error("Cosmos %s on %s could not serialize item: %s", operation, self.container_name, e)
            raise StorageError(operation, str(e)) from e

    async def ensure_container(self) -> None:
        """Create the database and container if they don't exist."""
        is_emulator = "localhost" in self.cosmos_endpoint.lower()

        async def _create() -> None:
            database = await self.client.create_database_if_not_exists(id=self.database_name)
            pk = PartitionKey(path=self.partition_key_path)
            if is_emulator:
                # Emulator requires provisioned throughput
                await database.create_container_if_not_exists(
                    id=self.container_name,
                    partition_key=pk,
                    offer_throughput=400,
                )
            else:
                await database.create_container_if_not_exists(
                    id=self.container_name,
                    partition_key=pk,
                )

        await self._run("initialize", _create)
        logger.info(
            "Container '%s' initialized in database '%s' with partition key '%s'",
            self.container_name,
            self.database_name,
            self.partition_key_path,
        )

    async def create_item(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create an item.

        Args:
            body: Item to create, including its ``id``

        Returns:
            Created item with Cosmos system fields removed
        """
        created = await self._run("insert", lambda: self.container.create_item(body=body))
        logger.info("Created item %s in container %s", created["id"], self.container_name)
        return self.strip_system_fields(created)

    async def query_items(self, query: str, parameters: list[dict[str, Any]] | None = None) -> list[dict[str, Any]]:
        """Run a cross-partition query and collect every result.

        Args:
            query: SQL query string
            parameters: Query parameters as ``{"name": "@x", "value": ...}``

        Returns:
            Matching items in query order (system fields kept)
        """

        async def _collect() -> list[dict[str, Any]]:
            return [item async for item in self.container.query_items(query=query, parameters=parameters or [])]

        items = await self._run("query", _collect)
        logger.debug("Queried %d items from container %s", len(items), self.container_name)
        return items

    async def replace_item(self, item_id: str, body: dict[str, Any]) -> dict[str, Any] | None:
        """Replace an item (full replace).

        Args:
            item_id: Item ID
            body: New item content; must carry the same ``id``

        Returns:
            Replaced item with Cosmos system fields removed, or None if the
            item no longer exists
        """

        async def _replace() -> dict[str, Any] | None:
            try:
                return await self.container.replace_item(item=item_id, body=body)
            except CosmosResourceNotFoundError:
                logger.warning("Item %s not found for replacement in %s", item_id, self.container_name)
                return None

        replaced = await self._run("replace", _replace)
        if replaced is None:
            return None
        logger.info("Replaced item %s in container %s", item_id, self.container_name)
        return self.strip_system_fields(replaced)

    async def delete_item(self, item_id: str, partition_key: str) -> bool:
        """Delete an item.

        Args:
            item_id: Item ID
            partition_key: Partition key value

        Returns:
            True if the item was deleted, False if it was already gone
        """

        async def _delete() -> bool:
            try:
                await self.container.delete_item(item=item_id, partition_key=partition_key)
            except CosmosResourceNotFoundError:
                logger.warning("Item %s not found for deletion in %s", item_id, self.container_name)
                return False
            return True

        deleted = await self._run("delete", _delete)
        if deleted:
            logger.info("Deleted item %s from container %s", item_id, self.container_name)
        return deleted

    async def close(self) -> None:
        """Close the client session and any credential it owns."""
        await self.client.close()
        if self._credential is not None:
            await self._credential.close()
