"""Pytest configuration for common-py tests."""

import asyncio
import itertools
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import MagicMock

import pytest
from azure.cosmos.exceptions import CosmosResourceExistsError, CosmosResourceNotFoundError
from userstore_common.infra.cosmos.cosmos_base import BaseCosmosClient


class FakeContainer:
    """In-memory stand-in for an ``azure.cosmos.aio`` ContainerProxy.

    Supports the single ``user_id`` match query the repository issues,
    returning items oldest first by ``created_at``.
    """

    def __init__(self) -> None:
        self.items: dict[str, dict[str, Any]] = {}
        self.delay = 0.0
        self.error: Exception | None = None
        self._clock = itertools.count(1)

    async def _maybe_fail(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    def _stored(self, body: dict[str, Any]) -> dict[str, Any]:
        return {**body, "_rid": "rid", "_self": "self", "_etag": "etag", "_attachments": "att", "_ts": next(self._clock)}

    async def create_item(self, body: dict[str, Any]) -> dict[str, Any]:
        await self._maybe_fail()
        if body["id"] in self.items:
            raise CosmosResourceExistsError(status_code=409, message="Conflict")
        self.items[body["id"]] = self._stored(body)
        return dict(self.items[body["id"]])

    def query_items(self, query: str, parameters: list[dict[str, Any]]) -> AsyncIterator[dict[str, Any]]:
        user_id = next(p["value"] for p in parameters if p["name"] == "@user_id")

        async def _iterate() -> AsyncIterator[dict[str, Any]]:
            await self._maybe_fail()
            matches = sorted(
                (item for item in self.items.values() if item.get("user_id") == user_id),
                key=lambda item: item.get("created_at", ""),
            )
            for item in matches:
                yield dict(item)

        return _iterate()

    async def replace_item(self, item: str, body: dict[str, Any]) -> dict[str, Any]:
        await self._maybe_fail()
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message="Not found")
        self.items[item] = self._stored(body)
        return dict(self.items[item])

    async def delete_item(self, item: str, partition_key: str) -> None:
        await self._maybe_fail()
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message="Not found")
        del self.items[item]


@pytest.fixture
def fake_container() -> FakeContainer:
    return FakeContainer()


@pytest.fixture
def cosmos_client(fake_container: FakeContainer) -> MagicMock:
    """Mock CosmosClient whose users container is the fake container."""
    client = MagicMock()
    client.get_database_client.return_value.get_container_client.return_value = fake_container
    return client


@pytest.fixture
def cosmos(cosmos_client: MagicMock) -> BaseCosmosClient:
    return BaseCosmosClient(
        cosmos_endpoint="https://example.documents.azure.com:443/",
        container_name="users",
        database_name="userstore",
        timeout_seconds=0.5,
        client=cosmos_client,
    )
