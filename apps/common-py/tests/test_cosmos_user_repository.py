"""Tests for the Cosmos DB user repository against a fake container."""

import pytest
from azure.core.exceptions import ServiceRequestError
from userstore_common.errors import StorageError, UserNotFoundError
from userstore_common.infra.cosmos.cosmos_base import BaseCosmosClient
from userstore_common.models.user import User
from userstore_common.services.user_repository import CosmosUserRepository, from_document, to_document

ALICE = User(id="u1", name="Alice", email="a@x.com")
BOB = User(id="u1", name="Bob", email="b@x.com")


@pytest.fixture
def repository(cosmos: BaseCosmosClient) -> CosmosUserRepository:
    return CosmosUserRepository(cosmos)


@pytest.mark.unit
async def test_insert_returns_internal_identifier(repository: CosmosUserRepository, fake_container) -> None:
    document_id = await repository.insert(ALICE)

    assert document_id != ALICE.id
    stored = fake_container.items[document_id]
    assert stored["user_id"] == "u1"
    assert stored["name"] == "Alice"
    assert stored["email"] == "a@x.com"
    assert stored["created_at"]


@pytest.mark.unit
async def test_insert_then_find_round_trip(repository: CosmosUserRepository) -> None:
    await repository.insert(ALICE)
    assert await repository.find_by_id("u1") == ALICE


@pytest.mark.unit
async def test_find_unknown_raises_not_found(repository: CosmosUserRepository) -> None:
    with pytest.raises(UserNotFoundError) as exc_info:
        await repository.find_by_id("doesnotexist")
    assert exc_info.value.user_id == "doesnotexist"
    assert str(exc_info.value) == "doesnotexist not exist"


@pytest.mark.unit
async def test_replace_overwrites_in_place(repository: CosmosUserRepository, fake_container) -> None:
    document_id = await repository.insert(ALICE)

    assert await repository.replace_by_id("u1", BOB) == 1
    assert await repository.replace_by_id("u1", BOB) == 1

    assert await repository.find_by_id("u1") == BOB
    assert list(fake_container.items) == [document_id]


@pytest.mark.unit
async def test_replace_unknown_returns_zero_and_creates_nothing(repository: CosmosUserRepository, fake_container) -> None:
    assert await repository.replace_by_id("ghost", User(id="ghost")) == 0
    assert fake_container.items == {}


@pytest.mark.unit
async def test_replace_after_concurrent_delete_returns_zero(repository: CosmosUserRepository, fake_container) -> None:
    await repository.insert(ALICE)
    lookup = repository.cosmos.query_items

    async def lookup_then_delete(*args, **kwargs):
        matches = await lookup(*args, **kwargs)
        fake_container.items.clear()
        return matches

    repository.cosmos.query_items = lookup_then_delete

    assert await repository.replace_by_id("u1", BOB) == 0
    assert fake_container.items == {}


@pytest.mark.unit
async def test_replace_can_change_user_id(repository: CosmosUserRepository) -> None:
    await repository.insert(ALICE)
    renamed = User(id="u2", name="Alice", email="a@x.com")

    assert await repository.replace_by_id("u1", renamed) == 1

    assert await repository.find_by_id("u2") == renamed
    with pytest.raises(UserNotFoundError):
        await repository.find_by_id("u1")


@pytest.mark.unit
async def test_duplicates_find_and_replace_oldest(repository: CosmosUserRepository, fake_container) -> None:
    first = await repository.insert(ALICE)
    second = await repository.insert(User(id="u1", name="Alice Two", email="a2@x.com"))

    assert await repository.find_by_id("u1") == ALICE
    assert await repository.replace_by_id("u1", BOB) == 1

    assert fake_container.items[first]["name"] == "Bob"
    assert fake_container.items[second]["name"] == "Alice Two"
    # The replaced document keeps its place as the oldest
    assert await repository.find_by_id("u1") == BOB


@pytest.mark.unit
async def test_delete_removes_all_matches(repository: CosmosUserRepository, fake_container) -> None:
    await repository.insert(ALICE)
    await repository.insert(BOB)
    other = await repository.insert(User(id="u2", name="Carol"))

    assert await repository.delete_by_id("u1") == 2

    assert list(fake_container.items) == [other]
    with pytest.raises(UserNotFoundError):
        await repository.find_by_id("u1")


@pytest.mark.unit
async def test_delete_unknown_returns_zero(repository: CosmosUserRepository) -> None:
    assert await repository.delete_by_id("nobody") == 0


@pytest.mark.unit
async def test_storage_failure_surfaces_as_storage_error(repository: CosmosUserRepository, fake_container) -> None:
    fake_container.error = ServiceRequestError("connection refused")

    with pytest.raises(StorageError) as exc_info:
        await repository.insert(ALICE)
    assert exc_info.value.operation == "insert"
    assert isinstance(exc_info.value.__cause__, ServiceRequestError)

    with pytest.raises(StorageError):
        await repository.find_by_id("u1")


@pytest.mark.unit
def test_document_mapping_hides_internal_fields() -> None:
    document = {**to_document(ALICE, "doc-1", "2026-01-01T00:00:00+00:00"), "_ts": 1, "_etag": "x"}

    assert document["id"] == "doc-1"
    assert document["user_id"] == "u1"
    assert from_document(document) == ALICE
    assert from_document({"id": "doc-2"}) == User()
