"""Cosmos DB infrastructure."""

from userstore_common.infra.cosmos.cosmos_base import BaseCosmosClient

__all__ = ["BaseCosmosClient"]
