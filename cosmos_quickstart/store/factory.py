"""
Document Store Factory

Creates the document store backend selected by configuration.

Author: Cosmos Quickstart Contributors
Date: 2026-10-19
"""

from ..core.config_manager import CosmosConfig, StoreBackendType
from .interface import DocumentStore
from .memory import DEFAULT_PAGE_SIZE, InMemoryDocumentStore


def create_store(config: CosmosConfig) -> DocumentStore:
    """
    Factory function to create a document store based on configuration.

    The store is returned unopened; use it as an async context manager.

    Args:
        config: Cosmos configuration section

    Returns:
        Document store instance

    Raises:
        ValueError: If the backend type is unknown

    Example:
        ```python
        store = create_store(config.cosmos)
        async with store:
            db = await store.create_database_if_not_exists("FamilyDatabase")
        ```
    """
    if config.backend == StoreBackendType.MEMORY:
        return InMemoryDocumentStore(page_size=config.query_page_size or DEFAULT_PAGE_SIZE)

    elif config.backend == StoreBackendType.AZURE:
        from .azure import AzureCosmosStore

        return AzureCosmosStore(endpoint=config.endpoint, key=config.key)

    else:
        raise ValueError(
            f"Unknown store backend: {config.backend}. "
            f"Supported backends: {[t.value for t in StoreBackendType]}"
        )
