"""
Unit tests for the document store factory.
"""

import pytest

from cosmos_quickstart.core.config_manager import CosmosConfig
from cosmos_quickstart.store import InMemoryDocumentStore, create_store
from cosmos_quickstart.store.azure import AzureCosmosStore


def test_memory_backend():
    store = create_store(CosmosConfig(backend="memory"))

    assert isinstance(store, InMemoryDocumentStore)
    assert store.page_size == 100


def test_memory_backend_page_size():
    store = create_store(CosmosConfig(backend="memory", query_page_size=1))

    assert store.page_size == 1


def test_azure_backend_is_not_opened():
    store = create_store(
        CosmosConfig(backend="azure", endpoint="https://quickstart.documents.azure.com:443/", key="secret")
    )

    assert isinstance(store, AzureCosmosStore)
    assert store.endpoint == "https://quickstart.documents.azure.com:443/"
    with pytest.raises(RuntimeError):
        store.client


def test_unknown_backend():
    config = CosmosConfig.model_construct(backend="sqlite")

    with pytest.raises(ValueError, match="Unknown store backend"):
        create_store(config)
