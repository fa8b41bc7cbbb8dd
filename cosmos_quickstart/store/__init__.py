"""
Document store backends.

The Azure backend is imported from ``cosmos_quickstart.store.azure`` or
built by ``create_store``.
"""

from .errors import Result, StoreError, StoreErrorKind, StoreServiceError
from .interface import ContainerHandle, DatabaseHandle, DocumentStore, ItemResponse, QueryIterator
from .memory import InMemoryDocumentStore
from .factory import create_store

__all__ = [
    # Interface
    "DocumentStore",
    "DatabaseHandle",
    "ContainerHandle",
    "ItemResponse",
    "QueryIterator",
    # Errors
    "Result",
    "StoreError",
    "StoreErrorKind",
    "StoreServiceError",
    # Backends
    "InMemoryDocumentStore",
    "create_store",
]
