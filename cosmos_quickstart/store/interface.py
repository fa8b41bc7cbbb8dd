"""
Document Store Interface

Defines the abstract interface every document store backend implements:
databases, partitioned containers, item-level CRUD and SQL queries.

Author: Cosmos Quickstart Contributors
Date: 2026-10-19
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from .errors import Result


@dataclass(frozen=True)
class DatabaseHandle:
    """
    Reference to a database returned by the store.

    Attributes:
        id: Database identifier
        proxy: Backend-specific client object (e.g. SDK DatabaseProxy)
    """

    id: str
    proxy: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ContainerHandle:
    """
    Reference to a container returned by the store.

    Attributes:
        id: Container identifier
        database_id: Owning database identifier
        partition_key_path: Partition key path, e.g. "/LastName"
        proxy: Backend-specific client object (e.g. SDK ContainerProxy)
    """

    id: str
    database_id: str
    partition_key_path: str
    proxy: Any = field(default=None, compare=False, repr=False)


@dataclass
class ItemResponse:
    """
    Item returned by a point operation.

    Attributes:
        body: Document body including system properties
        request_charge: Request units consumed by the operation
        etag: Entity tag of the stored document
    """

    body: Dict[str, Any]
    request_charge: float = 0.0
    etag: Optional[str] = None

    @property
    def id(self) -> str:
        return self.body["id"]


class QueryIterator:
    """
    Lazy, page-at-a-time view over query results.

    The iterator is finite and cannot be restarted. Each ``read_next`` call
    fetches one page ahead, so ``has_more_results`` turns False as soon as
    the last page has been returned and further reads return nothing.
    Iterating with ``async for`` yields individual documents.
    """

    def __init__(self, pages: AsyncIterator[List[Dict[str, Any]]]):
        self._pages = pages
        self._next_page: Optional[List[Dict[str, Any]]] = None
        self._exhausted = False
        self.pages_read = 0

    @property
    def has_more_results(self) -> bool:
        return not self._exhausted

    async def _fetch(self) -> Optional[List[Dict[str, Any]]]:
        try:
            return await self._pages.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
            return None

    async def read_next(self) -> List[Dict[str, Any]]:
        """
        Fetch the next page of results.

        Returns:
            Documents in the page; empty once the results are exhausted
        """
        if self._exhausted:
            return []
        page = self._next_page if self._next_page is not None else await self._fetch()
        if page is None:
            return []
        self.pages_read += 1
        self._next_page = await self._fetch()
        return page

    async def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        while self.has_more_results:
            for document in await self.read_next():
                yield document


class DocumentStore(ABC):
    """
    Abstract base class for document store backends.

    **Lifecycle**:
    1. __init__(...) - Configure the backend
    2. open() - Acquire connections
    3. [Database, container and item operations]
    4. close() - Release connections

    The store is an async context manager that calls ``open`` on entry and
    ``close`` on exit.

    **Error Handling**:
    - ``read_item`` returns a failed ``Result`` carrying a ``StoreError``
    - Every other operation raises ``StoreServiceError``
    """

    async def open(self) -> None:
        """Acquire connection resources. Backends without any may skip this."""

    @abstractmethod
    async def close(self) -> None:
        """Release connection resources."""

    async def __aenter__(self) -> "DocumentStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ========== Database Operations ==========

    @abstractmethod
    async def create_database_if_not_exists(self, database_id: str) -> DatabaseHandle:
        """
        Create a database, or return the existing one with the same id.

        Args:
            database_id: Database identifier

        Returns:
            Handle to the database
        """

    @abstractmethod
    async def delete_database(self, database: DatabaseHandle) -> None:
        """
        Delete a database together with all of its containers and items.

        Raises:
            StoreServiceError: NOT_FOUND if the database does not exist
        """

    # ========== Container Operations ==========

    @abstractmethod
    async def create_container_if_not_exists(
        self,
        database: DatabaseHandle,
        container_id: str,
        partition_key_path: str,
        throughput: Optional[int] = None,
    ) -> ContainerHandle:
        """
        Create a container, or return the existing one with the same id.

        Args:
            database: Owning database
            container_id: Container identifier
            partition_key_path: Partition key path, e.g. "/LastName"
            throughput: Provisioned throughput in RU/s

        Returns:
            Handle to the container
        """

    # ========== Item Operations ==========

    @abstractmethod
    async def read_item(
        self,
        container: ContainerHandle,
        item_id: str,
        partition_key: str,
    ) -> Result[ItemResponse]:
        """
        Point read by id and partition key.

        Returns:
            Successful result with the item, or a failed result whose
            ``StoreError`` is NOT_FOUND when the item does not exist
        """

    @abstractmethod
    async def create_item(
        self,
        container: ContainerHandle,
        body: Dict[str, Any],
        partition_key: str,
    ) -> ItemResponse:
        """
        Create a new item.

        Raises:
            StoreServiceError: CONFLICT if an item with the same key exists
        """

    @abstractmethod
    async def replace_item(
        self,
        container: ContainerHandle,
        item_id: str,
        body: Dict[str, Any],
        partition_key: str,
        if_match: Optional[str] = None,
    ) -> ItemResponse:
        """
        Replace an entire item.

        Args:
            if_match: Expected etag; when given the replace fails with
                PRECONDITION_FAILED if the stored etag differs

        Raises:
            StoreServiceError: NOT_FOUND or PRECONDITION_FAILED
        """

    @abstractmethod
    async def delete_item(
        self,
        container: ContainerHandle,
        item_id: str,
        partition_key: str,
    ) -> None:
        """
        Delete an item by id and partition key.

        Raises:
            StoreServiceError: NOT_FOUND if the item does not exist
        """

    @abstractmethod
    def query_items(
        self,
        container: ContainerHandle,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None,
        max_item_count: Optional[int] = None,
    ) -> QueryIterator:
        """
        Run a SQL query across all partitions of the container.

        Args:
            query: SQL query text, e.g. "SELECT * FROM c WHERE c.LastName = @name"
            parameters: Query parameters as [{"name": "@name", "value": ...}]
            max_item_count: Page size

        Returns:
            Lazy iterator over result pages
        """