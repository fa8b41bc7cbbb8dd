"""
In-Memory Document Store

Document store backend keeping databases, containers and items in process
memory, guarded by an asyncio lock. Used for offline runs of the tutorial
and as the store behind the test suite.

Author: Cosmos Quickstart Contributors
Date: 2026-10-19
"""

import asyncio
import copy
import hashlib
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

from ..core.logging_config import get_logger
from .errors import Result, StoreError, StoreErrorKind, StoreServiceError
from .interface import ContainerHandle, DatabaseHandle, DocumentStore, ItemResponse, QueryIterator
from .query import execute_query, parse_query, partition_key_value

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 100

# Request charges reported by the in-memory store, in the range a real
# account reports for ~1KB documents
READ_CHARGE = 1.0
WRITE_CHARGE = 5.71


@dataclass
class _Container:
    id: str
    partition_key_path: str
    throughput: Optional[int]
    rid: str
    # {partition_key: {item_id: document}}
    partitions: Dict[str, Dict[str, Dict[str, Any]]] = field(default_factory=dict)


@dataclass
class _Database:
    id: str
    rid: str
    containers: Dict[str, _Container] = field(default_factory=dict)


class InMemoryDocumentStore(DocumentStore):
    """
    Document store held entirely in memory.

    Mirrors the observable behaviour of Cosmos DB for the operations the
    tutorial uses: system properties (_rid, _ts, _self, _etag) are stamped
    on write, point operations are routed by (id, partition key), queries
    fan out across partitions and are returned in pages.

    Attributes:
        page_size: Default number of documents per query page
        open_count: Number of times ``open`` was called
        closed: Whether ``close`` has been called since the last ``open``
    """

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.page_size = page_size
        self.open_count = 0
        self.closed = False
        self._databases: Dict[str, _Database] = {}
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        self.open_count += 1
        self.closed = False
        logger.debug("In-memory document store opened")

    async def close(self) -> None:
        self.closed = True
        logger.debug("In-memory document store closed")

    def _generate_resource_id(self, resource_type: str, identifier: str) -> str:
        """Generate a unique resource ID."""
        hash_input = f"{resource_type}:{identifier}:{time.time()}:{uuid.uuid4()}"
        return hashlib.sha256(hash_input.encode()).hexdigest()[:8]

    def _generate_timestamp(self) -> int:
        return int(datetime.now(timezone.utc).timestamp())

    def _generate_etag(self) -> str:
        return f'"{uuid.uuid4().hex[:16]}"'

    # ========== Database Operations ==========

    async def create_database_if_not_exists(self, database_id: str) -> DatabaseHandle:
        """
        Create a database, or return the existing one.

        Raises:
            StoreServiceError: BAD_REQUEST if the id is empty or malformed
        """
        _validate_resource_id(database_id, "Database")
        async with self._lock:
            if database_id not in self._databases:
                self._databases[database_id] = _Database(
                    id=database_id, rid=self._generate_resource_id("db", database_id)
                )
                logger.debug(f"Created database '{database_id}'")
            return DatabaseHandle(id=database_id)

    async def delete_database(self, database: DatabaseHandle) -> None:
        async with self._lock:
            if database.id not in self._databases:
                raise StoreServiceError.of(
                    StoreErrorKind.NOT_FOUND,
                    f"Database with id '{database.id}' not found",
                    database_id=database.id,
                )
            del self._databases[database.id]
            logger.debug(f"Deleted database '{database.id}'")

    # ========== Container Operations ==========

    async def create_container_if_not_exists(
        self,
        database: DatabaseHandle,
        container_id: str,
        partition_key_path: str,
        throughput: Optional[int] = None,
    ) -> ContainerHandle:
        """
        Create a container, or return the existing one.

        Raises:
            StoreServiceError: NOT_FOUND if the database is missing,
                BAD_REQUEST if the partition key path is invalid
        """
        _validate_resource_id(container_id, "Container")
        if not partition_key_path.startswith("/"):
            raise StoreServiceError.of(
                StoreErrorKind.BAD_REQUEST,
                f"Partition key path must start with '/': {partition_key_path}",
                partition_key_path=partition_key_path,
            )
        async with self._lock:
            db = self._get_database_unlocked(database.id)
            container = db.containers.get(container_id)
            if container is None:
                container = _Container(
                    id=container_id,
                    partition_key_path=partition_key_path,
                    throughput=throughput,
                    rid=self._generate_resource_id("coll", container_id),
                )
                db.containers[container_id] = container
                logger.debug(
                    f"Created container '{container_id}' in '{database.id}' "
                    f"(partition key {partition_key_path}, {throughput} RU/s)"
                )
            return ContainerHandle(
                id=container.id,
                database_id=database.id,
                partition_key_path=container.partition_key_path,
            )

    # ========== Item Operations ==========

    async def read_item(
        self,
        container: ContainerHandle,
        item_id: str,
        partition_key: str,
    ) -> Result[ItemResponse]:
        async with self._lock:
            try:
                stored = self._get_container_unlocked(container)
            except StoreServiceError as e:
                return Result.failure(e.error)
            document = stored.partitions.get(partition_key, {}).get(item_id)
            if document is None:
                return Result.failure(_document_not_found(item_id, partition_key))
            return Result.success(
                ItemResponse(
                    body=copy.deepcopy(document),
                    request_charge=READ_CHARGE,
                    etag=document["_etag"],
                )
            )

    async def create_item(
        self,
        container: ContainerHandle,
        body: Dict[str, Any],
        partition_key: str,
    ) -> ItemResponse:
        async with self._lock:
            stored = self._get_container_unlocked(container)
            document = copy.deepcopy(body)
            if not document.get("id"):
                document["id"] = str(uuid.uuid4())
            item_id = document["id"]
            self._check_partition_key(stored, document, partition_key)

            partition = stored.partitions.setdefault(partition_key, {})
            if item_id in partition:
                raise StoreServiceError.of(
                    StoreErrorKind.CONFLICT,
                    f"Entity with the specified id '{item_id}' already exists in the system",
                    document_id=item_id,
                    partition_key=partition_key,
                )

            rid = self._generate_resource_id("doc", item_id)
            self_link = f"dbs/{container.database_id}/colls/{stored.rid}/docs/{rid}/"
            document.update(
                {
                    "_rid": rid,
                    "_self": self_link,
                    "_etag": self._generate_etag(),
                    "_attachments": "attachments/",
                    "_ts": self._generate_timestamp(),
                }
            )
            partition[item_id] = document
            return ItemResponse(
                body=copy.deepcopy(document),
                request_charge=WRITE_CHARGE,
                etag=document["_etag"],
            )

    async def replace_item(
        self,
        container: ContainerHandle,
        item_id: str,
        body: Dict[str, Any],
        partition_key: str,
        if_match: Optional[str] = None,
    ) -> ItemResponse:
        async with self._lock:
            stored = self._get_container_unlocked(container)
            existing = stored.partitions.get(partition_key, {}).get(item_id)
            if existing is None:
                raise StoreServiceError(_document_not_found(item_id, partition_key))

            if if_match is not None and existing["_etag"] != if_match:
                raise StoreServiceError.of(
                    StoreErrorKind.PRECONDITION_FAILED,
                    "Operation cannot be performed because one of the specified "
                    "precondition is not met",
                    document_id=item_id,
                    expected_etag=if_match,
                )

            document = {k: v for k, v in copy.deepcopy(body).items() if not k.startswith("_")}
            if document.get("id") != item_id:
                raise StoreServiceError.of(
                    StoreErrorKind.BAD_REQUEST,
                    f"Document id '{document.get('id')}' does not match '{item_id}'",
                    document_id=item_id,
                )
            self._check_partition_key(stored, document, partition_key)

            document.update(
                {
                    "_rid": existing["_rid"],
                    "_self": existing["_self"],
                    "_etag": self._generate_etag(),
                    "_attachments": existing["_attachments"],
                    "_ts": self._generate_timestamp(),
                }
            )
            stored.partitions[partition_key][item_id] = document
            return ItemResponse(
                body=copy.deepcopy(document),
                request_charge=WRITE_CHARGE,
                etag=document["_etag"],
            )

    async def delete_item(
        self,
        container: ContainerHandle,
        item_id: str,
        partition_key: str,
    ) -> None:
        async with self._lock:
            stored = self._get_container_unlocked(container)
            partition = stored.partitions.get(partition_key, {})
            if item_id not in partition:
                raise StoreServiceError(_document_not_found(item_id, partition_key))
            del partition[item_id]
            if not partition:
                del stored.partitions[partition_key]

    def query_items(
        self,
        container: ContainerHandle,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None,
        max_item_count: Optional[int] = None,
    ) -> QueryIterator:
        return QueryIterator(
            self._query_pages(container, query, parameters, max_item_count or self.page_size)
        )

    async def _query_pages(
        self,
        container: ContainerHandle,
        query: str,
        parameters: Optional[List[Dict[str, Any]]],
        page_size: int,
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        # Evaluated on first pull; later writes are not reflected
        async with self._lock:
            stored = self._get_container_unlocked(container)
            documents = [
                doc for partition in stored.partitions.values() for doc in partition.values()
            ]
            parsed = parse_query(query, parameters)
            results = copy.deepcopy(execute_query(documents, parsed))

        logger.debug(f"Query matched {len(results)} documents: {query}")
        for start in range(0, len(results), page_size):
            yield results[start:start + page_size]

    # ========== Helpers ==========

    def _get_database_unlocked(self, database_id: str) -> _Database:
        db = self._databases.get(database_id)
        if db is None:
            raise StoreServiceError.of(
                StoreErrorKind.NOT_FOUND,
                f"Database with id '{database_id}' not found",
                database_id=database_id,
            )
        return db

    def _get_container_unlocked(self, container: ContainerHandle) -> _Container:
        db = self._get_database_unlocked(container.database_id)
        stored = db.containers.get(container.id)
        if stored is None:
            raise StoreServiceError.of(
                StoreErrorKind.NOT_FOUND,
                f"Container with id '{container.id}' not found in database "
                f"'{container.database_id}'",
                database_id=container.database_id,
                container_id=container.id,
            )
        return stored

    def _check_partition_key(
        self, stored: _Container, document: Dict[str, Any], partition_key: str
    ) -> None:
        value = partition_key_value(document, stored.partition_key_path)
        if value is None or value != partition_key:
            raise StoreServiceError.of(
                StoreErrorKind.BAD_REQUEST,
                "PartitionKey extracted from document doesn't match the one "
                "specified in the header",
                partition_key=partition_key,
                document_value=value,
            )


def _document_not_found(item_id: str, partition_key: str) -> StoreError:
    return StoreError.of(
        StoreErrorKind.NOT_FOUND,
        f"Entity with the specified id '{item_id}' does not exist in the system",
        document_id=item_id,
        partition_key=partition_key,
    )


def _validate_resource_id(resource_id: str, resource_type: str) -> None:
    if not resource_id:
        raise StoreServiceError.of(
            StoreErrorKind.BAD_REQUEST, f"{resource_type} ID cannot be empty"
        )
    if len(resource_id) > 255:
        raise StoreServiceError.of(
            StoreErrorKind.BAD_REQUEST, f"{resource_type} ID must be 255 characters or less"
        )
    if any(c in resource_id for c in "/\\?#"):
        raise StoreServiceError.of(
            StoreErrorKind.BAD_REQUEST,
            f"{resource_type} ID cannot contain '/', '\\', '?' or '#': {resource_id}",
        )
