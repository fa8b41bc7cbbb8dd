"""
Azure Cosmos DB Document Store

Document store backend delegating to the official async client library
(``azure.cosmos.aio``). Connection management, retries, partition routing
and query execution all happen inside the SDK; this module only adapts
its proxies and exceptions to the ``DocumentStore`` contract.

Author: Cosmos Quickstart Contributors
Date: 2026-10-19
"""

from contextlib import contextmanager
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

from azure.core import MatchConditions
from azure.cosmos import PartitionKey
from azure.cosmos import exceptions as cosmos_exceptions
from azure.cosmos.aio import CosmosClient

from ..core.logging_config import get_logger
from .errors import Result, StoreError, StoreErrorKind, StoreServiceError
from .interface import ContainerHandle, DatabaseHandle, DocumentStore, ItemResponse, QueryIterator

logger = get_logger(__name__)

REQUEST_CHARGE_HEADER = "x-ms-request-charge"
ACTIVITY_ID_HEADER = "x-ms-activity-id"


def to_store_error(error: cosmos_exceptions.CosmosHttpResponseError) -> StoreError:
    """
    Convert an SDK exception into a ``StoreError``.

    Args:
        error: Exception raised by the Cosmos SDK

    Returns:
        StoreError with the status code and diagnostic payload
    """
    status_code = error.status_code or 500
    headers = getattr(error, "headers", None) or {}
    details: Dict[str, Any] = {"sub_status": getattr(error, "sub_status", None)}
    if ACTIVITY_ID_HEADER in headers:
        details["activity_id"] = headers[ACTIVITY_ID_HEADER]
    return StoreError(
        kind=StoreErrorKind.from_status(status_code),
        status_code=status_code,
        message=error.message or str(error),
        details=details,
    )


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except cosmos_exceptions.CosmosHttpResponseError as e:
        raise StoreServiceError(to_store_error(e)) from e


def _request_charge(body: Any, container_proxy: Any) -> float:
    """Read the request charge of the last operation from response headers."""
    headers: Dict[str, Any] = {}
    get_headers = getattr(body, "get_response_headers", None)
    if callable(get_headers):
        headers = get_headers() or {}
    if REQUEST_CHARGE_HEADER not in headers:
        connection = getattr(container_proxy, "client_connection", None)
        headers = getattr(connection, "last_response_headers", None) or {}
    try:
        return float(headers.get(REQUEST_CHARGE_HEADER, 0.0))
    except (TypeError, ValueError):
        return 0.0


class AzureCosmosStore(DocumentStore):
    """
    Document store backed by an Azure Cosmos DB account.

    Authenticates with the account key when one is configured, otherwise
    with ``DefaultAzureCredential`` (managed identity, Azure CLI login, ...).

    Args:
        endpoint: Account endpoint URI
        key: Account primary key; None to use Azure AD credentials
        client_factory: Callable building the SDK client, for tests
    """

    def __init__(
        self,
        endpoint: str,
        key: Optional[str] = None,
        client_factory: Optional[Any] = None,
    ) -> None:
        self.endpoint = endpoint
        self._key = key
        self._client_factory = client_factory or CosmosClient
        self._client: Optional[Any] = None
        self._credential: Optional[Any] = None

    @property
    def client(self) -> Any:
        if self._client is None:
            raise RuntimeError("Store is not open. Call open() first.")
        return self._client

    async def open(self) -> None:
        if self._client is not None:
            return
        if self._key:
            credential: Any = self._key
        else:
            from azure.identity.aio import DefaultAzureCredential

            self._credential = DefaultAzureCredential()
            credential = self._credential
        logger.info(f"Connecting to Cosmos DB account at {self.endpoint}")
        self._client = self._client_factory(self.endpoint, credential=credential)

    async def close(self) -> None:
        """Dispose of the SDK client and any Azure AD credential."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Cosmos DB client closed")
        if self._credential is not None:
            await self._credential.close()
            self._credential = None

    # ========== Database Operations ==========

    async def create_database_if_not_exists(self, database_id: str) -> DatabaseHandle:
        with _translate_errors():
            proxy = await self.client.create_database_if_not_exists(id=database_id)
        return DatabaseHandle(id=proxy.id, proxy=proxy)

    async def delete_database(self, database: DatabaseHandle) -> None:
        with _translate_errors():
            await self.client.delete_database(database.id)

    # ========== Container Operations ==========

    async def create_container_if_not_exists(
        self,
        database: DatabaseHandle,
        container_id: str,
        partition_key_path: str,
        throughput: Optional[int] = None,
    ) -> ContainerHandle:
        db_proxy = database.proxy or self.client.get_database_client(database.id)
        with _translate_errors():
            proxy = await db_proxy.create_container_if_not_exists(
                id=container_id,
                partition_key=PartitionKey(path=partition_key_path),
                offer_throughput=throughput,
            )
        return ContainerHandle(
            id=proxy.id,
            database_id=database.id,
            partition_key_path=partition_key_path,
            proxy=proxy,
        )

    def _container_proxy(self, container: ContainerHandle) -> Any:
        if container.proxy is not None:
            return container.proxy
        return self.client.get_database_client(container.database_id).get_container_client(
            container.id
        )

    # ========== Item Operations ==========

    async def read_item(
        self,
        container: ContainerHandle,
        item_id: str,
        partition_key: str,
    ) -> Result[ItemResponse]:
        proxy = self._container_proxy(container)
        try:
            body = await proxy.read_item(item=item_id, partition_key=partition_key)
        except cosmos_exceptions.CosmosHttpResponseError as e:
            return Result.failure(to_store_error(e))
        return Result.success(_item_response(body, proxy))

    async def create_item(
        self,
        container: ContainerHandle,
        body: Dict[str, Any],
        partition_key: str,
    ) -> ItemResponse:
        proxy = self._container_proxy(container)
        with _translate_errors():
            created = await proxy.create_item(body=body)
        return _item_response(created, proxy)

    async def replace_item(
        self,
        container: ContainerHandle,
        item_id: str,
        body: Dict[str, Any],
        partition_key: str,
        if_match: Optional[str] = None,
    ) -> ItemResponse:
        proxy = self._container_proxy(container)
        kwargs: Dict[str, Any] = {}
        if if_match is not None:
            kwargs = {"etag": if_match, "match_condition": MatchConditions.IfNotModified}
        with _translate_errors():
            replaced = await proxy.replace_item(item=item_id, body=body, **kwargs)
        return _item_response(replaced, proxy)

    async def delete_item(
        self,
        container: ContainerHandle,
        item_id: str,
        partition_key: str,
    ) -> None:
        proxy = self._container_proxy(container)
        with _translate_errors():
            await proxy.delete_item(item=item_id, partition_key=partition_key)

    def query_items(
        self,
        container: ContainerHandle,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None,
        max_item_count: Optional[int] = None,
    ) -> QueryIterator:
        proxy = self._container_proxy(container)
        return QueryIterator(self._query_pages(proxy, query, parameters, max_item_count))

    async def _query_pages(
        self,
        proxy: Any,
        query: str,
        parameters: Optional[List[Dict[str, Any]]],
        max_item_count: Optional[int],
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        with _translate_errors():
            pager = proxy.query_items(
                query=query, parameters=parameters, max_item_count=max_item_count
            )
            async for page in pager.by_page():
                yield [dict(item) async for item in page]


def _item_response(body: Any, proxy: Any) -> ItemResponse:
    document = dict(body)
    return ItemResponse(
        body=document,
        request_charge=_request_charge(body, proxy),
        etag=document.get("_etag"),
    )
