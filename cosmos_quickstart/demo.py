"""
Getting-Started Scenario

Drives a document store through the tutorial scenario: create a database
and a partitioned container, seed two families, query, replace, delete,
and tear the database down. Progress is reported on stdout; diagnostics go
through logging.

Author: Cosmos Quickstart Contributors
Date: 2026-10-19
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import click

from .core.config_manager import CosmosConfig, QuickstartConfig
from .core.logging_config import clear_correlation_id, get_logger, set_correlation_id
from .models import Family
from .samples import andersen_family, wakefield_family
from .store.errors import StoreErrorKind, StoreServiceError
from .store.factory import create_store
from .store.interface import ContainerHandle, DatabaseHandle, DocumentStore, ItemResponse
from .store.query import partition_key_value

logger = get_logger(__name__)

ANDERSEN_QUERY = "SELECT * FROM c WHERE c.LastName = 'Andersen'"

Mutator = Callable[[Family], None]


class ScenarioStage(str, Enum):
    """Stages of the scenario, in the only order they may be reached."""
    START = "Start"
    DATABASE_READY = "DatabaseReady"
    CONTAINER_READY = "ContainerReady"
    DATA_SEEDED = "DataSeeded"
    QUERIED = "Queried"
    REPLACED = "Replaced"
    DELETED = "Deleted"
    TORN_DOWN = "TornDown"
    END = "End"


_STAGE_ORDER = list(ScenarioStage)


class ScenarioStateError(Exception):
    """Raised when an operation would move the scenario backwards or skip its prerequisites."""


@dataclass
class UpsertOutcome:
    """
    Result of ``DemoSession.upsert_record``.

    Attributes:
        created: True if the record was written, False if it already existed
        response: Item returned by the read or the create
    """

    created: bool
    response: ItemResponse


@dataclass
class DemoReport:
    """
    Summary of a scenario run.

    Attributes:
        run_id: Correlation id attached to the run's log records
        stage: Last stage reached
        created_ids: Ids of records written during seeding
        queried: Records returned by the query
        replaced: Record as written by the replace
        deleted_id: Id of the deleted record
    """

    run_id: str
    stage: ScenarioStage = ScenarioStage.START
    created_ids: List[str] = field(default_factory=list)
    queried: List[Family] = field(default_factory=list)
    replaced: Optional[Family] = None
    deleted_id: Optional[str] = None


def register_and_promote(family: Family) -> None:
    """Mark the family registered and move its first child to grade 6."""
    family.is_registered = True
    family.children[0].grade = 6


class DemoSession:
    """
    Holds the store and the handles created during one scenario run.

    The session is an async context manager: entering opens the store and
    exiting closes it, whether the scenario finished or failed.

    Attributes:
        store: Document store the scenario runs against
        config: Cosmos configuration section
        stage: Last stage reached
        database: Handle from ``ensure_database``
        container: Handle from ``ensure_container``
    """

    def __init__(
        self,
        store: DocumentStore,
        config: CosmosConfig,
        echo: Callable[[str], Any] = click.echo,
    ):
        self.store = store
        self.config = config
        self.stage = ScenarioStage.START
        self.database: Optional[DatabaseHandle] = None
        self.container: Optional[ContainerHandle] = None
        self._echo = echo

    async def __aenter__(self) -> "DemoSession":
        await self.store.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.store.close()
        if exc_type is None and self.stage == ScenarioStage.TORN_DOWN:
            self._advance(ScenarioStage.END)

    def _advance(self, stage: ScenarioStage) -> None:
        current = _STAGE_ORDER.index(self.stage)
        target = _STAGE_ORDER.index(stage)
        if target < current:
            raise ScenarioStateError(
                f"Cannot move from {self.stage.value} back to {stage.value}"
            )
        if target != current:
            logger.info(f"Scenario stage {self.stage.value} -> {stage.value}")
        self.stage = stage

    def _require_database(self) -> DatabaseHandle:
        if self.database is None:
            raise ScenarioStateError("Database is not ready; call ensure_database() first")
        return self.database

    def _require_container(self) -> ContainerHandle:
        if self.container is None:
            raise ScenarioStateError("Container is not ready; call ensure_container() first")
        return self.container

    def partition_key_of(self, family: Family) -> str:
        """
        Partition key value of ``family`` under the container's partition key path.

        Raises:
            ScenarioStateError: If the container is not ready
            ValueError: If the record has no value at the path
        """
        path = self._require_container().partition_key_path
        value = partition_key_value(family.to_document(), path)
        if value is None:
            raise ValueError(f"Record '{family.id}' has no value for partition key path {path}")
        return value

    async def ensure_database(self, database_id: Optional[str] = None) -> DatabaseHandle:
        """Create the database if it does not exist."""
        self.database = await self.store.create_database_if_not_exists(
            database_id or self.config.database_id
        )
        self._echo(f"Created Database: {self.database.id}\n")
        self._advance(ScenarioStage.DATABASE_READY)
        return self.database

    async def ensure_container(
        self,
        container_id: Optional[str] = None,
        partition_key_path: Optional[str] = None,
        throughput: Optional[int] = None,
    ) -> ContainerHandle:
        """
        Create the container if it does not exist.

        The container is partitioned on "/LastName" unless configured
        otherwise, so each family's documents are routed by last name.
        """
        self.container = await self.store.create_container_if_not_exists(
            self._require_database(),
            container_id or self.config.container_id,
            partition_key_path or self.config.partition_key_path,
            throughput or self.config.throughput,
        )
        self._echo(f"Created Container: {self.container.id}\n")
        self._advance(ScenarioStage.CONTAINER_READY)
        return self.container

    async def upsert_record(self, family: Family) -> UpsertOutcome:
        """
        Create ``family`` unless a record with the same key already exists.

        This is a read-then-create, not an atomic upsert: the write only
        happens when the point read reports NOT_FOUND.

        Raises:
            StoreServiceError: If the read fails for any other reason, or
                the create fails
        """
        container = self._require_container()
        partition_key = self.partition_key_of(family)
        result = await self.store.read_item(container, family.id, partition_key)

        if result.ok:
            response = result.unwrap()
            self._echo(f"Item in database with id: {response.id} already exists\n")
            outcome = UpsertOutcome(created=False, response=response)
        elif result.error.kind is StoreErrorKind.NOT_FOUND:
            response = await self.store.create_item(
                container, family.to_document(), partition_key
            )
            self._echo(
                f"Created item in database with id: {response.id} "
                f"Operation consumed {response.request_charge} RUs.\n"
            )
            outcome = UpsertOutcome(created=True, response=response)
        else:
            raise StoreServiceError(result.error)

        self._advance(ScenarioStage.DATA_SEEDED)
        return outcome

    async def query_records(
        self,
        query: str = ANDERSEN_QUERY,
        parameters: Optional[List[Dict[str, Any]]] = None,
    ) -> List[Family]:
        """
        Run a query and drain every page of its results.

        Returns:
            Matching families, in the order the store returned them
        """
        container = self._require_container()
        self._echo(f"Running query: {query}\n")

        iterator = self.store.query_items(
            container, query, parameters, max_item_count=self.config.query_page_size
        )
        families: List[Family] = []
        while iterator.has_more_results:
            for document in await iterator.read_next():
                family = Family.from_document(document)
                families.append(family)
                self._echo(f"\tRead {family}\n")

        logger.debug(f"Query returned {len(families)} records in {iterator.pages_read} pages")
        self._advance(ScenarioStage.QUERIED)
        return families

    async def replace_record(
        self,
        item_id: str,
        partition_key: str,
        mutator: Mutator = register_and_promote,
    ) -> Family:
        """
        Read a record, mutate it in memory and write the whole document back.

        Without ``optimistic_concurrency`` the replace is unconditional, so
        a concurrent writer's changes between the read and the replace are
        overwritten. With it, the etag from the read is sent as an If-Match
        precondition and a concurrent change fails with PRECONDITION_FAILED.
        """
        container = self._require_container()
        current = (await self.store.read_item(container, item_id, partition_key)).unwrap()
        family = Family.from_document(current.body)

        mutator(family)

        if_match = current.etag if self.config.optimistic_concurrency else None
        response = await self.store.replace_item(
            container, family.id, family.to_document(), partition_key, if_match=if_match
        )
        replaced = Family.from_document(response.body)
        self._echo(
            f"Updated Family [{replaced.last_name},{replaced.id}].\n"
            f" \tBody is now: {replaced}\n"
        )
        self._advance(ScenarioStage.REPLACED)
        return replaced

    async def delete_record(self, item_id: str, partition_key: str) -> None:
        """Delete a record by key. Prior existence is not checked."""
        await self.store.delete_item(self._require_container(), item_id, partition_key)
        self._echo(f"Deleted Family [{partition_key},{item_id}]\n")
        self._advance(ScenarioStage.DELETED)

    async def teardown_database(self) -> None:
        """Delete the database with all of its containers and records."""
        database = self._require_database()
        await self.store.delete_database(database)
        self._echo(f"Deleted Database: {database.id}\n")
        self._advance(ScenarioStage.TORN_DOWN)


async def run_demo(
    config: QuickstartConfig,
    store: Optional[DocumentStore] = None,
    echo: Callable[[str], Any] = click.echo,
) -> DemoReport:
    """
    Run the full scenario.

    Args:
        config: Loaded configuration
        store: Store to run against; built from ``config.cosmos`` when omitted
        echo: Output function for progress lines

    Returns:
        Report of the run

    Raises:
        StoreServiceError: If any store operation fails; the remaining
            stages are skipped and the store is still closed
    """
    report = DemoReport(run_id=uuid.uuid4().hex[:12])
    set_correlation_id(report.run_id)
    store = store or create_store(config.cosmos)
    logger.info(f"Starting scenario run {report.run_id} on {type(store).__name__}")

    session = DemoSession(store, config.cosmos, echo=echo)
    try:
        async with session:
            await session.ensure_database()
            await session.ensure_container()

            for family in (andersen_family(), wakefield_family()):
                outcome = await session.upsert_record(family)
                if outcome.created:
                    report.created_ids.append(family.id)

            report.queried = await session.query_records(ANDERSEN_QUERY)

            wakefield = wakefield_family()
            partition_key = session.partition_key_of(wakefield)
            report.replaced = await session.replace_record(wakefield.id, partition_key)

            await session.delete_record(wakefield.id, partition_key)
            report.deleted_id = wakefield.id

            await session.teardown_database()
    finally:
        report.stage = session.stage
        logger.info(f"Scenario run {report.run_id} stopped at stage {session.stage.value}")
        clear_correlation_id()

    return report
