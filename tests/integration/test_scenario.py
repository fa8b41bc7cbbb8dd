"""
Integration tests for the getting-started scenario.

Runs each stage against the in-memory store and checks the stored state
between stages:
- Container setup is idempotent
- Records are routed by (id, LastName)
- The replace rewrites the whole document
- Teardown removes everything
"""

import json
import logging

import pytest

from cosmos_quickstart.core.config_manager import QuickstartConfig
from cosmos_quickstart.core.logging_config import JSONFormatter
from cosmos_quickstart.demo import DemoSession, ScenarioStage, run_demo
from cosmos_quickstart.models import Family
from cosmos_quickstart.samples import andersen_family, wakefield_family
from cosmos_quickstart.store import InMemoryDocumentStore, StoreErrorKind, StoreServiceError


@pytest.fixture
def config():
    return QuickstartConfig(cosmos={"backend": "memory", "query_page_size": 1})


@pytest.mark.asyncio
async def test_scenario_step_by_step(config):
    """Walk the scenario one stage at a time and inspect the store."""
    store = InMemoryDocumentStore()
    output = []

    async with DemoSession(store, config.cosmos, echo=output.append) as session:
        database = await session.ensure_database()
        container = await session.ensure_container()

        # Setup twice yields the same resources
        assert await store.create_database_if_not_exists(database.id) == database
        again = await store.create_container_if_not_exists(database, container.id, "/LastName", 400)
        assert again == container
        assert container.partition_key_path == "/LastName"

        for family in (andersen_family(), wakefield_family()):
            assert (await session.upsert_record(family)).created

        # Point reads need the matching partition key
        assert (await store.read_item(container, "Wakefield.7", "Wakefield")).ok
        assert (await store.read_item(container, "Wakefield.7", "Andersen")).is_not_found

        families = await session.query_records()
        assert [f.last_name for f in families] == ["Andersen"]

        before = Family.from_document(
            (await store.read_item(container, "Wakefield.7", "Wakefield")).unwrap().body
        )
        replaced = await session.replace_record("Wakefield.7", "Wakefield")

        assert replaced.etag != before.etag
        assert replaced.children[0].grade == 6
        assert replaced.children[1] == before.children[1]
        assert replaced.parents == before.parents
        assert replaced.address == before.address

        await session.delete_record("Wakefield.7", "Wakefield")
        remaining = store.query_items(container, "SELECT * FROM c")
        assert [doc["id"] async for doc in remaining] == ["Andersen.1"]

        await session.teardown_database()

    assert session.stage == ScenarioStage.END
    assert store.closed is True


@pytest.mark.asyncio
async def test_rerun_after_teardown(config):
    """A second run starts from an empty account and seeds again."""
    store = InMemoryDocumentStore()

    first = await run_demo(config, store=store, echo=lambda line: None)
    second = await run_demo(config, store=store, echo=lambda line: None)

    assert first.created_ids == second.created_ids == ["Andersen.1", "Wakefield.7"]
    assert store.open_count == 2


@pytest.mark.asyncio
async def test_rerun_without_teardown_skips_seeding(config):
    """Records left by an interrupted run are read, not re-created."""
    store = InMemoryDocumentStore()
    async with DemoSession(store, config.cosmos, echo=lambda line: None) as session:
        await session.ensure_database()
        await session.ensure_container()
        await session.upsert_record(andersen_family())

    output = []
    report = await run_demo(config, store=store, echo=output.append)

    assert report.created_ids == ["Wakefield.7"]
    assert "Item in database with id: Andersen.1 already exists\n" in output


@pytest.mark.asyncio
async def test_replace_after_delete_fails(config):
    store = InMemoryDocumentStore()
    async with DemoSession(store, config.cosmos, echo=lambda line: None) as session:
        await session.ensure_database()
        await session.ensure_container()
        await session.upsert_record(wakefield_family())
        await session.delete_record("Wakefield.7", "Wakefield")

        with pytest.raises(StoreServiceError) as exc_info:
            await session.replace_record("Wakefield.7", "Wakefield")

    assert exc_info.value.kind is StoreErrorKind.NOT_FOUND
    assert session.stage == ScenarioStage.DELETED


@pytest.mark.asyncio
async def test_log_records_carry_run_id(config):
    """Every record logged during a run is tagged with the run's id."""
    records = []

    class Collector(logging.Handler):
        def emit(self, record):
            records.append(json.loads(JSONFormatter().format(record)))

    handler = Collector(level=logging.DEBUG)
    demo_logger = logging.getLogger("cosmos_quickstart.demo")
    previous_level = demo_logger.level
    demo_logger.addHandler(handler)
    demo_logger.setLevel(logging.DEBUG)
    try:
        report = await run_demo(config, store=InMemoryDocumentStore(), echo=lambda line: None)
    finally:
        demo_logger.removeHandler(handler)
        demo_logger.setLevel(previous_level)

    assert records
    # The closing record is emitted before the id is cleared
    assert {r.get("correlation_id") for r in records} == {report.run_id}
