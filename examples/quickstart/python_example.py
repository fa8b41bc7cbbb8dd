"""
Cosmos Quickstart - Python Example

Drives the scenario step by step through ``DemoSession`` instead of
``run_demo``, adding a parameterized query and leaving the database in
place for inspection.

Requirements:
    pip install -e .

Usage:
    COSMOS_DB_ENDPOINT_URI=https://<account>.documents.azure.com:443/ \\
    COSMOS_ACCOUNT_PRIMARY_KEY=<key> python python_example.py

    Without COSMOS_DB_ENDPOINT_URI the example runs against the in-memory store.
"""

import asyncio

from cosmos_quickstart.core import ConfigManager, setup_logging
from cosmos_quickstart.demo import DemoSession
from cosmos_quickstart.samples import andersen_family, wakefield_family
from cosmos_quickstart.store import create_store


REGISTERED_QUERY = "SELECT c.id, c.Address.City AS city FROM c WHERE c.IsRegistered = @registered"


async def main():
    config = ConfigManager().load()
    setup_logging(level=config.logging.level)

    async with DemoSession(create_store(config.cosmos), config.cosmos) as session:
        await session.ensure_database()
        await session.ensure_container()

        for family in (andersen_family(), wakefield_family()):
            await session.upsert_record(family)

        # Projections are not Family documents; query the store directly
        iterator = session.store.query_items(
            session.container,
            REGISTERED_QUERY,
            parameters=[{"name": "@registered", "value": True}],
        )
        async for row in iterator:
            print(f"Registered: {row['id']} in {row['city']}")

        await session.replace_record("Andersen.1", "Andersen")
        print(f"Stopped at stage {session.stage.value}; database left in place")


if __name__ == "__main__":
    asyncio.run(main())
