# tests/integration/conftest.py
# Pytest fixtures to start PostgreSQL & Redis via TestContainers.
# - Provides connection URLs via fixtures for the storage backends under test.
# - Applies the Alembic migration for the document collection once per session.
# - Cleans up containers after the test session.

import asyncio
import importlib.util
import pathlib
from typing import Iterator

import pytest  # type: ignore[import-not-found]
from alembic.operations import Operations  # type: ignore
from alembic.runtime.migration import MigrationContext  # type: ignore
from testcontainers.postgres import PostgresContainer  # type: ignore
from testcontainers.redis import RedisContainer  # type: ignore

from datagrid.db.base import create_engine_for

MIGRATIONS = pathlib.Path(__file__).resolve().parents[2] / "alembic" / "versions"


@pytest.fixture(scope="session")
def postgres_url() -> Iterator[str]:
    # driver=None: plain postgresql:// URL, mapped to asyncpg by the app
    with PostgresContainer("postgres:16-alpine", driver=None) as pg:
        url = pg.get_connection_url()
        _apply_migrations(url)
        yield url


@pytest.fixture(scope="session")
def redis_url() -> Iterator[str]:
    with RedisContainer("redis:7-alpine") as rc:
        host = rc.get_container_host_ip()
        port = rc.get_exposed_port(6379)
        yield f"redis://{host}:{port}/0"


def _load_revision(path: pathlib.Path):
    spec = importlib.util.spec_from_file_location(path.stem, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _upgrade(sync_conn) -> None:
    revisions = {}
    for path in MIGRATIONS.glob("*.py"):
        module = _load_revision(path)
        revisions[module.down_revision] = module

    context = MigrationContext.configure(sync_conn)
    with Operations.context(context):
        # Walk the chain from the base revision
        module = revisions.get(None)
        while module is not None:
            module.upgrade()
            module = revisions.get(module.revision)


def _apply_migrations(url: str) -> None:
    async def _run():
        engine = create_engine_for(url)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(_upgrade)
        finally:
            await engine.dispose()

    asyncio.run(_run())
