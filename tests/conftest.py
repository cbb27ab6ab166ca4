# tests/conftest.py
# Shared fixtures: sample grid data, in-memory flat store double, sqlite document store

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from datagrid.db.db import DocumentDatabase
from datagrid.repositories.grid_state_repository import GridStateRepository
from datagrid.schemas.columns import (
    ArrayColumnDef,
    DateColumnDef,
    ListColumnDef,
    NumberColumnDef,
    RowNumberColumnDef,
    TextColumnDef,
)
from datagrid.services.storage_service import StorageService
from datagrid.utils.cache import FlatKeyValueStore


class FakeRedis:
    """Async stand-in for the redis client calls the flat store makes."""

    def __init__(self, fail: bool = False):
        self.data: dict[str, str] = {}
        self.fail = fail
        self.calls: list[tuple] = []

    def _check(self):
        if self.fail:
            raise RedisConnectionError("redis unavailable")

    async def get(self, key):
        self.calls.append(("get", key))
        self._check()
        return self.data.get(key)

    async def set(self, key, value):
        self.calls.append(("set", key))
        self._check()
        self.data[key] = value
        return True

    async def delete(self, *keys):
        self.calls.append(("delete", *keys))
        self._check()
        removed = 0
        for key in keys:
            removed += int(self.data.pop(key, None) is not None)
        return removed


class FailingRepository:
    """Document repository whose every call raises, like an unreachable store."""

    def __init__(self):
        self.calls: list[str] = []

    async def upsert(self, key, state, updated_at):
        self.calls.append("upsert")
        raise RuntimeError("document store down")

    async def find_one(self, key):
        self.calls.append("find_one")
        raise RuntimeError("document store down")

    async def remove(self, key):
        self.calls.append("remove")
        raise RuntimeError("document store down")


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def flat_store(fake_redis):
    return FlatKeyValueStore(namespace="datagrid", client=fake_redis)


@pytest.fixture
def document_db(tmp_path):
    """DocumentDatabase on a throwaway sqlite file. Tests call destroy()."""
    return DocumentDatabase(url=f"sqlite:///{tmp_path / 'grid.db'}")


@pytest.fixture
def storage(document_db, flat_store):
    return StorageService(repository=GridStateRepository(document_db), flat_store=flat_store)


@pytest.fixture
def failing_repository():
    return FailingRepository()


@pytest.fixture
def fallback_storage(failing_repository, flat_store):
    return StorageService(repository=failing_repository, flat_store=flat_store)


@pytest.fixture
def sample_columns():
    return [
        RowNumberColumnDef(),
        TextColumnDef(field="name", header="Name"),
        NumberColumnDef(field="age"),
        DateColumnDef(field="joined"),
        ListColumnDef(field="status", items=["active", "inactive"]),
        ArrayColumnDef(field="tags", items=["a", "b", "c", "d", "e"]),
    ]


@pytest.fixture
def sample_rows():
    return [
        {"id": 1, "name": "Charlie", "age": 35, "joined": "2024-03-01T09:30:00", "status": "active", "tags": ["a", "b"]},
        {"id": 2, "name": "alice", "age": 28, "joined": "2023-11-15T14:00:00", "status": "inactive", "tags": ["c"]},
        {"id": 3, "name": "Bob", "age": 42, "joined": None, "status": "active", "tags": ["a", "d", "e"]},
        {"id": 4, "name": "Dana", "age": None, "joined": "2024-07-20T08:05:00", "status": "active", "tags": []},
    ]


@pytest.fixture
def broken_flat_store():
    """Flat store whose backend refuses every call."""
    return FlatKeyValueStore(namespace="datagrid", client=FakeRedis(fail=True))
