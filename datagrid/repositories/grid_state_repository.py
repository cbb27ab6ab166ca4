# datagrid/repositories/grid_state_repository.py
# Document-store CRUD for persisted grid states

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from datagrid.constants import MAX_KEY_LENGTH
from datagrid.db.db import DocumentDatabase, get_database
from datagrid.exceptions import StorageError
from datagrid.models.grid_state_table import grid_states


class GridStateRepository:
    """Upsert / find / remove of `{key, state, updatedAt}` documents."""

    def __init__(self, database: Optional[DocumentDatabase] = None):
        self._db = database or get_database()

    @staticmethod
    def _check_key(key: str) -> None:
        if not key or len(key) > MAX_KEY_LENGTH:
            raise StorageError(
                f"Invalid document key (1-{MAX_KEY_LENGTH} chars)",
                details={"key": key},
            )

    async def upsert(self, key: str, state: dict[str, Any], updated_at: int) -> None:
        """Insert the document or replace the existing one with the same key."""
        self._check_key(key)
        try:
            async with self._db.session() as session:
                result = await session.execute(
                    update(grid_states)
                    .where(grid_states.c.key == key)
                    .values(state=state, updated_at=updated_at)
                )
                if result.rowcount == 0:
                    await session.execute(
                        grid_states.insert().values(key=key, state=state, updated_at=updated_at)
                    )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError("Document upsert failed", details={"key": key}) from e

    async def find_one(self, key: str) -> Optional[dict[str, Any]]:
        """Return the stored document for key, or None if not found."""
        self._check_key(key)
        try:
            async with self._db.session() as session:
                result = await session.execute(
                    select(grid_states.c.key, grid_states.c.state, grid_states.c.updated_at)
                    .where(grid_states.c.key == key)
                )
                row = result.fetchone()
        except SQLAlchemyError as e:
            raise StorageError("Document lookup failed", details={"key": key}) from e
        if row is None:
            return None
        return {"key": row.key, "state": row.state, "updatedAt": row.updated_at}

    async def remove(self, key: str) -> bool:
        """Delete the document for key. Returns True if one was removed."""
        self._check_key(key)
        try:
            async with self._db.session() as session:
                result = await session.execute(
                    delete(grid_states).where(grid_states.c.key == key)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError("Document removal failed", details={"key": key}) from e
        return result.rowcount > 0
