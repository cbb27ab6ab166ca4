# datagrid/db/db.py

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from datagrid import config
from datagrid.db.base import create_engine_for, metadata
from datagrid.exceptions import StorageUnavailableError
from datagrid.utils.logger import log_info, log_exception

# Register the table on the shared metadata before create_all runs
import datagrid.models.grid_state_table  # noqa: F401


class DocumentDatabase:
    """
    Owner of the document-store engine.

    The engine and its collection are created once. Callers arriving while the
    first initialisation is still running await the same in-flight task, so
    the underlying resources are never created twice. A failed initialisation
    is forgotten, letting the next caller try again.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self._url = url or config.DATABASE_URL
        self._echo = config.DEBUG if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None
        self._init_task: Optional[asyncio.Task] = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def init(self) -> AsyncEngine:
        """Initialise the engine and collection, or join the initialisation in flight."""
        if self._engine is not None:
            return self._engine
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._create())
        # shield: a cancelled caller must not cancel the shared initialisation
        return await asyncio.shield(self._init_task)

    async def _create(self) -> AsyncEngine:
        engine = None
        try:
            engine = create_engine_for(self._url, echo=self._echo)
            async with engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except Exception as e:
            log_exception(e, "DocumentDatabase: initialisation failed")
            self._init_task = None
            if engine is not None:
                await engine.dispose()
            raise StorageUnavailableError(details={"reason": str(e)}) from e

        self._engine = engine
        # expire_on_commit=False so results remain usable after commit.
        self._session_factory = async_sessionmaker(
            bind=engine,
            expire_on_commit=False,
            autoflush=False,
        )
        log_info("DocumentDatabase: collection ready")
        return engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield an AsyncSession, initialising the database on first use."""
        await self.init()
        async with self._session_factory() as session:
            yield session

    async def destroy(self) -> None:
        """Dispose the engine and forget the initialisation."""
        if self._init_task is not None and not self._init_task.done():
            try:
                await self._init_task
            except StorageUnavailableError:
                pass
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        self._init_task = None


# Process-wide handle, created on first use.
_database: Optional[DocumentDatabase] = None


def get_database() -> DocumentDatabase:
    """Return the shared DocumentDatabase for the configured DB_URL."""
    global _database
    if _database is None:
        _database = DocumentDatabase()
    return _database
