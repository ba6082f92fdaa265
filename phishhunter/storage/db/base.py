"""Core database setup, connection and change notification."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import aiosqlite

from ...exceptions import CorpusUnavailableError
from ..records import CorpusChange
from .helpers import DatabaseFetchMixin
from .migrations import DatabaseMigrationsMixin
from .schema import DatabaseSchemaMixin

logger = logging.getLogger(__name__)

ChangeListener = Callable[[CorpusChange], None]


class DatabaseBase(
    DatabaseSchemaMixin,
    DatabaseMigrationsMixin,
    DatabaseFetchMixin,
):
    """Shared connection, migrations, and core helpers."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self._listeners: list[ChangeListener] = []

    @property
    def connected(self) -> bool:
        return self._connection is not None

    async def connect(self):
        """Establish database connection and create tables."""
        if self._connection is not None:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        # Best-effort because some SQLite builds/settings may reject these pragmas.
        try:
            await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA synchronous=NORMAL")
            await self._connection.execute("PRAGMA busy_timeout=5000")
            await self._connection.commit()
        except Exception:
            pass
        await self._create_tables()

    async def close(self):
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise CorpusUnavailableError(f"Corpus database not connected: {self.db_path}")
        return self._connection

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked after committed corpus writes."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, change: CorpusChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as exc:
                logger.warning("Corpus change listener failed: %s", exc)
