"""Database migration helpers."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class DatabaseMigrationsMixin:
    """Schema version bookkeeping."""

    async def _record_schema_version(self, version: int) -> None:
        cursor = await self._connection.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        )
        row = await cursor.fetchone()
        previous = int(row["value"]) if row and str(row["value"]).isdigit() else None
        if previous == version:
            return
        await self._connection.execute(
            """
            INSERT INTO meta (key, value) VALUES ('schema_version', ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (str(version),),
        )
        await self._connection.commit()
        if previous is not None:
            logger.info("Corpus schema migrated from v%s to v%s", previous, version)
