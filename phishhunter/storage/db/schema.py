"""Database schema creation helpers."""

from __future__ import annotations

SCHEMA_VERSION = 1


class DatabaseSchemaMixin:
    """Database schema creation helpers."""

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        async with self._lock:
            await self._connection.executescript(
                """
                    -- Ground truth: hostname -> label
                    CREATE TABLE IF NOT EXISTS hosts (
                        hostname TEXT PRIMARY KEY,
                        label INTEGER NOT NULL DEFAULT 0,
                        source TEXT DEFAULT 'seed',
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    );

                    -- Known page samples: fingerprint -> (hostname, label)
                    CREATE TABLE IF NOT EXISTS fingerprints (
                        fingerprint INTEGER PRIMARY KEY,
                        hostname TEXT NOT NULL,
                        label INTEGER NOT NULL DEFAULT 0,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    );

                    CREATE TABLE IF NOT EXISTS meta (
                        key TEXT PRIMARY KEY,
                        value TEXT
                    );

                    -- Operator settings (e.g. the fallback classifier credential)
                    CREATE TABLE IF NOT EXISTS settings (
                        key TEXT PRIMARY KEY,
                        value TEXT,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    );
                """
            )
            await self._connection.commit()

        await self._create_indexes()
        await self._record_schema_version(SCHEMA_VERSION)

    async def _create_indexes(self) -> None:
        """Create indexes (best-effort, safe for older DBs)."""
        statements = [
            "CREATE INDEX IF NOT EXISTS idx_hosts_label ON hosts(label)",
            "CREATE INDEX IF NOT EXISTS idx_fingerprints_hostname ON fingerprints(hostname)",
        ]

        for stmt in statements:
            try:
                await self._connection.execute(stmt)
            except Exception:
                continue
        await self._connection.commit()
