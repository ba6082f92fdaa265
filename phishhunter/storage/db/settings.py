"""Meta flags and operator settings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


class SettingsMixin:
    """Key/value helpers for the meta and settings tables."""

    async def get_meta(self, key: str) -> Optional[str]:
        self._require_connection()
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT value FROM meta WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
        return row["value"] if row else None

    async def set_meta(self, key: str, value: str) -> None:
        self._require_connection()
        async with self._lock:
            await self._connection.execute(
                """
                INSERT INTO meta (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            await self._connection.commit()

    async def is_seeded(self) -> bool:
        """True once the seed table has been imported into this corpus."""
        return bool(await self.get_meta("seeded_at"))

    async def mark_seeded(self, source: str) -> None:
        await self.set_meta("seeded_at", datetime.now(timezone.utc).isoformat())
        await self.set_meta("seed_source", source)

    async def get_setting(self, key: str) -> Optional[str]:
        """Return a stored setting, or None if unset or blank."""
        self._require_connection()
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT value FROM settings WHERE key = ?", (key,)
            )
            row = await cursor.fetchone()
        if not row:
            return None
        value = (row["value"] or "").strip()
        return value or None

    async def set_setting(self, key: str, value: str) -> None:
        self._require_connection()
        async with self._lock:
            await self._connection.execute(
                """
                INSERT INTO settings (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
            await self._connection.commit()

    async def delete_setting(self, key: str) -> None:
        self._require_connection()
        async with self._lock:
            await self._connection.execute("DELETE FROM settings WHERE key = ?", (key,))
            await self._connection.commit()
