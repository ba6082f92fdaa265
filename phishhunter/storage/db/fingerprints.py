"""Fingerprint table operations."""

from __future__ import annotations

from typing import Optional

from ..records import CorpusChange, FingerprintRecord, to_signed64

_UPSERT_FINGERPRINT_SQL = """
    INSERT INTO fingerprints (fingerprint, hostname, label, updated_at)
    VALUES (?, ?, ?, CURRENT_TIMESTAMP)
    ON CONFLICT(fingerprint) DO UPDATE SET
        hostname = excluded.hostname,
        label = excluded.label,
        updated_at = CURRENT_TIMESTAMP
"""


class FingerprintsMixin:
    """Point lookup, upsert and scans over the fingerprints table."""

    async def get_fingerprint(self, fingerprint: int) -> Optional[FingerprintRecord]:
        """Return the record stored under fingerprint, or None if absent."""
        try:
            key = to_signed64(int(fingerprint))
        except (TypeError, ValueError):
            return None
        self._require_connection()
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT fingerprint, hostname, label FROM fingerprints WHERE fingerprint = ?",
                (key,),
            )
            return self._fingerprint_from_row(await self._fetchone_dict(cursor))

    async def upsert_fingerprint(
        self,
        fingerprint: int,
        hostname: str,
        label: int,
    ) -> FingerprintRecord:
        """Insert or overwrite the record stored under fingerprint."""
        if not hostname:
            raise ValueError("hostname is required")
        key = to_signed64(int(fingerprint))
        self._require_connection()
        async with self._lock:
            await self._connection.execute(
                _UPSERT_FINGERPRINT_SQL, (key, hostname, int(label))
            )
            await self._connection.commit()

        self._notify(CorpusChange(kind="fingerprint", hostname=hostname, label=int(label)))
        return FingerprintRecord(fingerprint=int(fingerprint), hostname=hostname, label=int(label))

    async def list_fingerprints(self) -> list[FingerprintRecord]:
        """Return all fingerprint records ordered by key."""
        self._require_connection()
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT fingerprint, hostname, label FROM fingerprints ORDER BY fingerprint"
            )
            rows = await self._fetchall_dicts(cursor)
        return [self._fingerprint_from_row(row) for row in rows]

    async def count_fingerprints(self) -> int:
        self._require_connection()
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT COUNT(*) AS count FROM fingerprints"
            )
            row = await cursor.fetchone()
        return int(row["count"])
