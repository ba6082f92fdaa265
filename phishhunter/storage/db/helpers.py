"""Database row conversion helpers."""

from __future__ import annotations

from typing import Optional

from ..records import FingerprintRecord, HostRecord, from_signed64


class DatabaseFetchMixin:
    """Row conversion helpers."""

    async def _fetchone_dict(self, cursor) -> Optional[dict]:
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def _fetchall_dicts(self, cursor) -> list[dict]:
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    @staticmethod
    def _host_from_row(row: Optional[dict]) -> Optional[HostRecord]:
        if not row:
            return None
        return HostRecord(
            hostname=row["hostname"],
            label=int(row["label"]),
            source=row.get("source"),
        )

    @staticmethod
    def _fingerprint_from_row(row: Optional[dict]) -> Optional[FingerprintRecord]:
        if not row:
            return None
        return FingerprintRecord(
            fingerprint=from_signed64(int(row["fingerprint"])),
            hostname=row["hostname"],
            label=int(row["label"]),
        )
