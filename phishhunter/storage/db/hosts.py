"""Hostname table operations."""

from __future__ import annotations

from typing import AsyncIterator, Optional

from ..records import CorpusChange, HostRecord, HostSource, Label

_UPSERT_HOST_SQL = """
    INSERT INTO hosts (hostname, label, source, updated_at)
    VALUES (?, ?, ?, CURRENT_TIMESTAMP)
    ON CONFLICT(hostname) DO UPDATE SET
        label = excluded.label,
        source = excluded.source,
        updated_at = CURRENT_TIMESTAMP
"""


class HostsMixin:
    """Point lookup, upsert and scans over the hosts table."""

    async def get_host(self, hostname: str) -> Optional[HostRecord]:
        """Return the record for hostname, or None if absent."""
        if not hostname:
            return None
        self._require_connection()
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT hostname, label, source FROM hosts WHERE hostname = ?",
                (hostname,),
            )
            return self._host_from_row(await self._fetchone_dict(cursor))

    async def upsert_host(
        self,
        hostname: str,
        label: int,
        source: HostSource | str = HostSource.SEED,
    ) -> HostRecord:
        """Insert or overwrite the record for hostname."""
        if not hostname:
            raise ValueError("hostname is required")
        label_value = int(label)
        source_value = source.value if isinstance(source, HostSource) else str(source)
        self._require_connection()

        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT label FROM hosts WHERE hostname = ?",
                (hostname,),
            )
            previous = await cursor.fetchone()
            await self._connection.execute(
                _UPSERT_HOST_SQL, (hostname, label_value, source_value)
            )
            await self._connection.commit()

        was_phishing = previous is not None and int(previous["label"]) == Label.PHISHING
        is_phishing = label_value == Label.PHISHING
        self._notify(
            CorpusChange(
                kind="host",
                hostname=hostname,
                label=label_value,
                phishing_membership_changed=was_phishing != is_phishing,
            )
        )
        return HostRecord(hostname=hostname, label=label_value, source=source_value)

    async def iter_phishing_hostnames(self) -> AsyncIterator[str]:
        """Yield every hostname labelled phishing (full-table scan)."""
        self._require_connection()
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT hostname FROM hosts WHERE label = ? ORDER BY hostname",
                (int(Label.PHISHING),),
            )
            rows = await cursor.fetchall()
        for row in rows:
            yield row["hostname"]

    async def get_phishing_hostnames(self) -> list[str]:
        """Return every hostname labelled phishing."""
        return [hostname async for hostname in self.iter_phishing_hostnames()]

    async def list_hosts(self) -> list[HostRecord]:
        """Return all host records ordered by hostname."""
        self._require_connection()
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT hostname, label, source FROM hosts ORDER BY hostname"
            )
            rows = await self._fetchall_dicts(cursor)
        return [self._host_from_row(row) for row in rows]

    async def count_hosts(self, label: int | None = None) -> int:
        """Count host records, optionally for a single label."""
        self._require_connection()
        async with self._lock:
            if label is None:
                cursor = await self._connection.execute("SELECT COUNT(*) AS count FROM hosts")
            else:
                cursor = await self._connection.execute(
                    "SELECT COUNT(*) AS count FROM hosts WHERE label = ?",
                    (int(label),),
                )
            row = await cursor.fetchone()
        return int(row["count"])
