"""Statistics/summary queries."""

from __future__ import annotations


class StatsMixin:
    """Aggregate statistics and snapshots."""

    async def get_stats(self) -> dict:
        """Return corpus counts for health and CLI output."""
        stats: dict = {}

        self._require_connection()
        async with self._lock:
            cursor = await self._connection.execute(
                "SELECT label, COUNT(*) AS count FROM hosts GROUP BY label"
            )
            by_label = {int(row["label"]): row["count"] for row in await cursor.fetchall()}
            stats["hosts_phishing"] = by_label.get(1, 0)
            stats["hosts_legitimate"] = sum(c for label, c in by_label.items() if label != 1)
            stats["hosts_total"] = sum(by_label.values())

            cursor = await self._connection.execute(
                "SELECT source, COUNT(*) AS count FROM hosts GROUP BY source"
            )
            stats["hosts_by_source"] = {
                (row["source"] or "unknown"): row["count"] for row in await cursor.fetchall()
            }

            cursor = await self._connection.execute(
                "SELECT COUNT(*) AS count FROM fingerprints"
            )
            stats["fingerprints_total"] = (await cursor.fetchone())["count"]

            cursor = await self._connection.execute(
                "SELECT value FROM meta WHERE key = 'seeded_at'"
            )
            row = await cursor.fetchone()
            stats["seeded_at"] = row["value"] if row else None

        return stats

    async def snapshot(self) -> dict:
        """Return both tables as plain data (timestamps excluded)."""
        hosts = await self.list_hosts()
        fingerprints = await self.list_fingerprints()
        return {
            "hosts": {h.hostname: h.label for h in hosts},
            "fingerprints": {f.fingerprint: (f.hostname, f.label) for f in fingerprints},
        }
