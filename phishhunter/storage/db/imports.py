"""Atomic bulk writes used by the table importer."""

from __future__ import annotations

import logging
from typing import Iterable

from ..records import CorpusChange, to_signed64
from .fingerprints import _UPSERT_FINGERPRINT_SQL
from .hosts import _UPSERT_HOST_SQL

logger = logging.getLogger(__name__)


class BulkImportMixin:
    """All-or-nothing writes spanning both tables."""

    async def bulk_import(
        self,
        hosts: Iterable[tuple[str, int]],
        fingerprints: Iterable[tuple[int, str, int]] = (),
        source: str = "seed",
    ) -> tuple[int, int]:
        """
        Upsert host and fingerprint rows inside a single transaction.

        Either every row becomes visible or, on any failure, none does and the
        error is re-raised. Returns (hosts_written, fingerprints_written).
        """
        host_rows = [(hostname, int(label), source) for hostname, label in hosts]
        fingerprint_rows = [
            (to_signed64(int(fp)), hostname, int(label)) for fp, hostname, label in fingerprints
        ]
        if not host_rows and not fingerprint_rows:
            return (0, 0)

        self._require_connection()
        async with self._lock:
            try:
                if host_rows:
                    await self._connection.executemany(_UPSERT_HOST_SQL, host_rows)
                if fingerprint_rows:
                    await self._connection.executemany(_UPSERT_FINGERPRINT_SQL, fingerprint_rows)
                await self._connection.commit()
            except Exception:
                await self._connection.rollback()
                logger.exception("Bulk import failed; rolled back %d rows", len(host_rows) + len(fingerprint_rows))
                raise

        self._notify(
            CorpusChange(kind="import", phishing_membership_changed=bool(host_rows))
        )
        return (len(host_rows), len(fingerprint_rows))
