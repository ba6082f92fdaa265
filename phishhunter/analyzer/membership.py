"""
Probabilistic hostname filter.

A Bloom filter over every hostname labelled phishing in the corpus. Sized for
a target false-positive rate; a hostname present at build time always tests
positive. Snapshots are immutable: new phishing hosts require a rebuild.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import math
import time
from typing import Iterable, Optional

from ..exceptions import CorpusUnavailableError
from ..storage.records import CorpusChange

logger = logging.getLogger(__name__)

DEFAULT_FALSE_POSITIVE_RATE = 0.001
DEFAULT_CAPACITY = 80_000


def optimal_bit_size(capacity: int, false_positive_rate: float) -> int:
    """m = -n ln p / (ln 2)^2"""
    n = max(1, int(capacity))
    return max(8, int(math.ceil(-n * math.log(false_positive_rate) / (math.log(2) ** 2))))


def optimal_hash_count(bit_size: int, capacity: int) -> int:
    """k = m/n ln 2"""
    n = max(1, int(capacity))
    return max(1, int(round(bit_size / n * math.log(2))))


class MembershipFilter:
    """Immutable Bloom filter snapshot."""

    def __init__(
        self,
        bit_size: int,
        hash_count: int,
        false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE,
    ):
        if bit_size <= 0 or hash_count <= 0:
            raise ValueError("bit_size and hash_count must be positive")
        self.bit_size = bit_size
        self.hash_count = hash_count
        self.false_positive_rate = false_positive_rate
        self.built_at = time.time()
        self._bits = bytearray((bit_size + 7) // 8)
        self._count = 0
        self._frozen = False

    @classmethod
    def build(
        cls,
        hostnames: Iterable[str],
        false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE,
        capacity: int = DEFAULT_CAPACITY,
    ) -> "MembershipFilter":
        """Build a frozen filter sized for max(capacity, len(hostnames))."""
        if not 0 < false_positive_rate < 1:
            raise ValueError("false_positive_rate must be between 0 and 1")
        unique = {h for h in hostnames if h}
        n = max(int(capacity), len(unique), 1)
        bit_size = optimal_bit_size(n, false_positive_rate)
        bloom = cls(bit_size, optimal_hash_count(bit_size, n), false_positive_rate)
        for hostname in unique:
            bloom._add(hostname)
        bloom._frozen = True
        return bloom

    def _positions(self, item: str) -> list[int]:
        # Kirsch-Mitzenmacher double hashing over one SHA-256 digest.
        digest = hashlib.sha256(item.encode("utf-8")).digest()
        h1 = int.from_bytes(digest[:8], "big")
        h2 = int.from_bytes(digest[8:16], "big") | 1
        return [(h1 + i * h2) % self.bit_size for i in range(self.hash_count)]

    def _add(self, item: str) -> None:
        if self._frozen:
            raise RuntimeError("MembershipFilter is immutable once built")
        for pos in self._positions(item):
            self._bits[pos >> 3] |= 1 << (pos & 7)
        self._count += 1

    def probably_contains(self, hostname: str) -> bool:
        """False means definitely absent; True means present or a false positive."""
        if not hostname:
            return False
        return all(self._bits[pos >> 3] & (1 << (pos & 7)) for pos in self._positions(hostname))

    def __contains__(self, hostname: object) -> bool:
        return isinstance(hostname, str) and self.probably_contains(hostname)

    def __len__(self) -> int:
        return self._count

    def estimated_false_positive_rate(self) -> float:
        """(1 - e^(-kn/m))^k for the number of items actually inserted."""
        if self._count == 0:
            return 0.0
        return (1 - math.exp(-self.hash_count * self._count / self.bit_size)) ** self.hash_count

    def stats(self) -> dict:
        return {
            "entries": self._count,
            "bit_size": self.bit_size,
            "hash_count": self.hash_count,
            "target_false_positive_rate": self.false_positive_rate,
            "estimated_false_positive_rate": self.estimated_false_positive_rate(),
            "built_at": self.built_at,
        }


class FilterManager:
    """
    Owns the live filter snapshot for a corpus database.

    Readers always get a complete snapshot. A rebuild builds a new filter and
    swaps the reference when done; while it runs, other callers keep reading
    the previous snapshot. Corpus changes that alter phishing-host membership
    mark the snapshot stale so the next reader triggers a rebuild.
    """

    def __init__(
        self,
        database,
        false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE,
        capacity: int = DEFAULT_CAPACITY,
        subscribe: bool = True,
    ):
        self.database = database
        self.false_positive_rate = false_positive_rate
        self.capacity = capacity
        self._snapshot: Optional[MembershipFilter] = None
        self._stale = True
        self._lock = asyncio.Lock()
        self.rebuild_count = 0
        if subscribe:
            database.add_listener(self._on_corpus_change)

    @property
    def snapshot(self) -> Optional[MembershipFilter]:
        return self._snapshot

    @property
    def stale(self) -> bool:
        return self._stale

    def _on_corpus_change(self, change: CorpusChange) -> None:
        if change.phishing_membership_changed:
            logger.debug("Corpus change (%s %s); filter marked stale", change.kind, change.hostname)
            self.invalidate()

    def invalidate(self) -> None:
        self._stale = True

    async def rebuild(self) -> MembershipFilter:
        """Build a fresh snapshot from the corpus and swap it in."""
        async with self._lock:
            return await self._rebuild_locked()

    async def _rebuild_locked(self) -> MembershipFilter:
        # Clear before reading so changes landing mid-build re-mark the snapshot.
        self._stale = False
        started = time.monotonic()
        try:
            hostnames = await self.database.get_phishing_hostnames()
            snapshot = MembershipFilter.build(
                hostnames,
                false_positive_rate=self.false_positive_rate,
                capacity=self.capacity,
            )
        except Exception as exc:
            self._stale = True
            raise CorpusUnavailableError(f"Membership filter rebuild failed: {exc}") from exc

        self._snapshot = snapshot
        self.rebuild_count += 1
        logger.info(
            "Membership filter rebuilt: %d hosts, %d bits, %d hashes (%.0f ms)",
            len(snapshot),
            snapshot.bit_size,
            snapshot.hash_count,
            (time.monotonic() - started) * 1000,
        )
        return snapshot

    async def get(self) -> MembershipFilter:
        """
        Return a usable snapshot, rebuilding at most once.

        With no snapshot yet, callers wait for the first build. With a stale
        snapshot, the first caller rebuilds and concurrent callers are served
        the previous one.
        """
        current = self._snapshot
        if current is not None and not self._stale:
            return current
        if current is not None and self._lock.locked():
            return current

        async with self._lock:
            if self._snapshot is not None and not self._stale:
                return self._snapshot
            return await self._rebuild_locked()
