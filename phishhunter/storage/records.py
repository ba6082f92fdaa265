"""Corpus record types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

FINGERPRINT_BITS = 64
FINGERPRINT_MAX = (1 << FINGERPRINT_BITS) - 1


class Label(int, Enum):
    """Ground-truth label of a corpus record."""

    LEGITIMATE = 0
    PHISHING = 1


class HostSource(str, Enum):
    """Where a host record came from."""

    SEED = "seed"  # Imported from the corpus table
    GEMINI = "gemini"  # Confirmed by the fallback classifier
    MANUAL = "manual"  # Added by an operator


@dataclass(frozen=True)
class HostRecord:
    """hostname -> label."""

    hostname: str
    label: int
    source: Optional[str] = None

    @property
    def is_phishing(self) -> bool:
        return self.label == Label.PHISHING


@dataclass(frozen=True)
class FingerprintRecord:
    """Page fingerprint -> (hostname, label)."""

    fingerprint: int
    hostname: str
    label: int

    @property
    def is_phishing(self) -> bool:
        return self.label == Label.PHISHING


@dataclass(frozen=True)
class CorpusChange:
    """Notification emitted after a committed corpus write."""

    kind: str  # "host", "fingerprint" or "import"
    hostname: Optional[str] = None
    label: Optional[int] = None
    phishing_membership_changed: bool = False


def to_signed64(value: int) -> int:
    """Map an unsigned 64-bit fingerprint into SQLite's signed INTEGER range."""
    if value < 0 or value > FINGERPRINT_MAX:
        raise ValueError(f"Fingerprint out of range: {value}")
    return value - (1 << FINGERPRINT_BITS) if value >= (1 << 63) else value


def from_signed64(value: int) -> int:
    """Inverse of to_signed64."""
    return value + (1 << FINGERPRINT_BITS) if value < 0 else value
