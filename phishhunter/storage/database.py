"""SQLite corpus store for PhishHunter."""

from __future__ import annotations

from .db.base import DatabaseBase
from .db.fingerprints import FingerprintsMixin
from .db.hosts import HostsMixin
from .db.imports import BulkImportMixin
from .db.settings import SettingsMixin
from .db.stats import StatsMixin


class CorpusDatabase(
    HostsMixin,
    FingerprintsMixin,
    BulkImportMixin,
    SettingsMixin,
    StatsMixin,
    DatabaseBase,
):
    """Async SQLite store for hostname and fingerprint records."""

    pass
