"""Storage modules for PhishHunter."""

from .database import CorpusDatabase
from .importer import ImportReport, TableImporter, seed_if_needed
from .records import CorpusChange, FingerprintRecord, HostRecord, HostSource, Label

__all__ = [
    "CorpusDatabase",
    "CorpusChange",
    "FingerprintRecord",
    "HostRecord",
    "HostSource",
    "ImportReport",
    "Label",
    "TableImporter",
    "seed_if_needed",
]
