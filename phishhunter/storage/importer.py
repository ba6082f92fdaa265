"""
Corpus table importer.

Loads the seed table (UTF-8, comma separated, header row) into the corpus:

    website,url,html_simhash,result
    "Example",phishingsite.com,1234567890123,1

Every retained row becomes a host record; rows with a fingerprint also become a
fingerprint record. One import is written atomically.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..exceptions import PhishHunterError
from ..utils.domains import canonicalize_hostname
from .records import FINGERPRINT_MAX, HostSource, Label, from_signed64

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("url", "result")
OPTIONAL_COLUMNS = ("website", "html_simhash")


class TableFormatError(PhishHunterError):
    """The table is missing its header or a required column."""

    pass


@dataclass(frozen=True)
class ImportedRow:
    """One retained row of the corpus table."""

    url: str
    result: str
    html_simhash: Optional[str] = None


@dataclass
class ImportReport:
    """Summary of one import run."""

    rows_retained: int = 0
    hosts_written: int = 0
    fingerprints_written: int = 0
    skipped: int = 0
    anomalies: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rows_retained": self.rows_retained,
            "hosts_written": self.hosts_written,
            "fingerprints_written": self.fingerprints_written,
            "skipped": self.skipped,
            "anomalies": len(self.anomalies),
        }


def parse_label(value: object) -> int:
    """Parse the result column; anything that is not the integer 1 is legitimate."""
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return int(Label.LEGITIMATE)
    return int(Label.PHISHING) if parsed == Label.PHISHING else int(Label.LEGITIMATE)


def parse_fingerprint(value: Optional[str]) -> Optional[int]:
    """
    Parse an html_simhash cell into an unsigned 64-bit int.

    Decimal is expected; "0x" hex and signed 64-bit decimals are accepted.
    Returns None for blanks, raises ValueError for anything unusable.
    """
    raw = (value or "").strip()
    if not raw:
        return None
    if raw.lower().startswith("0x"):
        parsed = int(raw, 16)
    else:
        parsed = int(raw)
    if -(1 << 63) <= parsed < 0:
        parsed = from_signed64(parsed)
    if parsed < 0 or parsed > FINGERPRINT_MAX:
        raise ValueError(f"fingerprint out of 64-bit range: {raw}")
    return parsed


def parse_table(text: str) -> list[ImportedRow]:
    """
    Parse the delimited table into rows.

    Quoted fields use "" for a literal quote and may contain commas and
    newlines. A final record without a trailing newline is still emitted.
    Rows with an empty url, or with every field empty, are dropped.
    """
    reader = csv.reader(io.StringIO(text or "", newline=""), delimiter=",", quotechar='"')
    try:
        header = next(reader)
    except StopIteration:
        raise TableFormatError("Table is empty") from None

    columns = {name.strip().lstrip("\ufeff").lower(): idx for idx, name in enumerate(header)}
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise TableFormatError(f"Table is missing required column(s): {', '.join(missing)}")

    def cell(values: list[str], name: str) -> str:
        idx = columns.get(name)
        if idx is None or idx >= len(values):
            return ""
        return values[idx]

    rows: list[ImportedRow] = []
    while True:
        try:
            values = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            logger.warning("Skipping unreadable table row near line %d: %s", reader.line_num, exc)
            continue
        if not values or all(not v.strip() for v in values):
            continue
        url = cell(values, "url").strip()
        if not url:
            continue
        simhash = cell(values, "html_simhash").strip()
        rows.append(
            ImportedRow(
                url=url,
                result=cell(values, "result"),
                html_simhash=simhash or None,
            )
        )
    return rows


class TableImporter:
    """Loads corpus tables into a CorpusDatabase."""

    def __init__(self, database, source: HostSource | str = HostSource.SEED):
        self.database = database
        self.source = source.value if isinstance(source, HostSource) else str(source)

    async def import_text(self, text: str) -> ImportReport:
        """Parse and load a table; malformed rows are skipped individually."""
        rows = parse_table(text)
        report = ImportReport(rows_retained=len(rows))

        hosts: list[tuple[str, int]] = []
        fingerprints: list[tuple[int, str, int]] = []
        for row in rows:
            hostname = canonicalize_hostname(row.url)
            if not hostname:
                report.skipped += 1
                report.anomalies.append(f"unusable url: {row.url!r}")
                continue

            label = parse_label(row.result)
            if str(row.result).strip() not in ("0", "1"):
                report.anomalies.append(f"result {row.result!r} for {hostname} read as {label}")
            hosts.append((hostname, label))

            try:
                fingerprint = parse_fingerprint(row.html_simhash)
            except ValueError:
                report.anomalies.append(f"bad html_simhash {row.html_simhash!r} for {hostname}")
                continue
            if fingerprint is not None:
                fingerprints.append((fingerprint, hostname, label))

        written_hosts, written_fps = await self.database.bulk_import(
            hosts, fingerprints, source=self.source
        )
        report.hosts_written = written_hosts
        report.fingerprints_written = written_fps

        if report.anomalies:
            logger.info(
                "Import finished with %d anomalies (first: %s)",
                len(report.anomalies),
                report.anomalies[0],
            )
        logger.info(
            "Imported %d hosts and %d fingerprints (%d rows retained, %d skipped)",
            report.hosts_written,
            report.fingerprints_written,
            report.rows_retained,
            report.skipped,
        )
        return report

    async def import_file(self, path: Path | str) -> ImportReport:
        path = Path(path)
        text = path.read_text(encoding="utf-8-sig")
        return await self.import_text(text)


async def seed_if_needed(database, seed_path: Optional[Path]) -> Optional[ImportReport]:
    """
    Import the seed table once, on first initialization.

    Returns the report, or None if the corpus was already seeded or no usable
    seed file exists.
    """
    if await database.is_seeded():
        return None
    if not seed_path:
        logger.info("No seed table configured; starting with an empty corpus")
        return None

    path = Path(seed_path)
    if not path.exists():
        logger.warning("Seed table not found at %s; starting with an empty corpus", path)
        return None

    try:
        report = await TableImporter(database).import_file(path)
    except (OSError, UnicodeDecodeError, TableFormatError) as exc:
        logger.error("Failed to import seed table %s: %s", path, exc)
        return None

    await database.mark_seeded(str(path))
    return report
