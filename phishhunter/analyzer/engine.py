"""
Layered detection engine.

Stages, in order, stopping at the first positive:

1. Hostname filter hit, confirmed by the corpus host record (bloom)
2. Page fingerprint match against corpus samples (simhash)
3. Fallback classifier verdict, written back to the corpus when positive

A negative stage means "not enough evidence", never "proven legitimate".
"""

from __future__ import annotations

import logging
from typing import Optional

from ..exceptions import InvalidURLError
from ..storage.records import FingerprintRecord, HostSource, Label
from ..utils.domains import hostname_from_url
from .fingerprint import compute_fingerprint
from .gemini import GeminiClassifier
from .membership import FilterManager
from .models import ClassificationResult, DetectionMethod

logger = logging.getLogger(__name__)


def fingerprint_matches(record: Optional[FingerprintRecord], hostname: str) -> bool:
    """
    Decide whether a stored page sample counts as a hit for hostname.

    - no record: no match
    - legitimate sample from the same host: no match (the page is itself)
    - phishing sample from another host: no match (cross-site reuse)
    - phishing sample from the same host, or a legitimate page copied onto
      another host: match
    """
    if record is None:
        return False
    same_host = record.hostname == hostname
    if record.label == Label.PHISHING:
        return same_host
    return not same_host


class DetectionEngine:
    """Classifies a (url, html) pair using the corpus and the fallback classifier."""

    def __init__(
        self,
        database,
        filters: FilterManager,
        fallback: Optional[GeminiClassifier] = None,
    ):
        self.database = database
        self.filters = filters
        self.fallback = fallback

    async def classify(self, url: str, html: Optional[str] = None) -> ClassificationResult:
        """Always returns a result; internal failures degrade to a negative."""
        try:
            hostname = hostname_from_url(url)
        except InvalidURLError as exc:
            logger.info("Not classifying invalid URL: %s", exc)
            return ClassificationResult.negative()

        if await self._check_bloom(hostname):
            logger.info("Phishing detected for %s (bloom)", hostname)
            return ClassificationResult(True, DetectionMethod.BLOOM)

        if not html:
            return ClassificationResult.negative()

        if await self._check_fingerprint(hostname, html):
            logger.info("Phishing detected for %s (simhash)", hostname)
            return ClassificationResult(True, DetectionMethod.SIMHASH)

        fallback = await self._check_fallback(url, hostname, html)
        if fallback is not None and fallback.is_phishing:
            return fallback

        if fallback is not None:
            logger.debug("Fallback for %s ended with %s", hostname, fallback.method.value)
        return ClassificationResult.negative()

    async def _check_bloom(self, hostname: str) -> bool:
        try:
            snapshot = await self.filters.get()
        except Exception as exc:
            logger.warning("Membership filter unavailable, skipping hostname check: %s", exc)
            return False

        if not snapshot.probably_contains(hostname):
            return False

        try:
            record = await self.database.get_host(hostname)
        except Exception as exc:
            logger.warning("Host lookup failed for %s: %s", hostname, exc)
            return False
        if record is not None and record.is_phishing:
            return True
        logger.debug("Filter false positive for %s", hostname)
        return False

    async def _check_fingerprint(self, hostname: str, html: str) -> bool:
        try:
            fingerprint = compute_fingerprint(html)
            record = await self.database.get_fingerprint(fingerprint)
        except Exception as exc:
            logger.warning("Fingerprint check failed for %s: %s", hostname, exc)
            return False
        return fingerprint_matches(record, hostname)

    async def _check_fallback(
        self, url: str, hostname: str, html: str
    ) -> Optional[ClassificationResult]:
        if self.fallback is None:
            return None
        try:
            result = await self.fallback.classify(url, html)
        except Exception:
            logger.exception("Fallback classifier raised for %s", hostname)
            return ClassificationResult.negative(DetectionMethod.GEMINI_ERROR)

        if result.is_phishing:
            logger.info("Phishing detected for %s (%s); writing back", hostname, result.method.value)
            try:
                await self.database.upsert_host(hostname, Label.PHISHING, source=HostSource.GEMINI)
            except Exception as exc:
                logger.warning("Write-back failed for %s: %s", hostname, exc)
        return result
