"""Tests for the layered detection engine."""

import asyncio

import pytest

from phishhunter.analyzer import (
    ClassificationResult,
    DetectionEngine,
    DetectionMethod,
    FilterManager,
    GeminiClassifier,
    compute_fingerprint,
    fingerprint_matches,
)
from phishhunter.storage import CorpusDatabase, FingerprintRecord, TableImporter


DUCK_PAGE = "<html><body><h1>DuckDuckGo</h1><p>Privacy, simplified.</p></body></html>"


class _StubFallback:
    """Records calls and returns a fixed result."""

    def __init__(self, result: ClassificationResult):
        self.result = result
        self.calls: list[tuple[str, str]] = []

    async def classify(self, url, html):
        self.calls.append((url, html))
        return self.result


class _RaisingFallback:
    async def classify(self, url, html):
        raise RuntimeError("unexpected")


async def _make_engine(tmp_path, fallback=None):
    db = CorpusDatabase(tmp_path / "corpus.db")
    await db.connect()
    filters = FilterManager(db, capacity=1000)
    return db, filters, DetectionEngine(db, filters, fallback)


class TestFingerprintMatches:
    """Tie-break matrix."""

    FP = 0xDEADBEEF

    def test_no_record(self):
        assert fingerprint_matches(None, "a.com") is False

    def test_phishing_same_host_matches(self):
        assert fingerprint_matches(FingerprintRecord(self.FP, "a.com", 1), "a.com") is True

    def test_phishing_other_host_does_not_match(self):
        assert fingerprint_matches(FingerprintRecord(self.FP, "a.com", 1), "b.com") is False

    def test_legitimate_same_host_does_not_match(self):
        assert fingerprint_matches(FingerprintRecord(self.FP, "a.com", 0), "a.com") is False

    def test_legitimate_other_host_matches(self):
        assert fingerprint_matches(FingerprintRecord(self.FP, "a.com", 0), "b.com") is True


@pytest.mark.asyncio
async def test_bloom_hit_without_html(tmp_path):
    db, _, engine = await _make_engine(tmp_path)
    try:
        await TableImporter(db).import_text("url,result\nphishingsite.com,1\n")
        result = await engine.classify("http://phishingsite.com", None)
        assert result == ClassificationResult(True, DetectionMethod.BLOOM)
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_bloom_hit_normalizes_case_and_www(tmp_path):
    db, _, engine = await _make_engine(tmp_path)
    try:
        await db.bulk_import([("phishingsite.com", 1)])
        result = await engine.classify("https://WWW.PhishingSite.com:8443/login?x=1")
        assert result.method == DetectionMethod.BLOOM
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_filter_positive_not_confirmed_by_store_falls_through(tmp_path):
    db, filters, engine = await _make_engine(tmp_path)
    try:
        await db.bulk_import([("was-phish.com", 1)])
        await filters.get()
        # Relabel without notifying the filter: the snapshot still says present.
        filters.database.remove_listener(filters._on_corpus_change)
        await db.upsert_host("was-phish.com", 0)

        assert filters.snapshot.probably_contains("was-phish.com")
        result = await engine.classify("http://was-phish.com")
        assert result == ClassificationResult(False, DetectionMethod.NONE)
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_simhash_match_for_same_phishing_host(tmp_path):
    db, _, engine = await _make_engine(tmp_path)
    try:
        fp = compute_fingerprint(DUCK_PAGE)
        await db.upsert_fingerprint(fp, "duckduckgo.com", 1)

        result = await engine.classify("http://duckduckgo.com", DUCK_PAGE)
        assert result == ClassificationResult(True, DetectionMethod.SIMHASH)
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_simhash_cloned_legitimate_page_on_other_host(tmp_path):
    fallback = _StubFallback(ClassificationResult.negative(DetectionMethod.GEMINI))
    db, _, engine = await _make_engine(tmp_path, fallback)
    try:
        fp = compute_fingerprint(DUCK_PAGE)
        await db.upsert_fingerprint(fp, "duckduckgo.com", 0)

        clone = await engine.classify("http://duckduckgo-login.xyz", DUCK_PAGE)
        assert clone.method == DetectionMethod.SIMHASH
        assert clone.is_phishing

        original = await engine.classify("https://duckduckgo.com/", DUCK_PAGE)
        assert original == ClassificationResult(False, DetectionMethod.NONE)
        assert fallback.calls == [("https://duckduckgo.com/", DUCK_PAGE)]
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_missing_key_surfaces_overall_negative(tmp_path):
    db, _, engine = await _make_engine(tmp_path, GeminiClassifier())
    try:
        result = await engine.classify("https://unknown.example", "<p>hello</p>")
        assert result == ClassificationResult(False, DetectionMethod.NONE)
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_fallback_positive_writes_back_and_next_call_hits_bloom(tmp_path):
    fallback = _StubFallback(ClassificationResult(True, DetectionMethod.GEMINI))
    db, filters, engine = await _make_engine(tmp_path, fallback)
    try:
        first = await engine.classify("https://fresh-phish.top/login", "<form>password</form>")
        assert first == ClassificationResult(True, DetectionMethod.GEMINI)

        record = await db.get_host("fresh-phish.top")
        assert record.label == 1
        assert record.source == "gemini"
        second = await engine.classify("https://fresh-phish.top/other", None)
        assert second == ClassificationResult(True, DetectionMethod.BLOOM)
        assert len(fallback.calls) == 1
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_empty_html_skips_fingerprint_and_fallback(tmp_path):
    fallback = _StubFallback(ClassificationResult(True, DetectionMethod.GEMINI))
    db, _, engine = await _make_engine(tmp_path, fallback)
    try:
        await db.upsert_fingerprint(compute_fingerprint(""), "other.example", 0)
        result = await engine.classify("http://e.com", "")
        assert result == ClassificationResult(False, DetectionMethod.NONE)
        assert fallback.calls == []
        assert await db.get_host("e.com") is None
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_concurrent_classify_with_write_back(tmp_path):
    fallback = _StubFallback(ClassificationResult(True, DetectionMethod.GEMINI))
    db, filters, engine = await _make_engine(tmp_path, fallback)
    try:
        first = await asyncio.gather(
            *[engine.classify("https://burst-phish.top/login", "<form>pw</form>") for _ in range(30)]
        )
        assert all(r.is_phishing for r in first)
        assert {r.method for r in first} <= {DetectionMethod.GEMINI, DetectionMethod.BLOOM}
        record = await db.get_host("burst-phish.top")
        assert record.label == 1
        assert record.source == "gemini"

        # One caller rebuilds; the rest may be served the previous snapshot meanwhile.
        second = await asyncio.gather(
            *[engine.classify("https://burst-phish.top/") for _ in range(30)]
        )
        methods = {r.method for r in second}
        assert methods <= {DetectionMethod.BLOOM, DetectionMethod.NONE}
        assert DetectionMethod.BLOOM in methods
        assert all(r.is_phishing == (r.method == DetectionMethod.BLOOM) for r in second)

        assert not filters.stale
        after = await engine.classify("https://burst-phish.top/")
        assert after == ClassificationResult(True, DetectionMethod.BLOOM)
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_fallback_failure_is_negative(tmp_path):
    fallback = _StubFallback(ClassificationResult.negative(DetectionMethod.GEMINI_ERROR))
    db, _, engine = await _make_engine(tmp_path, fallback)
    try:
        result = await engine.classify("https://a.example", "<p>x</p>")
        assert result == ClassificationResult(False, DetectionMethod.NONE)
        assert await db.get_host("a.example") is None
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_fallback_exception_does_not_propagate(tmp_path):
    db, _, engine = await _make_engine(tmp_path, _RaisingFallback())
    try:
        result = await engine.classify("https://a.example", "<p>x</p>")
        assert result.is_phishing is False
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_no_html_skips_fingerprint_and_fallback(tmp_path):
    fallback = _StubFallback(ClassificationResult(True, DetectionMethod.GEMINI))
    db, _, engine = await _make_engine(tmp_path, fallback)
    try:
        result = await engine.classify("https://a.example")
        assert result == ClassificationResult(False, DetectionMethod.NONE)
        assert fallback.calls == []
    finally:
        await db.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["", "not a url", "phishingsite.com", "http://", "mailto:x@y.com", None])
async def test_invalid_urls_are_negative(tmp_path, url):
    db, _, engine = await _make_engine(tmp_path)
    try:
        await db.bulk_import([("phishingsite.com", 1)])
        result = await engine.classify(url, "<p>x</p>")
        assert result == ClassificationResult(False, DetectionMethod.NONE)
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_unavailable_corpus_degrades_to_negative(tmp_path):
    db = CorpusDatabase(tmp_path / "never-connected.db")
    engine = DetectionEngine(db, FilterManager(db), None)
    result = await engine.classify("https://phishingsite.com", "<p>x</p>")
    assert result == ClassificationResult(False, DetectionMethod.NONE)


def test_result_serializes_like_extension_response():
    assert ClassificationResult(True, DetectionMethod.SIMHASH).to_dict() == {
        "isPhishing": True,
        "method": "simhash",
    }
