"""Tests for application wiring."""

import pytest

from phishhunter.analyzer.models import DetectionMethod
from phishhunter.config import GEMINI_API_KEY_SETTING, Config
from phishhunter.main import PhishHunter, _build_parser


@pytest.mark.asyncio
async def test_start_seeds_and_builds_filter(tmp_path):
    seed = tmp_path / "seed.csv"
    seed.write_text("website,url,html_simhash,result\nFake,phishingsite.com,,1\n", encoding="utf-8")
    app = PhishHunter(Config(data_dir=tmp_path / "data", seed_csv=seed, bloom_capacity=100))
    await app.start()
    try:
        status = await app.status()
        assert status["hosts_phishing"] == 1
        assert status["filter"]["entries"] == 1
        assert status["filter_stale"] is False

        result = await app.engine.classify("http://phishingsite.com")
        assert result.method == DetectionMethod.BLOOM
    finally:
        await app.stop()


@pytest.mark.asyncio
async def test_stored_key_takes_precedence(tmp_path):
    app = PhishHunter(Config(data_dir=tmp_path / "data", gemini_api_key="from-env"))
    await app.start()
    try:
        assert await app.get_api_key() == "from-env"
        await app.database.set_setting(GEMINI_API_KEY_SETTING, "from-db")
        assert await app.get_api_key() == "from-db"
    finally:
        await app.stop()


def test_parser_commands():
    parser = _build_parser()
    args = parser.parse_args(["classify", "https://a.com", "--html", "page.html"])
    assert args.command == "classify"
    assert args.url == "https://a.com"
    assert parser.parse_args(["set-key"]).key == ""
