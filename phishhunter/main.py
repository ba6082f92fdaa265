"""Main entry point for PhishHunter.

Run:
  python -m phishhunter.main serve
  python -m phishhunter.main import data/phishing.csv
  python -m phishhunter.main classify https://example.com --html page.html
  python -m phishhunter.main set-key <GEMINI_API_KEY>
  python -m phishhunter.main stats
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from .analyzer import DetectionEngine, FilterManager, GeminiClassifier
from .config import GEMINI_API_KEY_SETTING, Config, load_config, validate_config
from .server import CheckServer
from .storage import CorpusDatabase, TableImporter, seed_if_needed

logger = logging.getLogger(__name__)


class PhishHunter:
    """Wires the corpus, filter, fallback classifier and engine together."""

    def __init__(self, config: Config):
        self.config = config
        self.database = CorpusDatabase(config.db_path)
        self.filters = FilterManager(
            self.database,
            false_positive_rate=config.bloom_false_positive_rate,
            capacity=config.bloom_capacity,
        )
        self.fallback = GeminiClassifier(
            api_key_provider=self.get_api_key,
            model=config.gemini_model,
            endpoint=config.gemini_endpoint,
            timeout=config.gemini_timeout,
            max_html_chars=config.gemini_max_html_chars,
        )
        self.engine = DetectionEngine(self.database, self.filters, self.fallback)
        self.server: Optional[CheckServer] = None

    async def get_api_key(self) -> Optional[str]:
        """Stored setting wins over the environment, so keys can change at runtime."""
        stored = await self.database.get_setting(GEMINI_API_KEY_SETTING)
        return stored or self.config.gemini_api_key or None

    async def start(self, seed: bool = True) -> None:
        await self.database.connect()
        if seed:
            report = await seed_if_needed(self.database, self.config.seed_csv)
            if report:
                logger.info("Seeded corpus: %s", report.to_dict())
        try:
            await self.filters.rebuild()
        except Exception as exc:
            # The engine rebuilds lazily on the next request.
            logger.warning("Initial filter build failed: %s", exc)

    async def stop(self) -> None:
        if self.server:
            await self.server.stop()
            self.server = None
        await self.database.close()

    async def status(self) -> dict:
        stats = await self.database.get_stats()
        snapshot = self.filters.snapshot
        stats["filter"] = snapshot.stats() if snapshot else None
        stats["filter_stale"] = self.filters.stale
        stats["filter_rebuilds"] = self.filters.rebuild_count
        return stats

    async def serve(self) -> None:
        self.server = CheckServer(
            host=self.config.server_host,
            port=self.config.server_port,
            engine=self.engine,
            status_provider=self.status,
        )
        await self.server.start()

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:  # pragma: no cover - Windows
                pass
        await stop_event.wait()
        logger.info("Shutting down")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="phishhunter", description="Layered phishing page detection")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the classification service")

    imp = sub.add_parser("import", help="Import a corpus table")
    imp.add_argument("path", type=Path)

    cls = sub.add_parser("classify", help="Classify a single URL")
    cls.add_argument("url")
    cls.add_argument("--html", type=Path, help="File with the page HTML")

    key = sub.add_parser("set-key", help="Store the Gemini API key in the corpus")
    key.add_argument("key", nargs="?", default="", help="Empty to remove the stored key")

    sub.add_parser("stats", help="Print corpus statistics")
    return parser


async def run(args: argparse.Namespace, config: Config) -> int:
    app = PhishHunter(config)
    command = args.command or "serve"
    await app.start(seed=command != "import")
    try:
        if command == "serve":
            await app.serve()
        elif command == "import":
            report = await TableImporter(app.database).import_file(args.path)
            await app.database.mark_seeded(str(args.path))
            print(json.dumps(report.to_dict(), indent=2))
        elif command == "classify":
            html = args.html.read_text(encoding="utf-8", errors="replace") if args.html else None
            result = await app.engine.classify(args.url, html)
            print(json.dumps(result.to_dict()))
        elif command == "set-key":
            if args.key.strip():
                await app.database.set_setting(GEMINI_API_KEY_SETTING, args.key.strip())
                print("API key saved")
            else:
                await app.database.delete_setting(GEMINI_API_KEY_SETTING)
                print("API key removed")
        elif command == "stats":
            print(json.dumps(await app.status(), indent=2, default=str))
    finally:
        await app.stop()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    errors = validate_config(config)
    if errors:
        for error in errors:
            logger.error("Config error: %s", error)
        return 1

    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
