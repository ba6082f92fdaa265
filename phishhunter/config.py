"""Configuration management for PhishHunter."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .analyzer.gemini import DEFAULT_ENDPOINT, DEFAULT_MODEL, DEFAULT_TIMEOUT, HTML_EXCERPT_CHARS
from .analyzer.membership import DEFAULT_CAPACITY, DEFAULT_FALSE_POSITIVE_RATE

logger = logging.getLogger(__name__)

# Settings-table key holding the fallback classifier credential.
GEMINI_API_KEY_SETTING = "gemini_api_key"


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # Fallback classifier (optional; absence disables the fallback stage)
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_MODEL
    gemini_endpoint: str = DEFAULT_ENDPOINT
    gemini_timeout: float = DEFAULT_TIMEOUT
    gemini_max_html_chars: int = HTML_EXCERPT_CHARS

    # Membership filter tuning
    bloom_false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE
    bloom_capacity: int = DEFAULT_CAPACITY

    # Request service
    server_host: str = "127.0.0.1"
    server_port: int = 8765

    log_level: str = "INFO"

    # Paths
    data_dir: Path = field(default_factory=lambda: Path("./data"))
    db_path: Optional[Path] = None
    seed_csv: Optional[Path] = None
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    def __post_init__(self):
        """Normalize paths and make sure the data directory exists."""
        self.data_dir = Path(self.data_dir)
        self.config_dir = Path(self.config_dir)
        self.db_path = Path(self.db_path) if self.db_path else self.data_dir / "corpus.db"
        self.seed_csv = Path(self.seed_csv) if self.seed_csv else None
        self.data_dir.mkdir(parents=True, exist_ok=True)


def _load_overrides(config_dir: Path) -> dict:
    """Load detector overrides from config/detector.yaml (optional)."""
    path = Path(config_dir or ".") / "detector.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse detector.yaml: %s", exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring detector.yaml: expected a mapping")
        return {}

    overrides: dict = {}
    bloom_cfg = data.get("bloom") or {}
    gemini_cfg = data.get("gemini") or {}

    if isinstance(bloom_cfg, dict):
        try:
            if "false_positive_rate" in bloom_cfg:
                overrides["bloom_false_positive_rate"] = float(bloom_cfg["false_positive_rate"])
            if "capacity" in bloom_cfg:
                overrides["bloom_capacity"] = int(bloom_cfg["capacity"])
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring invalid bloom settings in detector.yaml: %s", exc)

    if isinstance(gemini_cfg, dict):
        model = str(gemini_cfg.get("model") or "").strip()
        if model:
            overrides["gemini_model"] = model
        try:
            if "max_html_chars" in gemini_cfg:
                overrides["gemini_max_html_chars"] = int(gemini_cfg["max_html_chars"])
            if "timeout" in gemini_cfg:
                overrides["gemini_timeout"] = float(gemini_cfg["timeout"])
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring invalid gemini settings in detector.yaml: %s", exc)

    return overrides


def load_config() -> Config:
    """Load configuration from environment variables and config/detector.yaml."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    overrides = _load_overrides(config_dir)

    db_path = os.getenv("DB_PATH", "").strip()
    seed_csv = os.getenv("SEED_CSV", "").strip()

    return Config(
        gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
        gemini_model=os.getenv("GEMINI_MODEL") or overrides.get("gemini_model", DEFAULT_MODEL),
        gemini_endpoint=os.getenv("GEMINI_ENDPOINT", DEFAULT_ENDPOINT),
        gemini_timeout=float(
            os.getenv("GEMINI_TIMEOUT") or overrides.get("gemini_timeout", DEFAULT_TIMEOUT)
        ),
        gemini_max_html_chars=overrides.get("gemini_max_html_chars", HTML_EXCERPT_CHARS),
        bloom_false_positive_rate=float(
            os.getenv("BLOOM_FALSE_POSITIVE_RATE")
            or overrides.get("bloom_false_positive_rate", DEFAULT_FALSE_POSITIVE_RATE)
        ),
        bloom_capacity=int(
            os.getenv("BLOOM_CAPACITY") or overrides.get("bloom_capacity", DEFAULT_CAPACITY)
        ),
        server_host=os.getenv("SERVER_HOST", "127.0.0.1"),
        server_port=int(os.getenv("SERVER_PORT", "8765")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        data_dir=Path(os.getenv("DATA_DIR", "./data")),
        db_path=Path(db_path) if db_path else None,
        seed_csv=Path(seed_csv) if seed_csv else None,
        config_dir=config_dir,
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []
    if not 0 < config.bloom_false_positive_rate < 1:
        errors.append("BLOOM_FALSE_POSITIVE_RATE must be between 0 and 1")
    if config.bloom_capacity <= 0:
        errors.append("BLOOM_CAPACITY must be positive")
    if not 0 < config.server_port < 65536:
        errors.append("SERVER_PORT must be a valid TCP port")
    if config.gemini_timeout <= 0:
        errors.append("GEMINI_TIMEOUT must be positive")
    if config.gemini_max_html_chars <= 0:
        errors.append("gemini.max_html_chars must be positive")

    if not config.gemini_api_key:
        # Fallback still works if a key is stored in the corpus settings table.
        logger.info("No GEMINI_API_KEY configured; fallback classification may be disabled")

    return errors
