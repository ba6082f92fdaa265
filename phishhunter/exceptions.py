"""Shared exception types."""

from __future__ import annotations


class PhishHunterError(Exception):
    """Base exception for PhishHunter errors."""

    pass


class InvalidURLError(PhishHunterError, ValueError):
    """URL could not be parsed into a hostname."""

    def __init__(self, url: str, message: str = "Invalid URL"):
        self.url = url
        self.message = message
        super().__init__(f"{message}: {url!r}")


class CorpusUnavailableError(PhishHunterError):
    """Corpus or membership filter could not be loaded."""

    pass
