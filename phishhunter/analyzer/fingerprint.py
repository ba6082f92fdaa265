"""HTML cleaning and page fingerprinting."""

from __future__ import annotations

import re

from simhash import Simhash

FINGERPRINT_BITS = 64

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_scripts_and_styles(html: str) -> str:
    """Remove <script> and <style> blocks, including their contents."""
    text = _SCRIPT_RE.sub("", html or "")
    return _STYLE_RE.sub("", text)


def clean_html(html: str) -> str:
    """Collapse markup into a text-like stream, one space per removed tag."""
    text = strip_scripts_and_styles(html)
    return _TAG_RE.sub(" ", text)


def normalize_text(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def compute_fingerprint(html: str) -> int:
    """
    64-bit simhash of the cleaned page text.

    The whole cleaned text is one feature of weight 1, matching how corpus
    fingerprints were produced. Same cleaned text, same value.
    """
    cleaned = normalize_text(clean_html(html))
    return int(Simhash([(cleaned, 1)], f=FINGERPRINT_BITS).value)


def hamming_distance(a: int, b: int) -> int:
    return bin((a ^ b) & ((1 << FINGERPRINT_BITS) - 1)).count("1")

