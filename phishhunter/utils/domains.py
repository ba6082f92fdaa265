"""Hostname normalization utilities."""

from __future__ import annotations

from urllib.parse import urlparse

from ..exceptions import InvalidURLError


def _normalize_host(host: str) -> str:
    host = (host or "").strip().lower().strip(".")
    if host.startswith("www.") and len(host) > 4:
        host = host[4:]
    return host


def canonicalize_hostname(value: str) -> str:
    """
    Normalize a hostname or URL to the corpus host key.

    - Lowercase
    - Strip leading "www." and trailing "."
    - Drop port, path, query and fragment

    Bare hosts ("example.com") are accepted. Returns "" if nothing usable remains.
    """
    raw = (value or "").strip()
    if not raw:
        return ""

    candidate = raw if "://" in raw else f"http://{raw}"
    try:
        parsed = urlparse(candidate)
        host = parsed.hostname or ""
    except ValueError:
        return ""
    return _normalize_host(host)


def hostname_from_url(url: str) -> str:
    """Extract the corpus host key from a full URL, raising InvalidURLError."""
    raw = (url or "").strip()
    if not raw or "://" not in raw:
        raise InvalidURLError(url)
    try:
        parsed = urlparse(raw)
        host = parsed.hostname
    except ValueError as exc:
        raise InvalidURLError(url, str(exc)) from exc
    if not parsed.scheme or not host:
        raise InvalidURLError(url)
    if any(ch.isspace() for ch in host):
        raise InvalidURLError(url, "Hostname contains whitespace")

    normalized = _normalize_host(host)
    if not normalized:
        raise InvalidURLError(url)
    return normalized
