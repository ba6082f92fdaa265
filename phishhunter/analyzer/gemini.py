"""
Fallback classifier backed by the Gemini generateContent API.

Used only when neither the hostname filter nor the page fingerprint produced a
verdict. One request per page, no retries. Every failure is reported as a
negative result tagged with the reason; nothing here raises to the caller.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

import httpx

from .fingerprint import strip_scripts_and_styles
from .models import ClassificationResult, DetectionMethod

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_TIMEOUT = 20.0
HTML_EXCERPT_CHARS = 2000

PROMPT_TEMPLATE = (
    "You are a phishing detection system. Decide whether the following web page "
    "is a phishing page.\n"
    "Answer with a single character: 1 if the page is phishing, 0 if it is "
    "legitimate. Do not output anything else.\n\n"
    "URL: {url}\n"
    "HTML:\n{html}"
)

ApiKeyProvider = Callable[[], Awaitable[Optional[str]]]


def build_prompt(url: str, html: str, max_chars: int = HTML_EXCERPT_CHARS) -> str:
    """Embed the url and the first max_chars of script/style-free HTML."""
    excerpt = strip_scripts_and_styles(html or "")[:max_chars]
    return PROMPT_TEMPLATE.format(url=url, html=excerpt)


def extract_verdict_text(payload: object) -> Optional[str]:
    """Return candidates[0].content.parts[0].text, or None if the shape is wrong."""
    if not isinstance(payload, dict):
        return None
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    if not isinstance(first, dict):
        return None
    content = first.get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) else None


class GeminiClassifier:
    """Asks the external judgment service for a one-character verdict."""

    def __init__(
        self,
        api_key_provider: Optional[ApiKeyProvider] = None,
        model: str = DEFAULT_MODEL,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = DEFAULT_TIMEOUT,
        max_html_chars: int = HTML_EXCERPT_CHARS,
    ):
        self.api_key_provider = api_key_provider
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.max_html_chars = max_html_chars

    @property
    def request_url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    async def _api_key(self) -> Optional[str]:
        if self.api_key_provider is None:
            return None
        try:
            key = await self.api_key_provider()
        except Exception as exc:
            logger.warning("Could not read Gemini API key: %s", exc)
            return None
        key = (key or "").strip()
        return key or None

    async def classify(self, url: str, html: Optional[str]) -> ClassificationResult:
        api_key = await self._api_key()
        if not api_key:
            logger.debug("No Gemini API key configured; skipping fallback for %s", url)
            return ClassificationResult.negative(DetectionMethod.GEMINI_MISSING_KEY)

        body = {
            "contents": [
                {"parts": [{"text": build_prompt(url, html or "", self.max_html_chars)}]}
            ]
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.request_url,
                    json=body,
                    headers={
                        "Content-Type": "application/json",
                        "x-goog-api-key": api_key,
                    },
                )
        except httpx.HTTPError as exc:
            logger.warning("Gemini request failed for %s: %s", url, exc)
            return ClassificationResult.negative(DetectionMethod.GEMINI_ERROR)
        except Exception:
            logger.exception("Gemini request error for %s", url)
            return ClassificationResult.negative(DetectionMethod.GEMINI_ERROR)

        if not 200 <= resp.status_code < 300:
            logger.warning("Gemini returned HTTP %s for %s", resp.status_code, url)
            return ClassificationResult.negative(DetectionMethod.GEMINI_ERROR)

        try:
            payload = resp.json()
        except ValueError:
            logger.warning("Gemini returned a non-JSON body for %s", url)
            return ClassificationResult.negative(DetectionMethod.GEMINI_FORMAT_ERROR)

        text = extract_verdict_text(payload)
        if text is None:
            logger.warning("Unexpected Gemini response shape for %s", url)
            return ClassificationResult.negative(DetectionMethod.GEMINI_FORMAT_ERROR)

        verdict = text.strip()
        logger.debug("Gemini verdict for %s: %r", url, verdict)
        return ClassificationResult(is_phishing=verdict == "1", method=DetectionMethod.GEMINI)
