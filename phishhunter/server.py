"""Request service for page classification.

Accepts the extension's message payloads over HTTP:

    {"type": "CHECK_URL", "url": "...", "html": "..."} -> {"isPhishing": bool, "method": str}
    {"action": "show-notification"}                     -> {"ok": true}
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Optional

from aiohttp import web

from .analyzer.models import ClassificationResult

logger = logging.getLogger(__name__)

CHECK_URL = "CHECK_URL"
SHOW_NOTIFICATION = "show-notification"

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


async def handle_message(engine, payload: object) -> dict:
    """Dispatch one message; never raises."""
    if not isinstance(payload, dict):
        return ClassificationResult.negative().to_dict()

    if payload.get("action") == SHOW_NOTIFICATION:
        logger.info("Phishing notification requested")
        return {"ok": True}

    if payload.get("type") != CHECK_URL:
        logger.debug("Ignoring message with type %r", payload.get("type"))
        return ClassificationResult.negative().to_dict()

    url = payload.get("url")
    html = payload.get("html")
    if not isinstance(url, str):
        return ClassificationResult.negative().to_dict()
    if html is not None and not isinstance(html, str):
        html = None

    try:
        result = await engine.classify(url, html)
    except Exception:  # pragma: no cover - engine contract is total
        logger.exception("Classification failed for %s", url)
        result = ClassificationResult.negative()
    return result.to_dict()


class CheckServer:
    """Serves classification and health endpoints."""

    def __init__(
        self,
        host: str,
        port: int,
        engine,
        status_provider: Optional[Callable[[], object]] = None,
    ):
        self.host = host
        self.port = port
        self.engine = engine
        self.status_provider = status_provider
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def build_app(self) -> web.Application:
        app = web.Application(client_max_size=16 * 1024 * 1024)
        app.router.add_post("/check", self._handle_check)
        app.router.add_post("/message", self._handle_message)
        app.router.add_get("/healthz", self._handle_health)
        app.router.add_route("OPTIONS", "/{tail:.*}", self._handle_options)
        return app

    async def start(self):
        """Start the request server."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("Check server listening on %s:%s", self.host, self.port)

    async def stop(self):
        """Stop the request server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None

    async def _read_json(self, request) -> object:  # noqa: ANN001
        try:
            return await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
            return None

    async def _handle_check(self, request):  # noqa: ANN001
        """Classify {"url", "html"?} without requiring the message envelope."""
        payload = await self._read_json(request)
        if isinstance(payload, dict):
            payload = {**payload, "type": CHECK_URL}
        result = await handle_message(self.engine, payload)
        return web.json_response(result, headers=_CORS_HEADERS)

    async def _handle_message(self, request):  # noqa: ANN001
        payload = await self._read_json(request)
        result = await handle_message(self.engine, payload)
        return web.json_response(result, headers=_CORS_HEADERS)

    async def _handle_health(self, request):  # noqa: ANN001
        """Return JSON health status."""
        payload: dict = {}
        if self.status_provider:
            try:
                status = self.status_provider()
                if hasattr(status, "__await__"):
                    status = await status
                payload = dict(status or {})
            except Exception as exc:
                logger.warning("Health status provider failed: %s", exc)
                payload = {"status": "error", "message": str(exc)}

        payload.setdefault("status", "ok")
        return web.json_response(payload, headers=_CORS_HEADERS)

    async def _handle_options(self, request):  # noqa: ANN001
        return web.Response(status=204, headers=_CORS_HEADERS)
