"""Starlette receiver for AppsFlyer Push API attribution posts.

The S2S API cannot push conversion data to a device, so attribution
arrives at a server endpoint instead.  Mount this app and every posted
payload is forwarded to the SDK's conversion listener, which surfaces it
as a ``received``/``attribution`` event.

Usage::

    from appsflyer_bridge import create_webhook_app

    app = create_webhook_app(sdk)
    # uvicorn module:app
"""

from __future__ import annotations

import json
import logging
from typing import Any

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

logger = logging.getLogger(__name__)

DEFAULT_PUSH_PATH = "/appsflyer/attribution"


class AttributionWebhook:
    """Request handler that hands Push API payloads to ``sdk.handle_push``."""

    def __init__(self, sdk: Any) -> None:
        self.sdk = sdk

    async def handle(self, request: Request) -> JSONResponse:
        try:
            raw = await request.body()
            payload = json.loads(raw) if raw else None
        except ValueError:
            payload = None

        if not isinstance(payload, dict):
            logger.warning("Rejected attribution push with non-object body")
            return JSONResponse({"error": "JSON object expected"}, status_code=400)

        try:
            self.sdk.handle_push(payload)
        except Exception:
            logger.exception("Attribution push forwarding failed")
            return JSONResponse({"error": "forwarding failed"}, status_code=500)

        return JSONResponse({"status": "ok"})


def create_webhook_app(sdk: Any, path: str = DEFAULT_PUSH_PATH) -> Starlette:
    """Build a Starlette app that accepts attribution pushes on ``path``."""
    handler = AttributionWebhook(sdk)
    return Starlette(routes=[Route(path, handler.handle, methods=["POST"])])
