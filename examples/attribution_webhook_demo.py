#!/usr/bin/env python3
"""
Attribution Webhook Demo — Push API payloads become listener events
====================================================================

Starts the Starlette push receiver in-process, posts a Push API style
attribution payload to it with httpx, and prints the resulting
``received``/``attribution`` event.

Run:
    python examples/attribution_webhook_demo.py
"""

from __future__ import annotations

import asyncio
import os
import sys

import httpx

from appsflyer_bridge import create_webhook_app

sys.path.insert(0, os.path.dirname(__file__))
from _demo_utils import APP_ID, create_demo_plugin, print_event

PUSH_PAYLOAD = {
    "event_name": "install",
    "af_status": "Non-organic",
    "media_source": "googleadwords_int",
    "campaign": "spring_launch",
    "is_first_launch": True,
}


async def main() -> None:
    plugin = create_demo_plugin()
    plugin.init(print_event, {"appID": APP_ID})

    app = create_webhook_app(plugin.sdk)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://push") as client:
        resp = await client.post("/appsflyer/attribution", json=PUSH_PAYLOAD)
        print(f"\n   webhook answered {resp.status_code} {resp.json()}")

    # The S2S worker thread forwards the payload; wait for delivery
    await asyncio.sleep(0.5)
    await plugin.dispatcher.drain()
    await plugin.aclose()


if __name__ == "__main__":
    asyncio.run(main())
