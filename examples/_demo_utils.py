"""Shared demo infrastructure for the AppsFlyer bridge examples.

Provides:
- Shared config (read from APPSFLYER_* environment variables)
- create_demo_plugin() — returns a plugin wired to the S2S client
- print_event() — formats delivered events

All demo scripts import from here to avoid code duplication.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from appsflyer_bridge import AppsFlyerPlugin, BridgeConfig, create_plugin

# ======================================================================
# Configuration — export APPSFLYER_APP_ID / APPSFLYER_DEV_KEY first
# ======================================================================

CONFIG = BridgeConfig.from_env()
APP_ID = os.getenv("APPSFLYER_APP_ID", "id000000000")


def create_demo_plugin() -> AppsFlyerPlugin:
    """Create a plugin on the running loop, with debug logging visible."""
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    return create_plugin(CONFIG)


def print_event(event: Mapping[str, Any]) -> None:
    """Listener that prints every delivered event on one line."""
    marker = "!!" if event["isError"] else "->"
    fields = ", ".join(
        f"{k}={v!r}" for k, v in event.items() if k not in ("name", "provider")
    )
    print(f"   {marker} {fields}")
