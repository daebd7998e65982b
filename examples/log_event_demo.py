#!/usr/bin/env python3
"""
Log Event Demo — init, in-app events and a purchase over S2S
=============================================================

Walks the full host call surface through the table-based interface the
way an embedded runtime would:
  1. init with consent missing (user stays anonymized)
  2. getVersion / getAppsFlyerUID
  3. logEvent with flat options
  4. logPurchase
  5. a rejected call (validation errors raise and are logged)

Run:
    APPSFLYER_APP_ID=id123 APPSFLYER_DEV_KEY=... python examples/log_event_demo.py
"""

from __future__ import annotations

import asyncio
import os
import sys

from appsflyer_bridge import ValidationError

sys.path.insert(0, os.path.dirname(__file__))
from _demo_utils import APP_ID, create_demo_plugin, print_event


async def main() -> None:
    plugin = create_demo_plugin()

    print("\n1. init")
    plugin.invoke("init", print_event, {"appID": APP_ID, "enableDebugLogging": True})

    print("\n2. versions")
    plugin.invoke("getVersion")
    print(f"   uid = {plugin.invoke('getAppsFlyerUID')}")

    print("\n3. logEvent")
    plugin.invoke(
        "logEvent",
        "af_level_achieved",
        {"af_level": 7, "af_score": 1250, "hard_mode": True},
    )

    print("\n4. logPurchase")
    plugin.invoke(
        "logPurchase",
        {
            "publicKey": "MIIBIjANBgkq...",
            "price": "4.99",
            "currency": "USD",
            "signature": "demo-signature",
            "purchaseData": '{"orderId":"GPA.0000-0000"}',
            "parameters": {"sku": "gem_pack_small"},
        },
    )

    print("\n5. invalid call")
    try:
        plugin.invoke("logEvent", "af_level_achieved", {"levels": [1, 2]})
    except ValidationError as exc:
        print(f"   rejected: {exc}")

    # Give the S2S worker time to answer before shutting down
    await asyncio.sleep(3)
    await plugin.dispatcher.drain()
    await plugin.aclose()


if __name__ == "__main__":
    asyncio.run(main())
