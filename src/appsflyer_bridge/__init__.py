"""AppsFlyer bridge — attribution SDK calls in, ordered listener events out.

Validates host argument tables, guards every operation behind a one-shot
``init``, relays to the attribution SDK and delivers results and
attribution callbacks as ``analyticsRequest`` events to a single listener
on the host's asyncio loop.

Integration points (pick any or combine):
    1. Direct API          — plugin.log_event(...) from Python code
    2. Host call interface — plugin.invoke("logEvent", ...) with raw values
    3. S2S client          — AppsFlyerS2SClient as the SDK binding
    4. Push API webhook    — create_webhook_app(sdk) for attribution data
"""

from appsflyer_bridge.config import BridgeConfig
from appsflyer_bridge.dispatcher import EventDispatcher
from appsflyer_bridge.errors import (
    ArgumentCountError,
    BridgeError,
    MissingRequired,
    NotInitialized,
    SdkOperationFailure,
    TypeMismatch,
    UnknownOption,
    ValidationError,
)
from appsflyer_bridge.events import BridgeEvent, EventType, Phase
from appsflyer_bridge.plugin import PLUGIN_VERSION, AppsFlyerPlugin, create_plugin
from appsflyer_bridge.s2s import AppsFlyerS2SClient
from appsflyer_bridge.schema import ArgumentValidator
from appsflyer_bridge.sdk import AttributionSDK, ConversionListener
from appsflyer_bridge.session import BridgeSession


def __getattr__(name: str):
    if name == "create_webhook_app":
        from appsflyer_bridge.webhook import create_webhook_app

        return create_webhook_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AppsFlyerPlugin",
    "create_plugin",
    "BridgeConfig",
    "BridgeSession",
    "EventDispatcher",
    "BridgeEvent",
    "EventType",
    "Phase",
    "ArgumentValidator",
    "AttributionSDK",
    "ConversionListener",
    "AppsFlyerS2SClient",
    "create_webhook_app",
    "BridgeError",
    "ValidationError",
    "ArgumentCountError",
    "UnknownOption",
    "TypeMismatch",
    "MissingRequired",
    "NotInitialized",
    "SdkOperationFailure",
]

__version__ = PLUGIN_VERSION
