"""AppsFlyerPlugin — the operation surface the host runtime calls.

Each operation validates its arguments, checks the init guard, relays to
the attribution SDK and reports results through the event dispatcher.

Usage — direct::

    plugin = create_plugin(BridgeConfig.from_env())
    plugin.init(listener, {"appID": "id123", "devKey": "..."})
    plugin.log_event("level_complete", {"level": 3})
    await plugin.aclose()

Usage — table-based host calls::

    plugin.invoke("logEvent", "level_complete", {"level": 3})
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Dict, Mapping, Optional

from appsflyer_bridge.config import BridgeConfig
from appsflyer_bridge.dispatcher import EventDispatcher
from appsflyer_bridge.errors import (
    ArgumentCountError,
    BridgeError,
    SdkOperationFailure,
    ValidationError,
)
from appsflyer_bridge.events import BridgeEvent, EventType, Phase
from appsflyer_bridge.schema import (
    INIT_SCHEMA,
    PURCHASE_SCHEMA,
    ArgumentValidator,
    FieldKind,
)
from appsflyer_bridge.sdk import AttributionSDK
from appsflyer_bridge.session import BridgeSession, Listener

logger = logging.getLogger(__name__)

PLUGIN_NAME = "plugin.appsflyer"
PLUGIN_VERSION = "1.1.0"

SIGNATURES = {
    "init": INIT_SCHEMA.signature,
    "getVersion": "appsflyer.getVersion()",
    "getAppsFlyerUID": "appsflyer.getAppsFlyerUID()",
    "logEvent": "appsflyer.logEvent(eventName, options)",
    "logPurchase": PURCHASE_SCHEMA.signature,
    "setHasUserConsent": "appsflyer.setHasUserConsent(boolean)",
}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class _AttributionDelegate:
    """Conversion listener handed to the SDK; turns callbacks into events."""

    def __init__(self, dispatcher: EventDispatcher) -> None:
        self._dispatcher = dispatcher

    def on_conversion_data_success(self, data: Mapping[str, Any]) -> None:
        self._dispatcher.dispatch(BridgeEvent.attribution(data))

    def on_app_open_attribution(self, data: Mapping[str, Any]) -> None:
        self._dispatcher.dispatch(BridgeEvent.attribution(data))

    def on_conversion_data_fail(self, message: str) -> None:
        logger.warning("Conversion data failure: %s", message)
        self._dispatcher.dispatch(
            BridgeEvent.failed(message, type=EventType.ATTRIBUTION)
        )

    def on_attribution_failure(self, message: str) -> None:
        logger.warning("App open attribution failure: %s", message)
        self._dispatcher.dispatch(
            BridgeEvent.failed(message, type=EventType.ATTRIBUTION)
        )


class AppsFlyerPlugin:
    """Bridges host operations to an :class:`AttributionSDK`.

    Synchronous failures (bad arguments, calls before ``init``) raise a
    :class:`BridgeError` subclass and are logged with the operation
    signature.  SDK results arrive later as events.
    """

    # host name → (method, min args, max args)
    OPERATIONS = {
        "init": ("init", 2, 2),
        "getVersion": ("get_version", 0, 0),
        "getAppsFlyerUID": ("get_appsflyer_uid", 0, 0),
        "logEvent": ("log_event", 1, 2),
        "logPurchase": ("log_purchase", 1, 1),
        "setHasUserConsent": ("set_has_user_consent", 1, 1),
    }

    def __init__(
        self,
        sdk: AttributionSDK,
        dispatcher: EventDispatcher,
        *,
        config: Optional[BridgeConfig] = None,
    ):
        self.sdk = sdk
        self.dispatcher = dispatcher
        self.config = config or BridgeConfig()
        self._delegate: Optional[_AttributionDelegate] = None

    @property
    def session(self) -> BridgeSession:
        return self.dispatcher.session

    # ------------------------------------------------------------------ #
    # Host call interface
    # ------------------------------------------------------------------ #

    def invoke(self, name: str, *args: Any) -> Any:
        """Call an operation by its host name with positional host values."""
        try:
            method_name, min_args, max_args = self.OPERATIONS[name]
        except KeyError:
            raise AttributeError(f"plugin has no operation {name!r}") from None

        if name == "init" and self.session.initialized:
            return None

        with self._operation(SIGNATURES[name]):
            if name != "init":
                self.session.require_initialized()
            if not min_args <= len(args) <= max_args:
                expected = (
                    str(min_args)
                    if min_args == max_args
                    else f"{min_args} or {max_args}"
                )
                raise ArgumentCountError(expected, len(args))

        return getattr(self, method_name)(*args)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def init(self, listener: Listener, options: Mapping[str, Any]) -> None:
        """Register ``listener`` and start the SDK.  Runs once per runtime."""
        if self.session.initialized:
            return None

        with self._operation(SIGNATURES["init"]):
            ArgumentValidator.check_kind("listener", listener, FieldKind.FUNCTION)
            params = ArgumentValidator.validate(
                INIT_SCHEMA,
                options,
                defaults={
                    "devKey": self.config.dev_key,
                    "enableDebugLogging": self.config.enable_debug_logging,
                    "hasUserConsent": False,
                },
            )

        # Publish the listener first so callbacks fired during start() land.
        if not self.session.register(listener):
            return None
        self._delegate = _AttributionDelegate(self.dispatcher)
        try:
            self.sdk.init(params["appID"], params["devKey"], self._delegate)
            self.sdk.start()
            self.sdk.set_debug_log(params["enableDebugLogging"])
            self.sdk.set_anonymized(not params["hasUserConsent"])
        except Exception:
            self.session.reset()
            self._delegate = None
            raise

        logger.info(
            "%s: %s (SDK: %s)",
            PLUGIN_NAME,
            PLUGIN_VERSION,
            self.sdk.get_sdk_version(),
        )
        self.dispatcher.dispatch(BridgeEvent(phase=Phase.INIT))
        return None

    def get_version(self) -> Dict[str, str]:
        with self._operation(SIGNATURES["getVersion"]):
            self.session.require_initialized()

        versions = {
            "pluginVersion": PLUGIN_VERSION,
            "sdkVersion": self.sdk.get_sdk_version(),
        }
        logger.info(
            "%s: %s (SDK: %s)", PLUGIN_NAME, PLUGIN_VERSION, versions["sdkVersion"]
        )
        self.dispatcher.dispatch(
            BridgeEvent(phase=Phase.RECEIVED, type=EventType.VERSION, extra=versions)
        )
        return versions

    def get_appsflyer_uid(self) -> str:
        with self._operation(SIGNATURES["getAppsFlyerUID"]):
            self.session.require_initialized()
        return self.sdk.get_uid()

    def log_event(
        self, event_name: str, options: Optional[Mapping[str, Any]] = None
    ) -> None:
        with self._operation(SIGNATURES["logEvent"]):
            self.session.require_initialized()
            ArgumentValidator.check_kind("eventName", event_name, FieldKind.STRING)
            values = (
                {}
                if options is None
                else ArgumentValidator.validate_flat("options", options)
            )

        self.dispatcher.dispatch(BridgeEvent.recorded())
        try:
            self.sdk.log_event(
                event_name,
                values,
                on_success=self._on_event_logged,
                on_error=self._on_event_failed,
            )
        except Exception as exc:
            logger.exception("SDK rejected logEvent(%s)", event_name)
            self._on_event_failed(None, str(exc))

    def log_purchase(self, product_data: Mapping[str, Any]) -> None:
        with self._operation(SIGNATURES["logPurchase"]):
            self.session.require_initialized()
            params = ArgumentValidator.validate(
                PURCHASE_SCHEMA, product_data, defaults={"parameters": {}}
            )
            extra = ArgumentValidator.validate_flat(
                "productData.parameters", params["parameters"]
            )

        try:
            self.sdk.validate_and_log_in_app_purchase(
                params["publicKey"],
                params["signature"],
                params["purchaseData"],
                params["price"],
                params["currency"],
                {k: _stringify(v) for k, v in extra.items()},
                on_success=self._on_purchase_logged,
                on_failure=self._on_purchase_failed,
            )
        except Exception as exc:
            logger.exception("SDK rejected logPurchase")
            self._on_purchase_failed(str(exc))

    def set_has_user_consent(self, has_user_consent: bool) -> None:
        with self._operation(SIGNATURES["setHasUserConsent"]):
            self.session.require_initialized()
            ArgumentValidator.check_kind(
                "hasUserConsent", has_user_consent, FieldKind.BOOLEAN
            )
        self.sdk.set_anonymized(not has_user_consent)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def teardown(self) -> None:
        """Host runtime is exiting: release the listener, drop pending events."""
        self.session.reset()
        self.dispatcher.clear()
        self._delegate = None
        logger.debug("%s torn down", PLUGIN_NAME)

    async def aclose(self) -> None:
        """Tear down, stop the dispatcher and release the SDK."""
        self.teardown()
        await self.dispatcher.aclose()
        await asyncio.to_thread(self.sdk.close)
        logger.info("%s closed", PLUGIN_NAME)

    # ------------------------------------------------------------------ #
    # SDK callbacks (any thread)
    # ------------------------------------------------------------------ #

    def _on_event_logged(self) -> None:
        self.dispatcher.dispatch(BridgeEvent.recorded(is_error=False))

    def _on_event_failed(self, code: Optional[int], message: str) -> None:
        failure = SdkOperationFailure(message, code)
        logger.warning("logEvent failed (code=%s): %s", failure.code, failure.message)
        self.dispatcher.dispatch(BridgeEvent.failed(failure.message))

    def _on_purchase_logged(self) -> None:
        self.dispatcher.dispatch(BridgeEvent.recorded())

    def _on_purchase_failed(self, message: str) -> None:
        failure = SdkOperationFailure(message)
        logger.warning("logPurchase failed: %s", failure.message)
        self.dispatcher.dispatch(BridgeEvent.failed(failure.message))

    # ------------------------------------------------------------------ #
    # Diagnostics
    # ------------------------------------------------------------------ #

    @contextlib.contextmanager
    def _operation(self, signature: str):
        self.session.current_operation = signature
        try:
            yield
        except BridgeError as exc:
            if isinstance(exc, ValidationError) and not exc.operation:
                exc.operation = signature
            logger.error("ERROR: %s, %s", signature, exc)
            raise


def create_plugin(
    config: Optional[BridgeConfig] = None,
    *,
    sdk: Optional[AttributionSDK] = None,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    session: Optional[BridgeSession] = None,
) -> AppsFlyerPlugin:
    """Wire a plugin to the host loop (the running loop by default)."""
    config = config or BridgeConfig()
    if loop is None:
        loop = asyncio.get_running_loop()
    if sdk is None:
        from appsflyer_bridge.s2s import AppsFlyerS2SClient

        sdk = AppsFlyerS2SClient.from_config(config)
    dispatcher = EventDispatcher(
        session or BridgeSession(), loop, max_queue_size=config.max_queue_size
    )
    return AppsFlyerPlugin(sdk, dispatcher, config=config)
