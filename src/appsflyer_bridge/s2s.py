"""AppsFlyer server-to-server binding of :class:`AttributionSDK`.

Sends in-app events to the S2S endpoint with httpx.  Requests run on a
single worker thread, so success/failure callbacks arrive off the host
loop, the same way native SDK callbacks do.

Usage::

    sdk = AppsFlyerS2SClient.from_config(BridgeConfig.from_env())
    plugin = create_plugin(sdk=sdk)
"""

from __future__ import annotations

import json
import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import httpx

from appsflyer_bridge.config import DEFAULT_API_BASE_URL, BridgeConfig
from appsflyer_bridge.sdk import (
    AttributionSDK,
    ConversionListener,
    ErrorCallback,
    FailureCallback,
    SuccessCallback,
)

logger = logging.getLogger(__name__)

S2S_SDK_VERSION = "s2s-v2"
PURCHASE_EVENT_NAME = "af_purchase"

# Error codes reported to on_error when no HTTP status is available
ERROR_NOT_STARTED = -1
ERROR_TRANSPORT = -2


def generate_uid() -> str:
    """AppsFlyer-style device id: ``<epoch ms>-<19 digits>``."""
    millis = int(time.time() * 1000)
    suffix = random.randrange(10**18, 10**19)
    return f"{millis}-{suffix}"


class AppsFlyerS2SClient(AttributionSDK):
    """Attribution SDK backed by AppsFlyer's S2S in-app event API."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout_seconds: float = 10.0,
        customer_user_id: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.customer_user_id = customer_user_id

        self.app_id: Optional[str] = None
        self.dev_key: Optional[str] = None
        self.anonymized = False
        self.started = False

        self._conversion_listener: Optional[ConversionListener] = None
        self._http_client = http_client
        self._executor: Optional[ThreadPoolExecutor] = None
        self._uid: Optional[str] = None
        self._uid_lock = threading.Lock()
        self._log_level = logging.DEBUG

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "AppsFlyerS2SClient":
        return cls(
            base_url=config.api_base_url,
            timeout_seconds=config.timeout_seconds,
            customer_user_id=config.customer_user_id,
        )

    # -- lazy init --

    def _get_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=self.timeout_seconds)
        return self._http_client

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="appsflyer-s2s"
            )
        return self._executor

    # -- AttributionSDK --

    def init(
        self,
        app_id: str,
        dev_key: Optional[str],
        conversion_listener: ConversionListener,
    ) -> None:
        self.app_id = app_id
        self.dev_key = dev_key
        self._conversion_listener = conversion_listener

    def start(self) -> None:
        if not self.app_id or not self.dev_key:
            logger.warning("S2S client started without app id or dev key")
        self.started = True
        self._get_executor()

    def set_debug_log(self, enabled: bool) -> None:
        self._log_level = logging.INFO if enabled else logging.DEBUG

    def set_anonymized(self, anonymized: bool) -> None:
        self.anonymized = anonymized

    def get_uid(self) -> str:
        with self._uid_lock:
            if self._uid is None:
                self._uid = generate_uid()
            return self._uid

    def get_sdk_version(self) -> str:
        return S2S_SDK_VERSION

    def log_event(
        self,
        name: str,
        values: Dict[str, Any],
        *,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._submit(self._send_event, name, values, None, on_success, on_error)

    def validate_and_log_in_app_purchase(
        self,
        public_key: str,
        signature: str,
        purchase_data: str,
        price: str,
        currency: str,
        parameters: Dict[str, str],
        *,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
    ) -> None:
        # The S2S API has no receipt validation endpoint; only reject
        # receipts that cannot possibly validate.
        if not signature or not purchase_data:
            self._submit(on_failure, "Missing purchase signature or data")
            return

        values: Dict[str, Any] = dict(parameters)
        values["af_revenue"] = price
        values["af_currency"] = currency
        self._submit(
            self._send_event,
            PURCHASE_EVENT_NAME,
            values,
            currency,
            on_success,
            lambda code, message: on_failure(message),
        )

    def handle_push(self, payload: Mapping[str, Any]) -> None:
        """Forward a Push API attribution payload to the conversion listener."""
        listener = self._conversion_listener
        if listener is None:
            logger.warning("Attribution push received before init; ignoring")
            return
        self._submit(listener.on_conversion_data_success, dict(payload))

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None
        self.started = False

    # -- internals --

    def _submit(self, fn, *args) -> None:
        self._get_executor().submit(self._run_guarded, fn, *args)

    @staticmethod
    def _run_guarded(fn, *args) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("AppsFlyer S2S worker task failed")

    def _event_url(self) -> str:
        return f"{self.base_url}/inappevent/{self.app_id}"

    def _build_body(
        self, name: str, values: Mapping[str, Any], currency: Optional[str]
    ) -> Dict[str, Any]:
        event_time = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")
        body: Dict[str, Any] = {
            "appsflyer_id": self.get_uid(),
            "eventName": name,
            "eventValue": json.dumps(dict(values)),
            "eventTime": event_time[:-3],
        }
        if currency:
            body["eventCurrency"] = currency
        if self.customer_user_id and not self.anonymized:
            body["customer_user_id"] = self.customer_user_id
        return body

    def _send_event(
        self,
        name: str,
        values: Mapping[str, Any],
        currency: Optional[str],
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> None:
        if not self.started:
            on_error(ERROR_NOT_STARTED, "AppsFlyer S2S client not started")
            return

        body = self._build_body(name, values, currency)
        logger.log(self._log_level, "POST %s %s", self._event_url(), body)
        try:
            resp = self._get_client().post(
                self._event_url(),
                json=body,
                headers={"authentication": self.dev_key or ""},
            )
        except httpx.HTTPError as exc:
            logger.warning("S2S request for %s failed: %s", name, exc)
            on_error(ERROR_TRANSPORT, str(exc))
            return

        logger.log(self._log_level, "S2S response %d: %s", resp.status_code, resp.text)
        if resp.status_code == 200:
            on_success()
        else:
            on_error(resp.status_code, resp.text or resp.reason_phrase)
