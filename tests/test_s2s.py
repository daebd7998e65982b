"""Tests for AppsFlyerS2SClient."""

import json
import re
import threading
from unittest.mock import MagicMock

import httpx
import pytest

from appsflyer_bridge.config import BridgeConfig
from appsflyer_bridge.s2s import (
    ERROR_NOT_STARTED,
    ERROR_TRANSPORT,
    AppsFlyerS2SClient,
    generate_uid,
)


class Recorder:
    def __init__(self):
        self.done = threading.Event()
        self.successes = 0
        self.errors = []
        self.threads = []

    def on_success(self):
        self.threads.append(threading.current_thread().name)
        self.successes += 1
        self.done.set()

    def on_error(self, code, message):
        self.threads.append(threading.current_thread().name)
        self.errors.append((code, message))
        self.done.set()

    def on_failure(self, message):
        self.on_error(None, message)

    def wait(self):
        assert self.done.wait(5)


@pytest.fixture
def requests():
    return []


@pytest.fixture
def make_client(requests):
    def _make(status_code=200, text="ok", started=True, **kwargs):
        def handler(request):
            requests.append(request)
            return httpx.Response(status_code, text=text)

        client = AppsFlyerS2SClient(
            base_url="https://api2.example.test",
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
            **kwargs,
        )
        client.init("id123", "dev-key", MagicMock())
        if started:
            client.start()
        return client

    return _make


class TestLogEvent:
    def test_posts_in_app_event(self, make_client, requests):
        client = make_client()
        rec = Recorder()

        client.log_event("level_up", {"level": 3}, on_success=rec.on_success, on_error=rec.on_error)
        rec.wait()
        client.close()

        assert rec.successes == 1
        request = requests[0]
        assert str(request.url) == "https://api2.example.test/inappevent/id123"
        assert request.headers["authentication"] == "dev-key"
        body = json.loads(request.content)
        assert body["eventName"] == "level_up"
        assert json.loads(body["eventValue"]) == {"level": 3}
        assert body["appsflyer_id"] == client.get_uid()
        assert re.fullmatch(r"\d{4}-\d\d-\d\d \d\d:\d\d:\d\d\.\d{3}", body["eventTime"])

    def test_callback_on_worker_thread(self, make_client):
        client = make_client()
        rec = Recorder()

        client.log_event("x", {}, on_success=rec.on_success, on_error=rec.on_error)
        rec.wait()
        client.close()

        assert rec.threads[0].startswith("appsflyer-s2s")

    def test_http_error_reported(self, make_client):
        client = make_client(status_code=403, text="Forbidden")
        rec = Recorder()

        client.log_event("x", {}, on_success=rec.on_success, on_error=rec.on_error)
        rec.wait()
        client.close()

        assert rec.errors == [(403, "Forbidden")]

    def test_transport_error_reported(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = AppsFlyerS2SClient(
            http_client=httpx.Client(transport=httpx.MockTransport(handler))
        )
        client.init("id123", "dev-key", MagicMock())
        client.start()
        rec = Recorder()

        client.log_event("x", {}, on_success=rec.on_success, on_error=rec.on_error)
        rec.wait()
        client.close()

        assert rec.errors[0][0] == ERROR_TRANSPORT

    def test_not_started(self, make_client, requests):
        client = make_client(started=False)
        rec = Recorder()

        client.log_event("x", {}, on_success=rec.on_success, on_error=rec.on_error)
        rec.wait()
        client.close()

        assert rec.errors[0][0] == ERROR_NOT_STARTED
        assert requests == []


class TestAnonymization:
    def test_customer_id_sent_with_consent(self, make_client, requests):
        client = make_client(customer_user_id="user-7")
        rec = Recorder()

        client.log_event("x", {}, on_success=rec.on_success, on_error=rec.on_error)
        rec.wait()
        client.close()

        assert json.loads(requests[0].content)["customer_user_id"] == "user-7"

    def test_customer_id_omitted_when_anonymized(self, make_client, requests):
        client = make_client(customer_user_id="user-7")
        client.set_anonymized(True)
        rec = Recorder()

        client.log_event("x", {}, on_success=rec.on_success, on_error=rec.on_error)
        rec.wait()
        client.close()

        assert "customer_user_id" not in json.loads(requests[0].content)


class TestPurchase:
    def test_logs_af_purchase(self, make_client, requests):
        client = make_client()
        rec = Recorder()

        client.validate_and_log_in_app_purchase(
            "pk", "sig", "data", "9.99", "USD", {"sku": "gems"},
            on_success=rec.on_success, on_failure=rec.on_failure,
        )
        rec.wait()
        client.close()

        body = json.loads(requests[0].content)
        assert body["eventName"] == "af_purchase"
        assert body["eventCurrency"] == "USD"
        assert json.loads(body["eventValue"]) == {
            "sku": "gems",
            "af_revenue": "9.99",
            "af_currency": "USD",
        }

    def test_empty_signature_fails(self, make_client, requests):
        client = make_client()
        rec = Recorder()

        client.validate_and_log_in_app_purchase(
            "pk", "", "data", "9.99", "USD", {},
            on_success=rec.on_success, on_failure=rec.on_failure,
        )
        rec.wait()
        client.close()

        assert rec.errors == [(None, "Missing purchase signature or data")]
        assert requests == []

    def test_http_failure_passes_message(self, make_client):
        client = make_client(status_code=400, text="Bad receipt")
        rec = Recorder()

        client.validate_and_log_in_app_purchase(
            "pk", "sig", "data", "9.99", "USD", {},
            on_success=rec.on_success, on_failure=rec.on_failure,
        )
        rec.wait()
        client.close()

        assert rec.errors == [(None, "Bad receipt")]


class TestPushAndIdentity:
    def test_handle_push_forwards_to_listener(self, make_client):
        client = make_client()
        listener = client._conversion_listener

        client.handle_push({"af_status": "Non-organic"})
        client.close()

        listener.on_conversion_data_success.assert_called_once_with(
            {"af_status": "Non-organic"}
        )

    def test_handle_push_before_init_ignored(self):
        client = AppsFlyerS2SClient()

        client.handle_push({"af_status": "Organic"})

        assert client._executor is None

    def test_uid_is_stable(self):
        client = AppsFlyerS2SClient()

        assert client.get_uid() == client.get_uid()

    def test_uid_format(self):
        assert re.fullmatch(r"\d{13}-\d{19}", generate_uid())

    def test_from_config(self):
        client = AppsFlyerS2SClient.from_config(
            BridgeConfig(api_base_url="https://af.test/", timeout_seconds=2.5)
        )

        assert client.base_url == "https://af.test"
        assert client.timeout_seconds == 2.5
