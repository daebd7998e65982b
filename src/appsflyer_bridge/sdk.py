"""Attribution SDK interface the plugin relays to."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

SuccessCallback = Callable[[], None]
ErrorCallback = Callable[[int, str], None]
FailureCallback = Callable[[str], None]


class ConversionListener(Protocol):
    """Receives attribution data pushed by the SDK, on any thread."""

    def on_conversion_data_success(self, data: Mapping[str, Any]) -> None: ...

    def on_conversion_data_fail(self, message: str) -> None: ...

    def on_app_open_attribution(self, data: Mapping[str, Any]) -> None: ...

    def on_attribution_failure(self, message: str) -> None: ...


class AttributionSDK(ABC):
    """Interface that every attribution SDK binding must implement.

    Callbacks may be invoked on any thread, including before the calling
    method returns.
    """

    @abstractmethod
    def init(
        self,
        app_id: str,
        dev_key: Optional[str],
        conversion_listener: ConversionListener,
    ) -> None:
        """
        Configure the SDK and register the attribution listener.

        Args:
            app_id: Application identifier
            dev_key: AppsFlyer dev key
            conversion_listener: Receives attribution callbacks
        """
        pass

    @abstractmethod
    def start(self) -> None:
        """Begin reporting."""
        pass

    @abstractmethod
    def set_debug_log(self, enabled: bool) -> None:
        pass

    @abstractmethod
    def set_anonymized(self, anonymized: bool) -> None:
        """Stop (or resume) sending user identifiers."""
        pass

    @abstractmethod
    def get_uid(self) -> str:
        """Return the AppsFlyer device id."""
        pass

    @abstractmethod
    def get_sdk_version(self) -> str:
        pass

    @abstractmethod
    def log_event(
        self,
        name: str,
        values: Dict[str, Any],
        *,
        on_success: SuccessCallback,
        on_error: ErrorCallback,
    ) -> None:
        """
        Log an in-app event.

        Args:
            name: Event name
            values: Flat event values
            on_success: Called once the event is accepted
            on_error: Called with (code, message) if it is rejected
        """
        pass

    @abstractmethod
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
        """Validate a store receipt and log the purchase."""
        pass

    def close(self) -> None:
        """Release resources.  Optional."""
