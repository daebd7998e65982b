from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_API_BASE_URL = "https://api2.appsflyer.com"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class BridgeConfig:
    """Typed configuration surface for the bridge.

    Values passed to ``init()`` by the host take precedence; these are the
    fallbacks and the settings the host call surface does not expose.
    User consent is not configurable here: ``init()`` anonymizes unless the
    host itself passes ``hasUserConsent``.
    """

    dev_key: Optional[str] = None
    enable_debug_logging: bool = False
    customer_user_id: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    timeout_seconds: float = 10.0
    max_queue_size: int = 10_000

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """Create a config by reading environment variables once."""
        return cls(
            dev_key=os.getenv("APPSFLYER_DEV_KEY") or None,
            enable_debug_logging=_env_flag("APPSFLYER_DEBUG"),
            customer_user_id=os.getenv("APPSFLYER_CUSTOMER_USER_ID") or None,
            api_base_url=os.getenv("APPSFLYER_API_BASE_URL", DEFAULT_API_BASE_URL),
            timeout_seconds=float(os.getenv("APPSFLYER_TIMEOUT_SECONDS", "10")),
            max_queue_size=int(os.getenv("APPSFLYER_MAX_QUEUE_SIZE", "10000")),
        )
