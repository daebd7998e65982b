"""Bridge event types and data model.

Every event reaches the host listener as an ``analyticsRequest`` payload
carrying a ``phase`` (init → received | recorded | failed), an optional
``type`` and ``data``, exactly one boolean ``isError`` and the constant
``provider`` stamp.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

EVENT_NAME = "analyticsRequest"
PROVIDER_NAME = "appsflyer"

# Payload keys
NAME_KEY = "name"
PHASE_KEY = "phase"
TYPE_KEY = "type"
DATA_KEY = "data"
IS_ERROR_KEY = "isError"
PROVIDER_KEY = "provider"

Primitive = Union[str, bool, int, float]

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Phase(str, Enum):
    """Lifecycle phase reported in every event."""

    INIT = "init"
    RECEIVED = "received"
    RECORDED = "recorded"
    FAILED = "failed"


class EventType(str, Enum):
    """Optional event classification."""

    ATTRIBUTION = "attribution"
    VERSION = "version"


# ---------------------------------------------------------------------------
# Event data class
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BridgeEvent:
    """A single event produced by the plugin or an SDK callback.

    Unset optional fields are dropped from the payload; ``extra`` carries
    additional flat fields (``pluginVersion``, ``sdkVersion``).
    """

    phase: Phase
    type: Optional[EventType] = None
    data: Optional[str] = None
    is_error: Optional[bool] = None
    extra: Mapping[str, Primitive] = field(default_factory=dict)

    @classmethod
    def recorded(cls, *, is_error: Optional[bool] = None) -> "BridgeEvent":
        return cls(phase=Phase.RECORDED, is_error=is_error)

    @classmethod
    def failed(
        cls, message: str, *, type: Optional[EventType] = None
    ) -> "BridgeEvent":
        return cls(phase=Phase.FAILED, type=type, data=message, is_error=True)

    @classmethod
    def attribution(cls, data: Mapping[str, Any]) -> "BridgeEvent":
        return cls(
            phase=Phase.RECEIVED,
            type=EventType.ATTRIBUTION,
            data=stringify_map(data),
        )

    def to_fields(self) -> Dict[str, Primitive]:
        """Producer fields in emission order (unset fields dropped)."""
        fields: Dict[str, Primitive] = {PHASE_KEY: self.phase.value}
        if self.type is not None:
            fields[TYPE_KEY] = self.type.value
        if self.data is not None:
            fields[DATA_KEY] = self.data
        if self.is_error is not None:
            fields[IS_ERROR_KEY] = self.is_error
        fields.update(self.extra)
        return fields


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_payload(
    fields: Union[BridgeEvent, Mapping[str, Any]],
) -> Mapping[str, Any]:
    """Build the read-only payload handed to the listener.

    ``name`` comes first, then the producer's fields in order, then a
    boolean ``isError`` if the producer left it out, then ``provider``.
    """
    if isinstance(fields, BridgeEvent):
        fields = fields.to_fields()

    payload: Dict[str, Any] = {NAME_KEY: EVENT_NAME}
    for key, value in fields.items():
        if key in (NAME_KEY, PROVIDER_KEY):
            continue
        payload[key] = value

    is_error = payload.setdefault(IS_ERROR_KEY, False)
    if not isinstance(is_error, bool):
        raise TypeError(
            f"{IS_ERROR_KEY} must be a boolean, got {type(is_error).__name__}"
        )

    payload[PROVIDER_KEY] = PROVIDER_NAME
    return MappingProxyType(payload)


def stringify_map(data: Mapping[str, Any]) -> str:
    """Render an attribution map as a JSON string."""
    return json.dumps(dict(data), default=str)
