"""Validate host argument tables against static per-operation schemas.

Host values arrive untyped.  Each field is checked against the kind its
schema declares; the first violation rejects the whole call, so nothing
is applied from a partially valid table.
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from appsflyer_bridge.errors import MissingRequired, TypeMismatch, UnknownOption

# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------


class FieldKind(str, Enum):
    """Host-side value kinds a schema field may declare."""

    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"
    TABLE = "table"
    FUNCTION = "function"


FLAT_KINDS = (FieldKind.STRING, FieldKind.BOOLEAN, FieldKind.NUMBER)


def kind_of(value: Any) -> str:
    """Name the host kind of a Python value.

    ``bool`` is checked before ``int`` so flags never pass as numbers.
    """
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return FieldKind.BOOLEAN.value
    if isinstance(value, (int, float)):
        return FieldKind.NUMBER.value
    if isinstance(value, str):
        return FieldKind.STRING.value
    if isinstance(value, MappingABC):
        return FieldKind.TABLE.value
    if isinstance(value, (list, tuple)):
        return "array"
    if callable(value):
        return FieldKind.FUNCTION.value
    return type(value).__name__


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldSpec:
    kind: FieldKind
    required: bool = False


@dataclass(frozen=True)
class OperationSchema:
    """Static description of one operation's argument table."""

    signature: str
    table_name: str
    fields: Mapping[str, FieldSpec]

    @property
    def required_fields(self) -> tuple:
        return tuple(name for name, spec in self.fields.items() if spec.required)


INIT_SCHEMA = OperationSchema(
    signature="appsflyer.init(listener, options)",
    table_name="options",
    fields=MappingProxyType(
        {
            "appID": FieldSpec(FieldKind.STRING, required=True),
            "devKey": FieldSpec(FieldKind.STRING),
            "enableDebugLogging": FieldSpec(FieldKind.BOOLEAN),
            "hasUserConsent": FieldSpec(FieldKind.BOOLEAN),
        }
    ),
)

PURCHASE_SCHEMA = OperationSchema(
    signature="appsflyer.logPurchase(productData)",
    table_name="productData",
    fields=MappingProxyType(
        {
            "publicKey": FieldSpec(FieldKind.STRING, required=True),
            "price": FieldSpec(FieldKind.STRING, required=True),
            "currency": FieldSpec(FieldKind.STRING, required=True),
            "signature": FieldSpec(FieldKind.STRING, required=True),
            "purchaseData": FieldSpec(FieldKind.STRING, required=True),
            "parameters": FieldSpec(FieldKind.TABLE),
        }
    ),
)


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class ArgumentValidator:
    """Check argument tables against an :class:`OperationSchema`."""

    @classmethod
    def validate(
        cls,
        schema: OperationSchema,
        table: Any,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Return the validated parameters, defaults filled in.

        Raises UnknownOption, TypeMismatch or MissingRequired on the first
        violation found while walking ``table`` in its own key order.
        """
        op = schema.signature
        actual_kind = kind_of(table)
        if actual_kind != FieldKind.TABLE.value:
            raise TypeMismatch(
                schema.table_name, "table", actual_kind, operation=op
            )

        params: Dict[str, Any] = dict(defaults or {})
        for key, value in table.items():
            spec = schema.fields.get(key) if isinstance(key, str) else None
            if spec is None:
                raise UnknownOption(str(key), operation=op)
            actual_kind = kind_of(value)
            if actual_kind != spec.kind.value:
                raise TypeMismatch(
                    key,
                    spec.kind.value,
                    actual_kind,
                    table=schema.table_name,
                    operation=op,
                )
            params[key] = value

        for name in schema.required_fields:
            if name not in table:
                raise MissingRequired(name, table=schema.table_name, operation=op)

        return params

    @classmethod
    def validate_flat(
        cls, table_name: str, table: Any, *, operation: str = ""
    ) -> Dict[str, Any]:
        """Validate a free-form table whose values must all be primitives."""
        actual_kind = kind_of(table)
        if actual_kind != FieldKind.TABLE.value:
            raise TypeMismatch(table_name, "table", actual_kind, operation=operation)

        values: Dict[str, Any] = {}
        for key, value in table.items():
            if not isinstance(key, str):
                raise UnknownOption(str(key), operation=operation)
            actual_kind = kind_of(value)
            if actual_kind not in {k.value for k in FLAT_KINDS}:
                raise TypeMismatch(
                    key,
                    "string|boolean|number",
                    actual_kind,
                    table=table_name,
                    operation=operation,
                )
            values[key] = value
        return values

    @classmethod
    def check_kind(
        cls, name: str, value: Any, kind: FieldKind, *, operation: str = ""
    ) -> Any:
        """Validate a single positional argument."""
        actual_kind = kind_of(value)
        if actual_kind != kind.value:
            raise TypeMismatch(name, kind.value, actual_kind, operation=operation)
        return value
