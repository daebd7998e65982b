"""Error taxonomy for bridge operations.

Validation errors and ``NotInitialized`` are raised synchronously to the
caller.  ``SdkOperationFailure`` is never raised; the plugin turns it into
a ``failed`` event.
"""

from __future__ import annotations

from typing import Optional


class BridgeError(Exception):
    """Base class for every error the bridge reports."""


class ValidationError(BridgeError):
    """An operation's arguments were rejected before any side effect."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        super().__init__(message)
        self.operation = operation


class ArgumentCountError(ValidationError):
    def __init__(self, expected: str, actual: int, *, operation: str = "") -> None:
        noun = "argument" if expected == "1" else "arguments"
        super().__init__(
            f"Expected {expected} {noun}, got {actual}", operation=operation
        )
        self.expected = expected
        self.actual = actual


class UnknownOption(ValidationError):
    def __init__(self, key: str, *, operation: str = "") -> None:
        super().__init__(f"Invalid option '{key}'", operation=operation)
        self.key = key


class TypeMismatch(ValidationError):
    def __init__(
        self,
        key: str,
        expected: str,
        actual: str,
        *,
        table: str = "",
        operation: str = "",
    ) -> None:
        label = f"{table}.{key}" if table else key
        super().__init__(
            f"{label} ({expected}) expected, got {actual}", operation=operation
        )
        self.key = key
        self.expected = expected
        self.actual = actual


class MissingRequired(ValidationError):
    def __init__(self, key: str, *, table: str = "", operation: str = "") -> None:
        label = f"{table}.{key}" if table else key
        super().__init__(f"{label} is required", operation=operation)
        self.key = key


class NotInitialized(BridgeError):
    def __init__(self) -> None:
        super().__init__(
            "appsflyer.init() must be called before calling other API functions"
        )


class SdkOperationFailure(BridgeError):
    """An asynchronous SDK call reported failure."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
