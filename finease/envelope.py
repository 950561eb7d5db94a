from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class LedgerError(Exception):
    """Base class for failures reported through the response envelope.

    ``message`` is safe to show to callers; internal details stay in the logs.
    """

    status_code = 500
    default_message = "Request failed."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingParameter(LedgerError):
    status_code = 400
    default_message = "Missing required parameter."

    def __init__(self, parameter: str) -> None:
        self.parameter = parameter
        super().__init__(f"Missing required parameter: {parameter}.")


class InvalidIdentifier(LedgerError):
    status_code = 400
    default_message = "Invalid transaction id."


class StoreUnavailable(LedgerError):
    status_code = 500
    default_message = "Transaction store unavailable."


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """Single-record lookup result; ``found`` is False when nothing matched."""

    value: Optional[T] = None
    found: bool = False

    @classmethod
    def hit(cls, value: T) -> "Lookup[T]":
        return cls(value=value, found=True)

    @classmethod
    def miss(cls) -> "Lookup[T]":
        return cls()


def success(**payload: Any) -> dict[str, Any]:
    return {"success": True, **payload}


def failure(error: LedgerError) -> dict[str, Any]:
    return {"success": False, "message": error.message}
