from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y", "%Y-%m-%d", "%m-%d-%Y", "%d/%m/%Y", "%d %b %Y", "%d %B %Y")

# Wire keys accepted on writes, mapped to record fields.
FIELD_MAP = {
    "name": "name",
    "email": "owner",
    "type": "kind",
    "description": "description",
    "category": "category",
    "amount": "amount",
    "date": "created_at",
}


class TransactionKind(Enum):
    INCOME = "income"
    EXPENSE = "expense"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def parse(cls, value: Any) -> "TransactionKind":
        if not isinstance(value, str):
            return cls.UNRECOGNIZED
        normalized = value.strip().lower()
        if normalized == cls.INCOME.value:
            return cls.INCOME
        if normalized == cls.EXPENSE.value:
            return cls.EXPENSE
        return cls.UNRECOGNIZED


@dataclass(frozen=True)
class NewTransaction:
    """A canonical record that has not been persisted yet."""

    owner: Optional[str]
    kind: Optional[str]
    amount: float
    created_at: datetime
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    id: int
    owner: str
    kind: Optional[str]
    amount: float
    created_at: Optional[datetime]
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None

    @property
    def kind_tag(self) -> TransactionKind:
        return TransactionKind.parse(self.kind)


def coerce_amount(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        amount = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return amount


def coerce_text(value: Any) -> Optional[str]:
    """Free-text fields keep strings, stringify scalars and drop containers."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value)
    return None


def coerce_timestamp(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    """Best-effort conversion of caller input to an aware UTC datetime.

    Accepts datetimes, dates, ISO-8601 strings, the usual day formats and
    epoch milliseconds. Naive values are read as UTC. Anything else yields
    ``default``.
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return default
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return default
        if cleaned.endswith("Z"):
            cleaned = cleaned[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(cleaned))
        except ValueError:
            pass
        for fmt in DATE_FORMATS:
            try:
                return _as_utc(datetime.strptime(cleaned, fmt))
            except ValueError:
                continue
    return default


def normalize_transaction(raw: Mapping[str, Any], now: Optional[datetime] = None) -> NewTransaction:
    now = now or datetime.now(timezone.utc)
    return NewTransaction(
        owner=coerce_text(raw.get("email")),
        kind=coerce_text(raw.get("type")),
        amount=coerce_amount(raw.get("amount")),
        created_at=coerce_timestamp(raw.get("date"), default=now),
        name=coerce_text(raw.get("name")),
        description=coerce_text(raw.get("description")),
        category=coerce_text(raw.get("category")),
    )


def normalize_changes(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize a partial update; keys absent from ``raw`` stay absent."""
    changes: dict[str, Any] = {}
    for wire_key, field_name in FIELD_MAP.items():
        if wire_key not in raw:
            continue
        value = raw[wire_key]
        if field_name == "amount":
            value = coerce_amount(value)
        elif field_name == "created_at":
            value = coerce_timestamp(value)
            if value is None:
                continue
        else:
            value = coerce_text(value)
        changes[field_name] = value
    return changes


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
