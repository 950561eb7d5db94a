from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional

from finease.transaction_normalizer import EPOCH, Transaction, coerce_amount, coerce_timestamp

SORT_FIELDS = {"amount", "date"}
DEFAULT_SORT = "date"
DEFAULT_ORDER = "desc"


def normalize_sort_by(value: Optional[str]) -> str:
    normalized = (value or "").strip().lower()
    return normalized if normalized in SORT_FIELDS else DEFAULT_SORT


def normalize_order(value: Optional[str]) -> str:
    normalized = (value or "").strip().lower()
    return "asc" if normalized == "asc" else DEFAULT_ORDER


def sort_transactions(
    records: Iterable[Transaction],
    sort_by: Optional[str] = DEFAULT_SORT,
    order: Optional[str] = DEFAULT_ORDER,
) -> list[Transaction]:
    """Return ``records`` ordered by amount or date.

    Records written before coercion existed may carry strings or missing
    timestamps, so both keys are re-coerced first. Ties keep input order.
    """
    cleaned = [
        replace(
            txn,
            amount=coerce_amount(txn.amount),
            created_at=coerce_timestamp(txn.created_at, default=EPOCH),
        )
        for txn in records
    ]
    if normalize_sort_by(sort_by) == "amount":
        key = lambda txn: txn.amount
    else:
        key = lambda txn: txn.created_at
    return sorted(cleaned, key=key, reverse=normalize_order(order) == "desc")
