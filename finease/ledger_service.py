"""Ledger operations exposed to the HTTP layer.

Each operation takes the store it works against as its first argument and
validates its inputs before touching the store.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Mapping, Optional

from finease.aggregation import CategoryReport, Overview, compute_category_report, compute_overview
from finease.envelope import Lookup, MissingParameter
from finease.ledger_store import LedgerStore, parse_transaction_id
from finease.sort_filter import DEFAULT_ORDER, DEFAULT_SORT, sort_transactions
from finease.transaction_normalizer import Transaction, normalize_changes, normalize_transaction

logger = logging.getLogger(__name__)

OWNER_PARAM = "email"


def require_owner(owner: Optional[str]) -> str:
    if owner is None or not str(owner).strip():
        raise MissingParameter(OWNER_PARAM)
    return str(owner).strip()


def list_transactions(
    store: LedgerStore,
    owner: Optional[str],
    sort_by: Optional[str] = DEFAULT_SORT,
    order: Optional[str] = DEFAULT_ORDER,
) -> list[Transaction]:
    owner = require_owner(owner)
    return sort_transactions(store.find_by_owner(owner), sort_by=sort_by, order=order)


def create_transaction(store: LedgerStore, raw: Mapping[str, Any]) -> int:
    record = normalize_transaction(raw)
    record = replace(record, owner=require_owner(record.owner))
    return store.insert(record)


def get_transaction(store: LedgerStore, token: Any) -> Lookup[Transaction]:
    transaction_id = parse_transaction_id(token)
    record = store.find_by_id(transaction_id)
    if record is None:
        return Lookup.miss()
    return Lookup.hit(record)


def update_transaction(store: LedgerStore, token: Any, raw: Mapping[str, Any]) -> int:
    transaction_id = parse_transaction_id(token)
    changes = normalize_changes(raw)
    if "owner" in changes:
        changes["owner"] = require_owner(changes["owner"])
    if not changes:
        logger.debug("No recognized fields to update on transaction %s", transaction_id)
        return 0
    return store.update_by_id(transaction_id, changes)


def delete_transaction(store: LedgerStore, token: Any) -> int:
    transaction_id = parse_transaction_id(token)
    return store.delete_by_id(transaction_id)


def get_overview(store: LedgerStore, owner: Optional[str]) -> Overview:
    owner = require_owner(owner)
    return compute_overview(store.find_by_owner(owner))


def get_category_report(store: LedgerStore, owner: Optional[str]) -> CategoryReport:
    owner = require_owner(owner)
    return compute_category_report(store.find_by_owner(owner))
