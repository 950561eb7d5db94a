from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from finease.transaction_normalizer import Transaction, TransactionKind, coerce_amount

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class Overview:
    total_income: float
    total_expense: float
    balance: float


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: float


@dataclass(frozen=True)
class CategoryReport:
    total_income: float
    total_expense: float
    net_balance: float
    category_data: list[CategoryTotal]


def compute_overview(transactions: Iterable[Transaction]) -> Overview:
    income, expense = _sum_by_kind(transactions)
    return Overview(
        total_income=income,
        total_expense=expense,
        balance=income - expense,
    )


def compute_category_report(transactions: Iterable[Transaction]) -> CategoryReport:
    records = list(transactions)
    income, expense = _sum_by_kind(records)

    # dict keeps first-seen category order
    totals_by_category: dict[str, float] = {}
    for txn in records:
        if txn.kind_tag is not TransactionKind.EXPENSE:
            continue
        category = txn.category or UNCATEGORIZED
        totals_by_category[category] = totals_by_category.get(category, 0.0) + coerce_amount(txn.amount)

    return CategoryReport(
        total_income=income,
        total_expense=expense,
        net_balance=income - expense,
        category_data=[
            CategoryTotal(category=category, amount=amount)
            for category, amount in totals_by_category.items()
        ],
    )


def _sum_by_kind(transactions: Iterable[Transaction]) -> tuple[float, float]:
    income = 0.0
    expense = 0.0
    for txn in transactions:
        kind = txn.kind_tag
        if kind is TransactionKind.INCOME:
            income += coerce_amount(txn.amount)
        elif kind is TransactionKind.EXPENSE:
            expense += coerce_amount(txn.amount)
    return income, expense
