from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.engine import Engine, RowMapping
from sqlalchemy.exc import SQLAlchemyError

from finease.envelope import InvalidIdentifier, StoreUnavailable
from finease.transaction_normalizer import NewTransaction, Transaction, coerce_amount, coerce_timestamp

logger = logging.getLogger(__name__)

metadata = MetaData()

# Signed 64-bit INTEGER primary keys.
MAX_TRANSACTION_ID = 2**63 - 1

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner", String(255), nullable=False, index=True),
    Column("name", String(255)),
    Column("type", String(50)),
    Column("description", String(500)),
    Column("category", String(255)),
    Column("amount", Float, nullable=False, default=0.0),
    Column("created_at", DateTime(timezone=True)),
)

# Record field -> column name.
COLUMNS = {
    "owner": "owner",
    "name": "name",
    "kind": "type",
    "description": "description",
    "category": "category",
    "amount": "amount",
    "created_at": "created_at",
}


class LedgerStore(Protocol):
    def open(self) -> None: ...

    def close(self) -> None: ...

    def ping(self) -> None: ...

    def insert(self, record: NewTransaction) -> int: ...

    def find_by_owner(self, owner: str) -> list[Transaction]: ...

    def find_by_id(self, transaction_id: int) -> Optional[Transaction]: ...

    def update_by_id(self, transaction_id: int, changes: Mapping[str, Any]) -> int: ...

    def delete_by_id(self, transaction_id: int) -> int: ...


def parse_transaction_id(token: Any) -> int:
    if isinstance(token, bool):
        raise InvalidIdentifier()
    if isinstance(token, int):
        value = token
    else:
        cleaned = str(token).strip() if token is not None else ""
        if not (cleaned.isascii() and cleaned.isdigit()):
            raise InvalidIdentifier()
        value = int(cleaned)
    if value <= 0 or value > MAX_TRANSACTION_ID:
        raise InvalidIdentifier()
    return value


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(database_url, connect_args=connect_args)


class SqlLedgerStore:
    """Transaction store backed by a SQLAlchemy engine owned by the caller."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def open(self) -> None:
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.exception("Failed to prepare transactions table")
            raise StoreUnavailable() from exc
        self.ping()
        logger.info("Pinged %s. Transaction store is ready.", self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        self.engine.dispose()
        logger.info("Transaction store closed.")

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.exception("Transaction store ping failed")
            raise StoreUnavailable() from exc

    def insert(self, record: NewTransaction) -> int:
        stmt = (
            insert(transactions)
            .values(
                owner=record.owner,
                name=record.name,
                type=record.kind,
                description=record.description,
                category=record.category,
                amount=record.amount,
                created_at=record.created_at,
            )
            .returning(transactions.c.id)
        )
        try:
            with self.engine.begin() as conn:
                new_id = conn.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            logger.exception("Failed to insert transaction for %s", record.owner)
            raise StoreUnavailable() from exc
        logger.info("Created transaction %s for %s", new_id, record.owner)
        return new_id

    def find_by_owner(self, owner: str) -> list[Transaction]:
        stmt = select(transactions).where(transactions.c.owner == owner).order_by(transactions.c.id.asc())
        try:
            with self.engine.begin() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            logger.exception("Failed to list transactions for %s", owner)
            raise StoreUnavailable() from exc
        logger.debug("Loaded %d transactions for %s", len(rows), owner)
        return [_row_to_transaction(row) for row in rows]

    def find_by_id(self, transaction_id: int) -> Optional[Transaction]:
        stmt = select(transactions).where(transactions.c.id == transaction_id)
        try:
            with self.engine.begin() as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            logger.exception("Failed to load transaction %s", transaction_id)
            raise StoreUnavailable() from exc
        if row is None:
            return None
        return _row_to_transaction(row)

    def update_by_id(self, transaction_id: int, changes: Mapping[str, Any]) -> int:
        """Return the number of matched rows, including rows rewritten with identical values."""
        values = {COLUMNS[field]: value for field, value in changes.items() if field in COLUMNS}
        if not values:
            return 0
        stmt = update(transactions).where(transactions.c.id == transaction_id).values(**values)
        try:
            with self.engine.begin() as conn:
                modified = conn.execute(stmt).rowcount
        except SQLAlchemyError as exc:
            logger.exception("Failed to update transaction %s", transaction_id)
            raise StoreUnavailable() from exc
        logger.info("Updated transaction %s (%d modified)", transaction_id, modified)
        return modified

    def delete_by_id(self, transaction_id: int) -> int:
        stmt = delete(transactions).where(transactions.c.id == transaction_id)
        try:
            with self.engine.begin() as conn:
                deleted = conn.execute(stmt).rowcount
        except SQLAlchemyError as exc:
            logger.exception("Failed to delete transaction %s", transaction_id)
            raise StoreUnavailable() from exc
        logger.info("Deleted transaction %s (%d deleted)", transaction_id, deleted)
        return deleted


def _row_to_transaction(row: RowMapping) -> Transaction:
    return Transaction(
        id=row["id"],
        owner=row["owner"],
        kind=row["type"],
        amount=coerce_amount(row["amount"]),
        created_at=coerce_timestamp(row["created_at"]),
        name=row["name"],
        description=row["description"],
        category=row["category"],
    )
