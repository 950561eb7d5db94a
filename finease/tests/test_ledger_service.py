import unittest
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from finease import ledger_service
from finease.envelope import InvalidIdentifier, MissingParameter, StoreUnavailable
from finease.transaction_normalizer import NewTransaction, Transaction


class RecordingStore:
    """In-memory store that records every call it receives."""

    def __init__(self, records: Optional[list[Transaction]] = None) -> None:
        self.records = list(records or [])
        self.calls: list[str] = []
        self.inserted: list[NewTransaction] = []
        self.updates: list[tuple[int, dict]] = []

    def open(self) -> None:
        self.calls.append("open")

    def close(self) -> None:
        self.calls.append("close")

    def ping(self) -> None:
        self.calls.append("ping")

    def insert(self, record: NewTransaction) -> int:
        self.calls.append("insert")
        self.inserted.append(record)
        return len(self.inserted)

    def find_by_owner(self, owner: str) -> list[Transaction]:
        self.calls.append("find_by_owner")
        return [txn for txn in self.records if txn.owner == owner]

    def find_by_id(self, transaction_id: int) -> Optional[Transaction]:
        self.calls.append("find_by_id")
        return next((txn for txn in self.records if txn.id == transaction_id), None)

    def update_by_id(self, transaction_id: int, changes: Mapping[str, Any]) -> int:
        self.calls.append("update_by_id")
        self.updates.append((transaction_id, dict(changes)))
        return 1 if any(txn.id == transaction_id for txn in self.records) else 0

    def delete_by_id(self, transaction_id: int) -> int:
        self.calls.append("delete_by_id")
        before = len(self.records)
        self.records = [txn for txn in self.records if txn.id != transaction_id]
        return before - len(self.records)


class FailingStore(RecordingStore):
    def find_by_owner(self, owner: str) -> list[Transaction]:
        raise StoreUnavailable()

    def insert(self, record: NewTransaction) -> int:
        raise StoreUnavailable()


def make_txn(txn_id: int, kind: str, amount: float, owner: str = "a@x.com", category=None, day: int = 1) -> Transaction:
    return Transaction(
        id=txn_id,
        owner=owner,
        kind=kind,
        amount=amount,
        created_at=datetime(2024, 1, day, tzinfo=timezone.utc),
        category=category,
    )


class ListTransactionsTests(unittest.TestCase):
    def test_sorts_owner_records(self) -> None:
        store = RecordingStore(
            [
                make_txn(1, "expense", 10.0),
                make_txn(2, "expense", 5.0),
                make_txn(3, "expense", 20.0),
                make_txn(4, "expense", 99.0, owner="b@x.com"),
            ]
        )

        result = ledger_service.list_transactions(store, "a@x.com", sort_by="amount", order="desc")

        self.assertEqual([txn.amount for txn in result], [20.0, 10.0, 5.0])

    def test_missing_owner_never_reaches_store(self) -> None:
        store = RecordingStore()

        for owner in (None, "", "   "):
            with self.assertRaises(MissingParameter):
                ledger_service.list_transactions(store, owner)
        self.assertEqual(store.calls, [])


class CreateTransactionTests(unittest.TestCase):
    def test_normalizes_before_insert(self) -> None:
        store = RecordingStore()

        new_id = ledger_service.create_transaction(
            store, {"email": "a@x.com", "type": "income", "amount": "100", "junk": True}
        )

        self.assertEqual(new_id, 1)
        self.assertEqual(store.inserted[0].amount, 100.0)
        self.assertEqual(store.inserted[0].owner, "a@x.com")

    def test_missing_owner_is_rejected(self) -> None:
        store = RecordingStore()

        with self.assertRaises(MissingParameter):
            ledger_service.create_transaction(store, {"type": "income", "amount": 1})
        self.assertEqual(store.calls, [])

    def test_structured_owner_is_treated_as_missing(self) -> None:
        store = RecordingStore()

        with self.assertRaises(MissingParameter):
            ledger_service.create_transaction(store, {"email": {"x": 1}, "amount": 1})
        self.assertEqual(store.calls, [])

    def test_store_failure_propagates(self) -> None:
        with self.assertRaises(StoreUnavailable):
            ledger_service.create_transaction(FailingStore(), {"email": "a@x.com", "amount": 1})


class SingleRecordTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = RecordingStore([make_txn(1, "income", 10.0)])

    def test_get_found_and_missing(self) -> None:
        hit = ledger_service.get_transaction(self.store, "1")
        miss = ledger_service.get_transaction(self.store, "2")

        self.assertTrue(hit.found)
        self.assertEqual(hit.value.id, 1)
        self.assertFalse(miss.found)
        self.assertIsNone(miss.value)

    def test_invalid_identifier_never_reaches_store(self) -> None:
        with self.assertRaises(InvalidIdentifier):
            ledger_service.get_transaction(self.store, "not-an-id")
        with self.assertRaises(InvalidIdentifier):
            ledger_service.update_transaction(self.store, "not-an-id", {"amount": 1})
        with self.assertRaises(InvalidIdentifier):
            ledger_service.delete_transaction(self.store, "not-an-id")
        self.assertEqual(self.store.calls, [])

    def test_update_passes_normalized_changes(self) -> None:
        modified = ledger_service.update_transaction(self.store, "1", {"amount": "15", "category": "gift"})

        self.assertEqual(modified, 1)
        self.assertEqual(self.store.updates, [(1, {"amount": 15.0, "category": "gift"})])

    def test_update_without_recognized_fields_is_a_noop(self) -> None:
        self.assertEqual(ledger_service.update_transaction(self.store, "1", {"color": "red"}), 0)
        self.assertEqual(self.store.calls, [])

    def test_update_cannot_blank_the_owner(self) -> None:
        with self.assertRaises(MissingParameter):
            ledger_service.update_transaction(self.store, "1", {"email": ""})

    def test_delete_missing_record_reports_zero(self) -> None:
        self.assertEqual(ledger_service.delete_transaction(self.store, "99"), 0)
        self.assertEqual(ledger_service.delete_transaction(self.store, "1"), 1)


class SummaryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = RecordingStore(
            [
                make_txn(1, "income", 100.0),
                make_txn(2, "expense", 50.0, category="food"),
                make_txn(3, "income", 1000.0, owner="b@x.com"),
            ]
        )

    def test_overview_is_scoped_to_owner(self) -> None:
        overview = ledger_service.get_overview(self.store, "a@x.com")

        self.assertEqual((overview.total_income, overview.total_expense, overview.balance), (100.0, 50.0, 50.0))

    def test_category_report(self) -> None:
        report = ledger_service.get_category_report(self.store, "a@x.com")

        self.assertEqual([(item.category, item.amount) for item in report.category_data], [("food", 50.0)])
        self.assertEqual(report.net_balance, 50.0)

    def test_missing_owner_is_rejected_before_store(self) -> None:
        with self.assertRaises(MissingParameter):
            ledger_service.get_overview(self.store, None)
        with self.assertRaises(MissingParameter):
            ledger_service.get_category_report(self.store, "")
        self.assertEqual(self.store.calls, [])

    def test_store_failure_is_not_swallowed(self) -> None:
        with self.assertRaises(StoreUnavailable):
            ledger_service.get_overview(FailingStore(), "a@x.com")


if __name__ == "__main__":
    unittest.main()
