"""Transactions repository adapters.

Both adapters receive a `TransactionFilters` predicate that is already scoped
to one owner; lookups by id are not scoped so callers can tell a missing
record apart from someone else's.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol
from uuid import UUID, uuid4

from backend.db.supabase_client import SupabaseClient
from shared.models import (
    Transaction,
    TransactionCategory,
    TransactionCreateRequest,
    TransactionFilters,
)


TRANSACTION_COLUMNS = "id,user_id,title,amount,category,date,notes,created_at,updated_at"


class TransactionsRepository(Protocol):
    def list_transactions(
        self, filters: TransactionFilters, *, offset: int, limit: int
    ) -> tuple[list[Transaction], int]:
        """Return one page of matching transactions, newest first, plus the total match count."""

    def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        """Return a transaction by id regardless of its owner."""

    def create_transaction(self, *, user_id: UUID, request: TransactionCreateRequest) -> Transaction:
        """Persist and return a transaction owned by `user_id`."""

    def update_transaction(self, transaction_id: UUID, changes: dict[str, object]) -> Transaction | None:
        """Apply `changes` and return the updated transaction, or None when it no longer exists."""

    def delete_transaction(self, transaction_id: UUID) -> bool:
        """Delete a transaction and return whether a row was removed."""

    def sum_totals(self, user_id: UUID) -> tuple[Decimal, Decimal]:
        """Return (income, expense) sums over every transaction of `user_id`."""

    def sum_by_category(self, user_id: UUID) -> dict[TransactionCategory, Decimal]:
        """Return the net amount per category present in the ledger of `user_id`."""


class InMemoryTransactionsRepository:
    """In-memory repository used for local dev/tests when Supabase is not configured."""

    def __init__(self, transactions: list[Transaction] | None = None) -> None:
        self._transactions: dict[UUID, Transaction] = {
            transaction.id: transaction for transaction in transactions or []
        }
        # Sync FastAPI handlers run in a thread pool.
        self._lock = threading.Lock()

    def _snapshot(self) -> list[Transaction]:
        with self._lock:
            return list(self._transactions.values())

    def _owned_by(self, user_id: UUID) -> list[Transaction]:
        return [item for item in self._snapshot() if item.user_id == user_id]

    def list_transactions(
        self, filters: TransactionFilters, *, offset: int, limit: int
    ) -> tuple[list[Transaction], int]:
        matching = [item for item in self._snapshot() if filters.matches(item)]
        matching.sort(key=lambda item: item.date, reverse=True)
        return matching[offset : offset + limit], len(matching)

    def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        return self._transactions.get(transaction_id)

    def create_transaction(self, *, user_id: UUID, request: TransactionCreateRequest) -> Transaction:
        now = datetime.now(timezone.utc)
        transaction = Transaction(
            id=uuid4(),
            user_id=user_id,
            title=request.title,
            amount=request.amount,
            category=request.category,
            date=request.date or now,
            notes=request.notes,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._transactions[transaction.id] = transaction
        return transaction

    def update_transaction(self, transaction_id: UUID, changes: dict[str, object]) -> Transaction | None:
        with self._lock:
            current = self._transactions.get(transaction_id)
            if current is None:
                return None
            updated = current.model_copy(
                update={**changes, "updated_at": datetime.now(timezone.utc)}
            )
            self._transactions[transaction_id] = updated
        return updated

    def delete_transaction(self, transaction_id: UUID) -> bool:
        with self._lock:
            return self._transactions.pop(transaction_id, None) is not None

    def sum_totals(self, user_id: UUID) -> tuple[Decimal, Decimal]:
        income = Decimal("0")
        expense = Decimal("0")
        for item in self._owned_by(user_id):
            if item.amount > 0:
                income += item.amount
            elif item.amount < 0:
                expense += item.amount
        return income, expense

    def sum_by_category(self, user_id: UUID) -> dict[TransactionCategory, Decimal]:
        totals: dict[TransactionCategory, Decimal] = {}
        for item in self._owned_by(user_id):
            totals[item.category] = totals.get(item.category, Decimal("0")) + item.amount
        return totals


def _ilike_pattern(search: str) -> str:
    # PostgREST reads `*` as `%` and offers no escape for it.
    escaped = (
        search.replace("*", "")
        .replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
    return f"ilike.*{escaped}*"


class SupabaseTransactionsRepository:
    """Supabase repository over the transactions table."""

    def __init__(
        self,
        client: SupabaseClient,
        table: str = "transactions",
        page_size: int = 1000,
    ) -> None:
        self._client = client
        self._table = table
        self._page_size = page_size

    def _scan_owned_rows(self, user_id: UUID, columns: str) -> list[dict[str, object]]:
        """Fetch every row of `user_id`, one page at a time.

        PostgREST caps a single response at `db-max-rows`, so a short page is
        the only reliable end marker.
        """

        rows: list[dict[str, object]] = []
        offset = 0
        while True:
            page, _ = self._client.get_rows(
                table=self._table,
                query=[
                    ("user_id", f"eq.{user_id}"),
                    ("select", columns),
                    ("order", "id.asc"),
                    ("limit", self._page_size),
                    ("offset", offset),
                ],
                with_count=False,
            )
            rows.extend(page)
            if len(page) < self._page_size:
                return rows
            offset += self._page_size

    def _build_query(self, filters: TransactionFilters) -> list[tuple[str, str | int]]:
        query: list[tuple[str, str | int]] = [("user_id", f"eq.{filters.user_id}")]

        if filters.search:
            query.append(("title", _ilike_pattern(filters.search)))

        if filters.category is not None:
            query.append(("category", f"eq.{filters.category.value}"))

        if filters.start_date is not None:
            query.append(("date", f"gte.{filters.start_date.isoformat()}"))

        if filters.end_date is not None:
            query.append(("date", f"lte.{filters.end_date.isoformat()}"))

        return query

    @staticmethod
    def _parse_row(row: dict[str, object]) -> Transaction:
        for required in ("id", "user_id"):
            if row.get(required) is None:
                raise ValueError(f"Missing required field '{required}' in transaction row")
        return Transaction.model_validate(row)

    @staticmethod
    def _serialize_changes(changes: dict[str, object]) -> dict[str, object]:
        payload: dict[str, object] = {}
        for name, value in changes.items():
            if isinstance(value, Decimal):
                payload[name] = str(value)
            elif isinstance(value, datetime):
                payload[name] = value.isoformat()
            elif isinstance(value, TransactionCategory):
                payload[name] = value.value
            else:
                payload[name] = value
        return payload

    def list_transactions(
        self, filters: TransactionFilters, *, offset: int, limit: int
    ) -> tuple[list[Transaction], int]:
        query = [
            *self._build_query(filters),
            ("select", TRANSACTION_COLUMNS),
            ("order", "date.desc"),
            ("limit", limit),
            ("offset", offset),
        ]
        rows, total = self._client.get_rows(table=self._table, query=query, with_count=True)
        items = [self._parse_row(row) for row in rows]
        return items, total if total is not None else len(items)

    def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        rows, _ = self._client.get_rows(
            table=self._table,
            query={
                "id": f"eq.{transaction_id}",
                "select": TRANSACTION_COLUMNS,
                "limit": 1,
            },
            with_count=False,
        )
        if not rows:
            return None
        return self._parse_row(rows[0])

    def create_transaction(self, *, user_id: UUID, request: TransactionCreateRequest) -> Transaction:
        payload = self._serialize_changes(
            {
                "user_id": str(user_id),
                "title": request.title,
                "amount": request.amount,
                "category": request.category,
                "date": request.date or datetime.now(timezone.utc),
                "notes": request.notes,
            }
        )
        rows = self._client.post_rows(table=self._table, payload=payload)
        if not rows:
            raise RuntimeError("Supabase did not return created transaction")
        return self._parse_row(rows[0])

    def update_transaction(self, transaction_id: UUID, changes: dict[str, object]) -> Transaction | None:
        payload = self._serialize_changes(
            {**changes, "updated_at": datetime.now(timezone.utc)}
        )
        rows = self._client.patch_rows(
            table=self._table,
            query={"id": f"eq.{transaction_id}", "select": TRANSACTION_COLUMNS},
            payload=payload,
        )
        if not rows:
            return None
        return self._parse_row(rows[0])

    def delete_transaction(self, transaction_id: UUID) -> bool:
        rows = self._client.delete_rows(
            table=self._table,
            query={"id": f"eq.{transaction_id}", "select": "id"},
        )
        return bool(rows)

    def sum_totals(self, user_id: UUID) -> tuple[Decimal, Decimal]:
        income = Decimal("0")
        expense = Decimal("0")
        for row in self._scan_owned_rows(user_id, "amount"):
            amount = Decimal(str(row.get("amount")))
            if amount > 0:
                income += amount
            elif amount < 0:
                expense += amount
        return income, expense

    def sum_by_category(self, user_id: UUID) -> dict[TransactionCategory, Decimal]:
        totals: dict[TransactionCategory, Decimal] = {}
        for row in self._scan_owned_rows(user_id, "category,amount"):
            category = TransactionCategory(str(row.get("category")))
            totals[category] = totals.get(category, Decimal("0")) + Decimal(str(row.get("amount")))
        return totals
