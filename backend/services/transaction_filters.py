"""Translate listing query parameters into an owner-scoped store predicate."""

from __future__ import annotations

from uuid import UUID

from shared.models import TransactionFilters, TransactionListQuery


def build_transaction_filters(principal_id: UUID, query: TransactionListQuery) -> TransactionFilters:
    """Return the predicate for `query`, restricted to the principal's own records.

    The owner constraint comes from the authenticated principal only; absent
    query fields add no constraint.
    """

    return TransactionFilters(
        user_id=principal_id,
        search=query.search,
        category=query.category,
        start_date=query.start_date,
        end_date=query.end_date,
    )
