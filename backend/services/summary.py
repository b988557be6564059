"""Ledger aggregates: income/expense totals and per-category rollups."""

from __future__ import annotations

from uuid import UUID

from backend.repositories.transactions_repository import TransactionsRepository
from shared.models import CategoryTotal, SummaryTotals, TransactionSummaryResult


def build_summary(repository: TransactionsRepository, user_id: UUID) -> TransactionSummaryResult:
    """Aggregate the full ledger of `user_id`.

    Totals and the category breakdown come from two separate store queries and
    are not read from a single snapshot.
    """

    income, expense = repository.sum_totals(user_id)
    by_category = repository.sum_by_category(user_id)

    breakdown = [
        CategoryTotal(category=category, total_amount=amount)
        for category, amount in sorted(by_category.items(), key=lambda entry: entry[0].value)
    ]
    return TransactionSummaryResult(
        summary=SummaryTotals(
            total_income=income,
            total_expense=expense,
            balance=income + expense,
        ),
        category_breakdown=breakdown,
    )
