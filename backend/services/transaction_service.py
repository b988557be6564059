"""Transaction use cases with ownership enforcement.

Every operation returns its result model or a `ServiceError`; store failures
are normalized to `BACKEND_ERROR` at this boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from backend.repositories.transactions_repository import TransactionsRepository
from backend.services.pagination import PageWindow
from backend.services.summary import build_summary
from backend.services.transaction_filters import build_transaction_filters
from backend.services.validation import (
    validate_list_query,
    validate_transaction_create,
    validate_transaction_update,
)
from shared.models import (
    ServiceError,
    ServiceErrorCode,
    Transaction,
    TransactionDeleteResult,
    TransactionListResult,
    TransactionSummaryResult,
)


logger = logging.getLogger(__name__)


def _missing_principal_error() -> ServiceError:
    return ServiceError(code=ServiceErrorCode.UNAUTHORIZED, message="User not found")


def _not_found_error() -> ServiceError:
    return ServiceError(code=ServiceErrorCode.NOT_FOUND, message="Transaction not found")


def _parse_transaction_id(raw_id: UUID | str) -> UUID | None:
    if isinstance(raw_id, UUID):
        return raw_id
    try:
        return UUID(str(raw_id))
    except ValueError:
        return None


@dataclass(slots=True)
class TransactionService:
    repository: TransactionsRepository

    def _load_owned(
        self, principal_id: UUID | None, raw_id: UUID | str
    ) -> Transaction | ServiceError:
        """Return the transaction when it exists and belongs to the principal.

        Existence is checked before ownership.
        """

        transaction_id = _parse_transaction_id(raw_id)
        if transaction_id is None:
            return _not_found_error()

        transaction = self.repository.get_transaction(transaction_id)
        if transaction is None:
            return _not_found_error()

        if principal_id is None:
            return _missing_principal_error()

        if transaction.user_id != principal_id:
            logger.warning(
                "transaction_access_denied transaction_id=%s principal_id=%s",
                transaction_id,
                principal_id,
            )
            return ServiceError(code=ServiceErrorCode.UNAUTHORIZED, message="User not authorized")
        return transaction

    def list_transactions(
        self, principal_id: UUID | None, params: dict[str, object]
    ) -> TransactionListResult | ServiceError:
        if principal_id is None:
            return _missing_principal_error()

        query = validate_list_query(params)
        if isinstance(query, ServiceError):
            return query

        filters = build_transaction_filters(principal_id, query)
        window = PageWindow(page=query.page, limit=query.limit)
        try:
            items, count = self.repository.list_transactions(
                filters, offset=window.offset, limit=window.limit
            )
        except Exception as exc:
            logger.exception("transactions_list_failed principal_id=%s", principal_id)
            return ServiceError(code=ServiceErrorCode.BACKEND_ERROR, message=str(exc))

        return TransactionListResult(
            transactions=items,
            total_pages=window.total_pages(count),
            current_page=window.page,
        )

    def add_transaction(
        self, principal_id: UUID | None, payload: object
    ) -> Transaction | ServiceError:
        if principal_id is None:
            return _missing_principal_error()

        request = validate_transaction_create(payload)
        if isinstance(request, ServiceError):
            return request

        try:
            transaction = self.repository.create_transaction(user_id=principal_id, request=request)
        except Exception as exc:
            logger.exception("transaction_create_failed principal_id=%s", principal_id)
            return ServiceError(code=ServiceErrorCode.BACKEND_ERROR, message=str(exc))

        logger.info(
            "transaction_created transaction_id=%s principal_id=%s category=%s",
            transaction.id,
            principal_id,
            transaction.category.value,
        )
        return transaction

    def update_transaction(
        self, principal_id: UUID | None, transaction_id: UUID | str, payload: object
    ) -> Transaction | ServiceError:
        try:
            current = self._load_owned(principal_id, transaction_id)
            if isinstance(current, ServiceError):
                return current

            request = validate_transaction_update(payload)
            if isinstance(request, ServiceError):
                return request

            changes = request.changes()
            if not changes:
                return current

            updated = self.repository.update_transaction(current.id, changes)
        except Exception as exc:
            logger.exception("transaction_update_failed transaction_id=%s", transaction_id)
            return ServiceError(code=ServiceErrorCode.BACKEND_ERROR, message=str(exc))

        if updated is None:
            return _not_found_error()

        logger.info(
            "transaction_updated transaction_id=%s fields=%s",
            updated.id,
            ",".join(sorted(changes)),
        )
        return updated

    def delete_transaction(
        self, principal_id: UUID | None, transaction_id: UUID | str
    ) -> TransactionDeleteResult | ServiceError:
        try:
            current = self._load_owned(principal_id, transaction_id)
            if isinstance(current, ServiceError):
                return current

            deleted = self.repository.delete_transaction(current.id)
        except Exception as exc:
            logger.exception("transaction_delete_failed transaction_id=%s", transaction_id)
            return ServiceError(code=ServiceErrorCode.BACKEND_ERROR, message=str(exc))

        if not deleted:
            return _not_found_error()

        logger.info("transaction_deleted transaction_id=%s", current.id)
        return TransactionDeleteResult(id=current.id)

    def get_summary(self, principal_id: UUID | None) -> TransactionSummaryResult | ServiceError:
        if principal_id is None:
            return _missing_principal_error()

        try:
            return build_summary(self.repository, principal_id)
        except Exception as exc:
            logger.exception("transactions_summary_failed principal_id=%s", principal_id)
            return ServiceError(code=ServiceErrorCode.BACKEND_ERROR, message=str(exc))
