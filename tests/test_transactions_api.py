"""Tests for the transactions HTTP endpoints exposed by backend.api."""

from __future__ import annotations

from uuid import UUID

import pytest
from fastapi.testclient import TestClient

import backend.api as transactions_api
from backend.api import app
from backend.repositories.transactions_repository import InMemoryTransactionsRepository
from backend.services.transaction_service import TransactionService
from shared.models import ServiceError, ServiceErrorCode, TransactionCategory
from tests.fakes import USER_A, USER_B, make_transaction, scenario_ledger


client = TestClient(app)

_TOKENS = {"token-a": USER_A, "token-b": USER_B}


def _auth_headers(token: str = "token-a") -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def repository(monkeypatch: pytest.MonkeyPatch) -> InMemoryTransactionsRepository:
    def _fake_user(token: str) -> dict[str, object]:
        if token not in _TOKENS:
            raise transactions_api.UnauthorizedError("Unauthorized")
        return {"id": str(_TOKENS[token]), "email": "user@example.com"}

    repository = InMemoryTransactionsRepository(scenario_ledger())
    service = TransactionService(repository=repository)
    monkeypatch.setattr(transactions_api, "get_user_from_bearer_token", _fake_user)
    monkeypatch.setattr(transactions_api, "get_transaction_service", lambda: service)
    return repository


def test_health_and_root_do_not_require_auth() -> None:
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/").json() == {"message": "API is running..."}


def test_requests_without_bearer_token_are_rejected(repository: InMemoryTransactionsRepository) -> None:
    missing = client.get("/transactions")
    invalid = client.get("/transactions/summary", headers=_auth_headers("unknown"))

    assert missing.status_code == 401
    assert missing.json() == {"message": "Missing Authorization header"}
    assert invalid.status_code == 401


def test_list_transactions_returns_page_payload(repository: InMemoryTransactionsRepository) -> None:
    response = client.get("/transactions", params={"limit": 2}, headers=_auth_headers())

    assert response.status_code == 200
    payload = response.json()
    assert payload["totalPages"] == 2
    assert payload["currentPage"] == 1
    assert [item["title"] for item in payload["transactions"]] == ["Bakery", "Market"]
    first = payload["transactions"][0]
    assert first["user"] == str(USER_A)
    assert first["amount"] == -20.0
    assert first["category"] == "Food"
    assert {"id", "date", "notes", "createdAt", "updatedAt"} <= set(first)


def test_list_transactions_passes_filters(repository: InMemoryTransactionsRepository) -> None:
    response = client.get(
        "/transactions",
        params={"category": "All", "search": "sal", "startDate": "2025-01-01", "endDate": "2025-01-01"},
        headers=_auth_headers(),
    )

    assert response.status_code == 200
    assert [item["title"] for item in response.json()["transactions"]] == ["Salary"]


def test_list_transactions_rejects_malformed_dates(repository: InMemoryTransactionsRepository) -> None:
    response = client.get("/transactions", params={"startDate": "yesterday"}, headers=_auth_headers())

    assert response.status_code == 400
    assert "startDate" in response.json()["message"]


def test_add_transaction_returns_201(repository: InMemoryTransactionsRepository) -> None:
    response = client.post(
        "/transactions",
        json={"title": " Paycheck ", "amount": 1500, "category": "Salary", "date": "2025-02-01T09:00:00Z"},
        headers=_auth_headers("token-b"),
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["title"] == "Paycheck"
    assert payload["user"] == str(USER_B)
    assert payload["amount"] == 1500.0
    assert repository.get_transaction(UUID(payload["id"])) is not None


def test_add_transaction_with_invalid_category_is_400(repository: InMemoryTransactionsRepository) -> None:
    response = client.post(
        "/transactions",
        json={"title": "Flight", "amount": -300, "category": "Travel"},
        headers=_auth_headers(),
    )

    assert response.status_code == 400
    assert response.json()["message"].startswith("category:")
    listed = client.get("/transactions", headers=_auth_headers()).json()
    assert "Flight" not in [item["title"] for item in listed["transactions"]]


def test_add_transaction_with_invalid_json_is_400(repository: InMemoryTransactionsRepository) -> None:
    response = client.post(
        "/transactions",
        content=b"{not json",
        headers={**_auth_headers(), "Content-Type": "application/json"},
    )

    assert response.status_code == 400


def test_update_transaction_owner_flow(repository: InMemoryTransactionsRepository) -> None:
    transaction = make_transaction(title="Cinema", amount="-12", day=4)
    repository._transactions[transaction.id] = transaction

    response = client.put(
        f"/transactions/{transaction.id}",
        json={"category": "Entertainment", "notes": "  imax  "},
        headers=_auth_headers(),
    )

    assert response.status_code == 200
    assert response.json()["category"] == "Entertainment"
    assert response.json()["notes"] == "imax"


def test_update_other_users_transaction_is_401_and_unchanged(
    repository: InMemoryTransactionsRepository,
) -> None:
    transaction = make_transaction(user_id=USER_B, title="Gym")
    repository._transactions[transaction.id] = transaction

    response = client.put(
        f"/transactions/{transaction.id}",
        json={"title": "Mine now"},
        headers=_auth_headers("token-a"),
    )

    assert response.status_code == 401
    assert response.json() == {"message": "User not authorized"}
    assert repository.get_transaction(transaction.id) == transaction


def test_update_and_delete_unknown_ids_are_404(repository: InMemoryTransactionsRepository) -> None:
    unknown = UUID(int=123_456_789)

    update = client.put(f"/transactions/{unknown}", json={"title": "x"}, headers=_auth_headers())
    delete = client.delete(f"/transactions/{unknown}", headers=_auth_headers())
    malformed = client.delete("/transactions/abc", headers=_auth_headers())

    assert update.status_code == 404
    assert update.json() == {"message": "Transaction not found"}
    assert delete.status_code == 404
    assert malformed.status_code == 404


def test_delete_transaction_returns_id(repository: InMemoryTransactionsRepository) -> None:
    transaction = make_transaction(title="Taxi", category=TransactionCategory.TRANSPORT)
    repository._transactions[transaction.id] = transaction

    foreign = client.delete(f"/transactions/{transaction.id}", headers=_auth_headers("token-b"))
    owned = client.delete(f"/transactions/{transaction.id}", headers=_auth_headers())

    assert foreign.status_code == 401
    assert owned.status_code == 200
    assert owned.json() == {"id": str(transaction.id)}
    assert repository.get_transaction(transaction.id) is None


def test_summary_endpoint_payload(repository: InMemoryTransactionsRepository) -> None:
    response = client.get("/transactions/summary", headers=_auth_headers())

    assert response.status_code == 200
    assert response.json() == {
        "summary": {"totalIncome": 100.0, "totalExpense": -50.0, "balance": 50.0},
        "categoryBreakdown": [
            {"_id": "Food", "totalAmount": -50.0},
            {"_id": "Salary", "totalAmount": 100.0},
        ],
    }


def test_backend_errors_map_to_500_with_message(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Service:
        def get_summary(self, principal_id: UUID | None):
            assert principal_id == USER_A
            return ServiceError(code=ServiceErrorCode.BACKEND_ERROR, message="connection refused")

    monkeypatch.setattr(
        transactions_api,
        "get_user_from_bearer_token",
        lambda _token: {"id": str(USER_A)},
    )
    monkeypatch.setattr(transactions_api, "get_transaction_service", lambda: _Service())

    response = client.get("/transactions/summary", headers=_auth_headers())

    assert response.status_code == 500
    assert response.json() == {"message": "connection refused"}


def test_add_transaction_with_out_of_range_amount_is_400(repository: InMemoryTransactionsRepository) -> None:
    huge = client.post(
        "/transactions",
        json={"title": "Lottery", "amount": "1e400", "category": "Income"},
        headers=_auth_headers(),
    )
    float_max = client.post(
        "/transactions",
        json={"title": "Lottery", "amount": 1e308, "category": "Income"},
        headers=_auth_headers(),
    )

    assert huge.status_code == 400
    assert huge.json()["message"].startswith("amount:")
    assert float_max.status_code == 400
    summary = client.get("/transactions/summary", headers=_auth_headers()).json()
    assert summary["summary"]["totalIncome"] == 100.0


def test_update_transaction_with_out_of_range_amount_is_400(repository: InMemoryTransactionsRepository) -> None:
    transaction = make_transaction(title="Rent", amount="-900", day=3)
    repository._transactions[transaction.id] = transaction

    response = client.put(
        f"/transactions/{transaction.id}",
        json={"amount": "-1e20"},
        headers=_auth_headers(),
    )

    assert response.status_code == 400
    assert repository.get_transaction(transaction.id) == transaction
