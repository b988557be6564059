"""Unit tests for bearer token parsing and principal resolution."""

from __future__ import annotations

import json
from io import BytesIO
from urllib.error import HTTPError
from uuid import UUID

import pytest

from backend.auth import supabase_auth
from backend.auth.supabase_auth import (
    UnauthorizedError,
    extract_bearer_token,
    get_user_from_bearer_token,
    principal_id_from_user,
)


@pytest.mark.parametrize(
    ("header", "message"),
    [
        (None, "Missing Authorization header"),
        ("Basic abc", "Invalid Authorization header"),
        ("Bearer   ", "Missing bearer token"),
    ],
)
def test_extract_bearer_token_rejects_bad_headers(header: str | None, message: str) -> None:
    with pytest.raises(UnauthorizedError, match=message):
        extract_bearer_token(header)


def test_extract_bearer_token_returns_token() -> None:
    assert extract_bearer_token("Bearer abc.def") == "abc.def"


def test_principal_id_from_user_requires_uuid() -> None:
    user_id = "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"

    assert principal_id_from_user({"id": user_id}) == UUID(user_id)
    with pytest.raises(UnauthorizedError):
        principal_id_from_user({"id": "not-a-uuid"})
    with pytest.raises(UnauthorizedError):
        principal_id_from_user({})


def test_get_user_requires_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)

    with pytest.raises(UnauthorizedError, match="not configured"):
        get_user_from_bearer_token("token")


def test_get_user_calls_auth_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co/")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")

    class _Response:
        status = 200

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def read(self) -> bytes:
            return json.dumps({"id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"}).encode("utf-8")

    def _fake_urlopen(request):
        assert request.full_url == "https://example.supabase.co/auth/v1/user"
        assert request.get_header("Authorization") == "Bearer token"
        return _Response()

    monkeypatch.setattr(supabase_auth, "urlopen", _fake_urlopen)

    assert get_user_from_bearer_token("token")["id"] == "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"


def test_get_user_maps_http_errors_to_unauthorized(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")

    def _raise_http_error(_request):
        raise HTTPError(
            url="https://example.supabase.co/auth/v1/user",
            code=401,
            msg="Unauthorized",
            hdrs=None,
            fp=BytesIO(b"invalid JWT"),
        )

    monkeypatch.setattr(supabase_auth, "urlopen", _raise_http_error)

    with pytest.raises(UnauthorizedError):
        get_user_from_bearer_token("expired")
