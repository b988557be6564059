"""Resolve the authenticated principal from a Supabase Auth bearer token."""

from __future__ import annotations

import json
from uuid import UUID
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from shared import config


class UnauthorizedError(Exception):
    """Raised when a bearer token cannot be validated."""


BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token of an `Authorization: Bearer <token>` header value."""

    if not authorization:
        raise UnauthorizedError("Missing Authorization header")
    if not authorization.startswith(BEARER_PREFIX):
        raise UnauthorizedError("Invalid Authorization header")
    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise UnauthorizedError("Missing bearer token")
    return token


def get_user_from_bearer_token(token: str) -> dict[str, object]:
    """Return the Supabase auth user payload for a bearer token."""

    supabase_url = (config.supabase_url() or "").rstrip("/")
    anon_key = config.supabase_anon_key()
    if not supabase_url or not anon_key:
        raise UnauthorizedError("Supabase auth is not configured")

    request = Request(
        url=f"{supabase_url}/auth/v1/user",
        headers={
            "apikey": anon_key,
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        },
        method="GET",
    )

    try:
        with urlopen(request) as response:  # noqa: S310 - trusted Supabase URL from env
            if response.status != 200:
                raise UnauthorizedError("Unauthorized")
            payload = json.loads(response.read().decode("utf-8"))
    except (HTTPError, URLError) as exc:
        raise UnauthorizedError("Unauthorized") from exc

    if not isinstance(payload, dict):
        raise UnauthorizedError("Unauthorized")
    return payload


def principal_id_from_user(user_payload: dict[str, object]) -> UUID:
    """Return the principal UUID carried by an auth user payload."""

    user_id = user_payload.get("id")
    if not isinstance(user_id, str):
        raise UnauthorizedError("Unauthorized")
    try:
        return UUID(user_id)
    except ValueError as exc:
        raise UnauthorizedError("Unauthorized") from exc
