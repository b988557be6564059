"""Minimal Supabase PostgREST client used by backend repositories only."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


Query = dict[str, str | int] | list[tuple[str, str | int]]


@dataclass(slots=True)
class SupabaseSettings:
    url: str
    service_role_key: str
    anon_key: str | None = None


class SupabaseClient:
    def __init__(self, settings: SupabaseSettings) -> None:
        self.settings = settings

    def healthcheck(self) -> bool:
        return bool(self.settings.url and self.settings.service_role_key)

    def _api_key(self, use_anon_key: bool) -> str:
        api_key = self.settings.anon_key if use_anon_key else self.settings.service_role_key
        if not api_key:
            raise ValueError("Missing Supabase API key for requested mode")
        return api_key

    def _build_url(self, table: str, query: Query | None) -> str:
        url = f"{self.settings.url}/rest/v1/{table}"
        if query:
            url = f"{url}?{urlencode(query, doseq=True)}"
        return url

    def _send(
        self,
        *,
        method: str,
        table: str,
        query: Query | None,
        payload: dict[str, object] | list[dict[str, object]] | None,
        prefer: str,
        use_anon_key: bool,
    ) -> list[dict[str, Any]]:
        api_key = self._api_key(use_anon_key)
        request = Request(
            url=self._build_url(table, query),
            data=json.dumps(payload).encode("utf-8") if payload is not None else None,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
                "Prefer": prefer,
            },
            method=method,
        )
        try:
            with urlopen(request) as response:  # noqa: S310 - URL comes from trusted env config
                raw_body = response.read().decode("utf-8")
        except HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")[:500]
            raise RuntimeError(
                f"Supabase request failed with status {exc.code}: {body}"
            ) from exc
        if not raw_body:
            return []
        rows = json.loads(raw_body)
        return rows if isinstance(rows, list) else [rows]

    def get_rows(
        self,
        *,
        table: str,
        query: Query,
        with_count: bool,
        use_anon_key: bool = False,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """Fetch rows from PostgREST and optionally parse exact row count."""

        api_key = self._api_key(use_anon_key)
        request = Request(
            url=self._build_url(table, query),
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Prefer": "count=exact" if with_count else "return=representation",
            },
            method="GET",
        )
        try:
            with urlopen(request) as response:  # noqa: S310 - URL comes from trusted env config
                rows = json.loads(response.read().decode("utf-8"))
                total: int | None = None
                if with_count:
                    content_range = response.headers.get("content-range")
                    if content_range and "/" in content_range:
                        _, total_str = content_range.split("/", maxsplit=1)
                        if total_str.isdigit():
                            total = int(total_str)
                return rows, total
        except HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")[:500]
            raise RuntimeError(
                f"Supabase request failed with status {exc.code}: {body}"
            ) from exc

    def post_rows(
        self,
        *,
        table: str,
        payload: dict[str, object] | list[dict[str, object]],
        use_anon_key: bool = False,
        prefer: str = "return=representation",
    ) -> list[dict[str, Any]]:
        """Insert rows and return the representation sent back by PostgREST."""

        return self._send(
            method="POST",
            table=table,
            query=None,
            payload=payload,
            prefer=prefer,
            use_anon_key=use_anon_key,
        )

    def patch_rows(
        self,
        *,
        table: str,
        query: Query,
        payload: dict[str, object],
        use_anon_key: bool = False,
    ) -> list[dict[str, Any]]:
        """Update rows matching `query` and return them."""

        return self._send(
            method="PATCH",
            table=table,
            query=query,
            payload=payload,
            prefer="return=representation",
            use_anon_key=use_anon_key,
        )

    def delete_rows(
        self,
        *,
        table: str,
        query: Query,
        use_anon_key: bool = False,
    ) -> list[dict[str, Any]]:
        """Delete rows matching `query` and return the deleted rows."""

        return self._send(
            method="DELETE",
            table=table,
            query=query,
            payload=None,
            prefer="return=representation",
            use_anon_key=use_anon_key,
        )
