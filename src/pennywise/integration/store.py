import asyncio
import os
from typing import Any

import httpx

from pennywise.core.settings import DEFAULT_STORE_TIMEOUT, get_env_float
from pennywise.logger import get_logger

logger = get_logger(__name__)


class StoreError(Exception):
    """The row store could not be reached or refused the request."""


def _build_headers(token: str | None) -> dict[str, str]:
    return {
        "apikey": token or "",
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


class StoreClient:
    """CRUD over a PostgREST-style row store (`/rest/v1/{table}`)."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or os.getenv("STORE_URL") or "").rstrip("/") or None
        self.token = token or os.getenv("STORE_TOKEN")
        self.headers = _build_headers(self.token)
        self.timeout = (
            timeout
            if timeout is not None
            else get_env_float("STORE_TIMEOUT", DEFAULT_STORE_TIMEOUT, min_value=0.0)
        )
        self._client = client
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.token)

    def refresh(self, base_url: str | None = None, token: str | None = None) -> None:
        base_value = base_url if base_url is not None else os.getenv("STORE_URL")
        token_value = token if token is not None else os.getenv("STORE_TOKEN")
        self.base_url = (base_value or "").rstrip("/") or None
        self.token = token_value or None
        self.headers = _build_headers(self.token)
        self.timeout = get_env_float("STORE_TIMEOUT", DEFAULT_STORE_TIMEOUT, min_value=0.0)

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient(timeout=self.timeout)
                self._client = client
            return client

    def _table_url(self, table: str) -> str:
        if not self.base_url:
            raise StoreError("Store URL is not configured.")
        return f"{self.base_url}/rest/v1/{table}"

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        extra_headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        url = self._table_url(table)
        headers = dict(self.headers)
        if extra_headers:
            headers.update(extra_headers)

        client = await self._get_client()
        try:
            response = await client.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "[STORE] %s %s failed with %s: %s",
                method,
                table,
                exc.response.status_code,
                exc.response.text,
            )
            raise StoreError(
                f"{method} {table} returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("[STORE] %s %s failed: %s", method, table, exc)
            raise StoreError(f"{method} {table} failed: {exc}") from exc
        return response

    @staticmethod
    def _rows(response: httpx.Response) -> list[dict[str, Any]]:
        if not response.content:
            return []
        data = response.json()
        if isinstance(data, dict):
            return [data]
        return list(data or [])

    async def select_all(self, table: str) -> list[dict[str, Any]]:
        response = await self._request("GET", table, params={"select": "*"})
        rows = self._rows(response)
        logger.debug("[STORE] Loaded %s rows from %s", len(rows), table)
        return rows

    async def insert(
        self, table: str, rows: dict[str, Any] | list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Insert one or many rows; returns the stored rows with server ids."""
        response = await self._request(
            "POST",
            table,
            json=rows,
            extra_headers={"Prefer": "return=representation"},
        )
        return self._rows(response)

    async def update(
        self, table: str, row_id: str, values: dict[str, Any], *, column: str = "id"
    ) -> None:
        await self._request("PATCH", table, params={column: f"eq.{row_id}"}, json=values)

    async def upsert(
        self, table: str, rows: list[dict[str, Any]], on_conflict: str
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "POST",
            table,
            params={"on_conflict": on_conflict},
            json=rows,
            extra_headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        return self._rows(response)

    async def delete(self, table: str, row_id: str, *, column: str = "id") -> None:
        await self._request("DELETE", table, params={column: f"eq.{row_id}"})
