"""
Async client for the hosted table store (PostgREST dialect, as served by Supabase).
"""

import asyncio
import logging
import time
from typing import Any, Optional

import aiohttp

from portfolio_admin.exceptions import NetworkError, StoreError

from .protocol import Order, Row

log = logging.getLogger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"


class StoreClient:
    """
    Async client for the store's REST interface.

    Features:
    - One pooled aiohttp session, created lazily
    - Store error bodies normalized into ``StoreError``
    - Transport failures normalized into ``NetworkError``
    """

    REST_PATH = "/rest/v1/"

    def __init__(self, store_url: str, store_key: str, timeout: int = 30):
        """
        Initializes the store client.

        Args:
            store_url: Project URL of the hosted store, e.g. https://xyz.supabase.co
            store_key: Public (anon) API key of the project.
            timeout: Total timeout for a single request, in seconds.
        """
        self.base_url: str = store_url.rstrip("/") + self.REST_PATH
        self._store_key = store_key
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "StoreClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "apikey": self._store_key,
                    "Authorization": f"Bearer {self._store_key}",
                    "Accept-Encoding": "gzip, deflate",
                },
                timeout=aiohttp.ClientTimeout(total=self.timeout, connect=10),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Makes a request against one table and returns the decoded body.

        Returns None for empty responses (e.g. 204 on delete).
        """
        await self._initialize_session()
        start_time = time.monotonic()

        try:
            async with self._session.request(
                method,
                self.base_url + table,
                params=params,
                json=json,
                headers=headers,
            ) as r:
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(
                    f"{method} {table} -> {r.status} in {duration_ms:.0f}ms"
                )

                body: Any = None
                text = await r.text()
                if text:
                    try:
                        body = await r.json(content_type=None)
                    except ValueError:
                        body = text

                if r.status >= 400:
                    raise StoreError.from_payload(body, status=r.status)
                return body

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"Store call {method} {table} did not complete: {e!r}")
            raise NetworkError(
                f"Could not reach the store ({type(e).__name__}: {e})"
            ) from e

    @staticmethod
    def _filters(eq: dict[str, Any] | None) -> dict[str, str]:
        return {column: f"eq.{value}" for column, value in (eq or {}).items()}

    # TableStore API
    async def select(
        self,
        table: str,
        *,
        order: Order | None = None,
        eq: dict[str, Any] | None = None,
        single: bool = False,
    ) -> list[Row] | Row:
        params = {"select": "*", **self._filters(eq)}
        if order:
            params["order"] = order.as_param()

        headers = None
        if single:
            params["limit"] = "1"
            headers = {"Accept": SINGLE_OBJECT}

        body = await self.request("GET", table, params=params, headers=headers)
        if single:
            return body
        return body or []

    async def insert(self, table: str, row: Row) -> Row:
        return await self.request(
            "POST",
            table,
            json=row,
            headers={"Prefer": "return=representation", "Accept": SINGLE_OBJECT},
        )

    async def update(self, table: str, values: Row, *, eq: dict[str, Any]) -> Row:
        return await self.request(
            "PATCH",
            table,
            params={"select": "*", **self._filters(eq)},
            json=values,
            headers={"Prefer": "return=representation", "Accept": SINGLE_OBJECT},
        )

    async def delete(self, table: str, *, eq: dict[str, Any]) -> None:
        await self.request("DELETE", table, params=self._filters(eq))

    async def ping(self) -> bool:
        """Checks that the REST root answers with the configured key."""
        await self._initialize_session()
        try:
            async with self._session.get(self.base_url) as r:
                return r.status < 400
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"Store ping failed: {e!r}")
            return False
