from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from portfolio_admin.api.protocol import Order
from portfolio_admin.core.repository import PortfolioRepository
from portfolio_admin.exceptions import NO_ROWS_CODE, StoreError
from portfolio_admin.models.config import AppConfig
from portfolio_admin.storage.cache import QueryCache

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeTableStore:
    """In-memory table store that records every call it receives."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[int, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self.select_gate: asyncio.Event | None = None
        self.fail_next: Exception | None = None
        self.closed = False
        self._ids = itertools.count(1)
        self._ticks = itertools.count(1)

    def count(self, method: str, table: str | None = None) -> int:
        return sum(1 for m, t in self.calls if m == method and (table is None or t == table))

    def rows(self, table: str) -> dict[int, dict[str, Any]]:
        return self.tables.setdefault(table, {})

    def _now(self) -> str:
        return (BASE_TIME + timedelta(seconds=next(self._ticks))).isoformat()

    @staticmethod
    def _matches(row: dict[str, Any], eq: dict[str, Any] | None) -> bool:
        return all(str(row.get(k)) == str(v) for k, v in (eq or {}).items())

    async def _enter(self, method: str, table: str) -> None:
        self.calls.append((method, table))
        await asyncio.sleep(0)
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error

    async def select(
        self,
        table: str,
        *,
        order: Order | None = None,
        eq: dict[str, Any] | None = None,
        single: bool = False,
    ):
        await self._enter("select", table)
        if self.select_gate is not None:
            await self.select_gate.wait()
        found = [dict(r) for r in self.rows(table).values() if self._matches(r, eq)]
        if order is not None:
            found.sort(key=lambda r: r[order.column], reverse=order.descending)
        if single:
            if not found:
                raise StoreError(
                    "JSON object requested, multiple (or no) rows returned",
                    code=NO_ROWS_CODE,
                    status=406,
                )
            return found[0]
        return found

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        await self._enter("insert", table)
        row = dict(row)
        row_id = row.get("id") or next(self._ids)
        if row_id in self.rows(table):
            raise StoreError("duplicate key value violates unique constraint", code="23505")
        now = self._now()
        row.update(id=row_id, created_at=now, updated_at=now)
        self.rows(table)[row_id] = row
        return dict(row)

    async def update(
        self, table: str, values: dict[str, Any], *, eq: dict[str, Any]
    ) -> dict[str, Any]:
        await self._enter("update", table)
        for row in self.rows(table).values():
            if self._matches(row, eq):
                row.update(values, updated_at=self._now())
                return dict(row)
        raise StoreError(
            "JSON object requested, multiple (or no) rows returned",
            code=NO_ROWS_CODE,
            details="The result contains 0 rows",
            status=406,
        )

    async def delete(self, table: str, *, eq: dict[str, Any]) -> None:
        await self._enter("delete", table)
        table_rows = self.rows(table)
        for row_id in [i for i, r in table_rows.items() if self._matches(r, eq)]:
            del table_rows[row_id]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def store() -> FakeTableStore:
    return FakeTableStore()


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def repo(store: FakeTableStore, cache: QueryCache) -> PortfolioRepository:
    return PortfolioRepository(store, cache)


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        store_url="https://demo.supabase.co",
        store_key="anon-key",
        mail_service_id="service_env",
        mail_template_id="template_env",
        mail_public_key="public_env",
        config_path=str(tmp_path),
    )


@pytest.fixture
def project_fields() -> dict[str, Any]:
    return {
        "title": "Orbit",
        "description": "A satellite tracker.",
        "technologies": ["Python", "aiohttp"],
        "github": "https://github.com/example/orbit",
    }
