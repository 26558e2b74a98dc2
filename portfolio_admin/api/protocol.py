"""
The minimal table-oriented contract the data-access layer depends on.
"""

from dataclasses import dataclass
from typing import Any, Protocol

Row = dict[str, Any]


@dataclass(frozen=True)
class Order:
    """Sort order for a select."""

    column: str
    descending: bool = False

    def as_param(self) -> str:
        return f"{self.column}.{'desc' if self.descending else 'asc'}"


class TableStore(Protocol):
    """
    CRUD over named tables.

    Implementations raise ``StoreError`` when the store rejects a request and
    ``NetworkError`` when the request does not complete. A ``single`` select
    or an update that matches no rows raises ``StoreError`` with the
    ``NO_ROWS_CODE`` code. Deleting nothing is not an error.
    """

    async def select(
        self,
        table: str,
        *,
        order: Order | None = None,
        eq: dict[str, Any] | None = None,
        single: bool = False,
    ) -> list[Row] | Row: ...

    async def insert(self, table: str, row: Row) -> Row: ...

    async def update(self, table: str, values: Row, *, eq: dict[str, Any]) -> Row: ...

    async def delete(self, table: str, *, eq: dict[str, Any]) -> None: ...
