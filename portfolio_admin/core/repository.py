"""
The data-access layer: reads and writes for every record kind, kept coherent
with the query cache.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from portfolio_admin.api.protocol import Row, TableStore
from portfolio_admin.exceptions import (
    PortfolioError,
    StoreError,
    UnsupportedOperationError,
    ValidationError,
)
from portfolio_admin.models.records import (
    SETTINGS_ID,
    KindInfo,
    Record,
    RecordKind,
    Settings,
    field_errors,
)
from portfolio_admin.storage.cache import QueryCache, QueryState
from portfolio_admin.utils.structured_logger import (
    DataAccessLogger,
    StructuredLogger,
)

log = logging.getLogger(__name__)


class PortfolioRepository:
    """
    Read and write access to the portfolio records in the store.

    Reads go through the query cache. Every successful write invalidates the
    cache entry of its own kind, and only that one, so the next read of that
    kind goes back to the store. The entry is invalidated as soon as the
    store accepts the write, even if the returned row cannot be parsed.
    Failed writes leave cached data untouched. Writes are not serialized:
    with concurrent writes to one kind, the last response wins.
    """

    def __init__(
        self,
        store: TableStore,
        cache: Optional[QueryCache] = None,
        events: Optional[DataAccessLogger] = None,
    ):
        """
        Args:
            store: Any implementation of the table-store contract.
            cache: Query cache to read through; a private one is created otherwise.
            events: Structured event logger for reads and writes.
        """
        self.store = store
        self.cache = cache or QueryCache()
        self.events = events or DataAccessLogger(
            StructuredLogger("portfolio_admin.events", enable_json=False)
        )

    # Helpers
    @staticmethod
    def _collection(kind: RecordKind) -> KindInfo:
        info = kind.info
        if info.singleton:
            raise UnsupportedOperationError(
                f"{info.label} is a single record; use get_settings/upsert_settings."
            )
        return info

    @staticmethod
    def _validate(model: type[BaseModel], fields: Any) -> Any:
        try:
            return model.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError(field_errors(e)) from e

    @staticmethod
    def _parse(info: KindInfo, row: Row) -> Record:
        try:
            return info.record_model.model_validate(row)
        except PydanticValidationError as e:
            raise StoreError(
                f"Store returned an unexpected {info.table} row: {e.error_count()} "
                "invalid field(s)",
                details=str(e),
            ) from e

    def _invalidate(self, kind: RecordKind) -> None:
        self.cache.invalidate(kind.cache_key)
        self.events.cache_invalidated(kind.cache_key)

    async def _fetch_all(self, kind: RecordKind) -> List[Record]:
        info = kind.info
        start_time = time.monotonic()
        rows = await self.store.select(info.table, order=info.order)
        records = [self._parse(info, row) for row in rows]
        self.events.query_completed(
            kind.value, len(records), (time.monotonic() - start_time) * 1000
        )
        return records

    # Collections
    async def list(self, kind: RecordKind) -> QueryState:
        """
        Returns all records of a kind in the kind's default order.

        Store and network failures are not raised: they are reported in the
        returned state's ``error``, next to whatever data was cached before.
        """
        self._collection(kind)
        key = kind.cache_key
        try:
            data = await self.cache.fetch(key, lambda: self._fetch_all(kind))
        except PortfolioError as e:
            self.events.query_failed(kind.value, e)
            state = self.cache.state(key)
            state.error = e
            return state

        state = self.cache.state(key)
        return QueryState(
            data=data,
            error=None,
            is_loading=state.is_loading,
            is_stale=state.is_stale,
        )

    def peek(self, kind: RecordKind) -> QueryState:
        """Returns the cached state of a kind without fetching."""
        return self.cache.state(kind.cache_key)

    async def create(self, kind: RecordKind, fields: Dict[str, Any]) -> Record:
        """
        Validates and inserts a new record.

        Raises:
            ValidationError: If required fields are missing or malformed.
            StoreError: If the store rejects the insert.
            NetworkError: If the store could not be reached.
        """
        info = self._collection(kind)
        draft = self._validate(info.draft_model, fields)

        try:
            row = await self.store.insert(info.table, draft.to_row())
        except PortfolioError as e:
            self.events.mutation_failed(kind.value, "create", e)
            raise

        self._invalidate(kind)
        record = self._parse(info, row)
        self.events.mutation_completed(kind.value, "create", record.id)
        return record

    async def update(
        self, kind: RecordKind, record_id: int, fields: Dict[str, Any]
    ) -> Record:
        """
        Validates the provided fields and updates the record with that id.

        A missing record comes back from the store as a ``StoreError`` with
        the no-rows code; it is not reported any differently from other
        store rejections.
        """
        info = self._collection(kind)
        patch = self._validate(info.patch_model, fields)
        values = patch.to_row()
        if not values:
            raise ValidationError({"fields": "No fields to update"})

        try:
            row = await self.store.update(info.table, values, eq={"id": record_id})
        except PortfolioError as e:
            self.events.mutation_failed(kind.value, "update", e)
            raise

        self._invalidate(kind)
        record = self._parse(info, row)
        self.events.mutation_completed(kind.value, "update", record_id)
        return record

    async def remove(self, kind: RecordKind, record_id: int) -> None:
        """Deletes the record with that id. Deleting a missing id is not an error."""
        info = self._collection(kind)
        try:
            await self.store.delete(info.table, eq={"id": record_id})
        except PortfolioError as e:
            self.events.mutation_failed(kind.value, "delete", e)
            raise

        self._invalidate(kind)
        self.events.mutation_completed(kind.value, "delete", record_id)

    # Settings (singleton with id 1)
    async def get_settings(self) -> Settings:
        """
        Returns the settings record.

        If the store has no settings row yet, the defaults are returned and
        nothing is written.
        """
        return await self.cache.fetch(
            RecordKind.SETTINGS.cache_key, self._fetch_settings
        )

    async def _fetch_settings(self) -> Settings:
        info = RecordKind.SETTINGS.info
        try:
            row = await self.store.select(
                info.table, eq={"id": SETTINGS_ID}, single=True
            )
        except StoreError as e:
            if e.is_no_rows:
                log.debug("No settings row stored yet, using defaults.")
                return Settings.default()
            raise
        return self._parse(info, row)

    async def upsert_settings(self, fields: Dict[str, Any]) -> Settings:
        """
        Saves settings with a two-step protocol.

        1. Update the row with id 1.
        2. If the store reports that no row matched, insert it with id 1.

        The first save therefore costs one extra round trip, and there is no
        separate existence check.
        """
        kind = RecordKind.SETTINGS
        info = kind.info
        patch = self._validate(info.patch_model, fields)
        values = patch.to_row()
        if not values:
            raise ValidationError({"fields": "No fields to update"})

        try:
            try:
                row = await self.store.update(
                    info.table, values, eq={"id": SETTINGS_ID}
                )
            except StoreError as e:
                if not e.is_no_rows:
                    raise
                log.info("No settings row yet, creating it.")
                row = await self.store.insert(
                    info.table, {"id": SETTINGS_ID, **values}
                )
        except PortfolioError as e:
            self.events.mutation_failed(kind.value, "upsert", e)
            raise

        self._invalidate(kind)
        settings = self._parse(info, row)
        self.events.mutation_completed(kind.value, "upsert", SETTINGS_ID)
        return settings
