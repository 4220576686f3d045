"""
In-Memory Record Store
======================
Dict-backed store for development and testing.
"""

import asyncio
import copy
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

import structlog

from ..exceptions import DuplicateRecord
from .base import Record, RecordStore, matches
from .schema import TABLES, TableSpec

logger = structlog.get_logger(__name__)


class InMemoryStore(RecordStore):
    """
    In-memory record store.

    All calls are serialized by one asyncio lock. Transactions hold the
    lock for their whole duration and roll back on error.
    For development and testing only; use SQLAlchemyStore in production.
    """

    def __init__(self, tables: Optional[Mapping[str, TableSpec]] = None):
        self._specs: Dict[str, TableSpec] = dict(tables or TABLES)
        self._tables: Dict[str, Dict[str, Record]] = {name: {} for name in self._specs}
        self._lock = asyncio.Lock()

    def _rows(self, table: str) -> Dict[str, Record]:
        if table not in self._tables:
            raise ValueError(f"Unknown table: {table}")
        return self._tables[table]

    def _create(self, table: str, record: Mapping[str, Any]) -> str:
        rows = self._rows(table)
        row = dict(record)
        row.setdefault("id", str(uuid.uuid4()))

        if row["id"] in rows:
            raise DuplicateRecord(table, "id")
        for field in self._specs[table].unique:
            if any(existing.get(field) == row.get(field) for existing in rows.values()):
                raise DuplicateRecord(table, field)

        rows[row["id"]] = row
        return row["id"]

    def _find(self, table: str, where: Optional[Mapping[str, Any]]) -> List[Record]:
        return [
            dict(row) for row in self._rows(table).values()
            if matches(row, where)
        ]

    def _update(
        self,
        table: str,
        record_id: str,
        patch: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]],
    ) -> bool:
        rows = self._rows(table)
        row = rows.get(record_id)
        if row is None:
            return False
        if expected and not matches(row, expected):
            logger.debug("Conditional update rejected", table=table, record_id=record_id)
            return False

        for field in self._specs[table].unique:
            if field in patch and any(
                other_id != record_id and other.get(field) == patch[field]
                for other_id, other in rows.items()
            ):
                raise DuplicateRecord(table, field)

        row.update(patch)
        return True

    def _delete(self, table: str, record_id: str) -> bool:
        return self._rows(table).pop(record_id, None) is not None

    def _delete_many(self, table: str, where: Mapping[str, Any]) -> int:
        rows = self._rows(table)
        doomed = [record_id for record_id, row in rows.items() if matches(row, where)]
        for record_id in doomed:
            del rows[record_id]
        return len(doomed)

    async def create(self, table: str, record: Mapping[str, Any]) -> str:
        async with self._lock:
            return self._create(table, record)

    async def find(self, table: str, where: Optional[Mapping[str, Any]] = None) -> List[Record]:
        async with self._lock:
            return self._find(table, where)

    async def update(
        self,
        table: str,
        record_id: str,
        patch: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        async with self._lock:
            return self._update(table, record_id, patch, expected)

    async def delete(self, table: str, record_id: str) -> bool:
        async with self._lock:
            return self._delete(table, record_id)

    async def delete_many(self, table: str, where: Mapping[str, Any]) -> int:
        async with self._lock:
            return self._delete_many(table, where)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[RecordStore]:
        async with self._lock:
            snapshot = copy.deepcopy(self._tables)
            try:
                yield _LockedStore(self)
            except BaseException:
                self._tables = snapshot
                raise


class _LockedStore(RecordStore):
    """View of an InMemoryStore whose lock is already held."""

    def __init__(self, owner: InMemoryStore):
        self._owner = owner

    async def create(self, table: str, record: Mapping[str, Any]) -> str:
        return self._owner._create(table, record)

    async def find(self, table: str, where: Optional[Mapping[str, Any]] = None) -> List[Record]:
        return self._owner._find(table, where)

    async def update(
        self,
        table: str,
        record_id: str,
        patch: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        return self._owner._update(table, record_id, patch, expected)

    async def delete(self, table: str, record_id: str) -> bool:
        return self._owner._delete(table, record_id)

    async def delete_many(self, table: str, where: Mapping[str, Any]) -> int:
        return self._owner._delete_many(table, where)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[RecordStore]:
        yield self
