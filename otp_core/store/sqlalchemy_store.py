"""
SQLAlchemy Record Store
=======================
Async SQLAlchemy implementation of the record store port.

Compare-and-swap updates are expressed as
``UPDATE ... WHERE id = :id AND <field> = :expected`` and judged by the
affected row count, so concurrent writers cannot overwrite each other.
"""

import re
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, List, Mapping, Optional

import structlog
from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from ..clock import ensure_utc
from ..exceptions import DuplicateRecord
from .base import LessThan, Record, RecordStore
from .sql_models import Base

logger = structlog.get_logger(__name__)


def create_store_engine(
    database_url: str,
    echo: bool = False,
    pool_pre_ping: bool = True,
    **kwargs: Any,
) -> AsyncEngine:
    """
    Create an async engine for the record store.

    Args:
        database_url: Async connection string (postgresql+asyncpg://..., sqlite+aiosqlite://...)
        echo: Log SQL statements
        pool_pre_ping: Enable connection health checks
        **kwargs: Passed through to SQLAlchemy (pool_size, max_overflow, ...)
    """
    engine = create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=pool_pre_ping,
        **kwargs,
    )
    logger.info("Record store engine created", dialect=engine.dialect.name)
    return engine


async def create_tables(engine: AsyncEngine) -> None:
    """Create the OTP tables and indexes if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _is_unique_violation(message: str) -> bool:
    lowered = message.lower()
    return "unique" in lowered or "duplicate" in lowered


def _duplicate_field(table: Table, message: str) -> Optional[str]:
    """
    Name the column behind a unique violation from the driver message.

    PostgreSQL and MySQL report the constraint or index name, SQLite
    reports ``table.column``. Returns None when neither is recognised.
    """
    for index in table.indexes:
        if index.unique and index.name and re.search(rf"\b{re.escape(index.name)}\b", message):
            return ",".join(column.name for column in index.columns)
    if f"{table.name}_pkey" in message or "'PRIMARY'" in message:
        return "id"
    for column in table.columns:
        if re.search(rf"\b{re.escape(table.name)}\.{re.escape(column.name)}\b", message):
            return column.name
    return None


def _to_record(row) -> Record:
    record = dict(row._mapping)
    for key, value in record.items():
        if isinstance(value, datetime):
            record[key] = ensure_utc(value)
    return record


class SQLAlchemyStore(RecordStore):
    """Record store backed by an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine, connection: Optional[AsyncConnection] = None):
        self._engine = engine
        self._connection = connection

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[AsyncConnection]:
        if self._connection is not None:
            yield self._connection
        else:
            async with self._engine.begin() as conn:
                yield conn

    def _table(self, name: str) -> Table:
        try:
            return Base.metadata.tables[name]
        except KeyError:
            raise ValueError(f"Unknown table: {name}")

    def _conditions(self, table: Table, where: Optional[Mapping[str, Any]]) -> list:
        conditions = []
        for field, condition in (where or {}).items():
            column = table.c[field]
            if isinstance(condition, LessThan):
                conditions.append(column < condition.value)
            else:
                conditions.append(column == condition)
        return conditions

    async def create(self, table: str, record: Mapping[str, Any]) -> str:
        sql_table = self._table(table)
        values = dict(record)
        values.setdefault("id", str(uuid.uuid4()))

        try:
            async with self._connect() as conn:
                await conn.execute(insert(sql_table).values(**values))
        except IntegrityError as e:
            message = str(e.orig)
            if not _is_unique_violation(message):
                raise
            raise DuplicateRecord(table, _duplicate_field(sql_table, message)) from e
        return values["id"]

    async def find(self, table: str, where: Optional[Mapping[str, Any]] = None) -> List[Record]:
        sql_table = self._table(table)
        stmt = select(sql_table).where(*self._conditions(sql_table, where))
        async with self._connect() as conn:
            result = await conn.execute(stmt)
            return [_to_record(row) for row in result]

    async def update(
        self,
        table: str,
        record_id: str,
        patch: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        sql_table = self._table(table)
        stmt = (
            update(sql_table)
            .where(sql_table.c.id == record_id, *self._conditions(sql_table, expected))
            .values(**patch)
        )
        async with self._connect() as conn:
            result = await conn.execute(stmt)

        applied = result.rowcount == 1
        if not applied:
            logger.debug("Conditional update rejected", table=table, record_id=record_id)
        return applied

    async def delete(self, table: str, record_id: str) -> bool:
        sql_table = self._table(table)
        async with self._connect() as conn:
            result = await conn.execute(delete(sql_table).where(sql_table.c.id == record_id))
        return result.rowcount > 0

    async def delete_many(self, table: str, where: Mapping[str, Any]) -> int:
        sql_table = self._table(table)
        stmt = delete(sql_table).where(*self._conditions(sql_table, where))
        async with self._connect() as conn:
            result = await conn.execute(stmt)
        return result.rowcount

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[RecordStore]:
        if self._connection is not None:
            yield self
        else:
            async with self._engine.begin() as conn:
                yield SQLAlchemyStore(self._engine, connection=conn)
