"""
Record Store Port
=================
Abstract persistence interface used by the OTP services.

Records are plain dicts keyed by field name. Lookups take a ``where``
mapping of field -> value (equality) or field -> LessThan(value)
(range, used for expiry sweeps).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncContextManager, Dict, List, Mapping, Optional

Record = Dict[str, Any]


@dataclass(frozen=True)
class LessThan:
    """Range predicate: field < value."""
    value: Any


def matches(record: Mapping[str, Any], where: Optional[Mapping[str, Any]]) -> bool:
    """Check a record against a ``where`` mapping."""
    if not where:
        return True
    for field, condition in where.items():
        actual = record.get(field)
        if isinstance(condition, LessThan):
            if actual is None or not actual < condition.value:
                return False
        elif actual != condition:
            return False
    return True


class RecordStore(ABC):
    """
    Persistence port for OTP records.

    Implementations must make each call atomic and enforce the unique
    indexes declared in ``otp_core.store.schema``.
    """

    @abstractmethod
    async def create(self, table: str, record: Mapping[str, Any]) -> str:
        """
        Insert a record and return its id.

        Raises:
            DuplicateRecord: If a unique index is violated
        """

    @abstractmethod
    async def find(self, table: str, where: Optional[Mapping[str, Any]] = None) -> List[Record]:
        """Return all records matching ``where``."""

    async def find_first(self, table: str, where: Optional[Mapping[str, Any]] = None) -> Optional[Record]:
        """Return the first record matching ``where``, or None."""
        records = await self.find(table, where)
        return records[0] if records else None

    @abstractmethod
    async def update(
        self,
        table: str,
        record_id: str,
        patch: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Apply ``patch`` to a record.

        When ``expected`` is given the update only applies if every
        listed field still holds the expected value (compare-and-swap).

        Returns:
            True if applied, False on conflict or missing record
        """

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> bool:
        """Delete a record by id. Returns whether it existed."""

    @abstractmethod
    async def delete_many(self, table: str, where: Mapping[str, Any]) -> int:
        """Delete all records matching ``where``. Returns the count."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager["RecordStore"]:
        """
        Open an atomic unit of work.

        Usage:
            async with store.transaction() as tx:
                await tx.delete_many(...)
                await tx.create(...)
        """
