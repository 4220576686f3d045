"""
Record Stores
=============
Persistence port and its in-memory and SQLAlchemy adapters.
"""

from .base import LessThan, Record, RecordStore, matches
from .schema import ONE_TIME_TOKENS, TABLES, TOTP_SECRETS, TableSpec
from .in_memory import InMemoryStore
from .sql_models import Base, OneTimeTokenRow, TotpSecretRow
from .sqlalchemy_store import SQLAlchemyStore, create_store_engine, create_tables

__all__ = [
    # Port
    "LessThan",
    "Record",
    "RecordStore",
    "matches",
    # Schema
    "ONE_TIME_TOKENS",
    "TABLES",
    "TOTP_SECRETS",
    "TableSpec",
    # Adapters
    "InMemoryStore",
    "SQLAlchemyStore",
    "create_store_engine",
    "create_tables",
    # SQL models
    "Base",
    "OneTimeTokenRow",
    "TotpSecretRow",
]
