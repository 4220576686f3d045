"""
Store Schema
============
Logical tables used by the TOTP and one-time token services.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

TOTP_SECRETS = "totp_secret"
ONE_TIME_TOKENS = "one_time_token"


@dataclass(frozen=True)
class TableSpec:
    """Fields and unique indexes of a logical table."""
    name: str
    fields: Tuple[str, ...]
    unique: Tuple[str, ...] = ()


TABLES: Dict[str, TableSpec] = {
    TOTP_SECRETS: TableSpec(
        name=TOTP_SECRETS,
        fields=("id", "identity", "secret", "backup_codes", "created_at"),
        unique=("identity",),
    ),
    ONE_TIME_TOKENS: TableSpec(
        name=ONE_TIME_TOKENS,
        fields=("id", "identity", "token", "type", "expires_at", "created_at"),
        unique=("token",),
    ),
}
