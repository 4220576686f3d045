"""
TOTP Models
===========
Records and results for the TOTP account service.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class VerificationError(str, Enum):
    """Why a TOTP or backup code verification failed."""
    NOT_ENABLED = "totp_not_enabled"
    INVALID_CODE = "totp_invalid_code"
    INVALID_BACKUP_CODE = "backup_code_invalid"


@dataclass
class TotpSecret:
    """Stored TOTP enrollment for one identity."""
    id: str
    identity: str
    secret: str
    backup_codes: List[str]
    created_at: Optional[datetime] = None
    # Raw stored backup_codes value, used as the compare-and-swap snapshot
    snapshot: str = field(default="", repr=False)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TotpSecret":
        return cls(
            id=record["id"],
            identity=record["identity"],
            secret=record["secret"],
            backup_codes=json.loads(record["backup_codes"] or "[]"),
            created_at=record.get("created_at"),
            snapshot=record["backup_codes"],
        )

    @staticmethod
    def encode_backup_codes(hashes: List[str]) -> str:
        """Serialize backup code hashes for storage."""
        return json.dumps(hashes, separators=(",", ":"))


@dataclass
class TotpEnrollment:
    """Result of enabling TOTP. Backup codes are shown to the user once."""
    secret: str
    provisioning_uri: str
    backup_codes: List[str]


@dataclass
class TotpVerification:
    """Outcome of a TOTP or backup code check."""
    valid: bool
    error: Optional[VerificationError] = None


@dataclass
class TotpStatus:
    """Whether TOTP is enabled for an identity."""
    enabled: bool
