"""
One-Time Token Models
=====================
Token types, stored records and validation results.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..clock import ensure_utc
from ..exceptions import TokenExpired, TokenInvalid


class OttType(str, Enum):
    """Purpose a one-time token was issued for."""
    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"
    PASSWORDLESS_LOGIN = "passwordless_login"


class TokenError(str, Enum):
    """Why a token failed validation."""
    INVALID = "token_invalid"
    EXPIRED = "token_expired"


@dataclass
class OneTimeToken:
    """A stored one-time token."""
    id: str
    identity: str
    token: str
    type: OttType
    expires_at: datetime
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "OneTimeToken":
        created_at = record.get("created_at")
        return cls(
            id=record["id"],
            identity=record["identity"],
            token=record["token"],
            type=OttType(record["type"]),
            expires_at=ensure_utc(record["expires_at"]),
            created_at=ensure_utc(created_at) if created_at else None,
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass
class GeneratedToken:
    """A freshly issued token, to be delivered to the user."""
    token: str
    expires_at: datetime


@dataclass
class TokenValidation:
    """Outcome of validating a one-time token."""
    valid: bool
    error: Optional[TokenError] = None

    def raise_for_error(self) -> None:
        """
        Raise the matching exception for a failed validation.

        Raises:
            TokenExpired: If the token matched but had expired
            TokenInvalid: If no live token matched
        """
        if self.error is TokenError.EXPIRED:
            raise TokenExpired()
        if self.error is TokenError.INVALID:
            raise TokenInvalid()
