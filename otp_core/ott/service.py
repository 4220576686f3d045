"""
One-Time Token Service
======================
Short-lived, single-use, purpose-scoped tokens for email verification,
password reset and passwordless login.

At most one live token exists per (identity, type): generating a token
replaces any earlier one of the same type. A token is deleted on every
validation that matches it, whether it was still valid or expired.
"""

import hmac
from datetime import timedelta
from typing import List, Optional, Union

import structlog

from ..backup_codes import generate_backup_code
from ..clock import Clock, utc_now
from ..config import OTPSettings
from ..exceptions import DuplicateRecord
from ..store import ONE_TIME_TOKENS, LessThan, RecordStore
from .models import GeneratedToken, OneTimeToken, OttType, TokenError, TokenValidation

logger = structlog.get_logger(__name__)


class OttService:
    """Issues and validates one-time tokens against a record store."""

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[OTPSettings] = None,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.settings = settings or OTPSettings()
        self._clock = clock

    async def generate(
        self,
        identity: str,
        token_type: Union[OttType, str],
        duration_minutes: Optional[int] = None,
    ) -> GeneratedToken:
        """
        Issue a token, invalidating earlier tokens of the same type.

        Args:
            identity: Owner of the token
            token_type: Purpose of the token
            duration_minutes: Lifetime (defaults to the configured 15 minutes)

        Returns:
            GeneratedToken with the token and its expiry
        """
        token_type = OttType(token_type)
        if duration_minutes is None:
            duration_minutes = self.settings.token_duration_minutes
        if duration_minutes < 0:
            raise ValueError("duration_minutes must not be negative")

        attempts = self.settings.token_create_attempts
        last_error: Optional[DuplicateRecord] = None
        for attempt in range(1, attempts + 1):
            token = generate_backup_code(self.settings.token_length)
            now = self._clock()
            expires_at = now + timedelta(minutes=duration_minutes)

            try:
                async with self.store.transaction() as tx:
                    replaced = await tx.delete_many(ONE_TIME_TOKENS, {
                        "identity": identity,
                        "type": token_type.value,
                    })
                    await tx.create(ONE_TIME_TOKENS, {
                        "identity": identity,
                        "token": token,
                        "type": token_type.value,
                        "expires_at": expires_at,
                        "created_at": now,
                    })
            except DuplicateRecord as e:
                # Token collided with another live token; the transaction rolled back
                last_error = e
                logger.warning("Token collision", attempt=attempt, attempts=attempts)
                continue

            logger.info(
                "One-time token generated",
                identity=identity,
                type=token_type.value,
                replaced=replaced,
                expires_at=expires_at.isoformat(),
            )
            return GeneratedToken(token=token, expires_at=expires_at)

        if last_error is None:
            raise ValueError("token_create_attempts must be at least 1")
        raise last_error

    async def validate(
        self,
        identity: str,
        token: str,
        token_type: Union[OttType, str],
    ) -> TokenValidation:
        """
        Validate and consume a token.

        Comparison is case-insensitive. A matched token is deleted
        whether or not it has expired; a non-matching candidate deletes
        nothing.
        """
        token_type = OttType(token_type)
        candidate = token.strip().upper().encode()

        records = await self.store.find(ONE_TIME_TOKENS, {
            "identity": identity,
            "type": token_type.value,
        })
        match = next(
            (r for r in records if hmac.compare_digest(r["token"].encode(), candidate)),
            None,
        )
        if match is None:
            logger.warning("Invalid one-time token", identity=identity, type=token_type.value)
            return TokenValidation(valid=False, error=TokenError.INVALID)

        record = OneTimeToken.from_record(match)
        if not await self.store.delete(ONE_TIME_TOKENS, record.id):
            # Consumed by a concurrent validation
            return TokenValidation(valid=False, error=TokenError.INVALID)

        if record.is_expired(self._clock()):
            logger.warning("Expired one-time token", identity=identity, type=token_type.value)
            return TokenValidation(valid=False, error=TokenError.EXPIRED)

        logger.info("One-time token validated", identity=identity, type=token_type.value)
        return TokenValidation(valid=True)

    async def cleanup_expired_tokens(self) -> int:
        """Delete every token whose expiry has passed. Returns the count."""
        deleted = await self.store.delete_many(ONE_TIME_TOKENS, {
            "expires_at": LessThan(self._clock()),
        })
        logger.info("Expired one-time tokens cleaned up", deleted=deleted)
        return deleted

    async def invalidate_tokens(self, identity: str, token_type: Union[OttType, str]) -> int:
        """Delete all tokens for (identity, type) without validating them."""
        token_type = OttType(token_type)
        deleted = await self.store.delete_many(ONE_TIME_TOKENS, {
            "identity": identity,
            "type": token_type.value,
        })
        logger.info(
            "One-time tokens invalidated",
            identity=identity,
            type=token_type.value,
            deleted=deleted,
        )
        return deleted

    async def list_tokens(
        self,
        identity: Optional[str] = None,
        token_type: Optional[Union[OttType, str]] = None,
    ) -> List[OneTimeToken]:
        """List stored tokens, optionally filtered by identity and type."""
        where = {}
        if identity is not None:
            where["identity"] = identity
        if token_type is not None:
            where["type"] = OttType(token_type).value
        records = await self.store.find(ONE_TIME_TOKENS, where)
        return [OneTimeToken.from_record(r) for r in records]
