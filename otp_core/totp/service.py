"""
TOTP Account Service
====================
Enable, verify and disable TOTP for an identity, including the
backup code lifecycle.

States per identity: disabled (no record) -> enabled (record exists).
``enable`` and ``disable`` are the only transitions.
"""

import asyncio
from typing import List, Optional

import structlog

from ..backup_codes import (
    generate_backup_codes,
    hash_backup_code,
    normalize_backup_code,
    verify_backup_code,
)
from ..clock import Clock, utc_now
from ..config import OTPSettings
from ..exceptions import AlreadyEnabled, ConcurrentUpdateError, DuplicateRecord, NotEnabled
from ..store import TOTP_SECRETS, RecordStore
from .engine import generate_secret, verify_totp
from .models import TotpEnrollment, TotpSecret, TotpStatus, TotpVerification, VerificationError
from .uri import build_provisioning_uri

logger = structlog.get_logger(__name__)


class TotpService:
    """TOTP enrollment and verification against a record store."""

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[OTPSettings] = None,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.settings = settings or OTPSettings()
        self._clock = clock

    async def _get_secret(self, identity: str) -> Optional[TotpSecret]:
        record = await self.store.find_first(TOTP_SECRETS, {"identity": identity})
        return TotpSecret.from_record(record) if record else None

    async def _hash_codes(self, codes: List[str]) -> List[str]:
        iterations = self.settings.pbkdf2_iterations
        return list(await asyncio.gather(
            *(hash_backup_code(code, iterations) for code in codes)
        ))

    async def _find_backup_code(self, candidate: str, hashes: List[str]) -> Optional[int]:
        """Index of the first stored hash matching ``candidate``."""
        if len(candidate) != self.settings.backup_code_length:
            return None
        for index, stored in enumerate(hashes):
            if await verify_backup_code(candidate, stored):
                return index
        return None

    async def enable(self, identity: str) -> TotpEnrollment:
        """
        Enable TOTP for an identity.

        Returns:
            TotpEnrollment with the secret, provisioning URI and the
            unhashed backup codes (never retrievable again)

        Raises:
            AlreadyEnabled: If the identity already has a TOTP secret
        """
        if await self._get_secret(identity) is not None:
            raise AlreadyEnabled()

        secret = generate_secret(self.settings.secret_bytes)
        backup_codes = generate_backup_codes(
            self.settings.backup_code_count,
            self.settings.backup_code_length,
        )
        hashes = await self._hash_codes(backup_codes)

        try:
            await self.store.create(TOTP_SECRETS, {
                "identity": identity,
                "secret": secret,
                "backup_codes": TotpSecret.encode_backup_codes(hashes),
                "created_at": self._clock(),
            })
        except DuplicateRecord as e:
            # Lost a race with a concurrent enable
            raise AlreadyEnabled() from e

        logger.info("TOTP enabled", identity=identity, backup_codes=len(backup_codes))

        return TotpEnrollment(
            secret=secret,
            provisioning_uri=build_provisioning_uri(secret, identity, self.settings.issuer),
            backup_codes=backup_codes,
        )

    async def verify(self, identity: str, code: str) -> TotpVerification:
        """Verify a TOTP code, allowing the configured clock-drift window."""
        record = await self._get_secret(identity)
        if record is None:
            return TotpVerification(valid=False, error=VerificationError.NOT_ENABLED)

        valid = verify_totp(
            record.secret,
            code.strip(),
            window=self.settings.window,
            time_step=self.settings.time_step,
            digits=self.settings.digits,
            for_time=self._clock(),
        )
        if not valid:
            logger.warning("Invalid TOTP code", identity=identity)
            return TotpVerification(valid=False, error=VerificationError.INVALID_CODE)
        return TotpVerification(valid=True)

    async def verify_backup_code(self, identity: str, code: str) -> TotpVerification:
        """
        Verify and consume a backup code.

        The matching hash is removed with a compare-and-swap against the
        snapshot that was verified. On conflict the record is re-read and
        re-verified, so a code consumed concurrently fails closed.

        Raises:
            ConcurrentUpdateError: If every attempt lost to concurrent writers
        """
        candidate = normalize_backup_code(code)
        attempts = self.settings.cas_max_attempts

        for attempt in range(1, attempts + 1):
            record = await self._get_secret(identity)
            if record is None:
                return TotpVerification(valid=False, error=VerificationError.NOT_ENABLED)

            index = await self._find_backup_code(candidate, record.backup_codes)
            if index is None:
                logger.warning("Invalid backup code", identity=identity)
                return TotpVerification(valid=False, error=VerificationError.INVALID_BACKUP_CODE)

            remaining = record.backup_codes[:index] + record.backup_codes[index + 1:]
            applied = await self.store.update(
                TOTP_SECRETS,
                record.id,
                {"backup_codes": TotpSecret.encode_backup_codes(remaining)},
                expected={"backup_codes": record.snapshot},
            )
            if applied:
                logger.info("Backup code consumed", identity=identity, remaining=len(remaining))
                return TotpVerification(valid=True)

            logger.warning("Backup code update conflicted", identity=identity, attempt=attempt)

        raise ConcurrentUpdateError(
            f"Backup code update for '{identity}' conflicted {attempts} times",
            attempts=attempts,
        )

    async def regenerate_backup_codes(self, identity: str) -> List[str]:
        """
        Replace the whole backup code set.

        Raises:
            NotEnabled: If the identity has no TOTP secret
            ConcurrentUpdateError: If every attempt lost to concurrent writers
        """
        backup_codes = generate_backup_codes(
            self.settings.backup_code_count,
            self.settings.backup_code_length,
        )
        encoded = TotpSecret.encode_backup_codes(await self._hash_codes(backup_codes))
        attempts = self.settings.cas_max_attempts

        for attempt in range(1, attempts + 1):
            record = await self._get_secret(identity)
            if record is None:
                raise NotEnabled()

            applied = await self.store.update(
                TOTP_SECRETS,
                record.id,
                {"backup_codes": encoded},
                expected={"backup_codes": record.snapshot},
            )
            if applied:
                logger.info("Backup codes regenerated", identity=identity)
                return backup_codes

            logger.warning("Backup code regeneration conflicted", identity=identity, attempt=attempt)

        raise ConcurrentUpdateError(
            f"Backup code regeneration for '{identity}' conflicted {attempts} times",
            attempts=attempts,
        )

    async def remaining_backup_codes(self, identity: str) -> int:
        """Number of unused backup codes (0 when TOTP is not enabled)."""
        record = await self._get_secret(identity)
        return len(record.backup_codes) if record else 0

    async def disable(self, identity: str) -> bool:
        """Delete the TOTP secret. Returns whether one existed."""
        record = await self._get_secret(identity)
        if record is None:
            return False

        deleted = await self.store.delete(TOTP_SECRETS, record.id)
        if deleted:
            logger.info("TOTP disabled", identity=identity)
        return deleted

    async def require_disable(self, identity: str) -> None:
        """
        Disable TOTP, treating "not enabled" as an error.

        Raises:
            NotEnabled: If there was nothing to disable
        """
        if not await self.disable(identity):
            raise NotEnabled()

    async def status(self, identity: str) -> TotpStatus:
        record = await self._get_secret(identity)
        return TotpStatus(enabled=record is not None)
