"""
Unit Tests for the TOTP Account Service
=======================================
"""

import asyncio
import json

import pytest

from otp_core.exceptions import AlreadyEnabled, ConcurrentUpdateError, NotEnabled
from otp_core.store import TOTP_SECRETS, InMemoryStore
from otp_core.totp import (
    TotpService,
    VerificationError,
    generate_hotp,
    generate_totp,
    timecode,
)


class ConflictingStore(InMemoryStore):
    """Store whose conditional updates always lose."""

    async def update(self, table, record_id, patch, expected=None):
        return False


def code_outside_window(secret, now):
    """A 6-digit code that does not match any step in the window."""
    counter = timecode(now)
    valid = {generate_hotp(secret, counter + offset) for offset in (-1, 0, 1)}
    return next(c for c in ("000000", "111111", "222222", "333333") if c not in valid)


@pytest.fixture
def service(store, settings, clock):
    return TotpService(store, settings, clock=clock)


class TestEnable:
    """Tests for enrollment."""

    @pytest.mark.asyncio
    async def test_enable(self, service):
        """Should return secret, provisioning URI and 10 backup codes."""
        enrollment = await service.enable("user-1")

        assert len(enrollment.secret) == 32
        assert enrollment.provisioning_uri.startswith("otpauth://totp/SimpleAuth:user-1?secret=")
        assert enrollment.provisioning_uri.endswith("&issuer=SimpleAuth")
        assert len(enrollment.backup_codes) == 10
        assert all(len(code) == 8 for code in enrollment.backup_codes)

    @pytest.mark.asyncio
    async def test_backup_codes_stored_hashed(self, service, store):
        """Plaintext backup codes must never be persisted."""
        enrollment = await service.enable("user-1")

        record = await store.find_first(TOTP_SECRETS, {"identity": "user-1"})
        stored = json.loads(record["backup_codes"])

        assert len(stored) == 10
        assert not set(stored) & set(enrollment.backup_codes)
        assert all(entry.count(":") == 2 for entry in stored)
        assert record["created_at"] is not None

    @pytest.mark.asyncio
    async def test_enable_twice(self, service):
        """Second enable should raise AlreadyEnabled."""
        await service.enable("user-1")

        with pytest.raises(AlreadyEnabled) as exc_info:
            await service.enable("user-1")

        assert exc_info.value.code == "totp_already_enabled"

    @pytest.mark.asyncio
    async def test_concurrent_enable(self, service, store):
        """Only one of two racing enables succeeds."""
        results = await asyncio.gather(
            service.enable("user-1"),
            service.enable("user-1"),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyEnabled)
        assert len(await store.find(TOTP_SECRETS)) == 1

    @pytest.mark.asyncio
    async def test_reenable_after_disable(self, service):
        """Disable then enable issues a fresh secret."""
        first = await service.enable("user-1")
        await service.disable("user-1")
        second = await service.enable("user-1")

        assert second.secret != first.secret


class TestVerify:
    """Tests for TOTP code verification."""

    @pytest.mark.asyncio
    async def test_valid_code(self, service, clock):
        """Should accept the current code."""
        enrollment = await service.enable("user-1")
        code = generate_totp(enrollment.secret, for_time=clock())

        result = await service.verify("user-1", code)

        assert result.valid is True
        assert result.error is None

    @pytest.mark.asyncio
    async def test_invalid_code(self, service, clock):
        """Should report INVALID_CODE for a wrong code."""
        enrollment = await service.enable("user-1")

        result = await service.verify("user-1", code_outside_window(enrollment.secret, clock()))

        assert result.valid is False
        assert result.error is VerificationError.INVALID_CODE

    @pytest.mark.asyncio
    async def test_not_enabled(self, service):
        """Should report NOT_ENABLED for unknown identities."""
        result = await service.verify("nobody", "123456")

        assert result.valid is False
        assert result.error is VerificationError.NOT_ENABLED

    @pytest.mark.asyncio
    async def test_clock_drift(self, service, clock):
        """Codes one step old verify, codes two steps old do not."""
        enrollment = await service.enable("user-1")
        previous = generate_totp(enrollment.secret, for_time=clock().timestamp() - 30)
        older = generate_hotp(enrollment.secret, timecode(clock()) - 2)

        assert (await service.verify("user-1", previous)).valid is True
        if older not in {generate_hotp(enrollment.secret, timecode(clock()) + i) for i in (-1, 0, 1)}:
            assert (await service.verify("user-1", older)).valid is False

    @pytest.mark.asyncio
    async def test_naive_utc_clock(self, store, settings, clock):
        """A clock returning naive UTC datetimes still verifies current codes."""
        service = TotpService(store, settings, clock=lambda: clock().replace(tzinfo=None))
        enrollment = await service.enable("user-1")
        code = generate_totp(enrollment.secret, for_time=clock())

        assert (await service.verify("user-1", code)).valid is True

    @pytest.mark.asyncio
    async def test_code_is_reusable_within_step(self, service, clock):
        """Replay protection is out of scope: a code verifies repeatedly."""
        enrollment = await service.enable("user-1")
        code = generate_totp(enrollment.secret, for_time=clock())

        assert (await service.verify("user-1", code)).valid is True
        assert (await service.verify("user-1", code)).valid is True


class TestBackupCodes:
    """Tests for backup code consumption."""

    @pytest.mark.asyncio
    async def test_single_use(self, service):
        """A backup code works exactly once."""
        enrollment = await service.enable("user-1")
        code = enrollment.backup_codes[0]

        assert (await service.verify_backup_code("user-1", code)).valid is True

        second = await service.verify_backup_code("user-1", code)
        assert second.valid is False
        assert second.error is VerificationError.INVALID_BACKUP_CODE
        assert await service.remaining_backup_codes("user-1") == 9

    @pytest.mark.asyncio
    async def test_case_insensitive(self, service):
        """Lowercase input with whitespace is accepted."""
        enrollment = await service.enable("user-1")

        result = await service.verify_backup_code("user-1", f" {enrollment.backup_codes[3].lower()} ")

        assert result.valid is True

    @pytest.mark.asyncio
    async def test_wrong_code(self, service):
        """Unknown and wrong-length codes are rejected without consuming anything."""
        await service.enable("user-1")

        assert (await service.verify_backup_code("user-1", "short")).error is VerificationError.INVALID_BACKUP_CODE
        assert (await service.verify_backup_code("user-1", "!!!!!!!!")).error is VerificationError.INVALID_BACKUP_CODE
        assert await service.remaining_backup_codes("user-1") == 10

    @pytest.mark.asyncio
    async def test_not_enabled(self, service):
        """Backup codes for unknown identities report NOT_ENABLED."""
        result = await service.verify_backup_code("nobody", "AAAAAAAA")
        assert result.error is VerificationError.NOT_ENABLED

    @pytest.mark.asyncio
    async def test_concurrent_same_code(self, service):
        """Racing redemptions of one code: exactly one wins."""
        enrollment = await service.enable("user-1")
        code = enrollment.backup_codes[0]

        results = await asyncio.gather(*(
            service.verify_backup_code("user-1", code) for _ in range(3)
        ))

        assert sum(r.valid for r in results) == 1
        assert all(r.error is VerificationError.INVALID_BACKUP_CODE for r in results if not r.valid)
        assert await service.remaining_backup_codes("user-1") == 9

    @pytest.mark.asyncio
    async def test_concurrent_different_codes(self, service):
        """Racing redemptions of different codes both succeed."""
        enrollment = await service.enable("user-1")

        results = await asyncio.gather(
            service.verify_backup_code("user-1", enrollment.backup_codes[0]),
            service.verify_backup_code("user-1", enrollment.backup_codes[1]),
        )

        assert all(r.valid for r in results)
        assert await service.remaining_backup_codes("user-1") == 8

    @pytest.mark.asyncio
    async def test_conflicts_exhausted(self, settings, clock):
        """Should raise ConcurrentUpdateError once every attempt conflicts."""
        service = TotpService(ConflictingStore(), settings, clock=clock)
        enrollment = await service.enable("user-1")

        with pytest.raises(ConcurrentUpdateError) as exc_info:
            await service.verify_backup_code("user-1", enrollment.backup_codes[0])

        assert exc_info.value.attempts == settings.cas_max_attempts
        assert await service.remaining_backup_codes("user-1") == 10

    @pytest.mark.asyncio
    async def test_regenerate(self, service):
        """Regeneration replaces every code."""
        enrollment = await service.enable("user-1")
        await service.verify_backup_code("user-1", enrollment.backup_codes[0])

        fresh = await service.regenerate_backup_codes("user-1")

        assert len(fresh) == 10
        assert await service.remaining_backup_codes("user-1") == 10
        assert (await service.verify_backup_code("user-1", fresh[0])).valid is True
        if enrollment.backup_codes[1] not in fresh:
            old = await service.verify_backup_code("user-1", enrollment.backup_codes[1])
            assert old.valid is False

    @pytest.mark.asyncio
    async def test_regenerate_not_enabled(self, service):
        """Regeneration requires an enrollment."""
        with pytest.raises(NotEnabled):
            await service.regenerate_backup_codes("nobody")

    @pytest.mark.asyncio
    async def test_remaining_not_enabled(self, service):
        assert await service.remaining_backup_codes("nobody") == 0


class TestDisable:
    """Tests for disabling and status."""

    @pytest.mark.asyncio
    async def test_disable(self, service):
        """Disable removes the secret and all backup codes."""
        enrollment = await service.enable("user-1")

        assert await service.disable("user-1") is True
        assert (await service.status("user-1")).enabled is False

        result = await service.verify_backup_code("user-1", enrollment.backup_codes[0])
        assert result.error is VerificationError.NOT_ENABLED

    @pytest.mark.asyncio
    async def test_disable_not_enabled(self, service):
        """Disabling an identity without TOTP is a no-op."""
        assert await service.disable("nobody") is False

    @pytest.mark.asyncio
    async def test_require_disable(self, service):
        """require_disable raises NotEnabled when nothing was removed."""
        await service.enable("user-1")
        await service.require_disable("user-1")

        with pytest.raises(NotEnabled) as exc_info:
            await service.require_disable("user-1")

        assert exc_info.value.http_status == 400

    @pytest.mark.asyncio
    async def test_status(self, service):
        """Status tracks enable and disable."""
        assert (await service.status("user-1")).enabled is False
        await service.enable("user-1")
        assert (await service.status("user-1")).enabled is True
