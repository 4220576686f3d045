"""
OTP Core Exceptions
===================
Error taxonomy shared by the codec, engine, services and stores.

Each error carries a stable ``code`` and an ``http_status`` hint so a
routing layer can map it to a response without inspecting messages.
"""

from typing import Optional


class OTPCoreError(Exception):
    """Base exception for all otp_core errors."""
    code = "otp_core_error"
    http_status = 500

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


# Programming / data errors

class InvalidCharacter(OTPCoreError, ValueError):
    """Encountered a character outside the base32 alphabet."""
    code = "invalid_character"

    def __init__(self, character: str, position: int):
        self.character = character
        self.position = position
        super().__init__(f"Invalid base32 character {character!r} at position {position}")


class InvalidSecret(OTPCoreError, ValueError):
    """The shared secret is not valid base32 or decodes to nothing."""
    code = "invalid_secret"


class MalformedBackupCodeHash(OTPCoreError, ValueError):
    """A stored backup code hash could not be parsed."""
    code = "malformed_backup_code_hash"


# State violations

class AlreadyEnabled(OTPCoreError):
    """TOTP already enabled for this identity."""
    code = "totp_already_enabled"
    http_status = 400


class NotEnabled(OTPCoreError):
    """TOTP not enabled for this identity."""
    code = "totp_not_enabled"
    http_status = 400


# Validation misses

class TokenInvalid(OTPCoreError):
    """Invalid token."""
    code = "token_invalid"
    http_status = 401


class TokenExpired(OTPCoreError):
    """Token has expired."""
    code = "token_expired"
    http_status = 410


# Store / concurrency

class ConcurrentUpdateError(OTPCoreError):
    """A compare-and-swap update kept losing to concurrent writers."""
    code = "concurrent_update"
    http_status = 409

    def __init__(self, message: Optional[str] = None, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class DuplicateRecord(OTPCoreError):
    """A record violated a unique index."""
    code = "duplicate_record"
    http_status = 409

    def __init__(self, table: str, field: Optional[str] = None):
        self.table = table
        self.field = field
        if field is None:
            super().__init__(f"Duplicate value for a unique field in '{table}'")
        else:
            super().__init__(f"Duplicate value for unique field '{field}' in '{table}'")
