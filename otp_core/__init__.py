"""
OTP Core Library
================
One-time password primitives: HOTP/TOTP, backup codes and expiring
single-use tokens over a pluggable record store.
"""

__version__ = "0.1.0"

# Config
from otp_core.config import OTPSettings

# Errors
from otp_core.exceptions import (
    OTPCoreError,
    InvalidCharacter,
    InvalidSecret,
    MalformedBackupCodeHash,
    AlreadyEnabled,
    NotEnabled,
    TokenInvalid,
    TokenExpired,
    ConcurrentUpdateError,
    DuplicateRecord,
)

# TOTP
from otp_core.totp import (
    base32_encode,
    base32_decode,
    generate_secret,
    generate_hotp,
    generate_totp,
    verify_totp,
    build_provisioning_uri,
    TotpService,
    TotpEnrollment,
    TotpStatus,
    TotpVerification,
    VerificationError,
)

# Backup Codes
from otp_core.backup_codes import (
    generate_backup_code,
    hash_backup_code,
    verify_backup_code,
    hash_backup_code_sync,
    verify_backup_code_sync,
)

# One-Time Tokens
from otp_core.ott import (
    OttService,
    OttType,
    GeneratedToken,
    TokenError,
    TokenValidation,
)

# Stores
from otp_core.store import (
    RecordStore,
    LessThan,
    InMemoryStore,
    SQLAlchemyStore,
    create_store_engine,
    create_tables,
)

# Logging
from otp_core.log_setup import configure_logging

__all__ = [
    # Config
    "OTPSettings",
    # Errors
    "OTPCoreError",
    "InvalidCharacter",
    "InvalidSecret",
    "MalformedBackupCodeHash",
    "AlreadyEnabled",
    "NotEnabled",
    "TokenInvalid",
    "TokenExpired",
    "ConcurrentUpdateError",
    "DuplicateRecord",
    # TOTP
    "base32_encode",
    "base32_decode",
    "generate_secret",
    "generate_hotp",
    "generate_totp",
    "verify_totp",
    "build_provisioning_uri",
    "TotpService",
    "TotpEnrollment",
    "TotpStatus",
    "TotpVerification",
    "VerificationError",
    # Backup Codes
    "generate_backup_code",
    "hash_backup_code",
    "verify_backup_code",
    "hash_backup_code_sync",
    "verify_backup_code_sync",
    # One-Time Tokens
    "OttService",
    "OttType",
    "GeneratedToken",
    "TokenError",
    "TokenValidation",
    # Stores
    "RecordStore",
    "LessThan",
    "InMemoryStore",
    "SQLAlchemyStore",
    "create_store_engine",
    "create_tables",
    # Logging
    "configure_logging",
]
