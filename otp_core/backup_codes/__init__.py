"""
Backup Codes
============
Single-use recovery codes: generation, PBKDF2 hashing and verification.
"""

from .generator import (
    BACKUP_CODE_ALPHABET,
    BACKUP_CODE_LENGTH,
    generate_backup_code,
    generate_backup_codes,
    normalize_backup_code,
)
from .hashing import (
    PBKDF2_ITERATIONS,
    hash_backup_code,
    hash_backup_code_sync,
    parse_stored_hash,
    verify_backup_code,
    verify_backup_code_sync,
)

__all__ = [
    # Generator
    "BACKUP_CODE_ALPHABET",
    "BACKUP_CODE_LENGTH",
    "generate_backup_code",
    "generate_backup_codes",
    "normalize_backup_code",
    # Hashing
    "PBKDF2_ITERATIONS",
    "hash_backup_code",
    "hash_backup_code_sync",
    "parse_stored_hash",
    "verify_backup_code",
    "verify_backup_code_sync",
]
