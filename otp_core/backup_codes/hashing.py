"""
Backup Code Hashing
===================
PBKDF2-HMAC-SHA256 hashing for backup codes.

Stored form is self-describing, ``salthex:iterations:hashhex``, so
raising the iteration count later does not invalidate existing hashes.
The async variants run the key derivation in the default executor to
avoid blocking the event loop.
"""

import asyncio
import hashlib
import hmac
import secrets
from typing import Tuple

from ..exceptions import MalformedBackupCodeHash

PBKDF2_ITERATIONS = 100_000
SALT_BYTES = 16
KEY_BYTES = 32


def _derive(code: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", code.encode("utf-8"), salt, iterations, dklen=KEY_BYTES)


def parse_stored_hash(stored: str) -> Tuple[bytes, int, bytes]:
    """
    Split a stored hash into (salt, iterations, derived_key).

    Raises:
        MalformedBackupCodeHash: If the value is not ``salt:iterations:hash``
    """
    parts = stored.split(":") if isinstance(stored, str) else []
    if len(parts) != 3:
        raise MalformedBackupCodeHash("Expected 'salt:iterations:hash'")

    salt_hex, iterations_str, hash_hex = parts
    try:
        salt = bytes.fromhex(salt_hex)
        iterations = int(iterations_str)
        derived = bytes.fromhex(hash_hex)
    except ValueError as e:
        raise MalformedBackupCodeHash(f"Unparseable backup code hash: {e}") from e

    if not salt or not derived or iterations <= 0:
        raise MalformedBackupCodeHash("Backup code hash has empty fields")
    return salt, iterations, derived


def hash_backup_code_sync(code: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """
    Hash a backup code with a fresh random salt.

    Returns:
        ``salthex:iterations:hashhex``
    """
    if iterations <= 0:
        raise ValueError("iterations must be positive")
    salt = secrets.token_bytes(SALT_BYTES)
    derived = _derive(code, salt, iterations)
    return f"{salt.hex()}:{iterations}:{derived.hex()}"


def verify_backup_code_sync(code: str, stored: str) -> bool:
    """
    Verify a backup code against its stored hash.

    Uses constant-time comparison to prevent timing attacks.
    """
    salt, iterations, expected = parse_stored_hash(stored)
    computed = _derive(code, salt, iterations)
    return hmac.compare_digest(computed, expected)


async def hash_backup_code(code: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Async version of hash_backup_code_sync."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, hash_backup_code_sync, code, iterations)


async def verify_backup_code(code: str, stored: str) -> bool:
    """Async version of verify_backup_code_sync."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, verify_backup_code_sync, code, stored)
