"""
Backup Code Generator
=====================
Random single-use recovery codes.
"""

import secrets
from typing import List

BACKUP_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
BACKUP_CODE_LENGTH = 8


def generate_backup_code(length: int = BACKUP_CODE_LENGTH) -> str:
    """Generate an uppercase alphanumeric code from a CSPRNG."""
    return "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(length))


def generate_backup_codes(count: int = 10, length: int = BACKUP_CODE_LENGTH) -> List[str]:
    """Generate ``count`` backup codes."""
    return [generate_backup_code(length) for _ in range(count)]


def normalize_backup_code(code: str) -> str:
    """Normalize user input for comparison (codes are stored uppercase)."""
    return code.strip().upper()
