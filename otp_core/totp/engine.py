"""
HOTP/TOTP Engine
================
RFC 4226 counter-based and RFC 6238 time-based one-time passwords.

Code generation is delegated to pyotp (HMAC-SHA1, dynamic truncation,
8-byte big-endian counters), so codes match standard authenticator apps.
Secrets are validated with the local base32 codec first so malformed
input raises InvalidSecret instead of a binascii error.
"""

import time
from datetime import datetime, timezone
from typing import Optional, Union

import pyotp

from ..clock import ensure_utc
from ..exceptions import InvalidCharacter, InvalidSecret
from .base32 import base32_decode, base32_encode

DEFAULT_DIGITS = 6
DEFAULT_TIME_STEP = 30
DEFAULT_WINDOW = 1
MAX_COUNTER = 2 ** 64 - 1
MIN_SECRET_BYTES = 20  # 160 bits, the RFC 4226 recommendation

ForTime = Union[int, float, datetime, None]


def generate_secret(num_bytes: int = MIN_SECRET_BYTES) -> str:
    """Generate a random shared secret as base32 text (20 bytes -> 32 chars)."""
    if num_bytes < MIN_SECRET_BYTES:
        raise ValueError(f"num_bytes must be at least {MIN_SECRET_BYTES}")
    return pyotp.random_base32(length=-(-num_bytes * 8 // 5))


def decode_secret(secret: str) -> bytes:
    """
    Decode a base32 secret into key bytes.

    Raises:
        InvalidSecret: If the secret is not base32 or decodes to nothing
    """
    if not isinstance(secret, str):
        raise InvalidSecret("Secret must be base32 text")
    try:
        key = base32_decode(secret)
    except InvalidCharacter as e:
        raise InvalidSecret(f"Secret is not valid base32: {e}") from e
    if not key:
        raise InvalidSecret("Secret decodes to an empty key")
    return key


def _canonical_secret(secret: str) -> str:
    # pyotp decodes with base64.b32decode, which rejects some unpadded lengths
    return base32_encode(decode_secret(secret))


def _check_digits(digits: int) -> None:
    if digits < 1 or digits > 10:
        raise ValueError("digits must be between 1 and 10")


def _as_utc_datetime(for_time: ForTime) -> datetime:
    # pyotp reads naive datetimes as local time
    if for_time is None:
        return datetime.now(timezone.utc)
    if isinstance(for_time, datetime):
        return ensure_utc(for_time)
    return datetime.fromtimestamp(for_time, timezone.utc)


def generate_hotp(secret: str, counter: int, digits: int = DEFAULT_DIGITS) -> str:
    """
    Generate an HOTP code.

    Args:
        secret: Base32 shared secret
        counter: Moving factor, 0 <= counter < 2**64
        digits: Code length

    Returns:
        Zero-padded decimal code of length ``digits``
    """
    _check_digits(digits)
    if counter < 0 or counter > MAX_COUNTER:
        raise ValueError("counter must fit in an unsigned 64-bit integer")
    return pyotp.HOTP(_canonical_secret(secret), digits=digits).at(counter)


def timecode(for_time: ForTime = None, time_step: int = DEFAULT_TIME_STEP) -> int:
    """Counter value for a point in time (defaults to now, naive datetimes are UTC)."""
    if time_step <= 0:
        raise ValueError("time_step must be positive")
    if for_time is None:
        timestamp = time.time()
    elif isinstance(for_time, datetime):
        timestamp = ensure_utc(for_time).timestamp()
    else:
        timestamp = for_time
    return int(timestamp // time_step)


def generate_totp(
    secret: str,
    time_step: int = DEFAULT_TIME_STEP,
    digits: int = DEFAULT_DIGITS,
    for_time: ForTime = None,
) -> str:
    """Generate the TOTP code for ``for_time`` (defaults to now)."""
    _check_digits(digits)
    if time_step <= 0:
        raise ValueError("time_step must be positive")
    totp = pyotp.TOTP(_canonical_secret(secret), digits=digits, interval=time_step)
    return totp.at(_as_utc_datetime(for_time))


def verify_totp(
    secret: str,
    candidate: str,
    window: int = DEFAULT_WINDOW,
    time_step: int = DEFAULT_TIME_STEP,
    digits: int = DEFAULT_DIGITS,
    for_time: Optional[ForTime] = None,
) -> bool:
    """
    Verify a TOTP code, tolerating ``window`` steps of clock drift.

    Raises:
        InvalidSecret: If the secret is malformed
    """
    _check_digits(digits)
    if window < 0:
        raise ValueError("window must not be negative")
    if time_step <= 0:
        raise ValueError("time_step must be positive")

    totp = pyotp.TOTP(_canonical_secret(secret), digits=digits, interval=time_step)
    return totp.verify(str(candidate), for_time=_as_utc_datetime(for_time), valid_window=window)
