"""
TOTP
====
Base32 codec, HOTP/TOTP engine and the TOTP account service.
"""

from .base32 import BASE32_ALPHABET, base32_decode, base32_encode
from .engine import (
    DEFAULT_DIGITS,
    DEFAULT_TIME_STEP,
    DEFAULT_WINDOW,
    decode_secret,
    generate_hotp,
    generate_secret,
    generate_totp,
    timecode,
    verify_totp,
)
from .uri import build_provisioning_uri
from .models import (
    TotpEnrollment,
    TotpSecret,
    TotpStatus,
    TotpVerification,
    VerificationError,
)
from .service import TotpService

__all__ = [
    # Codec
    "BASE32_ALPHABET",
    "base32_decode",
    "base32_encode",
    # Engine
    "DEFAULT_DIGITS",
    "DEFAULT_TIME_STEP",
    "DEFAULT_WINDOW",
    "decode_secret",
    "generate_hotp",
    "generate_secret",
    "generate_totp",
    "timecode",
    "verify_totp",
    "build_provisioning_uri",
    # Models
    "TotpEnrollment",
    "TotpSecret",
    "TotpStatus",
    "TotpVerification",
    "VerificationError",
    # Service
    "TotpService",
]
