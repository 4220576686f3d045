"""
OTP Core Configuration
======================
Settings for TOTP enrollment, backup codes and one-time tokens.
"""

import os
from dataclasses import dataclass


@dataclass
class OTPSettings:
    """Configuration for the TOTP and one-time token services."""
    issuer: str = os.environ.get("OTP_ISSUER", "SimpleAuth")

    # TOTP
    digits: int = int(os.environ.get("OTP_TOTP_DIGITS", "6"))
    time_step: int = int(os.environ.get("OTP_TOTP_TIME_STEP", "30"))  # seconds
    window: int = int(os.environ.get("OTP_TOTP_WINDOW", "1"))  # steps either side
    secret_bytes: int = int(os.environ.get("OTP_SECRET_BYTES", "20"))

    # Backup codes
    backup_code_count: int = int(os.environ.get("OTP_BACKUP_CODE_COUNT", "10"))
    backup_code_length: int = 8
    pbkdf2_iterations: int = int(os.environ.get("OTP_PBKDF2_ITERATIONS", "100000"))
    cas_max_attempts: int = int(os.environ.get("OTP_CAS_MAX_ATTEMPTS", "3"))

    # One-time tokens
    token_length: int = 8
    token_duration_minutes: int = int(os.environ.get("OTP_TOKEN_DURATION_MINUTES", "15"))
    token_create_attempts: int = 5

    def __post_init__(self):
        if self.digits < 1 or self.digits > 10:
            raise ValueError("digits must be between 1 and 10")
        if self.time_step <= 0:
            raise ValueError("time_step must be positive")
        if self.window < 0:
            raise ValueError("window must not be negative")
        if self.secret_bytes < 20:
            raise ValueError("secret_bytes must be at least 20")
        if self.pbkdf2_iterations <= 0:
            raise ValueError("pbkdf2_iterations must be positive")
        if self.cas_max_attempts < 1:
            raise ValueError("cas_max_attempts must be at least 1")
        if self.token_length < 1:
            raise ValueError("token_length must be at least 1")
        if self.token_create_attempts < 1:
            raise ValueError("token_create_attempts must be at least 1")

    @classmethod
    def from_env(cls, **overrides) -> "OTPSettings":
        """Build settings from the current environment, applying overrides."""
        env = {
            "issuer": os.environ.get("OTP_ISSUER"),
            "digits": os.environ.get("OTP_TOTP_DIGITS"),
            "time_step": os.environ.get("OTP_TOTP_TIME_STEP"),
            "window": os.environ.get("OTP_TOTP_WINDOW"),
            "secret_bytes": os.environ.get("OTP_SECRET_BYTES"),
            "backup_code_count": os.environ.get("OTP_BACKUP_CODE_COUNT"),
            "pbkdf2_iterations": os.environ.get("OTP_PBKDF2_ITERATIONS"),
            "cas_max_attempts": os.environ.get("OTP_CAS_MAX_ATTEMPTS"),
            "token_duration_minutes": os.environ.get("OTP_TOKEN_DURATION_MINUTES"),
        }
        values = {}
        for name, raw in env.items():
            if raw is None or raw == "":
                continue
            values[name] = raw if name == "issuer" else int(raw)
        values.update(overrides)
        return cls(**values)
