"""
Shared fixtures for otp_core tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from otp_core.config import OTPSettings
from otp_core.store import InMemoryStore


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = None):
        # 2026-01-01T00:00:00Z falls on a 30-second step boundary
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    # Low PBKDF2 cost keeps the service tests fast
    return OTPSettings(issuer="SimpleAuth", pbkdf2_iterations=1_000)


@pytest.fixture
def store():
    return InMemoryStore()
