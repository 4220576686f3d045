"""
SQL Models
==========
SQLAlchemy table definitions for the OTP record store.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .schema import ONE_TIME_TOKENS, TOTP_SECRETS


class Base(DeclarativeBase):
    """Base class for otp_core SQLAlchemy models."""
    pass


class TotpSecretRow(Base):
    """One TOTP enrollment per identity."""
    __tablename__ = TOTP_SECRETS

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    identity: Mapped[str] = mapped_column(String(255), nullable=False)
    secret: Mapped[str] = mapped_column(String(128), nullable=False)
    backup_codes: Mapped[str] = mapped_column(Text, nullable=False)  # JSON list of hashes
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_totp_user", "identity", unique=True),
    )


class OneTimeTokenRow(Base):
    """Short-lived single-use token."""
    __tablename__ = ONE_TIME_TOKENS

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    identity: Mapped[str] = mapped_column(String(255), nullable=False)
    token: Mapped[str] = mapped_column(String(32), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_ott_token", "token", unique=True),
        Index("idx_ott_user_type", "identity", "type"),
        Index("idx_expires_at", "expires_at"),
    )
