"""
One-Time Tokens
===============
Expiring, single-use, purpose-scoped tokens.
"""

from .models import GeneratedToken, OneTimeToken, OttType, TokenError, TokenValidation
from .service import OttService

__all__ = [
    # Models
    "GeneratedToken",
    "OneTimeToken",
    "OttType",
    "TokenError",
    "TokenValidation",
    # Service
    "OttService",
]
