"""
Provisioning URI
================
otpauth:// URIs for authenticator-app enrollment.
"""

from urllib.parse import quote


def build_provisioning_uri(secret: str, identity: str, issuer: str) -> str:
    """
    Build the enrollment URI consumed by authenticator apps.

    Format: otpauth://totp/{issuer}:{identity}?secret={secret}&issuer={issuer}
    with every component percent-encoded.
    """
    issuer_q = quote(issuer, safe="")
    return (
        f"otpauth://totp/{issuer_q}:{quote(identity, safe='')}"
        f"?secret={quote(secret, safe='')}&issuer={issuer_q}"
    )
