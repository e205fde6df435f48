"""Authenticators turn what the caller sent into a trusted owner key.

The store only ever sees the resulting key.  Swapping the pass-through
authenticator for the token one changes who can assert a key, not how
ownership is checked.
"""
from typing import Protocol

from canvasforge.auth.jwt import decode_access_token

class Authenticator(Protocol):
    def authenticate(self, claimed_key: str | None, credential: str | None) -> str | None:
        """Return the caller's owner key, or None if the claim cannot be accepted."""
        ...

class PassThroughAuthenticator:
    """Trusts the claimed key as-is."""

    def authenticate(self, claimed_key: str | None, credential: str | None) -> str | None:
        return claimed_key or None

class TokenAuthenticator:
    """Accepts a signed bearer token whose subject is the owner key."""

    def authenticate(self, claimed_key: str | None, credential: str | None) -> str | None:
        if not credential:
            return None
        payload = decode_access_token(credential)
        if payload is None:
            return None
        subject = payload.get("sub")
        if not subject:
            return None
        if claimed_key and claimed_key != subject:
            return None
        return subject
