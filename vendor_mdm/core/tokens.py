"""Invitation link tokens."""

import secrets

TOKEN_BYTES = 32


def generate_secure_token() -> str:
    """Return 256 bits of CSPRNG output as unpadded URL-safe base64 (43 chars)."""
    return secrets.token_urlsafe(TOKEN_BYTES)
