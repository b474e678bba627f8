import hashlib
import secrets

TOKEN_BYTES = 32


def generate_token() -> str:
    """256 random bits, hex encoded. Used for reset and refresh tokens."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 hex digest; the only form in which tokens are stored"""
    return hashlib.sha256(token.encode()).hexdigest()
