"""
Password Policy

Stateless strength scoring and validation for new passwords, plus bcrypt
hashing helpers shared by registration, login and password reset.
"""

import re
import secrets
import string
from functools import lru_cache
from typing import List, Optional

import bcrypt
from pydantic import BaseModel

from account_security.domain.entities import PasswordStrength

MIN_LENGTH = 12
MAX_LENGTH = 256
BCRYPT_ROUNDS = 12

SYMBOLS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"
TEMPORARY_PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*()"

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"[0-9]")
_SYMBOL = re.compile("[" + re.escape(SYMBOLS) + "]")

# Exact-match blocklist (case-insensitive). Refresh from breach corpora as needed.
COMMON_PASSWORDS = frozenset(
    {
        "password123",
        "password1234",
        "qwerty123",
        "letmein123",
        "welcome123",
        "monkey123",
        "dragon123",
        "master123",
        "sunshine123",
        "princess123",
        "football123",
        "shadow123",
        "michael123",
        "superman123",
        "batman123",
        "password123!",
        "password1234!",
        "qwertyuiop123",
        "qwerty123456",
        "welcome12345",
        "iloveyou1234",
        "administrator1",
        "p@ssw0rd1234",
        "passw0rd1234!",
        "changeme1234!",
    }
)


class PasswordValidationResult(BaseModel):
    valid: bool
    errors: List[str]
    strength: PasswordStrength


def is_common_password(password: str) -> bool:
    return password.lower() in COMMON_PASSWORDS


def is_password_too_similar_to_email(password: str, email: str) -> bool:
    """True if the email local part is inside the password or vice versa (case-insensitive)"""
    local_part = email.split("@")[0].lower()
    if not local_part:
        return False

    password_lower = password.lower()
    return local_part in password_lower or password_lower in local_part


def _score(password: str) -> int:
    checks = (
        len(password) >= 12,
        len(password) >= 16,
        len(password) >= 20,
        bool(_UPPER.search(password)),
        bool(_LOWER.search(password)),
        bool(_DIGIT.search(password)),
        bool(_SYMBOL.search(password)),
    )
    return sum(checks)


def _strength(score: int) -> PasswordStrength:
    if score <= 2:
        return PasswordStrength.weak
    if score <= 4:
        return PasswordStrength.fair
    if score <= 6:
        return PasswordStrength.good
    return PasswordStrength.strong


def validate_password_strength(
    password: str, email: Optional[str] = None
) -> PasswordValidationResult:
    """
    Check a candidate password against every rule.

    Rules are evaluated independently so the caller gets the full list of
    problems at once. Strength is informational and never gates validity.
    """
    errors: List[str] = []

    if len(password) < MIN_LENGTH:
        errors.append(f"Must be at least {MIN_LENGTH} characters")
    if len(password) > MAX_LENGTH:
        errors.append("Password is too long")

    if not _UPPER.search(password):
        errors.append("Must contain at least one uppercase letter")
    if not _LOWER.search(password):
        errors.append("Must contain at least one lowercase letter")
    if not _DIGIT.search(password):
        errors.append("Must contain at least one number")
    if not _SYMBOL.search(password):
        errors.append("Must contain at least one special character")

    if is_common_password(password):
        errors.append("Password is too common")

    if email and is_password_too_similar_to_email(password, email):
        errors.append("Password is too similar to your email")

    return PasswordValidationResult(
        valid=not errors,
        errors=errors,
        strength=_strength(_score(password)),
    )


def generate_temporary_password(length: int = 16) -> str:
    """Random password; secrets.choice samples uniformly, so there is no modulo bias"""
    return "".join(secrets.choice(TEMPORARY_PASSWORD_ALPHABET) for _ in range(length))


def _bcrypt_input(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; newer releases raise instead of truncating
    return password.encode()[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_bcrypt_input(password), bcrypt.gensalt(BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_bcrypt_input(password), password_hash.encode())
    except ValueError:
        # Malformed stored hash
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash checked against when the account does not exist, so both paths cost one bcrypt"""
    return hash_password(secrets.token_hex(16))
