"""
Unit tests for the password policy
"""
import pytest

from account_security.app.services.password_policy import (
    TEMPORARY_PASSWORD_ALPHABET,
    dummy_password_hash,
    generate_temporary_password,
    hash_password,
    validate_password_strength,
    verify_password,
)
from account_security.domain.entities import PasswordStrength

STRONG = "Correct-Horse-Battery-9"


@pytest.mark.parametrize("password", ["", "a", "Ab1!", "Abcdefgh1!x"])
def test_short_passwords_fail_with_length_error(password):
    result = validate_password_strength(password)

    assert result.valid is False
    assert "Must be at least 12 characters" in result.errors


def test_too_long_password_rejected():
    result = validate_password_strength("Aa1!" * 65)

    assert result.valid is False
    assert "Password is too long" in result.errors


def test_errors_accumulate():
    result = validate_password_strength("abc")

    assert "Must be at least 12 characters" in result.errors
    assert "Must contain at least one uppercase letter" in result.errors
    assert "Must contain at least one number" in result.errors
    assert "Must contain at least one special character" in result.errors
    assert "Must contain at least one lowercase letter" not in result.errors


def test_strong_password_is_valid():
    result = validate_password_strength(STRONG)

    assert result.valid is True
    assert result.errors == []
    assert result.strength == PasswordStrength.strong


@pytest.mark.parametrize(
    "password",
    ["JohnDoe#2024xyz", "xyz-JOHNDOE-99!A", "aB3$johndoeQQQQ"],
)
def test_email_local_part_in_password_fails(password):
    result = validate_password_strength(password, "johndoe@example.com")

    assert result.valid is False
    assert "Password is too similar to your email" in result.errors


def test_password_inside_local_part_fails():
    result = validate_password_strength("Ab1!Ab1!Ab1!", "xxab1!ab1!ab1!yy@example.com")

    assert "Password is too similar to your email" in result.errors


def test_common_password_blocklist_is_case_insensitive():
    result = validate_password_strength("PASSWORD1234!")

    assert "Password is too common" in result.errors


@pytest.mark.parametrize(
    "password,expected",
    [
        ("a" * 12, PasswordStrength.weak),
        ("a" * 11 + "1", PasswordStrength.fair),
        ("A" + "a" * 14 + "1", PasswordStrength.good),
        ("A" + "a" * 18 + "1!", PasswordStrength.strong),
    ],
)
def test_strength_buckets(password, expected):
    assert validate_password_strength(password).strength == expected


def test_strength_does_not_gate_validity():
    # Valid by every rule but only "good"
    result = validate_password_strength("Abcdefgh12!x")

    assert result.valid is True
    assert result.strength == PasswordStrength.good


def test_temporary_password():
    password = generate_temporary_password()

    assert len(password) == 16
    assert set(password) <= set(TEMPORARY_PASSWORD_ALPHABET)
    assert len(TEMPORARY_PASSWORD_ALPHABET) >= 70
    assert generate_temporary_password() != password


def test_hash_and_verify():
    hashed = hash_password(STRONG)

    assert hashed != STRONG
    assert verify_password(STRONG, hashed) is True
    assert verify_password("wrong", hashed) is False


def test_verify_against_malformed_hash_is_false():
    assert verify_password(STRONG, "not-a-bcrypt-hash") is False


def test_dummy_hash_is_stable_and_never_matches():
    assert dummy_password_hash() == dummy_password_hash()
    assert verify_password(STRONG, dummy_password_hash()) is False
