"""
Unit tests for ConfirmPasswordResetUseCase

Tests all business logic with mocked dependencies.
"""
from datetime import timedelta
from uuid import uuid4

import pytest

from account_security.app.services.password_policy import hash_password, verify_password
from account_security.app.services.tokens import hash_token
from account_security.app.use_cases.auth.confirm_password_reset_use_case import (
    RESET_SUCCESS_MESSAGE,
    ConfirmPasswordResetUseCase,
)
from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType, PasswordResetToken, User

RAW_TOKEN = "a" * 64
NEW_PASSWORD = "Brand-New-Passphrase-42"


@pytest.fixture
def user():
    return User(id=uuid4(), email="user@example.com", password_hash=hash_password("Old-Passphrase-123"))


def make_token(user, expires_in=timedelta(minutes=10), used_at=None):
    now = utcnow()
    return PasswordResetToken(
        id=uuid4(),
        user_id=user.id,
        token_hash=hash_token(RAW_TOKEN),
        created_at=now,
        expires_at=now + expires_in,
        used_at=used_at,
    )


@pytest.mark.asyncio
async def test_successful_reset(mock_uow, errors, audit_sink, user):
    token = make_token(user)
    mock_uow.password_reset_tokens.get_by_token_hash.return_value = token
    mock_uow.users.get_by_id.return_value = user
    mock_uow.password_reset_tokens.invalidate_outstanding_for_user.return_value = 2
    mock_uow.sessions.revoke_all_by_user_id.return_value = 3

    use_case = ConfirmPasswordResetUseCase(mock_uow, errors)
    result = await use_case.execute(RAW_TOKEN, NEW_PASSWORD, "10.0.0.1", "pytest")

    assert result.is_ok()
    assert result.value.message == RESET_SUCCESS_MESSAGE
    mock_uow.password_reset_tokens.get_by_token_hash.assert_awaited_once_with(hash_token(RAW_TOKEN))
    mock_uow.password_reset_tokens.mark_used.assert_awaited_once()
    assert verify_password(NEW_PASSWORD, user.password_hash)

    args, kwargs = mock_uow.password_reset_tokens.invalidate_outstanding_for_user.call_args
    assert args[0] == user.id
    assert kwargs["exclude_token_id"] == token.id
    mock_uow.sessions.revoke_all_by_user_id.assert_awaited_once()
    mock_uow.commit.assert_awaited_once()

    [event] = audit_sink.of_type(AuditEventType.PASSWORD_RESET_SUCCESS)
    assert event.event_metadata == {
        "token_id": str(token.id),
        "tokens_invalidated": 2,
        "sessions_revoked": 3,
    }


@pytest.mark.asyncio
async def test_unknown_token(mock_uow, errors, audit_sink):
    mock_uow.password_reset_tokens.get_by_token_hash.return_value = None

    result = await ConfirmPasswordResetUseCase(mock_uow, errors).execute(
        RAW_TOKEN, NEW_PASSWORD, "10.0.0.1", "pytest"
    )

    assert result.is_err()
    assert result.error.code == "INVALID_TOKEN"
    assert audit_sink.events[0].reason == "Token not found"
    mock_uow.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_expired_token_fails_even_with_valid_password(mock_uow, errors, audit_sink, user):
    mock_uow.password_reset_tokens.get_by_token_hash.return_value = make_token(
        user, expires_in=timedelta(seconds=-1)
    )
    mock_uow.users.get_by_id.return_value = user

    result = await ConfirmPasswordResetUseCase(mock_uow, errors).execute(
        RAW_TOKEN, NEW_PASSWORD, "10.0.0.1", "pytest"
    )

    assert result.error.code == "INVALID_TOKEN"
    assert result.error.message == "Invalid or expired token"
    assert audit_sink.events[0].reason == "Token expired"
    mock_uow.password_reset_tokens.mark_used.assert_not_awaited()


@pytest.mark.asyncio
async def test_used_token_is_flagged_suspicious(mock_uow, errors, audit_sink, user):
    mock_uow.password_reset_tokens.get_by_token_hash.return_value = make_token(user, used_at=utcnow())

    result = await ConfirmPasswordResetUseCase(mock_uow, errors).execute(
        RAW_TOKEN, NEW_PASSWORD, "10.0.0.1", "pytest"
    )

    assert result.error.code == "INVALID_TOKEN"
    [event] = audit_sink.of_type(AuditEventType.PASSWORD_RESET_FAILED)
    assert event.reason == "Token already used"
    assert event.event_metadata["suspiciousActivity"] is True


@pytest.mark.asyncio
async def test_weak_password_returns_details(mock_uow, errors, user):
    mock_uow.password_reset_tokens.get_by_token_hash.return_value = make_token(user)
    mock_uow.users.get_by_id.return_value = user

    result = await ConfirmPasswordResetUseCase(mock_uow, errors).execute(
        RAW_TOKEN, "short", "10.0.0.1", "pytest"
    )

    assert result.error.code == "WEAK_PASSWORD"
    assert "Must be at least 12 characters" in result.error.details["errors"]
    mock_uow.password_reset_tokens.mark_used.assert_not_awaited()


@pytest.mark.asyncio
async def test_password_similar_to_email_rejected(mock_uow, errors, user):
    mock_uow.password_reset_tokens.get_by_token_hash.return_value = make_token(user)
    mock_uow.users.get_by_id.return_value = user

    result = await ConfirmPasswordResetUseCase(mock_uow, errors).execute(
        RAW_TOKEN, "User-Passphrase-99", "10.0.0.1", "pytest"
    )

    assert "Password is too similar to your email" in result.error.details["errors"]


@pytest.mark.asyncio
async def test_losing_concurrent_submission_fails(mock_uow, errors, audit_sink, user):
    mock_uow.password_reset_tokens.get_by_token_hash.return_value = make_token(user)
    mock_uow.users.get_by_id.return_value = user
    mock_uow.password_reset_tokens.mark_used.return_value = False
    original_hash = user.password_hash

    result = await ConfirmPasswordResetUseCase(mock_uow, errors).execute(
        RAW_TOKEN, NEW_PASSWORD, "10.0.0.1", "pytest"
    )

    assert result.error.code == "INVALID_TOKEN"
    mock_uow.rollback.assert_awaited_once()
    mock_uow.commit.assert_not_awaited()
    assert user.password_hash == original_hash
    assert audit_sink.events[0].event_metadata["suspiciousActivity"] is True
