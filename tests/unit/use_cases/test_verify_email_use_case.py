"""
Unit tests for VerifyEmailUseCase
"""
from datetime import timedelta
from uuid import uuid4

import pytest

from account_security.app.services.tokens import hash_token
from account_security.app.use_cases.auth import RequestContext, VerifyEmailCommand, VerifyEmailUseCase
from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType, EmailVerificationToken, User

RAW_TOKEN = "a" * 64


@pytest.fixture
def use_case(mock_uow, errors, rate_limiter, settings):
    return VerifyEmailUseCase(mock_uow, errors, rate_limiter, settings)


def make_token(user_id, expires_in=timedelta(hours=24), used=False):
    now = utcnow()
    return EmailVerificationToken(
        id=uuid4(),
        user_id=user_id,
        token_hash=hash_token(RAW_TOKEN),
        created_at=now,
        expires_at=now + expires_in,
        used_at=now if used else None,
    )


def context():
    return RequestContext(ip_address="10.0.0.1", user_agent="pytest")


@pytest.mark.asyncio
async def test_valid_token_verifies_account(mock_uow, audit_sink, use_case):
    user = User(id=uuid4(), email="user@example.com", password_hash="hashed")
    token = make_token(user.id)
    mock_uow.email_verification_tokens.get_by_token_hash.return_value = token
    mock_uow.users.get_by_id.return_value = user

    result = await use_case.execute(VerifyEmailCommand(token=RAW_TOKEN), context())

    assert result.value.message == "Email verified successfully"
    assert user.email_verified is True
    mock_uow.email_verification_tokens.get_by_token_hash.assert_awaited_once_with(hash_token(RAW_TOKEN))
    mock_uow.users.update.assert_awaited_once_with(user)
    invalidate = mock_uow.email_verification_tokens.invalidate_outstanding_for_user
    assert invalidate.call_args.kwargs["exclude_token_id"] == token.id
    mock_uow.commit.assert_awaited_once()
    assert audit_sink.of_type(AuditEventType.EMAIL_VERIFIED)[0].user_id == user.id


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token_kwargs, reason",
    [
        (None, "Token not found"),
        ({"expires_in": timedelta(seconds=-1)}, "Token expired"),
        ({"used": True}, "Token already used"),
    ],
)
async def test_unusable_token_is_invalid(mock_uow, audit_sink, use_case, token_kwargs, reason):
    mock_uow.email_verification_tokens.get_by_token_hash.return_value = (
        None if token_kwargs is None else make_token(uuid4(), **token_kwargs)
    )

    result = await use_case.execute(VerifyEmailCommand(token=RAW_TOKEN), context())

    assert result.error.code == "INVALID_TOKEN"
    mock_uow.users.update.assert_not_awaited()
    mock_uow.commit.assert_not_awaited()
    assert audit_sink.of_type(AuditEventType.EMAIL_VERIFICATION_FAILED)[0].reason == reason


@pytest.mark.asyncio
async def test_lost_race_is_invalid(mock_uow, audit_sink, use_case):
    user = User(id=uuid4(), email="user@example.com", password_hash="hashed")
    mock_uow.email_verification_tokens.get_by_token_hash.return_value = make_token(user.id)
    mock_uow.users.get_by_id.return_value = user
    mock_uow.email_verification_tokens.mark_used.return_value = False

    result = await use_case.execute(VerifyEmailCommand(token=RAW_TOKEN), context())

    assert result.error.code == "INVALID_TOKEN"
    assert user.email_verified is False
    mock_uow.rollback.assert_awaited_once()
    mock_uow.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_rate_limited_per_ip(mock_uow, use_case):
    mock_uow.email_verification_tokens.get_by_token_hash.return_value = None

    for _ in range(10):
        await use_case.execute(VerifyEmailCommand(token=RAW_TOKEN), context())
    result = await use_case.execute(VerifyEmailCommand(token=RAW_TOKEN), context())

    assert result.error.code == "RATE_LIMITED"
