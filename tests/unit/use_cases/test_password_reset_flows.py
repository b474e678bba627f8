"""
Unit tests for the forgot-password and reset-password flows

The use cases are mocked; these tests cover ordering of the guards and the
generic handling of unexpected failures.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from account_security.app.use_cases.auth import (
    ForgotPasswordFlow,
    MessageResponse,
    RequestContext,
    ResetPasswordFlow,
)
from account_security.domain.entities import AuditEventType
from account_security.libs.result import Return

TOKEN = "c" * 64


@pytest.fixture
def use_case():
    uc = MagicMock()
    uc.execute = AsyncMock(return_value=Return.ok(MessageResponse(message="ok")))
    return uc


def context(cookie=TOKEN, header=TOKEN, ip="10.0.0.1"):
    return RequestContext(ip_address=ip, user_agent="pytest", csrf_cookie=cookie, csrf_header=header)


@pytest.mark.asyncio
async def test_forgot_password_happy_path(csrf, rate_limiter, errors, use_case, settings):
    flow = ForgotPasswordFlow(csrf, rate_limiter, errors, use_case, settings)
    ctx = context()
    dispatch = MagicMock()

    result = await flow.execute({"email": "User@Example.com"}, ctx, dispatch=dispatch)

    assert result.is_ok()
    use_case.execute.assert_awaited_once_with("user@example.com", "10.0.0.1", "pytest", dispatch)
    assert ctx.rate_limit.remaining == 9


@pytest.mark.asyncio
async def test_csrf_checked_before_anything_else(csrf, rate_limiter, errors, audit_sink, use_case, settings):
    flow = ForgotPasswordFlow(csrf, rate_limiter, errors, use_case, settings)
    ctx = context(header="d" * 64)

    result = await flow.execute({"email": "not-an-email"}, ctx)

    assert result.error.code == "CSRF_VALIDATION_FAILED"
    assert ctx.rate_limit is None
    use_case.execute.assert_not_awaited()
    assert audit_sink.of_type(AuditEventType.PASSWORD_RESET_REQUESTED)[0].success is False


@pytest.mark.asyncio
async def test_rate_limit_checked_before_validation(csrf, rate_limiter, errors, use_case, settings):
    flow = ForgotPasswordFlow(csrf, rate_limiter, errors, use_case, settings)

    for _ in range(10):
        await flow.execute({"email": "bad"}, context())
    result = await flow.execute({"email": "user@example.com"}, context())

    assert result.error.code == "RATE_LIMITED"
    assert result.error.details["retry_after"] == 900
    use_case.execute.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"email": ""}, {"email": "nope"}, {"mail": "user@example.com"}])
async def test_forgot_password_invalid_input(csrf, rate_limiter, errors, use_case, settings, payload):
    flow = ForgotPasswordFlow(csrf, rate_limiter, errors, use_case, settings)

    result = await flow.execute(payload, context())

    assert result.error.code == "INVALID_INPUT"
    assert result.error.details["errors"]
    use_case.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_error_is_generic(csrf, rate_limiter, errors, audit_sink, use_case, settings, caplog):
    use_case.execute.side_effect = RuntimeError("connection string postgres://secret@db")
    flow = ForgotPasswordFlow(csrf, rate_limiter, errors, use_case, settings)

    result = await flow.execute({"email": "user@example.com"}, context())

    assert result.error.code == "GENERIC"
    assert result.error.message == "An error occurred. Please try again later."
    assert "secret@db" not in repr(result.error)
    assert "Forgot-password flow failed unexpectedly" in caplog.text
    assert audit_sink.events[-1].reason == "Unexpected error"


@pytest.mark.asyncio
async def test_reset_password_happy_path(csrf, rate_limiter, errors, use_case, settings):
    flow = ResetPasswordFlow(csrf, rate_limiter, errors, use_case, settings)

    result = await flow.execute({"token": "t" * 64, "password": "Brand-New-Passphrase-42"}, context())

    assert result.is_ok()
    use_case.execute.assert_awaited_once_with("t" * 64, "Brand-New-Passphrase-42", "10.0.0.1", "pytest")


@pytest.mark.asyncio
async def test_reset_password_missing_fields(csrf, rate_limiter, errors, use_case, settings):
    flow = ResetPasswordFlow(csrf, rate_limiter, errors, use_case, settings)

    result = await flow.execute({"token": "t" * 64}, context())

    assert result.error.code == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_reset_password_unexpected_error(csrf, rate_limiter, errors, audit_sink, use_case, settings):
    use_case.execute.side_effect = ValueError("boom")
    flow = ResetPasswordFlow(csrf, rate_limiter, errors, use_case, settings)

    result = await flow.execute({"token": "t", "password": "p"}, context())

    assert result.error.code == "GENERIC"
    assert audit_sink.of_type(AuditEventType.PASSWORD_RESET_FAILED)[-1].reason == "Unexpected error"
