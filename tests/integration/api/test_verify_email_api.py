import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlmodel import select

from account_security.domain.entities import AuditEventType, EmailVerificationToken, User
from tests.integration.helpers import IntegrationConfig, csrf_headers, login, register


class VerificationRequiredConfig(IntegrationConfig):
    REQUIRE_EMAIL_VERIFICATION = True


@pytest_asyncio.fixture
async def app(engine, audit_sink, email_sender):
    from account_security.api.app import create_app

    return create_app(
        VerificationRequiredConfig, engine=engine, audit_sink=audit_sink, email_sender=email_sender
    )


@pytest.mark.asyncio
async def test_register_verify_then_login(client: AsyncClient, email_sender, audit_sink, db_session):
    await register(client)
    assert [email for email, _ in email_sender.verifications] == ["user@example.com"]

    blocked = await login(client)
    assert blocked.status_code == 403
    assert blocked.json()["code"] == "EMAIL_NOT_VERIFIED"

    response = await client.post(
        "/auth/verify-email",
        json={"token": email_sender.last_verification_token()},
        headers=await csrf_headers(client),
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Email verified successfully"

    assert (await login(client)).status_code == 200
    user = (await db_session.exec(select(User))).one()
    assert user.email_verified is True
    assert len(audit_sink.of_type(AuditEventType.EMAIL_VERIFIED)) == 1


@pytest.mark.asyncio
async def test_token_is_single_use(client: AsyncClient, email_sender):
    await register(client)
    token = email_sender.last_verification_token()

    first = await client.post("/auth/verify-email", json={"token": token}, headers=await csrf_headers(client))
    second = await client.post("/auth/verify-email", json={"token": token}, headers=await csrf_headers(client))

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_resend_supersedes_earlier_link(client: AsyncClient, email_sender, db_session):
    await register(client)
    stale = email_sender.last_verification_token()

    response = await client.post(
        "/auth/send-verification-email",
        json={"email": "user@example.com"},
        headers=await csrf_headers(client),
    )
    assert response.status_code == 200
    fresh = email_sender.last_verification_token()
    assert fresh != stale

    rejected = await client.post("/auth/verify-email", json={"token": stale}, headers=await csrf_headers(client))
    assert rejected.json()["code"] == "INVALID_TOKEN"
    accepted = await client.post("/auth/verify-email", json={"token": fresh}, headers=await csrf_headers(client))
    assert accepted.status_code == 200

    tokens = (await db_session.exec(select(EmailVerificationToken))).all()
    assert len(tokens) == 2
    assert all(t.used_at is not None for t in tokens)


@pytest.mark.asyncio
async def test_resend_does_not_reveal_accounts(client: AsyncClient, email_sender):
    await register(client)

    unknown = await client.post(
        "/auth/send-verification-email",
        json={"email": "ghost@example.com"},
        headers=await csrf_headers(client),
    )
    known = await client.post(
        "/auth/send-verification-email",
        json={"email": "user@example.com"},
        headers=await csrf_headers(client),
    )

    assert unknown.status_code == known.status_code == 200
    assert unknown.json() == known.json()
    assert [email for email, _ in email_sender.verifications] == ["user@example.com", "user@example.com"]


@pytest.mark.asyncio
async def test_verify_requires_csrf(client: AsyncClient, email_sender):
    await register(client)

    response = await client.post(
        "/auth/verify-email", json={"token": email_sender.last_verification_token()}
    )

    assert response.status_code == 403
