import asyncio
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlmodel import select

from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType, PasswordResetToken
from tests.integration.helpers import STRONG_PASSWORD, csrf_headers, login, register

NEW_PASSWORD = "Fresh-Passphrase-2025"


async def request_reset(client: AsyncClient, email_sender, email="user@example.com") -> str:
    headers = await csrf_headers(client)
    response = await client.post("/auth/forgot-password", json={"email": email}, headers=headers)
    assert response.status_code == 200
    return email_sender.last_token()


async def reset(client: AsyncClient, token: str, password: str = NEW_PASSWORD):
    headers = await csrf_headers(client)
    return await client.post(
        "/auth/reset-password", json={"token": token, "password": password}, headers=headers
    )


@pytest.mark.asyncio
async def test_reset_changes_password(client: AsyncClient, email_sender):
    await register(client)
    token = await request_reset(client, email_sender)

    response = await reset(client, token)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert (await login(client, password=STRONG_PASSWORD)).status_code == 401
    assert (await login(client, password=NEW_PASSWORD)).status_code == 200


@pytest.mark.asyncio
async def test_token_is_single_use(client: AsyncClient, email_sender, audit_sink):
    await register(client)
    token = await request_reset(client, email_sender)

    first = await reset(client, token)
    second = await reset(client, token, "Another-Passphrase-77")

    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json()["code"] == "INVALID_TOKEN"
    failed = audit_sink.of_type(AuditEventType.PASSWORD_RESET_FAILED)
    assert failed[-1].event_metadata["suspiciousActivity"] is True


@pytest.mark.asyncio
async def test_expired_token_rejected(client: AsyncClient, email_sender, db_session):
    await register(client)
    token = await request_reset(client, email_sender)

    stored = (await db_session.exec(select(PasswordResetToken))).one()
    stored.expires_at = utcnow() - timedelta(seconds=1)
    db_session.add(stored)
    await db_session.commit()

    response = await reset(client, token)

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_sibling_tokens_invalidated(client: AsyncClient, email_sender):
    await register(client)
    older = await request_reset(client, email_sender)
    newer = await request_reset(client, email_sender)

    assert (await reset(client, newer)).status_code == 200
    stale = await reset(client, older, "Another-Passphrase-77")

    assert stale.status_code == 400
    assert stale.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_unknown_and_expired_look_the_same(client: AsyncClient):
    response = await reset(client, "f" * 64)

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "code": "INVALID_TOKEN",
        "message": "Invalid or expired token",
    }


@pytest.mark.asyncio
async def test_weak_password_details_returned(client: AsyncClient, email_sender):
    await register(client)
    token = await request_reset(client, email_sender)

    response = await reset(client, token, "weak")

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "WEAK_PASSWORD"
    assert "Must be at least 12 characters" in body["errors"]

    # Token survives a rejected password
    assert (await reset(client, token)).status_code == 200


@pytest.mark.asyncio
async def test_reset_revokes_sessions(client: AsyncClient, email_sender):
    await register(client)
    tokens = (await login(client)).json()

    await reset(client, await request_reset(client, email_sender))

    refresh = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refresh.status_code == 401
    me = await client.get("/sessions/suspicious", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.status_code == 401


@pytest.mark.asyncio
async def test_concurrent_submits_have_one_winner(client: AsyncClient, email_sender, audit_sink):
    await register(client)
    token = await request_reset(client, email_sender)
    headers = await csrf_headers(client)

    responses = await asyncio.gather(
        *(
            client.post(
                "/auth/reset-password",
                json={"token": token, "password": f"Parallel-Passphrase-{i}{i}"},
                headers=headers,
            )
            for i in range(4)
        )
    )

    statuses = sorted(r.status_code for r in responses)
    assert statuses == [200, 400, 400, 400]
    assert all(r.json()["code"] == "INVALID_TOKEN" for r in responses if r.status_code == 400)
    assert len(audit_sink.of_type(AuditEventType.PASSWORD_RESET_SUCCESS)) == 1
