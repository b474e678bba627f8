import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tests.integration.helpers import CapturingEmailSender, IntegrationConfig, bearer, login, register


@pytest_asyncio.fixture
async def client(engine):
    """App with the default database-backed audit sink"""
    from account_security.api.app import create_app

    app = create_app(IntegrationConfig, engine=engine, email_sender=CapturingEmailSender())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_own_events_newest_first(client: AsyncClient):
    await register(client)
    await login(client, password="Wrong-Passphrase-00")
    tokens = (await login(client)).json()

    response = await client.get("/audit/events", headers=bearer(tokens))

    assert response.status_code == 200
    events = response.json()["events"]
    assert [e["event_type"] for e in events] == ["LOGIN_SUCCESS", "LOGIN_FAILED", "REGISTER_SUCCESS"]
    assert events[0]["ip_address"] == "127.0.0.0"
    assert all("reason" not in e for e in events)


@pytest.mark.asyncio
async def test_other_users_events_not_visible(client: AsyncClient):
    await register(client, email="alice@example.com")
    await register(client, email="bob@example.com")
    await login(client, email="bob@example.com", password="Wrong-Passphrase-00")
    alice = (await login(client, email="alice@example.com")).json()

    events = (await client.get("/audit/events", headers=bearer(alice))).json()["events"]

    assert [e["event_type"] for e in events] == ["LOGIN_SUCCESS", "REGISTER_SUCCESS"]


@pytest.mark.asyncio
async def test_limit_out_of_range(client: AsyncClient):
    await register(client)
    tokens = (await login(client)).json()

    response = await client.get("/audit/events?limit=500", headers=bearer(tokens))

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_requires_authentication(client: AsyncClient):
    assert (await client.get("/audit/events")).status_code == 401
