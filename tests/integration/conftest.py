import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from account_security.adapter.services.audit_sink import InMemoryAuditSink
from tests.integration.helpers import CapturingEmailSender, IntegrationConfig


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///./test.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        yield session


@pytest_asyncio.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest_asyncio.fixture
def email_sender():
    return CapturingEmailSender()


@pytest_asyncio.fixture
async def app(engine, audit_sink, email_sender):
    from account_security.api.app import create_app

    return create_app(IntegrationConfig, engine=engine, audit_sink=audit_sink, email_sender=email_sender)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
