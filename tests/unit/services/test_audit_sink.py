"""
Unit tests for the audit sinks
"""
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from account_security.adapter.services.audit_sink import InMemoryAuditSink, SqlAlchemyAuditSink
from account_security.domain.entities import AuditEvent, AuditEventType


def make_event():
    return AuditEvent(
        event_type=AuditEventType.LOGIN_FAILED,
        email="user@example.com",
        ip_address="192.168.1.10",
        success=False,
        reason="Invalid password",
    )


def session_factory(flush_error: Exception):
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    session.add = MagicMock()
    session.flush = AsyncMock(side_effect=flush_error)
    session.commit = AsyncMock()
    return lambda: session


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [ValueError("unserializable metadata"), RuntimeError("driver gone")])
async def test_database_sink_never_raises(error, caplog):
    sink = SqlAlchemyAuditSink(session_factory(error))

    with caplog.at_level(logging.ERROR, logger="account_security.adapter.services.audit_sink"):
        await sink.emit(make_event())

    assert "Failed to persist audit event LOGIN_FAILED" in caplog.text


@pytest.mark.asyncio
async def test_database_sink_survives_factory_failure():
    def broken_factory():
        raise OSError("database unreachable")

    await SqlAlchemyAuditSink(broken_factory).emit(make_event())


@pytest.mark.asyncio
async def test_events_mirrored_to_log_with_pii_masked(caplog):
    sink = InMemoryAuditSink()

    with caplog.at_level(logging.INFO, logger="account_security.audit"):
        await sink.emit(make_event())

    assert sink.of_type(AuditEventType.LOGIN_FAILED)
    assert "us*er@example.com" in caplog.text
    assert "user@example.com" not in caplog.text
    assert "192.168.0.0" in caplog.text
