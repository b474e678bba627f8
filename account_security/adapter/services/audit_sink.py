import logging
from typing import Callable, List

from sqlmodel.ext.asyncio.session import AsyncSession

from account_security.adapter.repositories.audit_event_repository import AuditEventRepository
from account_security.app.services.audit_sink import AuditSink
from account_security.app.services.security_errors import mask_email, mask_ip
from account_security.domain.entities import AuditEvent

audit_logger = logging.getLogger("account_security.audit")
logger = logging.getLogger(__name__)


def log_audit_event(event: AuditEvent) -> None:
    """Mirror an audit event to the operational log with PII masked"""
    level = logging.INFO if event.success else logging.WARNING
    audit_logger.log(
        level,
        f"{event.event_type.value} success={event.success} "
        f"user_id={event.user_id} email={mask_email(event.email)} ip={mask_ip(event.ip_address)} "
        f"reason={event.reason} metadata={event.event_metadata or {}}",
    )


class SqlAlchemyAuditSink(AuditSink):
    """
    Writes each event in its own session and transaction, so audit rows
    survive a rollback of the business transaction that produced them.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def emit(self, event: AuditEvent) -> None:
        log_audit_event(event)
        try:
            async with self.session_factory() as session:
                await AuditEventRepository(session).create(event)
                await session.commit()
        except Exception:
            logger.exception(f"Failed to persist audit event {event.event_type.value}")


class InMemoryAuditSink(AuditSink):
    """Keeps events in a list. Used by tests and local runs without a database."""

    def __init__(self):
        self.events: List[AuditEvent] = []

    async def emit(self, event: AuditEvent) -> None:
        log_audit_event(event)
        self.events.append(event)

    def of_type(self, event_type) -> List[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]
