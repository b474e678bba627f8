from datetime import datetime
from typing import List, Sequence
from uuid import UUID

from sqlalchemy import distinct, func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from account_security.app.repositories.audit_event_repository import (
    EmailLockouts,
    IAuditEventRepository,
    IpActivity,
)
from account_security.domain.entities import AuditEvent, AuditEventType


class AuditEventRepository(IAuditEventRepository):
    """AuditEvent repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        self.session.add(audit_event)
        await self.session.flush()
        await self.session.refresh(audit_event)
        return audit_event

    async def get_by_user_id(self, user_id: UUID, limit: int = 50) -> List[AuditEvent]:
        """Newest first"""
        stmt = (
            select(AuditEvent)
            .where(AuditEvent.user_id == user_id)
            .order_by(AuditEvent.created_at.desc())
            .limit(limit)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def count_by_type_since(self, event_type: AuditEventType, since: datetime) -> int:
        stmt = (
            select(func.count(AuditEvent.id))
            .where(AuditEvent.event_type == event_type, AuditEvent.created_at >= since)
        )
        result = await self.session.exec(stmt)
        return result.one()

    async def activity_by_ip_since(
        self,
        event_types: Sequence[AuditEventType],
        since: datetime,
        min_attempts: int = 0,
        min_unique_emails: int = 0,
        limit: int = 20,
    ) -> List[IpActivity]:
        attempts = func.count(AuditEvent.id)
        unique_emails = func.count(distinct(AuditEvent.email))
        ordering = (
            (unique_emails.desc(), attempts.desc())
            if min_unique_emails
            else (attempts.desc(), unique_emails.desc())
        )
        stmt = (
            select(AuditEvent.ip_address, attempts, unique_emails, func.max(AuditEvent.created_at))
            .where(
                AuditEvent.event_type.in_(list(event_types)),
                AuditEvent.created_at >= since,
                AuditEvent.ip_address.is_not(None),
            )
            .group_by(AuditEvent.ip_address)
            .order_by(*ordering)
            .limit(limit)
        )
        if min_attempts:
            stmt = stmt.having(attempts > min_attempts)
        if min_unique_emails:
            stmt = stmt.having(unique_emails > min_unique_emails)
        result = await self.session.exec(stmt)
        return [
            IpActivity(
                ip_address=ip_address,
                attempt_count=count,
                unique_emails=emails,
                last_attempt=last,
            )
            for ip_address, count, emails, last in result.all()
        ]

    async def lockouts_by_email_since(
        self, since: datetime, min_lockouts: int = 2, limit: int = 10
    ) -> List[EmailLockouts]:
        lockouts = func.count(AuditEvent.id)
        stmt = (
            select(AuditEvent.email, lockouts, func.max(AuditEvent.created_at))
            .where(
                AuditEvent.event_type == AuditEventType.ACCOUNT_LOCKED,
                AuditEvent.created_at >= since,
            )
            .group_by(AuditEvent.email)
            .having(lockouts > min_lockouts)
            .order_by(lockouts.desc())
            .limit(limit)
        )
        result = await self.session.exec(stmt)
        return [
            EmailLockouts(email=email, lockout_count=count, last_lockout=last)
            for email, count, last in result.all()
        ]
