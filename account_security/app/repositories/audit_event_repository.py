from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel

from account_security.domain.entities import AuditEvent, AuditEventType


class IpActivity(BaseModel):
    """Failed attempts from one client address"""

    ip_address: str
    attempt_count: int
    unique_emails: int
    last_attempt: datetime


class EmailLockouts(BaseModel):
    email: Optional[str] = None
    lockout_count: int
    last_lockout: datetime


class IAuditEventRepository(ABC):
    """AuditEvent repository interface - application layer"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        pass

    @abstractmethod
    async def get_by_user_id(self, user_id: UUID, limit: int = 50) -> List[AuditEvent]:
        """Get the latest audit events for a user, newest first"""
        pass

    @abstractmethod
    async def count_by_type_since(self, event_type: AuditEventType, since: datetime) -> int:
        """Count events of one type created at or after ``since``"""
        pass

    @abstractmethod
    async def activity_by_ip_since(
        self,
        event_types: Sequence[AuditEventType],
        since: datetime,
        min_attempts: int = 0,
        min_unique_emails: int = 0,
        limit: int = 20,
    ) -> List[IpActivity]:
        """
        Group events of the given types by client IP.

        Only addresses with more than ``min_attempts`` events and more than
        ``min_unique_emails`` distinct emails are returned, ordered by whichever
        of the two is filtered on (attempts when neither is).
        """
        pass

    @abstractmethod
    async def lockouts_by_email_since(
        self, since: datetime, min_lockouts: int = 2, limit: int = 10
    ) -> List[EmailLockouts]:
        """Emails locked out more than ``min_lockouts`` times, most locked first"""
        pass
