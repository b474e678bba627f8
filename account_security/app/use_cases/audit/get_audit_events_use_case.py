"""
Get Audit Events Use Case

Lets a user review the security events recorded against their own account.
"""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from account_security.app.services.security_errors import mask_ip
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.libs.result import Result, Return

MAX_LIMIT = 100


class AuditEventItem(BaseModel):
    event_type: str
    success: bool
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: str


class AuditEventsResponse(BaseModel):
    events: List[AuditEventItem]


class GetAuditEventsUseCase:
    """
    Business Rules:
    - Only the caller's own events are returned, newest first
    - Internal failure reasons and metadata stay server-side
    - IP addresses are masked
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, user_id: UUID, limit: int = 50) -> Result[AuditEventsResponse]:
        limit = max(1, min(limit, MAX_LIMIT))

        async with self.uow:
            events = await self.uow.audit_events.get_by_user_id(user_id, limit=limit)

            response = AuditEventsResponse(
                events=[
                    AuditEventItem(
                        event_type=str(getattr(event.event_type, "value", event.event_type)),
                        success=event.success,
                        ip_address=mask_ip(event.ip_address),
                        user_agent=event.user_agent,
                        timestamp=event.created_at.isoformat() + "Z",
                    )
                    for event in events
                ]
            )

        return Return.ok(response)
