"""
AuditEvent Entity

Immutable log of all authentication and account-security events.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from account_security.domain.base import utcnow
from .enums import AuditEventType


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - immutable log of security events.

    Business Rules:
    - Append-only (never updated or deleted)
    - Identifiers are stored in full; operational logs mask them
    - Metadata stores additional context (e.g. suspiciousActivity)
    """

    __tablename__ = "audit_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    event_type: AuditEventType = Field(index=True)
    user_id: Optional[UUID] = Field(default=None, index=True)
    email: Optional[str] = Field(default=None, max_length=255)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)

    success: bool = Field(default=True)
    reason: Optional[str] = Field(default=None, max_length=255)
    event_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
    )
