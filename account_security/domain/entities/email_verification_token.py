"""
EmailVerificationToken Entity

Single-use tokens mailed to confirm that an account owns its address.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from account_security.domain.base import utcnow


class EmailVerificationToken(SQLModel, table=True):
    """
    EmailVerificationToken entity - confirms ownership of an email address.

    Business Rules:
    - Raw token is 256 random bits, hex encoded; only its SHA-256 is stored
    - Expires 24 hours after creation
    - used_at goes from NULL to a timestamp exactly once
    - Verifying with one token marks every other outstanding token of the user as used
    """

    __tablename__ = "email_verification_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    user_id: UUID = Field(foreign_key="users.id", index=True)
    token_hash: str = Field(max_length=64, unique=True)

    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))
    used_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (Index("idx_email_verification_expires_at", "expires_at"),)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    @property
    def is_used(self) -> bool:
        return self.used_at is not None
