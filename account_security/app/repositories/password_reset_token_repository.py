from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from account_security.domain.entities import PasswordResetToken


class IPasswordResetTokenRepository(ABC):
    """PasswordResetToken repository interface - application layer"""

    @abstractmethod
    async def create(self, token: PasswordResetToken) -> PasswordResetToken:
        """Create a new password reset token"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[PasswordResetToken]:
        """Get password reset token by token hash"""
        pass

    @abstractmethod
    async def mark_used(self, token_id: UUID, used_at: datetime) -> bool:
        """
        Set used_at only if it is still NULL.

        Returns True for the single caller that performed the transition,
        False if the token was already used (lost race or replay).
        """
        pass

    @abstractmethod
    async def invalidate_outstanding_for_user(
        self, user_id: UUID, used_at: datetime, exclude_token_id: Optional[UUID] = None
    ) -> int:
        """Mark every unused token of a user as used. Returns count."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """
        Delete tokens whose expiry has passed, used or not.

        A used token stays until it expires so a replay is still recognised
        as one. Returns count.
        """
        pass
