"""
Cleanup Expired Tokens Use Case

Housekeeping for the single-use token tables, run periodically by the API process.
"""

import logging

from pydantic import BaseModel

from account_security.app.services.unit_of_work import UnitOfWork
from account_security.domain.base import utcnow

logger = logging.getLogger(__name__)


class CleanupResult(BaseModel):
    password_reset_tokens: int = 0
    email_verification_tokens: int = 0


class CleanupExpiredTokensUseCase:
    """
    Deletes every password reset and email verification token past its expiry,
    used or not. Both deletes commit together.
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self) -> CleanupResult:
        now = utcnow()

        async with self.uow:
            result = CleanupResult(
                password_reset_tokens=await self.uow.password_reset_tokens.delete_expired(now),
                email_verification_tokens=await self.uow.email_verification_tokens.delete_expired(now),
            )
            await self.uow.commit()

        if result.password_reset_tokens or result.email_verification_tokens:
            logger.info(
                f"Deleted {result.password_reset_tokens} expired reset token(s) and "
                f"{result.email_verification_tokens} expired verification token(s)"
            )
        return result
