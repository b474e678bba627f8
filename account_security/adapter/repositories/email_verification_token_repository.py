from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from account_security.app.repositories.email_verification_token_repository import (
    IEmailVerificationTokenRepository,
)
from account_security.domain.entities import EmailVerificationToken


class EmailVerificationTokenRepository(IEmailVerificationTokenRepository):
    """EmailVerificationToken repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, token: EmailVerificationToken) -> EmailVerificationToken:
        self.session.add(token)
        await self.session.flush()
        await self.session.refresh(token)
        return token

    async def get_by_token_hash(self, token_hash: str) -> Optional[EmailVerificationToken]:
        stmt = select(EmailVerificationToken).where(EmailVerificationToken.token_hash == token_hash)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def mark_used(self, token_id: UUID, used_at: datetime) -> bool:
        stmt = (
            update(EmailVerificationToken)
            .where(EmailVerificationToken.id == token_id, EmailVerificationToken.used_at.is_(None))
            .values(used_at=used_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount == 1

    async def invalidate_outstanding_for_user(
        self, user_id: UUID, used_at: datetime, exclude_token_id: Optional[UUID] = None
    ) -> int:
        stmt = update(EmailVerificationToken).where(
            EmailVerificationToken.user_id == user_id, EmailVerificationToken.used_at.is_(None)
        )
        if exclude_token_id is not None:
            stmt = stmt.where(EmailVerificationToken.id != exclude_token_id)

        result = await self.session.execute(
            stmt.values(used_at=used_at).execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount

    async def delete_expired(self, now: datetime) -> int:
        stmt = delete(EmailVerificationToken).where(EmailVerificationToken.expires_at <= now)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount
