from sqlmodel.ext.asyncio.session import AsyncSession

from account_security.adapter.repositories.audit_event_repository import AuditEventRepository
from account_security.adapter.repositories.email_verification_token_repository import (
    EmailVerificationTokenRepository,
)
from account_security.adapter.repositories.password_reset_token_repository import (
    PasswordResetTokenRepository,
)
from account_security.adapter.repositories.session_repository import SessionRepository
from account_security.adapter.repositories.user_repository import UserRepository
from account_security.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        self.users = UserRepository(self.session)
        self.sessions = SessionRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        self.password_reset_tokens = PasswordResetTokenRepository(self.session)
        self.email_verification_tokens = EmailVerificationTokenRepository(self.session)
        return self

    async def __aexit__(self, *args):
        # Anything not committed explicitly is discarded
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
