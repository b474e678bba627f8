from abc import ABC, abstractmethod

from account_security.app.repositories.audit_event_repository import IAuditEventRepository
from account_security.app.repositories.email_verification_token_repository import (
    IEmailVerificationTokenRepository,
)
from account_security.app.repositories.password_reset_token_repository import (
    IPasswordResetTokenRepository,
)
from account_security.app.repositories.session_repository import ISessionRepository
from account_security.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - defines repository access and transaction management"""

    # Repository properties (initialized in __aenter__)
    users: IUserRepository
    sessions: ISessionRepository
    audit_events: IAuditEventRepository
    password_reset_tokens: IPasswordResetTokenRepository
    email_verification_tokens: IEmailVerificationTokenRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
