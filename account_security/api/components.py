from dataclasses import dataclass
from typing import Callable, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from account_security.adapter.services.audit_sink import SqlAlchemyAuditSink
from account_security.adapter.services.email_sender import LoggingEmailSender
from account_security.app.services.access_token import AccessTokenIssuer
from account_security.app.services.audit_sink import AuditSink
from account_security.app.services.csrf import CsrfGuard
from account_security.app.services.email_sender import EmailSender
from account_security.app.services.rate_limiter import InMemoryRateLimitStore, RateLimiter
from account_security.app.services.security_errors import SecurityErrorFacade
from account_security.app.services.settings import SecuritySettings


@dataclass
class SecurityComponents:
    """Process-wide collaborators, built once in create_app and kept on app.state"""

    settings: SecuritySettings
    rate_limiter: RateLimiter
    csrf: CsrfGuard
    audit_sink: AuditSink
    errors: SecurityErrorFacade
    access_tokens: AccessTokenIssuer
    email_sender: EmailSender

    @classmethod
    def build(
        cls,
        settings: SecuritySettings,
        session_factory: Callable[[], AsyncSession],
        audit_sink: Optional[AuditSink] = None,
        email_sender: Optional[EmailSender] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> "SecurityComponents":
        audit_sink = audit_sink or SqlAlchemyAuditSink(session_factory)
        return cls(
            settings=settings,
            rate_limiter=rate_limiter or RateLimiter(InMemoryRateLimitStore()),
            csrf=CsrfGuard(settings.csrf),
            audit_sink=audit_sink,
            errors=SecurityErrorFacade(audit_sink),
            access_tokens=AccessTokenIssuer(
                settings.jwt_secret,
                algorithm=settings.jwt_algorithm,
                ttl_minutes=settings.access_token_ttl_minutes,
            ),
            email_sender=email_sender or LoggingEmailSender(),
        )
