"""
Verify Email Use Case

Handles email verification via secure token.
"""

from typing import Optional
from uuid import UUID

from account_security.app.services.rate_limiter import RateLimiter
from account_security.app.services.security_errors import SecurityErrorFacade
from account_security.app.services.settings import SecuritySettings
from account_security.app.services.tokens import hash_token
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType, ErrorCode
from account_security.libs.result import Error, Result, Return
from .dtos import MessageResponse, RequestContext, VerifyEmailCommand
from .guards import check_rate_limit

EMAIL_VERIFIED_MESSAGE = "Email verified successfully"


class VerifyEmailUseCase:
    """
    Use case for email verification.

    Business Rules:
    - Rate limited per client IP
    - Token is looked up by its SHA-256 hash
    - Unknown, expired and already-used tokens all fail as INVALID_TOKEN
    - Single use: marked used with a conditional update
    - Sets email_verified and invalidates the user's other outstanding tokens
    """

    def __init__(
        self,
        uow: UnitOfWork,
        errors: SecurityErrorFacade,
        rate_limiter: RateLimiter,
        settings: SecuritySettings,
    ):
        self.uow = uow
        self.errors = errors
        self.rate_limiter = rate_limiter
        self.settings = settings

    async def execute(
        self, command: VerifyEmailCommand, context: RequestContext
    ) -> Result[MessageResponse]:
        limited = await check_rate_limit(
            self.rate_limiter,
            self.errors,
            self.settings.rate_limit("verify_email"),
            context.ip_address,
            context,
            AuditEventType.RATE_LIMIT_EXCEEDED,
        )
        if limited.is_err():
            return Return.err(limited.error)

        now = utcnow()

        async with self.uow:
            token = await self.uow.email_verification_tokens.get_by_token_hash(
                hash_token(command.token)
            )

            if token is None:
                return Return.err(await self._invalid_token("Token not found", None, None, context))
            if token.is_expired(now):
                return Return.err(
                    await self._invalid_token("Token expired", token.id, token.user_id, context)
                )
            if token.is_used:
                return Return.err(
                    await self._invalid_token("Token already used", token.id, token.user_id, context)
                )

            user = await self.uow.users.get_by_id(token.user_id)
            if user is None:
                return Return.err(
                    await self._invalid_token("User not found", token.id, token.user_id, context)
                )

            if not await self.uow.email_verification_tokens.mark_used(token.id, now):
                token_id, user_id = token.id, token.user_id
                await self.uow.rollback()
                return Return.err(
                    await self._invalid_token("Token already used", token_id, user_id, context)
                )

            user.email_verified = True
            await self.uow.users.update(user)
            await self.uow.email_verification_tokens.invalidate_outstanding_for_user(
                user.id, now, exclude_token_id=token.id
            )
            await self.uow.commit()

        await self.errors.record_success(
            AuditEventType.EMAIL_VERIFIED,
            user_id=user.id,
            email=user.email,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            metadata={"token_id": str(token.id)},
        )
        return Return.ok(MessageResponse(message=EMAIL_VERIFIED_MESSAGE))

    async def _invalid_token(
        self,
        reason: str,
        token_id: Optional[UUID],
        user_id: Optional[UUID],
        context: RequestContext,
    ) -> Error:
        return await self.errors.fail(
            ErrorCode.INVALID_TOKEN,
            event_type=AuditEventType.EMAIL_VERIFICATION_FAILED,
            user_id=user_id,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            reason=reason,
            metadata={"token_id": str(token_id)} if token_id is not None else None,
        )
