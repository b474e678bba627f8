"""
Register Use Case

Creates an account after rate-limit and password policy checks. When email
verification is required, the first verification link is issued in the same
transaction and mailed after commit.
"""

from typing import Optional

from account_security.app.services.email_sender import EmailSender
from account_security.app.services.password_policy import hash_password, validate_password_strength
from account_security.app.services.rate_limiter import RateLimiter
from account_security.app.services.security_errors import SecurityErrorFacade
from account_security.app.services.settings import SecuritySettings
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.domain.entities import AuditEventType, ErrorCode, User
from account_security.libs.result import Result, Return
from .dtos import RegisterCommand, RegisterResponse, RequestContext, UserInfo
from .guards import check_rate_limit
from .request_password_reset_use_case import Dispatch, run_in_background
from .send_verification_email_use_case import issue_verification_token, send_verification_link


class RegisterUseCase:
    """
    Use case for account registration.

    Business Rules:
    - Rate limited per client IP
    - Password must pass the policy, including the similarity-to-email check
    - Email must be unique
    - Password stored as bcrypt hash (cost factor 12)
    - With verification required, a 24h verification token is created with the account
    """

    def __init__(
        self,
        uow: UnitOfWork,
        errors: SecurityErrorFacade,
        rate_limiter: RateLimiter,
        settings: SecuritySettings,
        email_sender: Optional[EmailSender] = None,
    ):
        self.uow = uow
        self.errors = errors
        self.rate_limiter = rate_limiter
        self.settings = settings
        self.email_sender = email_sender

    async def execute(
        self,
        command: RegisterCommand,
        context: RequestContext,
        dispatch: Optional[Dispatch] = None,
    ) -> Result[RegisterResponse]:
        limited = await check_rate_limit(
            self.rate_limiter,
            self.errors,
            self.settings.rate_limit("register"),
            context.ip_address,
            context,
            AuditEventType.RATE_LIMIT_EXCEEDED,
            email=command.email,
        )
        if limited.is_err():
            return Return.err(limited.error)

        audit = {
            "email": command.email,
            "ip_address": context.ip_address,
            "user_agent": context.user_agent,
        }

        validation = validate_password_strength(command.password, command.email)
        if not validation.valid:
            return Return.err(
                await self.errors.fail(
                    ErrorCode.WEAK_PASSWORD,
                    event_type=AuditEventType.REGISTER_FAILED,
                    reason="Weak password",
                    errors=validation.errors,
                    **audit,
                )
            )

        async with self.uow:
            existing = await self.uow.users.get_by_email(command.email)
            if existing is not None:
                return Return.err(
                    await self.errors.fail(
                        ErrorCode.EMAIL_EXISTS,
                        event_type=AuditEventType.REGISTER_FAILED,
                        reason="Email already registered",
                        **audit,
                    )
                )

            user = User(
                email=command.email,
                username=command.username,
                password_hash=hash_password(command.password),
            )
            await self.uow.users.create(user)

            verification = None
            if self.settings.require_email_verification:
                verification = await issue_verification_token(self.uow, user, self.settings)
            await self.uow.commit()

        await self.errors.record_success(AuditEventType.REGISTER_SUCCESS, user_id=user.id, **audit)

        if verification is not None:
            token, raw_token = verification
            await self.errors.record_success(
                AuditEventType.EMAIL_VERIFICATION_REQUESTED,
                user_id=user.id,
                metadata={"token_id": str(token.id)},
                **audit,
            )
            if self.email_sender is not None:
                (dispatch or run_in_background)(
                    send_verification_link, self.email_sender, self.settings, user.email, raw_token
                )

        message = (
            "Registration successful. Please check your email to verify your account."
            if self.settings.require_email_verification
            else "Registration successful"
        )
        return Return.ok(
            RegisterResponse(
                message=message,
                user=UserInfo(
                    id=str(user.id),
                    email=user.email,
                    username=user.username,
                    email_verified=user.email_verified,
                ),
            )
        )
