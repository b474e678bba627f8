"""
Login Use Case

Handles user authentication and starts a bound session.
"""

from account_security.app.services.password_policy import dummy_password_hash, verify_password
from account_security.app.services.rate_limiter import RateLimiter
from account_security.app.services.security_errors import SecurityErrorFacade
from account_security.app.services.settings import SecuritySettings
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.app.use_cases.sessions import SessionService
from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType, ErrorCode
from account_security.libs.result import Result, Return
from .dtos import LoginCommand, LoginResponse, RequestContext, UserInfo
from .guards import check_rate_limit


class LoginUseCase:
    """
    Use case for user login.

    Business Rules:
    - Rate limited per email address; a successful login clears the counter
    - The attempt that starts a lockout is audited as ACCOUNT_LOCKED
    - Constant-time password comparison; unknown accounts are checked against
      a dummy hash so both paths cost one bcrypt verification
    - Unknown email and wrong password produce the same INVALID_CREDENTIALS
    - Unverified accounts are rejected only when verification is required
    - Creates a session bound to the client IP and user agent
    """

    def __init__(
        self,
        uow: UnitOfWork,
        errors: SecurityErrorFacade,
        rate_limiter: RateLimiter,
        sessions: SessionService,
        settings: SecuritySettings,
    ):
        self.uow = uow
        self.errors = errors
        self.rate_limiter = rate_limiter
        self.sessions = sessions
        self.settings = settings

    async def execute(self, command: LoginCommand, context: RequestContext) -> Result[LoginResponse]:
        """
        Execute login use case.

        Returns:
            Result with LoginResponse containing tokens, or Error
        """
        limit_config = self.settings.rate_limit("login")
        limited = await check_rate_limit(
            self.rate_limiter,
            self.errors,
            limit_config,
            command.email,
            context,
            AuditEventType.LOGIN_FAILED_RATE_LIMITED,
            email=command.email,
            lockout_event_type=AuditEventType.ACCOUNT_LOCKED,
        )
        if limited.is_err():
            return Return.err(limited.error)

        audit = {
            "email": command.email,
            "ip_address": context.ip_address,
            "user_agent": context.user_agent,
        }

        async with self.uow:
            user = await self.uow.users.get_by_email(command.email)

            if user is None:
                verify_password(command.password, dummy_password_hash())
                return Return.err(
                    await self.errors.fail(
                        ErrorCode.INVALID_CREDENTIALS,
                        event_type=AuditEventType.LOGIN_FAILED,
                        reason="Account not found",
                        **audit,
                    )
                )

            if not verify_password(command.password, user.password_hash):
                return Return.err(
                    await self.errors.fail(
                        ErrorCode.INVALID_CREDENTIALS,
                        event_type=AuditEventType.LOGIN_FAILED,
                        user_id=user.id,
                        reason="Invalid password",
                        **audit,
                    )
                )

            if self.settings.require_email_verification and not user.email_verified:
                return Return.err(
                    await self.errors.fail(
                        ErrorCode.EMAIL_NOT_VERIFIED,
                        event_type=AuditEventType.LOGIN_FAILED,
                        user_id=user.id,
                        reason="Email not verified",
                        **audit,
                    )
                )

            user.last_login_at = utcnow()
            await self.uow.users.update(user)
            await self.uow.commit()

        session_result = await self.sessions.create_session(
            user.id, context.ip_address, context.user_agent
        )
        if session_result.is_err():
            return Return.err(session_result.error)
        tokens = session_result.value

        await self.rate_limiter.clear_rate_limit(command.email, limit_config.key_prefix)

        await self.errors.record_success(
            AuditEventType.LOGIN_SUCCESS,
            user_id=user.id,
            metadata={"session_id": tokens.session_id},
            **audit,
        )

        return Return.ok(
            LoginResponse(
                user=UserInfo(
                    id=str(user.id),
                    email=user.email,
                    username=user.username,
                    email_verified=user.email_verified,
                ),
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                session_id=tokens.session_id,
                expires_in=tokens.expires_in,
            )
        )
