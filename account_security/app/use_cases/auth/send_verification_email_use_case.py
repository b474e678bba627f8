"""
Send Verification Email Use Case

Issues email verification tokens and (re)sends the verification link.
"""

import logging
import time
from datetime import timedelta
from typing import Optional, Tuple

from account_security.app.services.email_sender import EmailSender
from account_security.app.services.rate_limiter import RateLimiter
from account_security.app.services.security_errors import SecurityErrorFacade, mask_email
from account_security.app.services.settings import SecuritySettings
from account_security.app.services.tokens import generate_token, hash_token
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType, EmailVerificationToken, User
from account_security.libs.result import Result, Return
from .dtos import MessageResponse, RequestContext, SendVerificationEmailCommand
from .guards import check_rate_limit, pad_to_min_duration
from .request_password_reset_use_case import Dispatch, run_in_background

logger = logging.getLogger(__name__)

VERIFICATION_SENT_MESSAGE = (
    "If an unverified account with this email exists, a verification link has been sent."
)


async def issue_verification_token(
    uow: UnitOfWork, user: User, settings: SecuritySettings
) -> Tuple[EmailVerificationToken, str]:
    """
    Create a fresh token for ``user`` inside the caller's transaction.

    Earlier unused tokens of the user are invalidated so only the newest link works.
    Returns the stored token and the raw token; the raw token is never persisted.
    """
    raw_token = generate_token()
    now = utcnow()
    await uow.email_verification_tokens.invalidate_outstanding_for_user(user.id, now)

    token = EmailVerificationToken(
        user_id=user.id,
        token_hash=hash_token(raw_token),
        created_at=now,
        expires_at=now + timedelta(hours=settings.email_verification_ttl_hours),
    )
    await uow.email_verification_tokens.create(token)
    return token, raw_token


async def send_verification_link(
    email_sender: EmailSender, settings: SecuritySettings, email: str, raw_token: str
) -> None:
    verify_url = f"{settings.app_url.rstrip('/')}/verify-email?token={raw_token}"
    try:
        await email_sender.send_email_verification(email, verify_url)
    except Exception:
        logger.exception(f"Failed to send verification email to {mask_email(email)}")


class SendVerificationEmailUseCase:
    """
    Use case for (re)sending the email verification link.

    Business Rules:
    - Rate limited per email address
    - No email enumeration: the same message comes back for unknown,
      already verified and unverified accounts, never faster than the
      configured floor
    - Token is 256 random bits (hex); only its SHA-256 is stored; 24h lifetime
    - The email is sent out-of-band; a delivery failure is logged, never returned
    """

    def __init__(
        self,
        uow: UnitOfWork,
        errors: SecurityErrorFacade,
        rate_limiter: RateLimiter,
        email_sender: EmailSender,
        settings: SecuritySettings,
    ):
        self.uow = uow
        self.errors = errors
        self.rate_limiter = rate_limiter
        self.email_sender = email_sender
        self.settings = settings

    async def execute(
        self,
        command: SendVerificationEmailCommand,
        context: RequestContext,
        dispatch: Optional[Dispatch] = None,
    ) -> Result[MessageResponse]:
        started = time.monotonic()
        dispatch = dispatch or run_in_background
        audit = {
            "email": command.email,
            "ip_address": context.ip_address,
            "user_agent": context.user_agent,
        }

        try:
            limited = await check_rate_limit(
                self.rate_limiter,
                self.errors,
                self.settings.rate_limit("verify_email_send"),
                command.email,
                context,
                AuditEventType.RATE_LIMIT_EXCEEDED,
                email=command.email,
            )
            if limited.is_err():
                return Return.err(limited.error)

            async with self.uow:
                user = await self.uow.users.get_by_email(command.email)

                if user is None or user.email_verified:
                    await self.errors.record(
                        AuditEventType.EMAIL_VERIFICATION_REQUESTED,
                        success=False,
                        user_id=user.id if user else None,
                        reason="User not found" if user is None else "Email already verified",
                        **audit,
                    )
                else:
                    token, raw_token = await issue_verification_token(
                        self.uow, user, self.settings
                    )
                    await self.uow.commit()

                    await self.errors.record_success(
                        AuditEventType.EMAIL_VERIFICATION_REQUESTED,
                        user_id=user.id,
                        metadata={"token_id": str(token.id)},
                        **audit,
                    )
                    dispatch(
                        send_verification_link,
                        self.email_sender,
                        self.settings,
                        user.email,
                        raw_token,
                    )
        finally:
            await pad_to_min_duration(started, self.settings.reset_request_min_duration_ms)

        return Return.ok(MessageResponse(message=VERIFICATION_SENT_MESSAGE))
