"""
Request Password Reset Use Case

Handles generating and sending password reset tokens.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Any, Callable, Optional, Set

from account_security.app.services.email_sender import EmailSender
from account_security.app.services.security_errors import SecurityErrorFacade, mask_email
from account_security.app.services.settings import SecuritySettings
from account_security.app.services.tokens import generate_token, hash_token
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType, PasswordResetToken
from account_security.libs.result import Result, Return
from .dtos import MessageResponse
from .guards import pad_to_min_duration

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account with this email exists, a password reset link has been sent."

Dispatch = Callable[..., Any]

_background_tasks: Set[asyncio.Task] = set()


def run_in_background(send_fn: Callable[..., Any], *args: Any) -> None:
    """Default dispatcher: schedule a coroutine function on the running loop"""
    task = asyncio.get_running_loop().create_task(send_fn(*args))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


class RequestPasswordResetUseCase:
    """
    Use case for requesting password reset.

    Business Rules:
    - Token is 256 random bits (hex); only its SHA-256 is stored
    - Token expires in 15 minutes
    - No email enumeration: identical payload whether or not the account
      exists, and the whole operation takes at least 150ms either way
    - The email is sent out-of-band; a delivery failure is logged, never returned
    - Both outcomes are audit-logged
    """

    def __init__(
        self,
        uow: UnitOfWork,
        errors: SecurityErrorFacade,
        email_sender: EmailSender,
        settings: SecuritySettings,
    ):
        self.uow = uow
        self.errors = errors
        self.email_sender = email_sender
        self.settings = settings

    async def execute(
        self,
        email: str,
        ip_address: str,
        user_agent: str,
        dispatch: Optional[Dispatch] = None,
    ) -> Result[MessageResponse]:
        """
        Execute request password reset use case.

        Args:
            email: Address the reset was requested for
            dispatch: ``dispatch(send_fn, *args)`` schedules the email send;
                FastAPI's ``BackgroundTasks.add_task`` fits. Defaults to an
                asyncio task.

        Returns:
            Result with the generic confirmation message
        """
        started = time.monotonic()
        dispatch = dispatch or run_in_background
        email = email.strip().lower()

        try:
            async with self.uow:
                user = await self.uow.users.get_by_email(email)

                if user is None:
                    await self.errors.record(
                        AuditEventType.PASSWORD_RESET_REQUESTED,
                        success=False,
                        email=email,
                        ip_address=ip_address,
                        user_agent=user_agent,
                        reason="User not found",
                    )
                else:
                    raw_token = generate_token()
                    now = utcnow()
                    reset_token = PasswordResetToken(
                        user_id=user.id,
                        token_hash=hash_token(raw_token),
                        created_at=now,
                        expires_at=now + timedelta(minutes=self.settings.reset_token_ttl_minutes),
                    )
                    await self.uow.password_reset_tokens.create(reset_token)
                    await self.uow.commit()

                    await self.errors.record_success(
                        AuditEventType.PASSWORD_RESET_REQUESTED,
                        user_id=user.id,
                        email=email,
                        ip_address=ip_address,
                        user_agent=user_agent,
                        metadata={"token_id": str(reset_token.id)},
                    )

                    dispatch(self._send_reset_email, user.email, raw_token)
        finally:
            await pad_to_min_duration(started, self.settings.reset_request_min_duration_ms)

        return Return.ok(MessageResponse(message=RESET_REQUESTED_MESSAGE))

    async def _send_reset_email(self, email: str, raw_token: str) -> None:
        reset_url = f"{self.settings.app_url.rstrip('/')}/reset-password?token={raw_token}"
        try:
            await self.email_sender.send_password_reset(email, reset_url)
        except Exception:
            logger.exception(f"Failed to send password reset email to {mask_email(email)}")
