"""
Confirm Password Reset Use Case

Handles password reset confirmation with secure token validation.
"""

from typing import Optional
from uuid import UUID

from account_security.app.services.password_policy import hash_password, validate_password_strength
from account_security.app.services.security_errors import SecurityErrorFacade
from account_security.app.services.tokens import hash_token
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType, ErrorCode
from account_security.libs.result import Error, Result, Return
from .dtos import MessageResponse

RESET_SUCCESS_MESSAGE = "Password has been reset successfully. Please log in with your new password."


class ConfirmPasswordResetUseCase:
    """
    Use case for confirming password reset.

    Business Rules:
    - Token is looked up by its SHA-256 hash
    - Unknown, expired and already-used tokens all fail as INVALID_TOKEN;
      the audit trail records which one it was
    - Reuse of a consumed token is flagged as suspicious activity
    - New password must pass the password policy (checked against the
      account email); only here are the detailed errors returned
    - The token is marked used with a conditional update so that exactly one
      of two concurrent submissions wins
    - Every other outstanding token of the user is invalidated and all of the
      user's sessions are revoked in the same transaction
    """

    def __init__(self, uow: UnitOfWork, errors: SecurityErrorFacade):
        self.uow = uow
        self.errors = errors

    async def execute(
        self, token: str, new_password: str, ip_address: str, user_agent: str
    ) -> Result[MessageResponse]:
        """
        Execute confirm password reset use case.

        Args:
            token: Raw password reset token from the email link
            new_password: New password to set

        Returns:
            Result with confirmation message, or Error

        Errors:
            - INVALID_TOKEN: Token unknown, expired or already used
            - WEAK_PASSWORD: Password rejected by the policy (details in ``errors``)
        """
        now = utcnow()

        async with self.uow:
            reset_token = await self.uow.password_reset_tokens.get_by_token_hash(hash_token(token))

            if reset_token is None:
                return Return.err(
                    await self._invalid_token("Token not found", None, None, ip_address, user_agent)
                )

            if reset_token.is_expired(now):
                return Return.err(
                    await self._invalid_token(
                        "Token expired", reset_token.id, reset_token.user_id, ip_address, user_agent
                    )
                )

            if reset_token.is_used:
                return Return.err(
                    await self._invalid_token(
                        "Token already used",
                        reset_token.id,
                        reset_token.user_id,
                        ip_address,
                        user_agent,
                        suspicious=True,
                    )
                )

            user = await self.uow.users.get_by_id(reset_token.user_id)
            if user is None:
                return Return.err(
                    await self._invalid_token(
                        "User not found", reset_token.id, reset_token.user_id, ip_address, user_agent
                    )
                )

            validation = validate_password_strength(new_password, user.email)
            if not validation.valid:
                return Return.err(
                    await self.errors.fail(
                        ErrorCode.WEAK_PASSWORD,
                        event_type=AuditEventType.PASSWORD_RESET_FAILED,
                        user_id=user.id,
                        email=user.email,
                        ip_address=ip_address,
                        user_agent=user_agent,
                        reason="Weak password",
                        errors=validation.errors,
                    )
                )

            # Lost a race with a concurrent submission of the same token
            if not await self.uow.password_reset_tokens.mark_used(reset_token.id, now):
                token_id, token_user_id = reset_token.id, reset_token.user_id
                await self.uow.rollback()
                return Return.err(
                    await self._invalid_token(
                        "Token already used",
                        token_id,
                        token_user_id,
                        ip_address,
                        user_agent,
                        suspicious=True,
                    )
                )

            user.password_hash = hash_password(new_password)
            await self.uow.users.update(user)

            invalidated = await self.uow.password_reset_tokens.invalidate_outstanding_for_user(
                user.id, now, exclude_token_id=reset_token.id
            )
            revoked = await self.uow.sessions.revoke_all_by_user_id(user.id, now)

            await self.uow.commit()

        await self.errors.record_success(
            AuditEventType.PASSWORD_RESET_SUCCESS,
            user_id=user.id,
            email=user.email,
            ip_address=ip_address,
            user_agent=user_agent,
            metadata={
                "token_id": str(reset_token.id),
                "tokens_invalidated": invalidated,
                "sessions_revoked": revoked,
            },
        )

        return Return.ok(MessageResponse(message=RESET_SUCCESS_MESSAGE))

    async def _invalid_token(
        self,
        reason: str,
        token_id: Optional[UUID],
        user_id: Optional[UUID],
        ip_address: str,
        user_agent: str,
        suspicious: bool = False,
    ) -> Error:
        metadata = {}
        if token_id is not None:
            metadata["token_id"] = str(token_id)
        if suspicious:
            metadata["suspiciousActivity"] = True

        return await self.errors.fail(
            ErrorCode.INVALID_TOKEN,
            event_type=AuditEventType.PASSWORD_RESET_FAILED,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            reason=reason,
            metadata=metadata or None,
        )
