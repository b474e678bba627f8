"""
Password Reset Flows

End-to-end handling of the forgot-password and reset-password requests:
CSRF check -> rate limit (per client IP) -> input validation -> token service.

Any unexpected exception is logged with full context, audited and returned as
GENERIC. Exception text never reaches the caller.
"""

import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from account_security.app.services.csrf import CsrfGuard
from account_security.app.services.rate_limiter import RateLimiter
from account_security.app.services.security_errors import SecurityErrorFacade, client_error
from account_security.app.services.settings import SecuritySettings
from account_security.domain.entities import AuditEventType, ErrorCode
from account_security.libs.result import Result, Return
from .confirm_password_reset_use_case import ConfirmPasswordResetUseCase
from .dtos import ForgotPasswordCommand, MessageResponse, RequestContext, ResetPasswordCommand
from .guards import check_csrf, check_rate_limit, validation_messages
from .request_password_reset_use_case import Dispatch, RequestPasswordResetUseCase

logger = logging.getLogger(__name__)


class ForgotPasswordFlow:
    def __init__(
        self,
        csrf: CsrfGuard,
        rate_limiter: RateLimiter,
        errors: SecurityErrorFacade,
        use_case: RequestPasswordResetUseCase,
        settings: SecuritySettings,
    ):
        self.csrf = csrf
        self.rate_limiter = rate_limiter
        self.errors = errors
        self.use_case = use_case
        self.settings = settings

    async def execute(
        self,
        payload: Mapping[str, Any],
        context: RequestContext,
        dispatch: Optional[Dispatch] = None,
    ) -> Result[MessageResponse]:
        try:
            return await self._execute(payload, context, dispatch)
        except Exception as e:
            logger.exception(f"Forgot-password flow failed unexpectedly (ip={context.ip_address})")
            return Return.err(
                await self.errors.fail(
                    ErrorCode.GENERIC,
                    event_type=AuditEventType.PASSWORD_RESET_REQUESTED,
                    ip_address=context.ip_address,
                    user_agent=context.user_agent,
                    reason="Unexpected error",
                    internal_details={"exception": repr(e)},
                )
            )

    async def _execute(
        self, payload: Mapping[str, Any], context: RequestContext, dispatch: Optional[Dispatch]
    ) -> Result[MessageResponse]:
        csrf_ok = await check_csrf(
            self.csrf, self.errors, context, AuditEventType.PASSWORD_RESET_REQUESTED
        )
        if csrf_ok.is_err():
            return Return.err(csrf_ok.error)

        limited = await check_rate_limit(
            self.rate_limiter,
            self.errors,
            self.settings.rate_limit("forgot_password"),
            context.ip_address,
            context,
            AuditEventType.RATE_LIMIT_EXCEEDED,
        )
        if limited.is_err():
            return Return.err(limited.error)

        try:
            command = ForgotPasswordCommand.model_validate(payload)
        except ValidationError as e:
            return Return.err(client_error(ErrorCode.INVALID_INPUT, errors=validation_messages(e)))

        return await self.use_case.execute(
            command.email, context.ip_address, context.user_agent, dispatch
        )


class ResetPasswordFlow:
    def __init__(
        self,
        csrf: CsrfGuard,
        rate_limiter: RateLimiter,
        errors: SecurityErrorFacade,
        use_case: ConfirmPasswordResetUseCase,
        settings: SecuritySettings,
    ):
        self.csrf = csrf
        self.rate_limiter = rate_limiter
        self.errors = errors
        self.use_case = use_case
        self.settings = settings

    async def execute(
        self, payload: Mapping[str, Any], context: RequestContext
    ) -> Result[MessageResponse]:
        try:
            return await self._execute(payload, context)
        except Exception as e:
            logger.exception(f"Reset-password flow failed unexpectedly (ip={context.ip_address})")
            return Return.err(
                await self.errors.fail(
                    ErrorCode.GENERIC,
                    event_type=AuditEventType.PASSWORD_RESET_FAILED,
                    ip_address=context.ip_address,
                    user_agent=context.user_agent,
                    reason="Unexpected error",
                    internal_details={"exception": repr(e)},
                )
            )

    async def _execute(
        self, payload: Mapping[str, Any], context: RequestContext
    ) -> Result[MessageResponse]:
        csrf_ok = await check_csrf(
            self.csrf, self.errors, context, AuditEventType.PASSWORD_RESET_FAILED
        )
        if csrf_ok.is_err():
            return Return.err(csrf_ok.error)

        limited = await check_rate_limit(
            self.rate_limiter,
            self.errors,
            self.settings.rate_limit("reset_password"),
            context.ip_address,
            context,
            AuditEventType.RATE_LIMIT_EXCEEDED,
        )
        if limited.is_err():
            return Return.err(limited.error)

        try:
            command = ResetPasswordCommand.model_validate(payload)
        except ValidationError as e:
            return Return.err(client_error(ErrorCode.INVALID_INPUT, errors=validation_messages(e)))

        return await self.use_case.execute(
            command.token, command.password, context.ip_address, context.user_agent
        )
