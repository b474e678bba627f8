"""
Request guards shared by the auth use cases and flows.

The checks return ``Result`` so callers can stop at the first failure the same way
they handle any other use case error.
"""

import asyncio
import time
from typing import List, Optional

from pydantic import ValidationError

from account_security.app.services.csrf import CsrfGuard
from account_security.app.services.rate_limiter import RateLimitConfig, RateLimiter, RateLimitStatus
from account_security.app.services.security_errors import SecurityErrorFacade
from account_security.domain.entities import AuditEventType, ErrorCode
from account_security.libs.result import Result, Return
from .dtos import RequestContext


async def check_csrf(
    csrf: CsrfGuard,
    errors: SecurityErrorFacade,
    context: RequestContext,
    event_type: AuditEventType,
) -> Result[None]:
    result = csrf.validate_tokens(context.csrf_cookie, context.csrf_header)
    if result.is_err():
        return Return.err(
            await errors.fail(
                ErrorCode.CSRF_VALIDATION_FAILED,
                event_type=event_type,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                reason="CSRF validation failed",
            )
        )
    return result


async def check_rate_limit(
    rate_limiter: RateLimiter,
    errors: SecurityErrorFacade,
    config: RateLimitConfig,
    identifier: str,
    context: RequestContext,
    event_type: AuditEventType,
    email: Optional[str] = None,
    lockout_event_type: Optional[AuditEventType] = None,
) -> Result[RateLimitStatus]:
    """
    Count one attempt; on success the remaining budget is stored on ``context``.

    The attempt that starts a lockout is audited as ``lockout_event_type`` when
    one is given; every rejection after it as ``event_type``.
    """
    result = await rate_limiter.check_rate_limit(identifier, config)
    if result.is_err():
        locked_now = bool(result.error.details.get("locked_now"))
        if locked_now and lockout_event_type is not None:
            event_type = lockout_event_type
        return Return.err(
            await errors.fail(
                ErrorCode.RATE_LIMITED,
                event_type=event_type,
                email=email,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                reason=(
                    f"Lockout started for {config.key_prefix}"
                    if locked_now
                    else f"Rate limit exceeded for {config.key_prefix}"
                ),
                retry_after=result.error.details.get("retry_after"),
            )
        )

    context.rate_limit = result.value
    return result


async def pad_to_min_duration(started: float, min_duration_ms: int) -> None:
    """Sleep until ``min_duration_ms`` has passed since ``started`` (a time.monotonic reading)"""
    # Floor only: a slow lookup is never shortened
    remaining = min_duration_ms / 1000 - (time.monotonic() - started)
    if remaining > 0:
        await asyncio.sleep(remaining)


def validation_messages(exc: ValidationError) -> List[str]:
    """Client-safe summary of a pydantic ValidationError, one line per problem"""
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()))
        messages.append(f"{field}: {err['msg']}" if field else err["msg"])
    return messages
