"""
Secure Error Handling

Central mapping from internal failure codes to generic client messages.

Every failure routed through ``SecurityErrorFacade.fail``:
1. is logged with full internal detail (identifiers masked)
2. is written to the audit trail with success=False
3. comes back as an ``Error`` holding only the safe message, the code and
   explicitly client-safe details

INVALID_CREDENTIALS and ACCOUNT_NOT_FOUND share one message so that a caller
cannot tell "wrong password" from "no such account".
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from account_security.domain.entities import AuditEvent, AuditEventType, ErrorCode
from account_security.libs.result import Error
from .audit_sink import AuditSink

logger = logging.getLogger("account_security.security")

SAFE_ERROR_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorCode.ACCOUNT_NOT_FOUND: "Invalid email or password",
    ErrorCode.ACCOUNT_LOCKED: "Account temporarily locked. Please try again later.",
    ErrorCode.EMAIL_NOT_VERIFIED: "Please verify your email before logging in",
    ErrorCode.EMAIL_EXISTS: "Email address already registered",
    ErrorCode.WEAK_PASSWORD: "Password does not meet security requirements",
    ErrorCode.INVALID_TOKEN: "Invalid or expired token",
    ErrorCode.RATE_LIMITED: "Too many attempts. Please try again later.",
    ErrorCode.GENERIC: "An error occurred. Please try again later.",
    ErrorCode.INVALID_INPUT: "Invalid request",
    ErrorCode.CSRF_VALIDATION_FAILED: "CSRF token validation failed",
    ErrorCode.UNAUTHORIZED: "Authentication required",
    ErrorCode.FORBIDDEN: "You do not have permission to perform this action",
}

DEFAULT_AUDIT_EVENTS: Dict[ErrorCode, AuditEventType] = {
    ErrorCode.INVALID_CREDENTIALS: AuditEventType.LOGIN_FAILED,
    ErrorCode.ACCOUNT_NOT_FOUND: AuditEventType.LOGIN_FAILED,
    ErrorCode.ACCOUNT_LOCKED: AuditEventType.ACCOUNT_LOCKED,
    ErrorCode.EMAIL_NOT_VERIFIED: AuditEventType.LOGIN_FAILED,
    ErrorCode.EMAIL_EXISTS: AuditEventType.REGISTER_FAILED,
    ErrorCode.WEAK_PASSWORD: AuditEventType.REGISTER_FAILED,
    ErrorCode.INVALID_TOKEN: AuditEventType.PASSWORD_RESET_FAILED,
    ErrorCode.RATE_LIMITED: AuditEventType.LOGIN_FAILED_RATE_LIMITED,
    ErrorCode.GENERIC: AuditEventType.LOGIN_FAILED,
}


def mask_email(email: Optional[str]) -> Optional[str]:
    """
    Mask the local part of an email, keeping the domain.

    The first and last two characters survive and the middle becomes at least
    one asterisk: ``john.doe@example.com`` -> ``jo****oe@example.com``.
    """
    if not email:
        return email
    local, at, domain = email.partition("@")
    masked = local[:2] + "*" * max(1, len(local) - 4) + local[-2:]
    return f"{masked}{at}{domain}"


def mask_ip(ip_address: Optional[str]) -> Optional[str]:
    """
    Zero the last two octets of an IPv4 address.

    Anything that is not dotted-quad IPv4 (IPv6, "unknown") is returned
    unchanged.
    """
    if not ip_address:
        return ip_address
    parts = ip_address.split(".")
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.0.0"
    return ip_address


def client_error(
    code: ErrorCode, errors: Optional[List[str]] = None, retry_after: Optional[int] = None
) -> Error:
    """Build a client-facing Error for ``code`` without logging or auditing it"""
    details: Dict[str, Any] = {}
    if errors:
        details["errors"] = list(errors)
    if retry_after is not None:
        details["retry_after"] = retry_after
    return Error(code.value, SAFE_ERROR_MESSAGES.get(code, SAFE_ERROR_MESSAGES[ErrorCode.GENERIC]), details)


class SecurityErrorFacade:
    """Turns internal failures into safe errors and keeps the audit trail consistent"""

    def __init__(self, audit_sink: AuditSink):
        self.audit_sink = audit_sink

    async def fail(
        self,
        code: ErrorCode,
        *,
        event_type: Optional[AuditEventType] = None,
        email: Optional[str] = None,
        user_id: Optional[UUID] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        reason: Optional[str] = None,
        internal_details: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        errors: Optional[List[str]] = None,
        retry_after: Optional[int] = None,
    ) -> Error:
        """
        Log, audit and convert a failure.

        Args:
            code: Internal failure code
            event_type: Audit event type, defaults to the code's usual event
            internal_details: Logged only, never returned or audited
            metadata: Structured audit context (e.g. suspiciousActivity)
            errors: Client-safe validation messages (weak password, bad input)
            retry_after: Seconds until a rate-limited caller may retry

        Returns:
            Error carrying the generic message for ``code``
        """
        logger.warning(
            f"Auth error: {code.value} "
            f"email={mask_email(email)} user_id={user_id} ip={mask_ip(ip_address)} "
            f"reason={reason} details={internal_details or {}}"
        )

        await self.record(
            event_type or DEFAULT_AUDIT_EVENTS.get(code, AuditEventType.LOGIN_FAILED),
            success=False,
            email=email,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            reason=reason or code.value,
            metadata=metadata,
        )

        return client_error(code, errors=errors, retry_after=retry_after)

    async def record_success(self, event_type: AuditEventType, **kwargs) -> None:
        await self.record(event_type, success=True, **kwargs)

    async def record(
        self,
        event_type: AuditEventType,
        *,
        success: bool = True,
        email: Optional[str] = None,
        user_id: Optional[UUID] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Write one audit event"""
        await self.audit_sink.emit(
            AuditEvent(
                event_type=event_type,
                user_id=user_id,
                email=email,
                ip_address=ip_address,
                user_agent=user_agent,
                success=success,
                reason=reason,
                event_metadata=metadata,
            )
        )
