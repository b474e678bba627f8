"""
Account Security Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import AuditEventType, ErrorCode, PasswordStrength

# Export all entities
from .user import User
from .session import Session
from .audit_event import AuditEvent
from .password_reset_token import PasswordResetToken
from .email_verification_token import EmailVerificationToken

__all__ = [
    # Enums
    "AuditEventType",
    "ErrorCode",
    "PasswordStrength",
    # Entities
    "User",
    "Session",
    "AuditEvent",
    "PasswordResetToken",
    "EmailVerificationToken",
]
