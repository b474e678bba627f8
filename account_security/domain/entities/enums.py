"""
Account Security Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class AuditEventType(str, Enum):
    """Security-relevant event kinds written to the audit trail"""

    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGIN_FAILED_RATE_LIMITED = "LOGIN_FAILED_RATE_LIMITED"
    REGISTER_SUCCESS = "REGISTER_SUCCESS"
    REGISTER_FAILED = "REGISTER_FAILED"
    LOGOUT = "LOGOUT"
    PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
    PASSWORD_RESET_SUCCESS = "PASSWORD_RESET_SUCCESS"
    PASSWORD_RESET_FAILED = "PASSWORD_RESET_FAILED"
    EMAIL_VERIFICATION_REQUESTED = "EMAIL_VERIFICATION_REQUESTED"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    EMAIL_VERIFICATION_FAILED = "EMAIL_VERIFICATION_FAILED"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    SESSION_REVOKED = "SESSION_REVOKED"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class ErrorCode(str, Enum):
    """Error codes that may be shown to clients"""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    EMAIL_EXISTS = "EMAIL_EXISTS"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    INVALID_TOKEN = "INVALID_TOKEN"
    RATE_LIMITED = "RATE_LIMITED"
    GENERIC = "GENERIC"
    # Transport-level codes
    INVALID_INPUT = "INVALID_INPUT"
    CSRF_VALIDATION_FAILED = "CSRF_VALIDATION_FAILED"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"


class PasswordStrength(str, Enum):
    """Password strength buckets"""

    weak = "weak"
    fair = "fair"
    good = "good"
    strong = "strong"
