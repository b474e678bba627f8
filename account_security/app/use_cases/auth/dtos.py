"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for the auth domain.
Provides type safety and clear contracts between layers.
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from account_security.app.services.rate_limiter import RateLimitStatus


# ============================================================================
# Request context
# ============================================================================


class RequestContext(BaseModel):
    """Transport facts a flow needs, extracted once at the HTTP boundary"""

    ip_address: str = "unknown"
    user_agent: str = "unknown"
    csrf_cookie: Optional[str] = None
    csrf_header: Optional[str] = None
    # Set by the rate-limit check so the route can emit X-RateLimit-* headers
    rate_limit: Optional[RateLimitStatus] = None


# ============================================================================
# Command DTOs
# ============================================================================


class _EmailCommand(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ForgotPasswordCommand(_EmailCommand):
    """Input for the forgot-password flow"""


class ResetPasswordCommand(BaseModel):
    """Input for the reset-password flow. Strength is checked by the password policy, not here."""

    token: str = Field(..., min_length=1, max_length=256)
    password: str = Field(..., min_length=1, max_length=1024)


class RegisterCommand(_EmailCommand):
    password: str = Field(..., min_length=1, max_length=1024)
    username: Optional[str] = Field(default=None, max_length=100)


class LoginCommand(_EmailCommand):
    password: str = Field(..., min_length=1, max_length=1024)


class RefreshTokenCommand(BaseModel):
    refresh_token: str = Field(..., min_length=1, max_length=256)


class SendVerificationEmailCommand(_EmailCommand):
    """Input for (re)sending the email verification link"""


class VerifyEmailCommand(BaseModel):
    token: str = Field(..., min_length=1, max_length=256)


# ============================================================================
# Response DTOs
# ============================================================================


class MessageResponse(BaseModel):
    """Response for the password reset and email verification use cases"""

    success: bool = True
    message: str


class UserInfo(BaseModel):
    id: str
    email: str
    username: Optional[str] = None
    email_verified: bool


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    user: UserInfo


class LoginResponse(BaseModel):
    success: bool = True
    user: UserInfo
    access_token: str
    refresh_token: str
    session_id: str
    token_type: str = "bearer"
    expires_in: int


class RefreshTokenResponse(BaseModel):
    """Refresh tokens are not rotated, so only a new access token comes back"""

    success: bool = True
    access_token: str
    session_id: str
    token_type: str = "bearer"
    expires_in: int
