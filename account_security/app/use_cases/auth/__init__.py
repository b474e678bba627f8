"""
Authentication Use Cases

All authentication-related business logic.
"""

from .register_use_case import RegisterUseCase
from .login_use_case import LoginUseCase
from .request_password_reset_use_case import RequestPasswordResetUseCase, run_in_background
from .confirm_password_reset_use_case import ConfirmPasswordResetUseCase
from .send_verification_email_use_case import SendVerificationEmailUseCase
from .verify_email_use_case import VerifyEmailUseCase
from .cleanup_expired_tokens_use_case import CleanupExpiredTokensUseCase, CleanupResult
from .password_reset_flows import ForgotPasswordFlow, ResetPasswordFlow
from .dtos import (
    RequestContext,
    ForgotPasswordCommand,
    ResetPasswordCommand,
    RegisterCommand,
    LoginCommand,
    RefreshTokenCommand,
    SendVerificationEmailCommand,
    VerifyEmailCommand,
    MessageResponse,
    UserInfo,
    RegisterResponse,
    LoginResponse,
    RefreshTokenResponse,
)

__all__ = [
    # Use Cases
    "RegisterUseCase",
    "LoginUseCase",
    "RequestPasswordResetUseCase",
    "ConfirmPasswordResetUseCase",
    "SendVerificationEmailUseCase",
    "VerifyEmailUseCase",
    "CleanupExpiredTokensUseCase",
    "CleanupResult",
    "run_in_background",
    # Flows
    "ForgotPasswordFlow",
    "ResetPasswordFlow",
    # DTOs - Context
    "RequestContext",
    # DTOs - Commands
    "ForgotPasswordCommand",
    "ResetPasswordCommand",
    "RegisterCommand",
    "LoginCommand",
    "RefreshTokenCommand",
    "SendVerificationEmailCommand",
    "VerifyEmailCommand",
    # DTOs - Responses
    "MessageResponse",
    "UserInfo",
    "RegisterResponse",
    "LoginResponse",
    "RefreshTokenResponse",
]
