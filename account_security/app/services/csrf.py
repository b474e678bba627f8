"""
CSRF Guard

Double-submit cookie: the token lives in an HttpOnly cookie and the client
echoes the copy it received (response header or /auth/csrf-token) in the
X-CSRF-Token request header. A request is accepted only when both are present
and identical byte for byte.
"""

import hmac
import logging
import secrets
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict
from starlette.requests import Request
from starlette.responses import Response

from account_security.domain.entities import ErrorCode
from account_security.libs.result import Result, Return
from .security_errors import client_error

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class CsrfSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    cookie_name: str = "__csrf_token"
    header_name: str = "X-CSRF-Token"
    max_age: int = 3600
    secure: bool = False
    public_paths: Tuple[str, ...] = ("/auth/register", "/auth/forgot-password")
    exempt_paths: Tuple[str, ...] = ("/health", "/auth/refresh")


class CsrfGuard:
    def __init__(self, settings: CsrfSettings):
        self.settings = settings

    @staticmethod
    def generate_token() -> str:
        """256 random bits, hex encoded"""
        return secrets.token_hex(32)

    def set_token(self, response: Response, token: Optional[str] = None) -> str:
        """Store a (new) token in the CSRF cookie and mirror it in a response header"""
        token = token or self.generate_token()
        response.set_cookie(
            key=self.settings.cookie_name,
            value=token,
            max_age=self.settings.max_age,
            path="/",
            secure=self.settings.secure,
            httponly=True,
            samesite="strict",
        )
        response.headers[self.settings.header_name] = token
        return token

    def read_tokens(self, request: Request) -> Tuple[Optional[str], Optional[str]]:
        return (
            request.cookies.get(self.settings.cookie_name),
            request.headers.get(self.settings.header_name),
        )

    def validate_tokens(
        self, cookie_token: Optional[str], header_token: Optional[str]
    ) -> Result[None]:
        if not cookie_token:
            logger.warning("CSRF validation failed: token missing from cookie")
            return Return.err(client_error(ErrorCode.CSRF_VALIDATION_FAILED))

        if not header_token:
            logger.warning("CSRF validation failed: token missing from header")
            return Return.err(client_error(ErrorCode.CSRF_VALIDATION_FAILED))

        if not hmac.compare_digest(cookie_token.encode(), header_token.encode()):
            logger.warning("CSRF validation failed: header does not match cookie")
            return Return.err(client_error(ErrorCode.CSRF_VALIDATION_FAILED))

        return Return.ok(None)

    def validate(self, request: Request) -> Result[None]:
        cookie_token, header_token = self.read_tokens(request)
        return self.validate_tokens(cookie_token, header_token)

    def is_public(self, path: str) -> bool:
        return any(path.startswith(p) for p in self.settings.public_paths)

    def is_exempt(self, path: str) -> bool:
        return any(path.startswith(p) for p in self.settings.exempt_paths)
