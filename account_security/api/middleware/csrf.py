import logging

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from account_security.api.error import error_response
from account_security.app.services.csrf import SAFE_METHODS, CsrfGuard

logger = logging.getLogger(__name__)


class CsrfMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie policy for state-changing requests.

    - GET/HEAD/OPTIONS and exempt paths pass through
    - Public paths pass through and receive a token if they have none
    - Everything else must carry a matching cookie and header, else 403
    """

    def __init__(self, app, guard: CsrfGuard):
        super().__init__(app)
        self.guard = guard

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if request.method in SAFE_METHODS or self.guard.is_exempt(path):
            return await call_next(request)

        if self.guard.is_public(path):
            response = await call_next(request)
            if not request.cookies.get(self.guard.settings.cookie_name):
                self.guard.set_token(response)
            return response

        result = self.guard.validate(request)
        if result.is_err():
            logger.warning(f"Rejected {request.method} {path}: CSRF validation failed")
            return error_response(result.error, status.HTTP_403_FORBIDDEN)

        return await call_next(request)
