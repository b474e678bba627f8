from typing import Any, Dict, Optional

from fastapi import status
from fastapi.responses import JSONResponse

from account_security.libs.result import Error, Result


class ClientError(Exception):
    def __init__(
        self,
        base_error: Error,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_error = base_error
        self.status_code = status_code
        self.headers = headers
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: Error):
        self.base_error = base_error
        super().__init__(base_error.message)


def error_body(error: Error) -> Dict[str, Any]:
    """JSON envelope for every failed request"""
    body: Dict[str, Any] = {"success": False, "code": error.code, "message": error.message}
    if error.details.get("errors"):
        body["errors"] = error.details["errors"]
    if error.details.get("retry_after") is not None:
        body["retry_after"] = error.details["retry_after"]
    return body


def error_response(
    error: Error, status_code: int, headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(error), headers=headers)


# Default HTTP status per error code; routes override where an endpoint differs
STATUS_BY_CODE: Dict[str, int] = {
    "INVALID_INPUT": status.HTTP_400_BAD_REQUEST,
    "WEAK_PASSWORD": status.HTTP_400_BAD_REQUEST,
    "INVALID_TOKEN": status.HTTP_400_BAD_REQUEST,
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "ACCOUNT_NOT_FOUND": status.HTTP_401_UNAUTHORIZED,
    "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
    "EMAIL_NOT_VERIFIED": status.HTTP_403_FORBIDDEN,
    "ACCOUNT_LOCKED": status.HTTP_403_FORBIDDEN,
    "CSRF_VALIDATION_FAILED": status.HTTP_403_FORBIDDEN,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "EMAIL_EXISTS": status.HTTP_409_CONFLICT,
    "RATE_LIMITED": status.HTTP_429_TOO_MANY_REQUESTS,
}


def raise_for_error(
    result: Result,
    headers: Optional[Dict[str, str]] = None,
    status_overrides: Optional[Dict[str, int]] = None,
) -> None:
    """Translate a failed use case Result into ClientError / ServerError"""
    if result.is_ok():
        return

    error = result.error
    code_status = (status_overrides or {}).get(error.code) or STATUS_BY_CODE.get(error.code)
    if code_status is None:
        raise ServerError(error)

    headers = dict(headers or {})
    if error.details.get("retry_after") is not None:
        headers["Retry-After"] = str(error.details["retry_after"])
    raise ClientError(error, status_code=code_status, headers=headers or None)
