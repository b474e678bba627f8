from typing import Any, Dict, Optional

from fastapi import Request

from account_security.app.services.csrf import CsrfGuard
from account_security.app.services.rate_limiter import RateLimitStatus
from account_security.app.use_cases.auth import RequestContext

UNKNOWN = "unknown"

# Column widths of sessions.ip_address / user_agent and the audit trail
MAX_IP_LENGTH = 64
MAX_USER_AGENT_LENGTH = 512


def get_client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, else the peer address"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop[:MAX_IP_LENGTH]

    if request.client and request.client.host:
        return request.client.host[:MAX_IP_LENGTH]
    return UNKNOWN


def get_user_agent(request: Request) -> str:
    return (request.headers.get("user-agent") or UNKNOWN)[:MAX_USER_AGENT_LENGTH]


def build_context(request: Request, csrf: CsrfGuard) -> RequestContext:
    cookie_token, header_token = csrf.read_tokens(request)
    return RequestContext(
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        csrf_cookie=cookie_token,
        csrf_header=header_token,
    )


def rate_limit_headers(status: Optional[RateLimitStatus]) -> Dict[str, str]:
    if status is None:
        return {}
    return {
        "X-RateLimit-Limit": str(status.limit),
        "X-RateLimit-Remaining": str(status.remaining),
        "X-RateLimit-Reset": str(int(status.reset_at)),
    }


async def read_json_body(request: Request) -> Dict[str, Any]:
    """Raw JSON object body; anything else reads as empty and fails validation later"""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
