from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from account_security.api.components import SecurityComponents
from account_security.api.error import raise_for_error
from account_security.api.utils.request import build_context
from account_security.app.use_cases.sessions import (
    RevokeSessionsResponse,
    SessionListResponse,
    SessionService,
    SuspiciousSessionsResponse,
)
from account_security.depends import (
    CurrentUser,
    get_current_user,
    get_security,
    get_session_service,
)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


class RevokeSpecificSessionResponse(BaseModel):
    """Response for specific session revocation"""

    message: str
    session_id: str
    revoked: bool


@router.get("", status_code=status.HTTP_200_OK, response_model=SessionListResponse)
async def list_sessions(
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    """
    List Sessions

    Active sessions of the caller, most recently used first, with the id of
    the session the access token belongs to.

    Raises:
        - 401 Unauthorized: Missing or invalid access token
    """
    result = await sessions.get_user_sessions(current_user.user_id)
    raise_for_error(result)

    return SessionListResponse(
        sessions=result.value, current_session_id=str(current_user.session_id)
    )


@router.get(
    "/suspicious",
    status_code=status.HTTP_200_OK,
    response_model=SuspiciousSessionsResponse,
)
async def suspicious_sessions(
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Suspicious Sessions

    Flags the caller's most recent sessions when they come from too many
    different IP addresses or countries. Advisory only, nothing is revoked.

    Raises:
        - 401 Unauthorized: Missing or invalid access token
    """
    result = await sessions.get_suspicious_sessions(current_user.user_id)
    raise_for_error(result)

    flagged = result.value
    return SuspiciousSessionsResponse(suspicious=bool(flagged), sessions=flagged)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_200_OK,
    response_model=RevokeSpecificSessionResponse,
)
async def revoke_specific_session(
    session_id: UUID,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
    components: SecurityComponents = Depends(get_security),
):
    """
    Revoke Specific Session

    Logs out a single device. Revoking an already revoked session succeeds
    with ``revoked: false``.

    Raises:
        - 401 Unauthorized: Missing or invalid access token
        - 403 Forbidden: Session unknown or owned by someone else
    """
    context = build_context(request, components.csrf)
    result = await sessions.revoke_session(
        session_id,
        user_id=current_user.user_id,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )
    raise_for_error(result)

    return {
        "message": "Session revoked successfully",
        "session_id": str(session_id),
        "revoked": result.value,
    }


@router.post(
    "/revoke-all",
    status_code=status.HTTP_200_OK,
    response_model=RevokeSessionsResponse,
)
async def revoke_all_sessions(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
    components: SecurityComponents = Depends(get_security),
):
    """
    Revoke All Sessions

    Revokes every session of the caller, including the current one.

    Raises:
        - 401 Unauthorized: Missing or invalid access token
    """
    context = build_context(request, components.csrf)
    result = await sessions.revoke_all_sessions(
        current_user.user_id,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
    )
    raise_for_error(result)

    count = result.value
    return RevokeSessionsResponse(
        message=f"Successfully revoked {count} session(s)", revoked_count=count
    )
