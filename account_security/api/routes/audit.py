"""
Audit API Routes

Handles audit event retrieval endpoints.
"""

from fastapi import APIRouter, Depends, Query, status

from account_security.api.error import raise_for_error
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.app.use_cases.audit import AuditEventsResponse, GetAuditEventsUseCase
from account_security.depends import CurrentUser, get_current_user, get_unit_of_work

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get(
    "/events",
    status_code=status.HTTP_200_OK,
    response_model=AuditEventsResponse,
)
async def get_audit_events(
    current_user: CurrentUser = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    limit: int = Query(50, ge=1, le=100, description="Maximum number of events to return"),
):
    """
    Get Security Events

    Returns the caller's own security events, newest first, with masked IP
    addresses. Failure reasons and internal metadata are not exposed.

    Raises:
        - 400 Bad Request: limit outside 1..100
        - 401 Unauthorized: Missing or invalid access token
    """
    use_case = GetAuditEventsUseCase(uow)
    result = await use_case.execute(current_user.user_id, limit=limit)
    raise_for_error(result)
    return result.value
