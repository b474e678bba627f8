from typing import AsyncIterator
from uuid import UUID

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from account_security.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from account_security.api.components import SecurityComponents
from account_security.api.error import ClientError
from account_security.app.services.security_errors import client_error
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.app.use_cases.sessions import SessionService
from account_security.domain.base import utcnow
from account_security.domain.entities import ErrorCode

security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    user_id: UUID
    session_id: UUID


def get_security(request: Request) -> SecurityComponents:
    return request.app.state.security


async def get_unit_of_work(request: Request) -> AsyncIterator[UnitOfWork]:
    async with request.app.state.session_factory() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_session_service(
    uow: UnitOfWork = Depends(get_unit_of_work),
    components: SecurityComponents = Depends(get_security),
) -> SessionService:
    return SessionService(uow, components.access_tokens, components.errors, components.settings)


def _unauthorized() -> ClientError:
    return ClientError(client_error(ErrorCode.UNAUTHORIZED), status_code=status.HTTP_401_UNAUTHORIZED)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    components: SecurityComponents = Depends(get_security),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> CurrentUser:
    """
    Dependency to verify the bearer access token and its session.

    The session must still exist and be unrevoked, so logout and password
    reset cut off outstanding access tokens immediately.

    Raises:
        ClientError: 401 if token is missing, invalid, expired or its session is gone
    """
    if credentials is None:
        raise _unauthorized()

    payload = components.access_tokens.verify(credentials.credentials)
    if payload is None:
        raise _unauthorized()

    try:
        user_id = UUID(payload["sub"])
        session_id = UUID(payload["sid"])
    except (KeyError, ValueError):
        raise _unauthorized()

    async with uow:
        session = await uow.sessions.get_by_id(session_id)
        active = (
            session is not None
            and session.user_id == user_id
            and not session.is_revoked
            and not session.is_expired(utcnow())
        )

    if not active:
        raise _unauthorized()

    return CurrentUser(user_id=user_id, session_id=session_id)
