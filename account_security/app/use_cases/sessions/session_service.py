"""
Session Service

Refresh-token sessions and short-lived access tokens.
"""

import logging
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from account_security.app.services.access_token import AccessTokenIssuer
from account_security.app.services.security_errors import SecurityErrorFacade, client_error
from account_security.app.services.settings import SecuritySettings
from account_security.app.services.tokens import generate_token, hash_token
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.app.services.user_agent import parse_user_agent
from account_security.domain.base import utcnow
from account_security.domain.entities import AuditEventType, ErrorCode, Session
from account_security.libs.result import Result, Return
from .dtos import AccessTokenGrant, SessionInfo, SessionTokens

logger = logging.getLogger(__name__)

SUSPICIOUS_SAMPLE_SIZE = 3
SUSPICIOUS_DISTINCT_THRESHOLD = 2


def to_session_info(session: Session) -> SessionInfo:
    return SessionInfo(
        id=str(session.id),
        ip_address=session.ip_address,
        user_agent=session.user_agent,
        device=session.device,
        country=session.country,
        created_at=session.created_at,
        expires_at=session.expires_at,
        last_used_at=session.last_used_at,
        revoked=session.is_revoked,
    )


class SessionService:
    """
    Business Rules:
    - Refresh token is 256 random bits; only its SHA-256 is stored
    - Sessions expire after 7 days, access tokens after 15 minutes
    - A refresh is bound to the IP address and user agent seen at creation;
      a mismatch revokes the session
    - Refresh tokens are not rotated on use
    - Revocation is idempotent
    """

    def __init__(
        self,
        uow: UnitOfWork,
        access_tokens: AccessTokenIssuer,
        errors: SecurityErrorFacade,
        settings: SecuritySettings,
    ):
        self.uow = uow
        self.access_tokens = access_tokens
        self.errors = errors
        self.settings = settings

    async def create_session(
        self,
        user_id: UUID,
        ip_address: str,
        user_agent: str,
        device: Optional[str] = None,
        country: Optional[str] = None,
    ) -> Result[SessionTokens]:
        refresh_token = generate_token()
        now = utcnow()

        session = Session(
            user_id=user_id,
            refresh_token_hash=hash_token(refresh_token),
            ip_address=ip_address,
            user_agent=user_agent,
            device=device or parse_user_agent(user_agent),
            country=country,
            created_at=now,
            expires_at=now + timedelta(days=self.settings.refresh_token_ttl_days),
            last_used_at=now,
        )

        async with self.uow:
            await self.uow.sessions.create(session)
            await self.uow.commit()

        return Return.ok(
            SessionTokens(
                access_token=self.access_tokens.issue(user_id, session.id),
                refresh_token=refresh_token,
                session_id=str(session.id),
                expires_in=self.access_tokens.expires_in,
            )
        )

    async def refresh_access_token(
        self, refresh_token: str, ip_address: str, user_agent: str
    ) -> Result[AccessTokenGrant]:
        """
        Issue a new access token for a valid, unrevoked session.

        Returns:
            Result with the new access token, or Error INVALID_TOKEN for an
            unknown, expired, revoked or rebound refresh token
        """
        audit = {"ip_address": ip_address, "user_agent": user_agent}
        now = utcnow()
        failure: Optional[dict] = None

        async with self.uow:
            session = await self.uow.sessions.get_by_refresh_token_hash(hash_token(refresh_token))

            if session is None:
                failure = {
                    "event_type": AuditEventType.TOKEN_REFRESHED,
                    "reason": "Refresh token not found",
                }
            elif session.is_expired(now):
                await self.uow.sessions.revoke_by_id(session.id, now)
                await self.uow.commit()
                failure = {
                    "event_type": AuditEventType.TOKEN_REFRESHED,
                    "user_id": session.user_id,
                    "reason": "Session expired",
                    "metadata": {"session_id": str(session.id)},
                }
            elif session.is_revoked:
                failure = {
                    "event_type": AuditEventType.TOKEN_REFRESHED,
                    "user_id": session.user_id,
                    "reason": "Session revoked",
                    "metadata": {"session_id": str(session.id)},
                }
            elif session.ip_address != ip_address or session.user_agent != user_agent:
                await self.uow.sessions.revoke_by_id(session.id, now)
                await self.uow.commit()
                failure = {
                    "event_type": AuditEventType.SUSPICIOUS_ACTIVITY,
                    "user_id": session.user_id,
                    "reason": "Session binding mismatch",
                    "internal_details": {
                        "session_ip": session.ip_address,
                        "session_user_agent": session.user_agent,
                    },
                    "metadata": {
                        "suspiciousActivity": True,
                        "session_id": str(session.id),
                        "ip_changed": session.ip_address != ip_address,
                        "user_agent_changed": session.user_agent != user_agent,
                    },
                }
            else:
                session.last_used_at = now
                await self.uow.sessions.update(session)
                await self.uow.commit()

        if failure is not None:
            return Return.err(await self.errors.fail(ErrorCode.INVALID_TOKEN, **failure, **audit))

        await self.errors.record_success(
            AuditEventType.TOKEN_REFRESHED,
            user_id=session.user_id,
            metadata={"session_id": str(session.id)},
            **audit,
        )

        return Return.ok(
            AccessTokenGrant(
                access_token=self.access_tokens.issue(session.user_id, session.id),
                session_id=str(session.id),
                expires_in=self.access_tokens.expires_in,
            )
        )

    async def revoke_session(
        self,
        session_id: UUID,
        user_id: Optional[UUID] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Result[bool]:
        """
        Revoke one session.

        When ``user_id`` is given the session must belong to that user;
        otherwise FORBIDDEN (an unknown id gives the same answer).

        Returns:
            Result with True if the session was active and is now revoked,
            False if it had already been revoked
        """
        async with self.uow:
            session = await self.uow.sessions.get_by_id(session_id)
            if session is None or (user_id is not None and session.user_id != user_id):
                return Return.err(client_error(ErrorCode.FORBIDDEN))

            revoked = await self.uow.sessions.revoke_by_id(session_id, utcnow())
            await self.uow.commit()

        if revoked:
            await self.errors.record_success(
                AuditEventType.SESSION_REVOKED,
                user_id=session.user_id,
                ip_address=ip_address,
                user_agent=user_agent,
                metadata={"session_id": str(session_id)},
            )
        return Return.ok(revoked)

    async def revoke_all_sessions(
        self,
        user_id: UUID,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        event_type: AuditEventType = AuditEventType.SESSION_REVOKED,
    ) -> Result[int]:
        async with self.uow:
            count = await self.uow.sessions.revoke_all_by_user_id(user_id, utcnow())
            await self.uow.commit()

        await self.errors.record_success(
            event_type,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            metadata={"revoked_count": count},
        )
        return Return.ok(count)

    async def get_user_sessions(self, user_id: UUID) -> Result[List[SessionInfo]]:
        """Unrevoked, unexpired sessions of a user, most recently used first"""
        async with self.uow:
            active = await self.uow.sessions.get_active_by_user_id(user_id, utcnow())
            return Return.ok([to_session_info(s) for s in active])

    async def get_suspicious_sessions(self, user_id: UUID) -> Result[List[SessionInfo]]:
        """
        Advisory multi-location check over the 3 most recent sessions.

        All of them are flagged when they span more than 2 distinct IP
        addresses or more than 2 distinct (known) countries.
        """
        async with self.uow:
            recent = await self.uow.sessions.get_recent_by_user_id(user_id, SUSPICIOUS_SAMPLE_SIZE)
            sessions = [to_session_info(s) for s in recent]

        distinct_ips = {s.ip_address for s in sessions}
        distinct_countries = {s.country for s in sessions if s.country}

        if (
            len(distinct_ips) > SUSPICIOUS_DISTINCT_THRESHOLD
            or len(distinct_countries) > SUSPICIOUS_DISTINCT_THRESHOLD
        ):
            logger.info(f"Suspicious session pattern for user {user_id}")
            return Return.ok(sessions)
        return Return.ok([])

    async def cleanup_expired_sessions(self) -> int:
        async with self.uow:
            deleted = await self.uow.sessions.delete_expired(utcnow())
            await self.uow.commit()

        if deleted:
            logger.info(f"Deleted {deleted} expired session(s)")
        return deleted
