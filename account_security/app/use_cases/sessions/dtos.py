"""
Session Use Case DTOs
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class SessionTokens(BaseModel):
    """Raw tokens handed out once at session creation; the refresh token is never retrievable again"""

    access_token: str
    refresh_token: str
    session_id: str
    expires_in: int


class AccessTokenGrant(BaseModel):
    access_token: str
    session_id: str
    expires_in: int


class SessionInfo(BaseModel):
    id: str
    ip_address: str
    user_agent: str
    device: Optional[str] = None
    country: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    last_used_at: Optional[datetime] = None
    revoked: bool


class SessionListResponse(BaseModel):
    sessions: List[SessionInfo]
    current_session_id: str


class SuspiciousSessionsResponse(BaseModel):
    suspicious: bool
    sessions: List[SessionInfo]


class RevokeSessionsResponse(BaseModel):
    message: str
    revoked_count: int
