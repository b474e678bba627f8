"""
Session Use Cases

Session issuance, refresh, revocation and anomaly checks.
"""

from .session_service import SessionService, to_session_info
from .dtos import (
    AccessTokenGrant,
    RevokeSessionsResponse,
    SessionInfo,
    SessionListResponse,
    SessionTokens,
    SuspiciousSessionsResponse,
)

__all__ = [
    # Services
    "SessionService",
    "to_session_info",
    # DTOs
    "AccessTokenGrant",
    "RevokeSessionsResponse",
    "SessionInfo",
    "SessionListResponse",
    "SessionTokens",
    "SuspiciousSessionsResponse",
]
