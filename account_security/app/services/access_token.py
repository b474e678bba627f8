from datetime import UTC, datetime, timedelta
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

ACCESS_TOKEN_TYPE = "access"


class AccessTokenIssuer:
    """Short-lived HS256 access tokens bound to a session"""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_minutes: int = 15):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(minutes=ttl_minutes)

    @property
    def expires_in(self) -> int:
        return int(self.ttl.total_seconds())

    def issue(self, user_id: UUID, session_id: UUID) -> str:
        """
        Generate JWT access token

        Args:
            user_id: Subject of the token
            session_id: Session the token was issued for

        Returns:
            JWT token string
        """
        now = datetime.now(UTC)
        payload = {
            "sub": str(user_id),
            "sid": str(session_id),
            "type": ACCESS_TOKEN_TYPE,
            "exp": now + self.ttl,
            "iat": now,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[dict]:
        """
        Verify and decode an access token

        Returns:
            Decoded payload dict or None if invalid, expired or not an access token
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            return None

        if payload.get("type") != ACCESS_TOKEN_TYPE or "sub" not in payload:
            return None
        return payload
