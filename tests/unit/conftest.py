import pytest
from unittest.mock import AsyncMock, MagicMock

from account_security.adapter.services.audit_sink import InMemoryAuditSink
from account_security.app.services.csrf import CsrfGuard, CsrfSettings
from account_security.app.services.rate_limiter import InMemoryRateLimitStore, RateLimiter
from account_security.app.services.security_errors import SecurityErrorFacade
from account_security.app.services.settings import SecuritySettings

TEST_SECRET = "unit-test-secret-0123456789abcdef0123456789"


class FakeClock:
    """Manually advanced clock for the rate limiter"""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    uow.users = MagicMock()
    uow.users.get_by_id = AsyncMock()
    uow.users.get_by_email = AsyncMock()
    uow.users.create = AsyncMock()
    uow.users.update = AsyncMock()

    uow.password_reset_tokens = MagicMock()
    uow.password_reset_tokens.get_by_token_hash = AsyncMock()
    uow.password_reset_tokens.create = AsyncMock()
    uow.password_reset_tokens.mark_used = AsyncMock(return_value=True)
    uow.password_reset_tokens.invalidate_outstanding_for_user = AsyncMock(return_value=0)
    uow.password_reset_tokens.delete_expired = AsyncMock(return_value=0)

    uow.email_verification_tokens = MagicMock()
    uow.email_verification_tokens.get_by_token_hash = AsyncMock()
    uow.email_verification_tokens.create = AsyncMock()
    uow.email_verification_tokens.mark_used = AsyncMock(return_value=True)
    uow.email_verification_tokens.invalidate_outstanding_for_user = AsyncMock(return_value=0)
    uow.email_verification_tokens.delete_expired = AsyncMock(return_value=0)

    uow.sessions = MagicMock()
    uow.sessions.get_by_id = AsyncMock()
    uow.sessions.get_by_refresh_token_hash = AsyncMock()
    uow.sessions.get_recent_by_user_id = AsyncMock(return_value=[])
    uow.sessions.get_active_by_user_id = AsyncMock(return_value=[])
    uow.sessions.create = AsyncMock()
    uow.sessions.update = AsyncMock()
    uow.sessions.revoke_by_id = AsyncMock(return_value=True)
    uow.sessions.revoke_all_by_user_id = AsyncMock(return_value=0)
    uow.sessions.delete_expired = AsyncMock(return_value=0)

    uow.audit_events = MagicMock()
    uow.audit_events.get_by_user_id = AsyncMock(return_value=[])
    uow.audit_events.count_by_type_since = AsyncMock(return_value=0)
    uow.audit_events.activity_by_ip_since = AsyncMock(return_value=[])
    uow.audit_events.lockouts_by_email_since = AsyncMock(return_value=[])
    return uow


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(InMemoryRateLimitStore(), clock=clock)


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def errors(audit_sink):
    return SecurityErrorFacade(audit_sink)


@pytest.fixture
def settings():
    # No artificial delay in unit tests unless a test asks for it
    return SecuritySettings(jwt_secret=TEST_SECRET, reset_request_min_duration_ms=0)


@pytest.fixture
def csrf():
    return CsrfGuard(CsrfSettings())
