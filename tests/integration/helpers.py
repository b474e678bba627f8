from typing import List, Tuple

from httpx import AsyncClient

from account_security.app.services.email_sender import EmailSender
from config import ApplicationConfig

STRONG_PASSWORD = "Correct-Horse-Battery-9"


class IntegrationConfig(ApplicationConfig):
    JWT_SECRET = "integration-test-secret-0123456789abcdef"
    ENVIRONMENT = "test"
    API_PREFIX = ""
    CORS_ORIGINS = []
    CSRF_PUBLIC_PATHS = None
    CSRF_EXEMPT_PATHS = None
    RATE_LIMITS = {}
    REQUIRE_EMAIL_VERIFICATION = False
    AUTO_CREATE_TABLES = False
    SESSION_CLEANUP_INTERVAL = 0
    MONITORING_INTERVAL = 0


class CapturingEmailSender(EmailSender):
    def __init__(self):
        self.sent: List[Tuple[str, str]] = []
        self.verifications: List[Tuple[str, str]] = []

    async def send_password_reset(self, email: str, reset_url: str) -> None:
        self.sent.append((email, reset_url))

    async def send_email_verification(self, email: str, verify_url: str) -> None:
        self.verifications.append((email, verify_url))

    def last_token(self) -> str:
        return self.sent[-1][1].split("token=", 1)[1]

    def last_verification_token(self) -> str:
        return self.verifications[-1][1].split("token=", 1)[1]


async def csrf_headers(client: AsyncClient) -> dict:
    """Fetch a CSRF token (the cookie lands in the client jar) and return the echo header"""
    response = await client.get("/auth/csrf-token")
    return {"X-CSRF-Token": response.json()["csrf_token"]}


async def register(client: AsyncClient, email="user@example.com", password=STRONG_PASSWORD):
    response = await client.post("/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


async def login(client: AsyncClient, email="user@example.com", password=STRONG_PASSWORD, headers=None):
    headers = {**(await csrf_headers(client)), **(headers or {})}
    return await client.post("/auth/login", json={"email": email, "password": password}, headers=headers)


def bearer(login_body: dict) -> dict:
    return {"Authorization": f"Bearer {login_body['access_token']}"}
