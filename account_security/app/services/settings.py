"""
Security Settings

One frozen settings object is built from ApplicationConfig at startup and
handed to every component that needs it. Nothing below the API layer reads
configuration on its own.
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .csrf import CsrfSettings
from .rate_limiter import RateLimitConfig

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32

PLACEHOLDER_SECRETS = frozenset(
    {
        "dev-secret-key-change-in-production",
        "change-me",
        "changeme",
        "secret",
        "your-secret-key",
        "your-jwt-secret",
        "jwt-secret",
    }
)

DEFAULT_RATE_LIMITS: Dict[str, Dict[str, Any]] = {
    "login": {"maxAttempts": 5, "windowMs": 15 * 60 * 1000, "lockoutMs": 30 * 60 * 1000, "keyPrefix": "login"},
    "register": {"maxAttempts": 3, "windowMs": 60 * 60 * 1000, "lockoutMs": 60 * 60 * 1000, "keyPrefix": "register"},
    "forgot_password": {"maxAttempts": 10, "windowMs": 60 * 60 * 1000, "lockoutMs": 15 * 60 * 1000, "keyPrefix": "forgot_password"},
    "reset_password": {"maxAttempts": 5, "windowMs": 60 * 60 * 1000, "lockoutMs": 30 * 60 * 1000, "keyPrefix": "reset_password"},
    "refresh_token": {"maxAttempts": 10, "windowMs": 5 * 60 * 1000, "lockoutMs": 15 * 60 * 1000, "keyPrefix": "refresh_token"},
    "verify_email_send": {"maxAttempts": 5, "windowMs": 15 * 60 * 1000, "lockoutMs": 30 * 60 * 1000, "keyPrefix": "verify_email_send"},
    "verify_email": {"maxAttempts": 10, "windowMs": 60 * 60 * 1000, "lockoutMs": 30 * 60 * 1000, "keyPrefix": "verify_email"},
}


_FIELD_ALIASES = {
    "max_attempts": "maxAttempts",
    "window_ms": "windowMs",
    "lockout_ms": "lockoutMs",
    "key_prefix": "keyPrefix",
}


class ConfigurationError(Exception):
    """Raised at startup when mandatory security configuration is missing or unsafe"""


class SecuritySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    environment: str = "development"
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 15
    refresh_token_ttl_days: int = 7
    reset_token_ttl_minutes: int = 15
    reset_request_min_duration_ms: int = 150
    email_verification_ttl_hours: int = 24
    app_url: str = "http://localhost:3000"
    require_email_verification: bool = False
    csrf: CsrfSettings = Field(default_factory=CsrfSettings)
    rate_limits: Dict[str, RateLimitConfig] = Field(default_factory=lambda: build_rate_limits(None, {}))

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def rate_limit(self, action: str) -> RateLimitConfig:
        return self.rate_limits[action]

    @classmethod
    def from_config(
        cls, config: Any, environ: Optional[Mapping[str, str]] = None
    ) -> "SecuritySettings":
        """
        Build settings from an ApplicationConfig class.

        Raises:
            ConfigurationError: JWT_SECRET missing, or a known placeholder in production
        """
        environ = os.environ if environ is None else environ
        environment = str(getattr(config, "ENVIRONMENT", "development"))

        secret = getattr(config, "JWT_SECRET", None)
        if not secret:
            raise ConfigurationError("JWT_SECRET must be set")
        if environment.lower() == "production" and secret.lower() in PLACEHOLDER_SECRETS:
            raise ConfigurationError("JWT_SECRET is a placeholder value; refusing to start in production")
        if len(secret) < MIN_SECRET_LENGTH:
            logger.warning(f"JWT_SECRET is shorter than {MIN_SECRET_LENGTH} characters")

        production = environment.lower() == "production"
        prefix = (getattr(config, "API_PREFIX", "") or "").rstrip("/")
        csrf_defaults = CsrfSettings()
        csrf = CsrfSettings(
            cookie_name=getattr(config, "CSRF_COOKIE_NAME", None) or csrf_defaults.cookie_name,
            header_name=getattr(config, "CSRF_HEADER_NAME", None) or csrf_defaults.header_name,
            secure=production,
            public_paths=tuple(
                getattr(config, "CSRF_PUBLIC_PATHS", None)
                or (prefix + p for p in csrf_defaults.public_paths)
            ),
            exempt_paths=tuple(
                getattr(config, "CSRF_EXEMPT_PATHS", None)
                or (prefix + p for p in csrf_defaults.exempt_paths)
            ),
        )

        return cls(
            environment=environment,
            jwt_secret=secret,
            app_url=getattr(config, "APP_URL", "http://localhost:3000"),
            require_email_verification=bool(getattr(config, "REQUIRE_EMAIL_VERIFICATION", False)),
            csrf=csrf,
            rate_limits=build_rate_limits(getattr(config, "RATE_LIMITS", None), environ),
        )


def build_rate_limits(
    overrides: Optional[Mapping[str, Mapping[str, Any]]], environ: Mapping[str, str]
) -> Dict[str, RateLimitConfig]:
    """
    Merge per-action limits: defaults, then RATE_LIMITS from config, then
    RATE_LIMIT_<ACTION>_MAX / RATE_LIMIT_<ACTION>_WINDOW environment variables.
    """
    limits: Dict[str, RateLimitConfig] = {}
    overrides = overrides or {}

    for action in set(DEFAULT_RATE_LIMITS) | set(overrides):
        merged = dict(DEFAULT_RATE_LIMITS.get(action, {"keyPrefix": action}))
        for key, value in (overrides.get(action) or {}).items():
            merged[_FIELD_ALIASES.get(key, key)] = value

        env_prefix = f"RATE_LIMIT_{action.upper()}"
        if environ.get(f"{env_prefix}_MAX"):
            merged["maxAttempts"] = int(environ[f"{env_prefix}_MAX"])
        if environ.get(f"{env_prefix}_WINDOW"):
            merged["windowMs"] = int(environ[f"{env_prefix}_WINDOW"])

        try:
            limits[action] = RateLimitConfig.model_validate(merged)
        except ValueError as e:
            raise ConfigurationError(f"Invalid rate limit for {action}: {e}") from e

    return limits
