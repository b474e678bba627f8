import os

import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.environ.get("CONFIG_FILE", os.path.join(ROOT_PATH, "env.yaml"))

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


def _env(key, default=None, parse=True):
    """Environment variable, else env.yaml, else default. With parse, env values are read as YAML."""
    if key in os.environ:
        return yaml.safe_load(os.environ[key]) if parse else os.environ[key]
    return data.get(key, default)


class ApplicationConfig:
    DB_URI = _env("DB_URI", "sqlite+aiosqlite:///./account_security.db", parse=False)
    API_PREFIX = _env("API_PREFIX", "", parse=False)
    API_PORT = _env("API_PORT", 8000)
    API_HOST = _env("API_HOST", "0.0.0.0", parse=False)
    CORS_ORIGINS = _env("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = _env("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = _env("LOG_LEVEL", "INFO", parse=False)
    ENVIRONMENT = _env("ENVIRONMENT", "development", parse=False)
    JWT_SECRET = _env("JWT_SECRET", parse=False)
    APP_URL = _env("APP_URL", "http://localhost:3000", parse=False)
    REQUIRE_EMAIL_VERIFICATION = bool(_env("REQUIRE_EMAIL_VERIFICATION", False))
    CSRF_COOKIE_NAME = _env("CSRF_COOKIE_NAME", "__csrf_token", parse=False)
    CSRF_HEADER_NAME = _env("CSRF_HEADER_NAME", "X-CSRF-Token", parse=False)
    CSRF_PUBLIC_PATHS = _env("CSRF_PUBLIC_PATHS")
    CSRF_EXEMPT_PATHS = _env("CSRF_EXEMPT_PATHS")
    RATE_LIMITS = _env("RATE_LIMITS", {})
    AUTO_CREATE_TABLES = bool(_env("AUTO_CREATE_TABLES", True))
    SESSION_CLEANUP_INTERVAL = _env("SESSION_CLEANUP_INTERVAL", 3600)
    MONITORING_INTERVAL = _env("MONITORING_INTERVAL", 300)
