import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from account_security.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from account_security.app.services.audit_sink import AuditSink
from account_security.app.services.email_sender import EmailSender
from account_security.app.services.rate_limiter import InMemoryRateLimitStore
from account_security.app.services.security_errors import client_error
from account_security.app.services.settings import SecuritySettings
from account_security.app.use_cases.audit import Alert, AuthMonitoringUseCase
from account_security.app.use_cases.auth import CleanupExpiredTokensUseCase
from account_security.app.use_cases.sessions import SessionService
from account_security.domain.entities import ErrorCode
from .components import SecurityComponents
from .error import ClientError, ServerError, error_response
from .middleware.csrf import CsrfMiddleware
from .middleware.security_headers import SecurityHeadersMiddleware

logger = logging.getLogger(__name__)


async def handle_client_error(request: Request, exc: ClientError):
    logger.warning(f"Client error on {request.url.path}: {exc.base_error.code}")
    return error_response(exc.base_error, exc.status_code, exc.headers)


async def handle_server_error(request: Request, exc: ServerError):
    logger.error(f"Server error on {request.url.path}: {exc.base_error.code}")
    return error_response(
        client_error(ErrorCode.GENERIC), status.HTTP_500_INTERNAL_SERVER_ERROR
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{field}: {err['msg']}" if field else err["msg"])
    return error_response(
        client_error(ErrorCode.INVALID_INPUT, errors=messages), status.HTTP_400_BAD_REQUEST
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(
        client_error(ErrorCode.GENERIC), status.HTTP_500_INTERNAL_SERVER_ERROR
    )


async def run_cleanup(app: FastAPI) -> None:
    """Delete expired sessions, expired single-use tokens and stale rate-limit entries"""
    components: SecurityComponents = app.state.security

    async with app.state.session_factory() as session:
        service = SessionService(
            SqlAlchemyUnitOfWork(session),
            components.access_tokens,
            components.errors,
            components.settings,
        )
        await service.cleanup_expired_sessions()

    async with app.state.session_factory() as session:
        await CleanupExpiredTokensUseCase(SqlAlchemyUnitOfWork(session)).execute()

    store = components.rate_limiter.store
    if isinstance(store, InMemoryRateLimitStore):
        longest_window = max(
            (c.window_ms + c.lockout_ms) / 1000 for c in components.settings.rate_limits.values()
        )
        pruned = store.prune(components.rate_limiter.clock(), longest_window)
        if pruned:
            logger.debug(f"Pruned {pruned} rate limit entries")


async def run_monitoring_checks(app: FastAPI) -> List[Alert]:
    async with app.state.session_factory() as session:
        return await AuthMonitoringUseCase(SqlAlchemyUnitOfWork(session)).run_checks()


async def _run_periodically(app: FastAPI, job, interval: float, name: str) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await job(app)
        except Exception:
            logger.exception(f"Periodic {name} failed")


def create_app(
    ApplicationConfig,
    engine: Optional[AsyncEngine] = None,
    audit_sink: Optional[AuditSink] = None,
    email_sender: Optional[EmailSender] = None,
) -> FastAPI:
    settings = SecuritySettings.from_config(ApplicationConfig)

    engine = engine or create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)
    session_factory = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    components = SecurityComponents.build(
        settings, session_factory, audit_sink=audit_sink, email_sender=email_sender
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(ApplicationConfig, "AUTO_CREATE_TABLES", False):
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

        tasks = []
        cleanup_interval = getattr(ApplicationConfig, "SESSION_CLEANUP_INTERVAL", 0)
        if cleanup_interval:
            tasks.append(
                asyncio.create_task(_run_periodically(app, run_cleanup, cleanup_interval, "cleanup"))
            )
        monitoring_interval = getattr(ApplicationConfig, "MONITORING_INTERVAL", 0)
        if monitoring_interval:
            tasks.append(
                asyncio.create_task(
                    _run_periodically(app, run_monitoring_checks, monitoring_interval, "monitoring")
                )
            )

        logger.info(f"Account security service started ({settings.environment})")
        yield

        for task in tasks:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    app = FastAPI(title="Account Security API", version="0.1.0", lifespan=lifespan)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.security = components

    # Last added runs first: CORS, then security headers, then CSRF
    app.add_middleware(CsrfMiddleware, guard=components.csrf)
    app.add_middleware(SecurityHeadersMiddleware, production=settings.is_production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            settings.csrf.header_name,
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
    )

    from account_security.api.routes import audit, auth, health, sessions

    prefix = (getattr(ApplicationConfig, "API_PREFIX", "") or "").rstrip("/")
    app.include_router(health.router, prefix=prefix, tags=["Health"])
    app.include_router(auth.router, prefix=prefix, tags=["Authentication"])
    app.include_router(sessions.router, prefix=prefix, tags=["Sessions"])
    app.include_router(audit.router, prefix=prefix, tags=["Audit"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    return app
