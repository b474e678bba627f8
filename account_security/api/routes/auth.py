from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status

from account_security.api.components import SecurityComponents
from account_security.api.error import raise_for_error
from account_security.api.utils.request import (
    build_context,
    rate_limit_headers,
    read_json_body,
)
from account_security.app.services.unit_of_work import UnitOfWork
from account_security.app.use_cases.auth import (
    ConfirmPasswordResetUseCase,
    ForgotPasswordFlow,
    LoginCommand,
    LoginResponse,
    LoginUseCase,
    MessageResponse,
    RefreshTokenCommand,
    RefreshTokenResponse,
    RegisterCommand,
    RegisterResponse,
    RegisterUseCase,
    RequestPasswordResetUseCase,
    ResetPasswordFlow,
    SendVerificationEmailCommand,
    SendVerificationEmailUseCase,
    VerifyEmailCommand,
    VerifyEmailUseCase,
)
from account_security.app.use_cases.auth.guards import check_rate_limit
from account_security.app.use_cases.sessions import SessionService
from account_security.depends import (
    CurrentUser,
    get_current_user,
    get_security,
    get_session_service,
    get_unit_of_work,
)
from account_security.domain.entities import AuditEventType

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/csrf-token", status_code=status.HTTP_200_OK)
async def csrf_token(
    request: Request,
    response: Response,
    components: SecurityComponents = Depends(get_security),
):
    """
    CSRF Token

    Returns the caller's CSRF token, issuing one (cookie + X-CSRF-Token
    header) if there is none yet. Clients echo it in X-CSRF-Token on every
    state-changing request.
    """
    existing, _ = components.csrf.read_tokens(request)
    token = components.csrf.set_token(response, existing)
    return {"success": True, "csrf_token": token}


@router.post("/forgot-password", status_code=status.HTTP_200_OK, response_model=MessageResponse)
async def forgot_password(
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    uow: UnitOfWork = Depends(get_unit_of_work),
    components: SecurityComponents = Depends(get_security),
):
    """
    Forgot Password

    Always answers with the same message whether or not the account exists,
    and never faster than the configured floor.

    Raises:
        - 400 Bad Request: Malformed email
        - 403 Forbidden: CSRF validation failed
        - 429 Too Many Requests: Rate limit exceeded
        - 500 Internal Server Error: Unexpected failure
    """
    context = build_context(request, components.csrf)
    flow = ForgotPasswordFlow(
        components.csrf,
        components.rate_limiter,
        components.errors,
        RequestPasswordResetUseCase(
            uow, components.errors, components.email_sender, components.settings
        ),
        components.settings,
    )

    result = await flow.execute(
        await read_json_body(request), context, dispatch=background_tasks.add_task
    )

    headers = rate_limit_headers(context.rate_limit)
    raise_for_error(result, headers)
    response.headers.update(headers)
    return result.value


@router.post("/reset-password", status_code=status.HTTP_200_OK, response_model=MessageResponse)
async def reset_password(
    request: Request,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    components: SecurityComponents = Depends(get_security),
):
    """
    Reset Password

    Consumes a single-use reset token and sets a new password. Every other
    outstanding reset token of the account is invalidated and all of its
    sessions are revoked.

    Raises:
        - 400 Bad Request: INVALID_TOKEN, WEAK_PASSWORD (with errors) or INVALID_INPUT
        - 403 Forbidden: CSRF validation failed
        - 429 Too Many Requests: Rate limit exceeded
        - 500 Internal Server Error: Unexpected failure
    """
    context = build_context(request, components.csrf)
    flow = ResetPasswordFlow(
        components.csrf,
        components.rate_limiter,
        components.errors,
        ConfirmPasswordResetUseCase(uow, components.errors),
        components.settings,
    )

    result = await flow.execute(await read_json_body(request), context)

    headers = rate_limit_headers(context.rate_limit)
    raise_for_error(result, headers)
    response.headers.update(headers)
    return result.value


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse)
async def register(
    command: RegisterCommand,
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    uow: UnitOfWork = Depends(get_unit_of_work),
    components: SecurityComponents = Depends(get_security),
):
    """
    Register

    When email verification is required, the verification link is mailed
    after the response is sent.

    Raises:
        - 400 Bad Request: Invalid input or weak password
        - 409 Conflict: Email already registered
        - 429 Too Many Requests: Rate limit exceeded
    """
    context = build_context(request, components.csrf)
    use_case = RegisterUseCase(
        uow,
        components.errors,
        components.rate_limiter,
        components.settings,
        email_sender=components.email_sender,
    )
    result = await use_case.execute(command, context, dispatch=background_tasks.add_task)

    headers = rate_limit_headers(context.rate_limit)
    raise_for_error(result, headers)
    response.headers.update(headers)
    return result.value


@router.post("/login", status_code=status.HTTP_200_OK, response_model=LoginResponse)
async def login(
    command: LoginCommand,
    request: Request,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    sessions: SessionService = Depends(get_session_service),
    components: SecurityComponents = Depends(get_security),
):
    """
    Login

    Raises:
        - 401 Unauthorized: Invalid email or password
        - 403 Forbidden: Email not verified (when required) or CSRF failure
        - 429 Too Many Requests: Rate limit exceeded
    """
    context = build_context(request, components.csrf)
    use_case = LoginUseCase(
        uow, components.errors, components.rate_limiter, sessions, components.settings
    )
    result = await use_case.execute(command, context)

    headers = rate_limit_headers(context.rate_limit)
    raise_for_error(result, headers)
    response.headers.update(headers)
    return result.value


@router.post("/refresh", status_code=status.HTTP_200_OK, response_model=RefreshTokenResponse)
async def refresh(
    command: RefreshTokenCommand,
    request: Request,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
    components: SecurityComponents = Depends(get_security),
):
    """
    Refresh Access Token

    The refresh token only works from the IP address and user agent that
    created the session; any mismatch revokes the session.

    Raises:
        - 401 Unauthorized: Unknown, expired, revoked or rebound refresh token
        - 429 Too Many Requests: Rate limit exceeded
    """
    context = build_context(request, components.csrf)

    limited = await check_rate_limit(
        components.rate_limiter,
        components.errors,
        components.settings.rate_limit("refresh_token"),
        context.ip_address,
        context,
        AuditEventType.RATE_LIMIT_EXCEEDED,
    )
    raise_for_error(limited)
    headers = rate_limit_headers(context.rate_limit)

    result = await sessions.refresh_access_token(
        command.refresh_token, context.ip_address, context.user_agent
    )
    raise_for_error(result, headers, {"INVALID_TOKEN": status.HTTP_401_UNAUTHORIZED})
    response.headers.update(headers)

    grant = result.value
    return RefreshTokenResponse(
        access_token=grant.access_token,
        session_id=grant.session_id,
        expires_in=grant.expires_in,
    )


@router.post("/logout", status_code=status.HTTP_200_OK, response_model=MessageResponse)
async def logout(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
    components: SecurityComponents = Depends(get_security),
):
    """
    Logout

    Revokes every session of the caller.
    """
    context = build_context(request, components.csrf)
    result = await sessions.revoke_all_sessions(
        current_user.user_id,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
        event_type=AuditEventType.LOGOUT,
    )
    raise_for_error(result)
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/send-verification-email", status_code=status.HTTP_200_OK, response_model=MessageResponse
)
async def send_verification_email(
    command: SendVerificationEmailCommand,
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    uow: UnitOfWork = Depends(get_unit_of_work),
    components: SecurityComponents = Depends(get_security),
):
    """
    Send Verification Email

    Mails a fresh verification link to an unverified account. The answer is
    the same whether or not such an account exists.

    Raises:
        - 400 Bad Request: Malformed email
        - 403 Forbidden: CSRF validation failed
        - 429 Too Many Requests: Rate limit exceeded for this email
    """
    context = build_context(request, components.csrf)
    use_case = SendVerificationEmailUseCase(
        uow,
        components.errors,
        components.rate_limiter,
        components.email_sender,
        components.settings,
    )
    result = await use_case.execute(command, context, dispatch=background_tasks.add_task)

    headers = rate_limit_headers(context.rate_limit)
    raise_for_error(result, headers)
    response.headers.update(headers)
    return result.value


@router.post("/verify-email", status_code=status.HTTP_200_OK, response_model=MessageResponse)
async def verify_email(
    command: VerifyEmailCommand,
    request: Request,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    components: SecurityComponents = Depends(get_security),
):
    """
    Verify Email

    Consumes a single-use verification token and marks the account verified.

    Raises:
        - 400 Bad Request: INVALID_TOKEN (unknown, expired or used) or invalid input
        - 403 Forbidden: CSRF validation failed
        - 429 Too Many Requests: Rate limit exceeded
    """
    context = build_context(request, components.csrf)
    use_case = VerifyEmailUseCase(
        uow, components.errors, components.rate_limiter, components.settings
    )
    result = await use_case.execute(command, context)

    headers = rate_limit_headers(context.rate_limit)
    raise_for_error(result, headers)
    response.headers.update(headers)
    return result.value
