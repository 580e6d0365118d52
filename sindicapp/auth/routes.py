"""
SindicApp - Authentication Routes

API endpoints for the token lifecycle:
- POST   /auth/register              - Create account and open session
- POST   /auth/login                 - Authenticate and open session
- POST   /auth/refresh               - Rotate refresh token, get new pair
- POST   /auth/logout                - Invalidate one session (idempotent)
- POST   /auth/logout-all            - Invalidate every session of the caller
- GET    /auth/me                    - Current user profile
- POST   /auth/change-password       - Change password, revoke all sessions
- GET    /auth/sessions              - List active sessions
- DELETE /auth/sessions/{id}         - Revoke one of the caller's sessions
- POST   /auth/clean-sessions        - Purge dead sessions (admin)
- POST   /auth/users                 - Create user (manage_users)
- PATCH  /auth/users/{id}/status     - Activate/deactivate user (manage_users)

Errors are raised as AuthError subclasses and rendered by the handler
installed in sindicapp.app.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from sindicapp.auth.context import RequestContext
from sindicapp.auth.dependencies import (
    AuthServices,
    authenticate,
    get_auth_services,
    get_session_manager,
    require_permission,
    require_role,
)
from sindicapp.auth.errors import NotFound
from sindicapp.auth.manager import AuthResult, IdentitySummary, SessionManager
from sindicapp.auth.policy import Permission, RoleName
from sindicapp.auth.schemas import (
    ActiveSessionsResponse,
    AuthResponse,
    ChangePasswordRequest,
    CleanSessionsResponse,
    CreateUserRequest,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    SessionInfo,
    TokenPairResponse,
    UserResponse,
    UserStatusRequest,
)
from sindicapp.logging import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.client.host if request.client else "unknown"


def get_user_agent(request: Request) -> str:
    """Extract user agent from request."""
    return request.headers.get("User-Agent", "unknown")[:512]


def _user_response(summary: IdentitySummary) -> UserResponse:
    return UserResponse(**summary.model_dump())


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=_user_response(result.user),
        tokens=TokenPairResponse(
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
            expires_in=result.tokens.expires_in,
        ),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Create account and open session",
)
async def register(
    request: Request,
    body: RegisterRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    result = await manager.register(
        email=body.email,
        username=body.username,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )
    return _auth_response(result)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Authenticate user and open session",
)
async def login(
    request: Request,
    credentials: LoginRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Authenticate with email or username and password.

    Returns:
        AuthResponse with the user summary and a token pair

    Raises:
        401: Invalid credentials (same answer for unknown user,
            inactive account and wrong password)
    """
    result = await manager.login(
        credentials.identifier,
        credentials.password,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )
    return _auth_response(result)


@router.post(
    "/refresh",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Exchange a refresh token for a new token pair",
)
async def refresh(
    request: Request,
    body: RefreshRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Rotate a refresh token. The presented token cannot be used again.
    """
    result = await manager.refresh(
        body.refresh_token,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )
    return _auth_response(result)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Invalidate a refresh token",
)
async def logout(
    body: RefreshRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """Always succeeds, even for unknown or already invalid tokens."""
    await manager.logout(body.refresh_token)
    return MessageResponse(message="Logout successful")


@router.post(
    "/logout-all",
    response_model=MessageResponse,
    summary="Invalidate every session of the current user",
)
async def logout_all(
    ctx: RequestContext = Depends(authenticate),
    manager: SessionManager = Depends(get_session_manager),
):
    count = await manager.logout_all(ctx.identity_id)
    return MessageResponse(
        message="Logged out from all devices successfully",
        sessions_invalidated=count,
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user profile",
)
async def get_me(
    ctx: RequestContext = Depends(authenticate),
    manager: SessionManager = Depends(get_session_manager),
):
    return _user_response(await manager.profile(ctx.identity_id))


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Change password and revoke every session",
)
async def change_password(
    body: ChangePasswordRequest,
    ctx: RequestContext = Depends(authenticate),
    manager: SessionManager = Depends(get_session_manager),
):
    count = await manager.change_password(
        ctx.identity_id,
        body.current_password,
        body.new_password,
    )
    return MessageResponse(
        message="Password changed successfully. Please log in again.",
        sessions_invalidated=count,
    )


@router.get(
    "/sessions",
    response_model=ActiveSessionsResponse,
    summary="List active sessions",
)
async def list_sessions(
    ctx: RequestContext = Depends(authenticate),
    services: AuthServices = Depends(get_auth_services),
):
    active_sessions = await services.ledger.list_active(ctx.identity_id)
    session_list = [
        SessionInfo(
            id=s.id,
            created_at=s.created_at,
            expires_at=s.expires_at,
            ip_address=s.ip_address,
            user_agent=s.user_agent,
        )
        for s in active_sessions
    ]
    return ActiveSessionsResponse(sessions=session_list, total=len(session_list))


@router.delete(
    "/sessions/{session_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Revoke one of the current user's sessions",
)
async def revoke_session(
    session_id: UUID,
    ctx: RequestContext = Depends(authenticate),
    services: AuthServices = Depends(get_auth_services),
):
    if not await services.ledger.invalidate_by_id(session_id, ctx.identity_id):
        raise NotFound("Session not found")

    logger.info("auth.session.revoked", user_id=str(ctx.identity_id), session_id=str(session_id))
    return MessageResponse(message="Session revoked", sessions_invalidated=1)


@router.post(
    "/clean-sessions",
    response_model=CleanSessionsResponse,
    summary="Purge expired and invalidated sessions (admin)",
)
async def clean_sessions(
    ctx: RequestContext = Depends(require_role(RoleName.ADMIN)),
    manager: SessionManager = Depends(get_session_manager),
):
    deleted = await manager.clean_expired_sessions()
    return CleanSessionsResponse(message="Expired sessions cleaned successfully", deleted=deleted)


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Create user",
)
async def create_user(
    body: CreateUserRequest,
    ctx: RequestContext = Depends(require_permission(Permission.MANAGE_USERS)),
    services: AuthServices = Depends(get_auth_services),
):
    """Create an account with any role. Requires manage_users."""
    record = await services.identities.create(
        email=body.email,
        username=body.username,
        password_hash=services.manager.hasher.hash(body.password),
        role_name=body.role.value,
        first_name=body.first_name,
        last_name=body.last_name,
        email_verified=body.email_verified,
    )
    logger.info(
        "auth.user.created",
        user_id=str(ctx.identity_id),
        new_user_id=str(record.id),
        new_user_role=record.role.name,
    )
    return _user_response(IdentitySummary.from_record(record))


@router.patch(
    "/users/{user_id}/status",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Activate or deactivate a user",
)
async def set_user_status(
    user_id: UUID,
    body: UserStatusRequest,
    ctx: RequestContext = Depends(require_permission(Permission.MANAGE_USERS)),
    services: AuthServices = Depends(get_auth_services),
):
    """
    Deactivation takes effect immediately: the gate and the ledger both
    check the active flag on every use.
    """
    if not await services.identities.set_active(user_id, body.is_active):
        raise NotFound("User not found")

    logger.info(
        "auth.user.status_changed",
        user_id=str(ctx.identity_id),
        target_user_id=str(user_id),
        is_active=body.is_active,
    )
    state = "activated" if body.is_active else "deactivated"
    return MessageResponse(message=f"User {state}")
