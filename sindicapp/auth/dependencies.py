"""
SindicApp - Security Dependencies

FastAPI dependencies around the access gate and session manager.

Usage:
    @router.get("/reports")
    async def list_reports(ctx: RequestContext = Depends(require_permission(Permission.VIEW_REPORTS))):
        ...

    @router.post("/clean-sessions")
    async def clean(ctx: RequestContext = Depends(require_role(RoleName.ADMIN))):
        ...

    @router.post("/reports")
    async def create_report(ctx: RequestContext = Depends(optional_authenticate)):
        if ctx.is_authenticated: ...  # identified report, else anonymous

The services live on app.state (built by create_app); dependencies only
look them up, so tests can build an app around any store.
"""

from dataclasses import dataclass

from fastapi import Depends, Request

from sindicapp.auth.context import RequestContext
from sindicapp.auth.gate import AccessGate
from sindicapp.auth.identities import IdentityStore
from sindicapp.auth.manager import SessionManager
from sindicapp.auth.policy import Permission, Requirement, RoleName
from sindicapp.auth.sessions import SessionLedger


@dataclass(frozen=True)
class AuthServices:
    """Auth components wired for one application instance."""
    manager: SessionManager
    gate: AccessGate
    ledger: SessionLedger
    identities: IdentityStore


def get_auth_services(request: Request) -> AuthServices:
    return request.app.state.auth


def get_session_manager(request: Request) -> SessionManager:
    return get_auth_services(request).manager


async def authenticate(request: Request) -> RequestContext:
    """
    Require a valid "Authorization: Bearer <access token>".

    Raises:
        Unauthenticated (401): Missing, invalid or expired token, inactive user
    """
    gate = get_auth_services(request).gate
    return await gate.authenticate(request.headers.get("Authorization"))


async def optional_authenticate(request: Request) -> RequestContext:
    """Resolve the caller if possible; anonymous context otherwise."""
    gate = get_auth_services(request).gate
    return await gate.optional_authenticate(request.headers.get("Authorization"))


def require(requirement: Requirement):
    """
    Dependency factory enforcing an authorization requirement.

    Raises:
        Unauthenticated (401): No valid token
        Forbidden (403): Role does not satisfy the requirement
    """
    async def dependency(
        request: Request,
        context: RequestContext = Depends(optional_authenticate),
    ) -> RequestContext:
        return get_auth_services(request).gate.authorize(context, requirement)

    return dependency


def require_permission(permission: Permission):
    return require(Requirement.permission(permission))


def require_role(name: RoleName):
    return require(Requirement.role(name))


def require_any_role(*names: RoleName):
    return require(Requirement.any_role(*names))
