"""
dependencies.py
---------------
FastAPI dependency injection functions for authentication and authorisation.

Guard chain, evaluated in this order for every protected route and
short-circuiting on the first failure:
  1. Authentication  — HTTPBearer extracts the token, verify_access_token
     validates it (expired and tampered tokens are told apart), and the user
     is reloaded from the DB so vanished users are rejected.
  2. Role allow-list — each router declares the roles it admits.
  3. Tenant context  — non-superadmins must carry a company in their token.
  4. Maintenance     — while the flag is on, everything outside /api/auth and
     /api/superadmin answers 503, whatever the caller's role.
  5. Suspension      — with ENFORCE_COMPANY_SUSPENSION, staff of a suspended
     company are refused on tenant routes.

The company_id resolved here scopes every tenant query downstream.
"""

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bikedesk.core.config import settings
from bikedesk.core.errors import (
    Forbidden,
    ServiceUnavailable,
    Unauthenticated,
    ValidationFailed,
)
from bikedesk.core.logging import get_logger
from bikedesk.core.maintenance import maintenance_flag
from bikedesk.core.security import verify_access_token
from bikedesk.db.session import get_db
from bikedesk.models.user import User, UserRole
from bikedesk.services.user_service import UserService

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    """The authenticated caller and the tenant scope their token resolves to."""

    user: User
    role: UserRole
    company_id: Optional[str]

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def is_superadmin(self) -> bool:
        return self.role is UserRole.superadmin

    @property
    def is_impersonating(self) -> bool:
        return self.is_superadmin and self.company_id is not None


async def get_current_principal(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Principal:
    """
    Verify the bearer token, then load the User it names.
    Raises 401 if the token is missing, invalid, expired, or stale.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Access denied: no token provided")

    payload = verify_access_token(credentials.credentials)

    # Always re-verify against DB so removed users and stale scopes are rejected
    user = await UserService.get_by_id(db, payload["sub"])
    if user is None:
        logger.warning("User from valid JWT not found in DB", user_id=payload["sub"])
        raise Unauthenticated("Invalid token", code="INVALID_TOKEN")

    if payload["role"] != user.role:
        raise Unauthenticated("Invalid token", code="INVALID_TOKEN")

    company_id = payload.get("company_id")
    if not user.is_superadmin and company_id != user.company_id:
        logger.warning(
            "Token scope does not match stored company",
            user_id=user.id,
            token_company_id=company_id,
        )
        raise Unauthenticated("Invalid token", code="INVALID_TOKEN")

    return Principal(user=user, role=UserRole(user.role), company_id=company_id)


class RequireAccess:
    """
    Role allow-list plus the tenant / maintenance / suspension checks.

    Usage:
        tenant_access = RequireAccess(UserRole.admin, UserRole.worker)

        @router.get("/bikes")
        async def handler(caller: Annotated[Principal, Depends(tenant_access)]):
            ...
    """

    def __init__(self, *roles: UserRole, tenant_route: bool = True) -> None:
        self.roles = frozenset(roles)
        self.tenant_route = tenant_route

    async def __call__(
        self,
        request: Request,
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        if principal.role not in self.roles:
            raise Forbidden("Insufficient role for this resource")

        if not principal.is_superadmin and principal.company_id is None:
            raise Forbidden("Tenant context missing", code="TENANT_CONTEXT_MISSING")

        if maintenance_flag.blocks(request.url.path):
            raise ServiceUnavailable()

        if (
            self.tenant_route
            and settings.ENFORCE_COMPANY_SUSPENSION
            and not principal.is_superadmin
            and principal.user.company is not None
            and not principal.user.company.is_active
        ):
            raise Forbidden("Company is suspended", code="COMPANY_SUSPENDED")

        return principal


tenant_access = RequireAccess(UserRole.admin, UserRole.worker, UserRole.superadmin)
tenant_admin_access = RequireAccess(UserRole.admin)
superadmin_access = RequireAccess(UserRole.superadmin, tenant_route=False)


async def maintenance_gate(request: Request) -> None:
    """For routes without authentication (the public router)."""
    if maintenance_flag.blocks(request.url.path):
        raise ServiceUnavailable()


def company_scope(principal: Principal) -> str:
    """
    The company every tenant query is filtered by.
    A superadmin only has one while impersonating.
    """
    if principal.company_id is None:
        raise ValidationFailed("Company context required: impersonate a company first")
    return principal.company_id
