"""
api/routes/auth.py
------------------
Authentication endpoints. Never blocked by maintenance mode.

GET  /companies        — Active companies for the login picker.
POST /login            — Exchange credentials for a JWT access token.
GET  /profile          — The authenticated user and their company.
POST /change-password  — Replace the caller's password.
POST /register         — Superadmin creates any user; an admin creates staff
                         in their own company.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bikedesk.core.errors import Forbidden
from bikedesk.core.rate_limit import (
    LOGIN_LIMIT,
    LOGIN_MESSAGE,
    PASSWORD_CHANGE_LIMIT,
    PASSWORD_CHANGE_MESSAGE,
    USER_CREATION_LIMIT,
    USER_CREATION_MESSAGE,
    limiter,
)
from bikedesk.db.session import get_db
from bikedesk.dependencies import Principal, RequireAccess, get_current_principal
from bikedesk.models.user import TENANT_ROLES, UserRole
from bikedesk.schemas.company import CompanyPublic, CompanySummary
from bikedesk.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    PlatformUserCreate,
    ProfileResponse,
    TokenResponse,
    UserCreate,
    UserRead,
)
from bikedesk.services.auth_service import AuthService
from bikedesk.services.company_service import CompanyService
from bikedesk.services.user_service import UserService

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

registrar_access = RequireAccess(UserRole.superadmin, UserRole.admin)


@router.get(
    "/companies",
    response_model=list[CompanyPublic],
    summary="List active companies for the login screen",
)
async def login_companies(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[CompanyPublic]:
    companies = await CompanyService.list_active(db)
    return [CompanyPublic.model_validate(c) for c in companies]


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login and receive a JWT access token",
)
@limiter.limit(LOGIN_LIMIT, error_message=LOGIN_MESSAGE)
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    Authenticate with email + password (+ optional company) and receive a
    signed JWT. A superadmin naming a company receives a token scoped to it.
    """
    issued = await AuthService.login(db, body.email, body.password, body.company_id)
    user = UserRead.model_validate(issued.user).model_copy(
        update={"company_id": issued.company_id}
    )
    return TokenResponse(
        access_token=issued.access_token,
        expires_in=issued.expires_in,
        user=user,
        company=CompanySummary.model_validate(issued.company) if issued.company else None,
    )


@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Get the currently authenticated user",
)
async def profile(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> ProfileResponse:
    company = principal.user.company
    return ProfileResponse(
        user=UserRead.model_validate(principal.user),
        company=CompanySummary.model_validate(company) if company else None,
    )


@router.post(
    "/change-password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change the current user's password",
)
@limiter.limit(PASSWORD_CHANGE_LIMIT, error_message=PASSWORD_CHANGE_MESSAGE)
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> None:
    await UserService.change_password(
        db, principal.user, body.current_password, body.new_password
    )


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user account",
)
@limiter.limit(USER_CREATION_LIMIT, error_message=USER_CREATION_MESSAGE)
async def register(
    request: Request,
    body: PlatformUserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    principal: Annotated[Principal, Depends(registrar_access)],
) -> UserRead:
    """
    Superadmin: any role, any existing company.
    Admin: ADMIN / WORKER only, and only inside their own company.
    """
    if principal.is_superadmin:
        user = await UserService.create_platform_user(db, body, principal.id)
        return UserRead.model_validate(user)

    if body.role not in TENANT_ROLES:
        raise Forbidden("Admins can only create ADMIN or WORKER users")
    if body.company_id and body.company_id != principal.company_id:
        raise Forbidden("Admins can only create users in their own company")

    user = await UserService.create_company_user(
        db,
        UserCreate(email=body.email, password=body.password, role=body.role),
        company_id=principal.company_id,
        actor_id=principal.id,
    )
    return UserRead.model_validate(user)
