"""
services/auth_service.py
------------------------
Token issuance and the tenant-context decision made at login.

Resolution rules:
  - SUPERADMIN + company_id  → token scoped to that company (impersonation).
  - SUPERADMIN alone         → unscoped token (company_id = None).
  - ADMIN / WORKER           → token scoped to the stored company; asking for
                               any other company is Forbidden.

Suspension does not block login; whether a suspended company's staff can
use tenant routes is decided by the guard chain (see dependencies.py).
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bikedesk.core.config import settings
from bikedesk.core.errors import Forbidden, Unauthenticated
from bikedesk.core.logging import get_logger, log_admin_action
from bikedesk.core.security import create_access_token
from bikedesk.models.company import Company
from bikedesk.models.user import User
from bikedesk.services.company_service import CompanyService
from bikedesk.services.user_service import UserService

logger = get_logger(__name__)


@dataclass
class IssuedToken:
    access_token: str
    expires_in: int
    user: User
    company_id: Optional[str]
    company: Optional[Company]


class AuthService:

    @staticmethod
    async def login(
        db: AsyncSession,
        email: str,
        password: str,
        company_id: Optional[str] = None,
    ) -> IssuedToken:
        user = await UserService.authenticate(db, email, password)
        if user is None:
            logger.info("Login failed", email=email.lower())
            raise Unauthenticated("Invalid email or password", code="INVALID_CREDENTIALS")

        if user.is_superadmin:
            if company_id:
                company = await CompanyService.require_company(db, company_id)
                log_admin_action(
                    logger, user.id, "IMPERSONATE_AT_LOGIN", company_id=company.id
                )
            else:
                company = None
        else:
            if company_id and company_id != user.company_id:
                logger.warning(
                    "Login company mismatch",
                    user_id=user.id,
                    requested=company_id,
                    stored=user.company_id,
                )
                raise Forbidden("User does not belong to this company", code="COMPANY_MISMATCH")
            company = user.company

        expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        resolved = company.id if company is not None else None
        token = create_access_token(
            subject=user.id,
            role=user.role,
            company_id=resolved,
            expires_delta=expires,
        )
        logger.info("Login succeeded", user_id=user.id, role=user.role, company_id=resolved)
        return IssuedToken(
            access_token=token,
            expires_in=int(expires.total_seconds()),
            user=user,
            company_id=resolved,
            company=company,
        )

    @staticmethod
    async def impersonate(
        db: AsyncSession, superadmin: User, company_id: str
    ) -> IssuedToken:
        """Short-lived token that lets a superadmin act inside a tenant."""
        company = await CompanyService.require_company(db, company_id)
        expires = timedelta(minutes=settings.IMPERSONATION_TOKEN_EXPIRE_MINUTES)
        token = create_access_token(
            subject=superadmin.id,
            role=superadmin.role,
            company_id=company.id,
            expires_delta=expires,
        )
        log_admin_action(logger, superadmin.id, "IMPERSONATE", company_id=company.id)
        return IssuedToken(
            access_token=token,
            expires_in=int(expires.total_seconds()),
            user=superadmin,
            company_id=company.id,
            company=company,
        )
