"""
api/routes/superadmin.py
------------------------
Platform-operator endpoints. SUPERADMIN only, never blocked by maintenance
mode, never subject to the suspension policy.

Every mutation here is recorded as an "Admin action" log event by the
service it calls.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bikedesk.core.rate_limit import USER_CREATION_LIMIT, USER_CREATION_MESSAGE, limiter
from bikedesk.db.session import get_db
from bikedesk.dependencies import Principal, superadmin_access
from bikedesk.schemas.announcement import AnnouncementCreate, AnnouncementRead
from bikedesk.schemas.bike import BikeRead
from bikedesk.schemas.company import (
    CompanyCreate,
    CompanyOverview,
    CompanyRead,
    CompanyStatusUpdate,
    CompanySummary,
)
from bikedesk.schemas.customer import CustomerDirectoryEntry, CustomerStats
from bikedesk.schemas.report import (
    CompanyRanking,
    CompanyStats,
    SalesTrendRow,
    SystemStats,
)
from bikedesk.schemas.settings import SettingRead, SettingUpdate
from bikedesk.schemas.user import (
    ImpersonateRequest,
    ImpersonationToken,
    PlatformUserCreate,
    PlatformUserRead,
    UserRead,
)
from bikedesk.services.announcement_service import AnnouncementService
from bikedesk.services.auth_service import AuthService
from bikedesk.services.bike_service import BikeService
from bikedesk.services.company_service import CompanyService
from bikedesk.services.report_service import ReportService
from bikedesk.services.settings_service import SettingsService
from bikedesk.services.user_service import UserService

router = APIRouter(prefix="/api/superadmin", tags=["Superadmin"])

Operator = Annotated[Principal, Depends(superadmin_access)]
DB = Annotated[AsyncSession, Depends(get_db)]

Period = Annotated[
    int, Query(ge=1, le=3650, description="Lookback window in days")
]


# ── Companies ─────────────────────────────────────────────────────────────────

@router.get("/companies", response_model=list[CompanyOverview], summary="List companies")
async def list_companies(db: DB, operator: Operator) -> list[CompanyOverview]:
    return await CompanyService.list_overview(db)


@router.post(
    "/companies",
    response_model=CompanyRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a company",
)
async def create_company(body: CompanyCreate, db: DB, operator: Operator) -> CompanyRead:
    company = await CompanyService.create_company(db, body, operator.id)
    return CompanyRead.model_validate(company)


@router.post(
    "/companies/{company_id}/suspend",
    response_model=CompanyRead,
    summary="Suspend or reactivate a company",
)
async def suspend_company(
    company_id: str,
    db: DB,
    operator: Operator,
    body: Optional[CompanyStatusUpdate] = None,
) -> CompanyRead:
    """Without a body the company is suspended; send is_active=true to reactivate."""
    is_active = body.is_active if body is not None else False
    company = await CompanyService.set_active(db, company_id, is_active, operator.id)
    return CompanyRead.model_validate(company)


@router.delete(
    "/companies/{company_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an empty company",
)
async def delete_company(company_id: str, db: DB, operator: Operator) -> None:
    await CompanyService.delete_company(db, company_id, operator.id)


@router.get(
    "/companies/{company_id}/stats",
    response_model=CompanyStats,
    summary="Statistics for one company",
)
async def company_stats(company_id: str, db: DB, operator: Operator) -> CompanyStats:
    company = await CompanyService.require_company(db, company_id)
    return await ReportService.company_stats(db, company)


@router.get(
    "/companies/{company_id}/bikes",
    response_model=list[BikeRead],
    summary="Inventory of one company",
)
async def company_bikes(company_id: str, db: DB, operator: Operator) -> list[BikeRead]:
    await CompanyService.require_company(db, company_id)
    bikes = await BikeService.list_bikes(db, company_id)
    return [BikeRead.model_validate(b) for b in bikes]


# ── Users ─────────────────────────────────────────────────────────────────────

@router.get("/users", response_model=list[PlatformUserRead], summary="List all users")
async def list_users(db: DB, operator: Operator) -> list[PlatformUserRead]:
    users = await UserService.list_all_users(db)
    return [PlatformUserRead.model_validate(u) for u in users]


@router.post(
    "/users",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user in any company",
)
@limiter.limit(USER_CREATION_LIMIT, error_message=USER_CREATION_MESSAGE)
async def create_user(
    request: Request, body: PlatformUserCreate, db: DB, operator: Operator
) -> UserRead:
    user = await UserService.create_platform_user(db, body, operator.id)
    return UserRead.model_validate(user)


# ── Analytics ─────────────────────────────────────────────────────────────────

@router.get(
    "/analytics/system-stats",
    response_model=SystemStats,
    summary="Platform-wide statistics",
)
async def system_stats(db: DB, operator: Operator) -> SystemStats:
    return await ReportService.system_stats(db)


@router.get("/health", response_model=SystemStats, summary="Platform health")
async def platform_health(db: DB, operator: Operator) -> SystemStats:
    return await ReportService.system_stats(db)


@router.get(
    "/analytics/company-rankings",
    response_model=list[CompanyRanking],
    summary="Companies ranked by revenue",
)
async def company_rankings(
    db: DB, operator: Operator, period: Period = 30
) -> list[CompanyRanking]:
    return await ReportService.company_rankings(db, period)


@router.get(
    "/analytics/sales-trends",
    response_model=list[SalesTrendRow],
    summary="Daily sales totals",
)
async def sales_trends(
    db: DB, operator: Operator, period: Period = 30
) -> list[SalesTrendRow]:
    return await ReportService.sales_trends(db, period)


# ── Customers ─────────────────────────────────────────────────────────────────

@router.get(
    "/customers",
    response_model=list[CustomerDirectoryEntry],
    summary="Customer directory",
)
async def customers(db: DB, operator: Operator) -> list[CustomerDirectoryEntry]:
    return await ReportService.customer_directory(db)


@router.get("/customers/stats", response_model=CustomerStats, summary="Customer statistics")
async def customer_stats(db: DB, operator: Operator) -> CustomerStats:
    return await ReportService.customer_stats(db)


# ── Broadcasts ────────────────────────────────────────────────────────────────

@router.get(
    "/broadcasts",
    response_model=list[AnnouncementRead],
    summary="Most recent broadcasts",
)
async def list_broadcasts(db: DB, operator: Operator) -> list[AnnouncementRead]:
    items = await AnnouncementService.list_recent(db)
    return [AnnouncementRead.model_validate(a) for a in items]


@router.post(
    "/broadcasts",
    response_model=AnnouncementRead,
    status_code=status.HTTP_201_CREATED,
    summary="Broadcast an announcement",
)
async def create_broadcast(
    body: AnnouncementCreate, db: DB, operator: Operator
) -> AnnouncementRead:
    announcement = await AnnouncementService.create(db, body, operator.id)
    return AnnouncementRead.model_validate(announcement)


@router.delete(
    "/broadcasts/{announcement_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a broadcast",
)
async def delete_broadcast(announcement_id: str, db: DB, operator: Operator) -> None:
    await AnnouncementService.delete(db, announcement_id, operator.id)


# ── Settings ──────────────────────────────────────────────────────────────────

@router.get("/settings", response_model=list[SettingRead], summary="System settings")
async def list_settings(operator: Operator) -> list[SettingRead]:
    return SettingsService.list_settings()


@router.put("/settings", response_model=SettingRead, summary="Update a system setting")
async def update_setting(body: SettingUpdate, operator: Operator) -> SettingRead:
    return SettingsService.update_setting(body.key, body.value, operator.id)


# ── Impersonation ─────────────────────────────────────────────────────────────

@router.post(
    "/impersonate",
    response_model=ImpersonationToken,
    summary="Get a short-lived token scoped to a company",
)
async def impersonate(
    body: ImpersonateRequest, db: DB, operator: Operator
) -> ImpersonationToken:
    issued = await AuthService.impersonate(db, operator.user, body.company_id)
    return ImpersonationToken(
        access_token=issued.access_token,
        expires_in=issued.expires_in,
        company=CompanySummary.model_validate(issued.company),
    )
