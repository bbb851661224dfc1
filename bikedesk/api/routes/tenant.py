"""
api/routes/tenant.py
--------------------
Tenant-scoped endpoints: inventory, sales, reports, receipts and the
company-admin panel.

Every handler resolves the caller's company with company_scope() and passes
it to the service layer; nothing here reads a company id from the request.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bikedesk.core.rate_limit import (
    RECEIPT_LIMIT,
    RECEIPT_MESSAGE,
    USER_CREATION_LIMIT,
    USER_CREATION_MESSAGE,
    limiter,
)
from bikedesk.db.session import get_db
from bikedesk.dependencies import (
    Principal,
    company_scope,
    tenant_access,
    tenant_admin_access,
)
from bikedesk.models.user import UserRole
from bikedesk.schemas.announcement import AnnouncementRead
from bikedesk.schemas.bike import BikeCreate, BikeDetail, BikeRead, BikeUpdate, SaleRequest
from bikedesk.schemas.report import (
    DashboardResponse,
    ProfitReport,
    SalesReport,
    TenantAdminStats,
)
from bikedesk.schemas.user import StaffRead, UserCreate, UserRead
from bikedesk.services.announcement_service import AnnouncementService
from bikedesk.services.bike_service import BikeService
from bikedesk.services.receipt_service import ReceiptService
from bikedesk.services.report_service import ReportService
from bikedesk.services.user_service import UserService

router = APIRouter(prefix="/api/tenant", tags=["Tenant"])

Caller = Annotated[Principal, Depends(tenant_access)]
AdminCaller = Annotated[Principal, Depends(tenant_admin_access)]
DB = Annotated[AsyncSession, Depends(get_db)]

IDENTITY_REVEAL_ROLES = (UserRole.admin, UserRole.superadmin)


# ── Dashboard ─────────────────────────────────────────────────────────────────

@router.get("/dashboard", response_model=DashboardResponse, summary="Company dashboard")
async def dashboard(db: DB, caller: Caller) -> DashboardResponse:
    return await ReportService.dashboard(db, company_scope(caller))


# ── Bikes ─────────────────────────────────────────────────────────────────────

@router.get("/bikes", response_model=list[BikeRead], summary="List bikes")
async def list_bikes(db: DB, caller: Caller) -> list[BikeRead]:
    bikes = await BikeService.list_bikes(db, company_scope(caller))
    return [BikeRead.model_validate(b) for b in bikes]


@router.get(
    "/bikes/{bike_id}/details",
    response_model=BikeDetail,
    summary="Bike detail with purchase and sale history",
)
async def bike_details(bike_id: str, db: DB, caller: Caller) -> BikeDetail:
    bike = await BikeService.get_bike(db, company_scope(caller), bike_id)
    return BikeService.build_detail(
        bike, reveal_identity=caller.role in IDENTITY_REVEAL_ROLES
    )


@router.post(
    "/bikes",
    response_model=BikeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a bike to inventory",
)
async def add_bike(body: BikeCreate, db: DB, caller: Caller) -> BikeRead:
    bike = await BikeService.create_bike(db, company_scope(caller), caller.id, body)
    return BikeRead.model_validate(bike)


@router.post(
    "/bike",
    response_model=BikeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a bike (legacy path)",
    include_in_schema=False,
)
async def add_bike_legacy(body: BikeCreate, db: DB, caller: Caller) -> BikeRead:
    return await add_bike(body, db, caller)


@router.put("/bikes/{bike_id}", response_model=BikeRead, summary="Update an unsold bike")
async def update_bike(bike_id: str, body: BikeUpdate, db: DB, caller: Caller) -> BikeRead:
    bike = await BikeService.update_bike(db, company_scope(caller), bike_id, body)
    return BikeRead.model_validate(bike)


@router.delete(
    "/bikes/{bike_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an unsold bike",
)
async def delete_bike(bike_id: str, db: DB, caller: Caller) -> None:
    await BikeService.delete_bike(db, company_scope(caller), bike_id)


@router.patch("/bikes/{bike_id}/mark-sold", response_model=BikeRead, summary="Mark a bike as sold")
async def mark_sold(bike_id: str, body: SaleRequest, db: DB, caller: Caller) -> BikeRead:
    bike = await BikeService.mark_sold(
        db, company_scope(caller), bike_id, body.sold_price, body.customer
    )
    return BikeRead.model_validate(bike)


@router.patch(
    "/bikes/{bike_id}/sold",
    response_model=BikeRead,
    summary="Mark a bike as sold (legacy path)",
    include_in_schema=False,
)
async def mark_sold_legacy(bike_id: str, body: SaleRequest, db: DB, caller: Caller) -> BikeRead:
    return await mark_sold(bike_id, body, db, caller)


@router.get(
    "/bikes/{bike_id}/receipt",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
    summary="Download the sale receipt as PDF",
)
@limiter.limit(RECEIPT_LIMIT, error_message=RECEIPT_MESSAGE)
async def receipt(request: Request, bike_id: str, db: DB, caller: Caller) -> Response:
    filename, pdf = await ReceiptService.build_receipt(db, company_scope(caller), bike_id)
    return Response(
        content=pdf.getvalue(),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Sales & reports ───────────────────────────────────────────────────────────

@router.get("/sales", response_model=SalesReport, summary="Sales report")
async def sales(db: DB, caller: Caller) -> SalesReport:
    sold = await BikeService.list_sold(db, company_scope(caller))
    return ReportService.sales_report(sold)


@router.get("/reports/profit", response_model=ProfitReport, summary="Total profit")
async def profit_report(db: DB, caller: Caller) -> ProfitReport:
    return await ReportService.profit_report(db, company_scope(caller))


@router.get(
    "/announcements",
    response_model=list[AnnouncementRead],
    summary="Announcements addressed to this company",
)
async def announcements(db: DB, caller: Caller) -> list[AnnouncementRead]:
    items = await AnnouncementService.visible_to(db, company_scope(caller))
    return [AnnouncementRead.model_validate(a) for a in items]


# ── Company admin ─────────────────────────────────────────────────────────────

@router.get("/admin/users", response_model=list[StaffRead], summary="List company staff")
async def list_staff(db: DB, admin: AdminCaller) -> list[StaffRead]:
    return await UserService.list_company_users(db, admin.company_id)


@router.post(
    "/admin/users",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a staff member to this company",
)
@limiter.limit(USER_CREATION_LIMIT, error_message=USER_CREATION_MESSAGE)
async def create_staff(
    request: Request, body: UserCreate, db: DB, admin: AdminCaller
) -> UserRead:
    user = await UserService.create_company_user(
        db, body, company_id=admin.company_id, actor_id=admin.id
    )
    return UserRead.model_validate(user)


@router.get("/admin/stats", response_model=TenantAdminStats, summary="Company statistics")
async def admin_stats(db: DB, admin: AdminCaller) -> TenantAdminStats:
    return await ReportService.tenant_admin_stats(db, admin.company_id)
