"""
services/report_service.py
--------------------------
Derived, read-only figures. Nothing here is stored or cached: every number
is recomputed from the bikes table on each request.

Money is summed as Decimal and rounded to cents, so profit computed per bike
and summed equals revenue minus cost exactly. Profit margin is a percentage
of revenue and is 0 when there is no revenue.
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bikedesk.db.base import utcnow
from bikedesk.models.bike import Bike
from bikedesk.models.company import Company
from bikedesk.models.customer import Customer
from bikedesk.models.user import User, UserRole
from bikedesk.schemas.announcement import AnnouncementRead
from bikedesk.schemas.bike import SaleRow
from bikedesk.schemas.company import CompanySummary
from bikedesk.schemas.customer import (
    CustomerDirectoryEntry,
    CustomerPurchase,
    CustomerStats,
)
from bikedesk.schemas.report import (
    CompanyRanking,
    CompanyStats,
    DashboardResponse,
    Financials,
    InventoryCounts,
    PlatformOverview,
    ProfitReport,
    RecentSale,
    SalesReport,
    SalesTrendRow,
    SystemStats,
    TenantAdminStats,
    UserCounts,
)
from bikedesk.services.announcement_service import AnnouncementService
from bikedesk.services.user_service import UserService

AGING_THRESHOLD_DAYS = 30
NEW_CUSTOMER_WINDOW_DAYS = 30
RECENT_SALES_LIMIT = 5
DASHBOARD_ANNOUNCEMENTS_LIMIT = 3

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT)


def profit_margin(profit: Decimal, revenue: Decimal) -> float:
    if revenue == 0:
        return 0.0
    return round(float(profit / revenue * 100), 2)


def average(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return ZERO
    return (total / count).quantize(CENT)


class ReportService:

    # ── Building blocks ───────────────────────────────────────────────────────

    @staticmethod
    async def inventory_counts(
        db: AsyncSession, company_id: Optional[str] = None
    ) -> InventoryCounts:
        query = select(
            func.count(Bike.id),
            func.coalesce(func.sum(case((Bike.is_sold.is_(True), 1), else_=0)), 0),
        )
        if company_id is not None:
            query = query.where(Bike.company_id == company_id)
        total, sold = (await db.execute(query)).one()
        total, sold = int(total), int(sold)
        return InventoryCounts(total=total, sold=sold, available=total - sold)

    @staticmethod
    async def financials(
        db: AsyncSession, company_id: Optional[str] = None
    ) -> tuple[int, Decimal, Decimal]:
        """(sold count, revenue, cost of the sold units)"""
        query = select(
            func.count(Bike.id),
            func.coalesce(func.sum(Bike.sold_price), 0),
            func.coalesce(func.sum(Bike.bought_price), 0),
        ).where(Bike.is_sold.is_(True))
        if company_id is not None:
            query = query.where(Bike.company_id == company_id)
        count, revenue, cost = (await db.execute(query)).one()
        return int(count), money(revenue), money(cost)

    # ── Tenant reports ────────────────────────────────────────────────────────

    @staticmethod
    async def dashboard(db: AsyncSession, company_id: str) -> DashboardResponse:
        counts = await ReportService.inventory_counts(db, company_id)
        _, revenue, cost = await ReportService.financials(db, company_id)

        cutoff = utcnow() - timedelta(days=AGING_THRESHOLD_DAYS)
        aging = await db.scalar(
            select(func.count(Bike.id)).where(
                Bike.company_id == company_id,
                Bike.is_sold.is_(False),
                Bike.created_at < cutoff,
            )
        )

        recent = await db.execute(
            select(Bike)
            .where(Bike.company_id == company_id, Bike.is_sold.is_(True))
            .order_by(Bike.sold_at.desc(), Bike.reg_no)
            .limit(RECENT_SALES_LIMIT)
        )
        announcements = await AnnouncementService.visible_to(
            db, company_id, limit=DASHBOARD_ANNOUNCEMENTS_LIMIT
        )

        return DashboardResponse(
            total_bikes=counts.total,
            sold_bikes=counts.sold,
            available_bikes=counts.available,
            total_revenue=revenue,
            total_profit=revenue - cost,
            aging_inventory=int(aging or 0),
            recent_sales=[RecentSale.model_validate(b) for b in recent.scalars().all()],
            announcements=[AnnouncementRead.model_validate(a) for a in announcements],
        )

    @staticmethod
    def sales_report(sold_bikes: list[Bike]) -> SalesReport:
        rows = [SaleRow.model_validate(bike) for bike in sold_bikes]
        revenue = sum((money(b.sold_price) for b in sold_bikes), ZERO)
        cost = sum((money(b.bought_price) for b in sold_bikes), ZERO)
        profit = revenue - cost
        return SalesReport(
            total_sales=len(rows),
            total_revenue=revenue,
            total_cost=cost,
            total_profit=profit,
            average_profit=average(profit, len(rows)),
            profit_margin=profit_margin(profit, revenue),
            sales=rows,
        )

    @staticmethod
    async def profit_report(db: AsyncSession, company_id: str) -> ProfitReport:
        count, revenue, cost = await ReportService.financials(db, company_id)
        return ProfitReport(total_profit=revenue - cost, count=count)

    @staticmethod
    async def tenant_admin_stats(db: AsyncSession, company_id: str) -> TenantAdminStats:
        by_role = await UserService.count_by_role(db, company_id)
        counts = await ReportService.inventory_counts(db, company_id)
        _, revenue, cost = await ReportService.financials(db, company_id)
        return TenantAdminStats(
            total_users=sum(by_role.values()),
            admin_users=by_role.get(UserRole.admin.value, 0),
            worker_users=by_role.get(UserRole.worker.value, 0),
            total_bikes=counts.total,
            sold_bikes=counts.sold,
            total_revenue=revenue,
            total_profit=revenue - cost,
        )

    # ── Platform reports ──────────────────────────────────────────────────────

    @staticmethod
    async def system_stats(db: AsyncSession) -> SystemStats:
        total_users = await db.scalar(select(func.count(User.id)))
        total_companies = await db.scalar(select(func.count(Company.id)))
        active_companies = await db.scalar(
            select(func.count(Company.id)).where(Company.is_active.is_(True))
        )
        counts = await ReportService.inventory_counts(db)
        _, revenue, cost = await ReportService.financials(db)
        by_role = await UserService.count_by_role(db)

        return SystemStats(
            overview=PlatformOverview(
                total_users=int(total_users or 0),
                total_companies=int(total_companies or 0),
                active_companies=int(active_companies or 0),
                suspended_companies=int(total_companies or 0) - int(active_companies or 0),
            ),
            inventory=counts,
            financial=Financials(
                total_revenue=revenue,
                total_cost=cost,
                total_profit=revenue - cost,
            ),
            users={role.lower(): count for role, count in by_role.items()},
        )

    @staticmethod
    async def company_stats(db: AsyncSession, company: Company) -> CompanyStats:
        by_role = await UserService.count_by_role(db, company.id)
        counts = await ReportService.inventory_counts(db, company.id)
        sold, revenue, cost = await ReportService.financials(db, company.id)
        profit = revenue - cost
        return CompanyStats(
            company=CompanySummary.model_validate(company),
            users=UserCounts(
                total=sum(by_role.values()),
                admins=by_role.get(UserRole.admin.value, 0),
                workers=by_role.get(UserRole.worker.value, 0),
            ),
            bikes=counts,
            financial=Financials(
                total_revenue=revenue,
                total_cost=cost,
                total_profit=profit,
                average_profit=average(profit, sold),
            ),
        )

    @staticmethod
    async def _sold_since(db: AsyncSession, days: int) -> list[Bike]:
        since = utcnow() - timedelta(days=days)
        result = await db.execute(
            select(Bike)
            .where(Bike.is_sold.is_(True), Bike.sold_at >= since)
            .order_by(Bike.sold_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def company_rankings(db: AsyncSession, days: int) -> list[CompanyRanking]:
        """
        Revenue leaderboard over the last `days` days.
        Ties are broken by company id so the order is reproducible.
        """
        companies = (await db.execute(select(Company))).scalars().all()
        revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
        profit: dict[str, Decimal] = defaultdict(lambda: ZERO)
        sold: dict[str, int] = defaultdict(int)

        for bike in await ReportService._sold_since(db, days):
            revenue[bike.company_id] += money(bike.sold_price)
            profit[bike.company_id] += money(bike.sold_price) - money(bike.bought_price)
            sold[bike.company_id] += 1

        rankings = [
            CompanyRanking(
                id=company.id,
                name=company.name,
                revenue=revenue[company.id],
                profit=profit[company.id],
                bikes_sold=sold[company.id],
                profit_margin=profit_margin(profit[company.id], revenue[company.id]),
            )
            for company in companies
        ]
        rankings.sort(key=lambda r: (-r.revenue, r.id))
        return rankings

    @staticmethod
    async def sales_trends(db: AsyncSession, days: int) -> list[SalesTrendRow]:
        """One row per calendar day (UTC) that had at least one sale."""
        buckets: dict[date, list[Bike]] = defaultdict(list)
        for bike in await ReportService._sold_since(db, days):
            buckets[bike.sold_at.date()].append(bike)

        return [
            SalesTrendRow(
                date=day,
                revenue=sum((money(b.sold_price) for b in bikes), ZERO),
                profit=sum(
                    (money(b.sold_price) - money(b.bought_price) for b in bikes), ZERO
                ),
                sales=len(bikes),
            )
            for day, bikes in sorted(buckets.items())
        ]

    # ── Customers ─────────────────────────────────────────────────────────────

    @staticmethod
    async def customer_directory(db: AsyncSession) -> list[CustomerDirectoryEntry]:
        result = await db.execute(
            select(Customer)
            .options(selectinload(Customer.bikes).selectinload(Bike.company))
            .order_by(Customer.created_at.desc(), Customer.name)
        )
        entries = []
        for customer in result.scalars().all():
            bikes = sorted(customer.bikes, key=lambda b: b.sold_at, reverse=True)
            entries.append(
                CustomerDirectoryEntry(
                    id=customer.id,
                    name=customer.name,
                    phone=customer.phone,
                    aadhaar_number=customer.aadhaar_number,
                    address=customer.address,
                    created_at=customer.created_at,
                    total_purchases=len(bikes),
                    total_spent=sum((money(b.sold_price) for b in bikes), ZERO),
                    last_purchase_date=bikes[0].sold_at if bikes else None,
                    bikes=[
                        CustomerPurchase(
                            id=b.id,
                            name=b.name,
                            reg_no=b.reg_no,
                            price=money(b.sold_price),
                            purchase_date=b.sold_at,
                            company_name=b.company.name,
                        )
                        for b in bikes
                    ],
                )
            )
        return entries

    @staticmethod
    async def customer_stats(db: AsyncSession) -> CustomerStats:
        total = int(await db.scalar(select(func.count(Customer.id))) or 0)
        since = utcnow() - timedelta(days=NEW_CUSTOMER_WINDOW_DAYS)
        new = int(
            await db.scalar(
                select(func.count(Customer.id)).where(Customer.created_at >= since)
            )
            or 0
        )
        spent = money(
            await db.scalar(
                select(func.coalesce(func.sum(Bike.sold_price), 0)).where(
                    Bike.customer_id.is_not(None)
                )
            )
        )
        purchases = (
            select(Bike.customer_id)
            .where(Bike.customer_id.is_not(None))
            .group_by(Bike.customer_id)
            .having(func.count(Bike.id) > 1)
            .subquery()
        )
        repeat = int(await db.scalar(select(func.count()).select_from(purchases)) or 0)
        return CustomerStats(
            total_customers=total,
            new_this_month=new,
            average_spent=average(spent, total),
            repeat_customers=repeat,
        )
