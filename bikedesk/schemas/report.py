"""
schemas/report.py
-----------------
Read-only projections computed on each request by ReportService.
"""

import datetime as dt
from typing import Dict, Optional

from pydantic import BaseModel

from bikedesk.schemas.announcement import AnnouncementRead
from bikedesk.schemas.bike import SaleRow
from bikedesk.schemas.common import Money
from bikedesk.schemas.company import CompanySummary


class RecentSale(BaseModel):
    id: str
    name: str
    reg_no: str
    sold_price: Money
    sold_at: dt.datetime

    model_config = {"from_attributes": True}


class DashboardResponse(BaseModel):
    total_bikes: int
    sold_bikes: int
    available_bikes: int
    total_revenue: Money
    total_profit: Money
    aging_inventory: int
    recent_sales: list[RecentSale]
    announcements: list[AnnouncementRead]


class SalesReport(BaseModel):
    total_sales: int
    total_revenue: Money
    total_cost: Money
    total_profit: Money
    average_profit: Money
    profit_margin: float
    sales: list[SaleRow]


class ProfitReport(BaseModel):
    total_profit: Money
    count: int


class TenantAdminStats(BaseModel):
    total_users: int
    admin_users: int
    worker_users: int
    total_bikes: int
    sold_bikes: int
    total_revenue: Money
    total_profit: Money


# ── Platform (superadmin) ─────────────────────────────────────────────────────

class PlatformOverview(BaseModel):
    total_users: int
    total_companies: int
    active_companies: int
    suspended_companies: int


class InventoryCounts(BaseModel):
    total: int
    sold: int
    available: int


class Financials(BaseModel):
    total_revenue: Money
    total_cost: Money
    total_profit: Money
    average_profit: Optional[Money] = None


class SystemStats(BaseModel):
    overview: PlatformOverview
    inventory: InventoryCounts
    financial: Financials
    users: Dict[str, int]


class UserCounts(BaseModel):
    total: int
    admins: int
    workers: int


class CompanyStats(BaseModel):
    company: CompanySummary
    users: UserCounts
    bikes: InventoryCounts
    financial: Financials


class CompanyRanking(BaseModel):
    id: str
    name: str
    revenue: Money
    profit: Money
    bikes_sold: int
    profit_margin: float


class SalesTrendRow(BaseModel):
    date: dt.date
    revenue: Money
    profit: Money
    sales: int
