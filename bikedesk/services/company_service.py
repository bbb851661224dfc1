"""
services/company_service.py
---------------------------
Business logic for company (tenant) management.

Service layer is responsible for:
  - Constructing queries
  - Enforcing business rules (e.g. unique names, delete only when empty)
  - Returning domain objects (ORM models) to the route layer
  - Never returning HTTP responses (that's the route's job)
"""

from sqlalchemy import case, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bikedesk.core.errors import Conflict, NotFound
from bikedesk.core.logging import get_logger, log_admin_action
from bikedesk.models.announcement import Announcement
from bikedesk.models.bike import Bike
from bikedesk.models.company import Company
from bikedesk.models.user import User
from bikedesk.schemas.company import CompanyCreate, CompanyOverview

logger = get_logger(__name__)


class CompanyService:

    @staticmethod
    async def create_company(
        db: AsyncSession, data: CompanyCreate, actor_id: str
    ) -> Company:
        """
        Create a new, active company.
        Raises Conflict if a company with the same name already exists.
        """
        company = Company(
            name=data.name,
            logo=str(data.logo) if data.logo else None,
            is_active=True,
        )
        db.add(company)
        try:
            await db.flush()  # Trigger DB constraints before commit
            await db.refresh(company)
        except IntegrityError:
            await db.rollback()
            raise Conflict(f"Company '{data.name}' already exists")

        log_admin_action(
            logger, actor_id, "CREATE_COMPANY", company_id=company.id, name=company.name
        )
        return company

    @staticmethod
    async def get_company(db: AsyncSession, company_id: str) -> Company | None:
        result = await db.execute(select(Company).where(Company.id == company_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def require_company(db: AsyncSession, company_id: str) -> Company:
        company = await CompanyService.get_company(db, company_id)
        if company is None:
            raise NotFound("Company not found")
        return company

    @staticmethod
    async def list_active(db: AsyncSession) -> list[Company]:
        """Companies offered on the login screen."""
        result = await db.execute(
            select(Company).where(Company.is_active.is_(True)).order_by(Company.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_overview(db: AsyncSession) -> list[CompanyOverview]:
        """Every company, newest first, with user / bike counts."""
        user_counts = (
            select(User.company_id, func.count(User.id).label("user_count"))
            .group_by(User.company_id)
            .subquery()
        )
        bike_counts = (
            select(
                Bike.company_id,
                func.count(Bike.id).label("bike_count"),
                func.sum(case((Bike.is_sold.is_(True), 1), else_=0)).label("sold_count"),
            )
            .group_by(Bike.company_id)
            .subquery()
        )
        result = await db.execute(
            select(
                Company,
                func.coalesce(user_counts.c.user_count, 0),
                func.coalesce(bike_counts.c.bike_count, 0),
                func.coalesce(bike_counts.c.sold_count, 0),
            )
            .outerjoin(user_counts, user_counts.c.company_id == Company.id)
            .outerjoin(bike_counts, bike_counts.c.company_id == Company.id)
            .order_by(Company.created_at.desc(), Company.name)
        )
        return [
            CompanyOverview(
                id=company.id,
                name=company.name,
                logo=company.logo,
                is_active=company.is_active,
                created_at=company.created_at,
                user_count=int(users),
                bike_count=int(bikes),
                sold_count=int(sold),
            )
            for company, users, bikes, sold in result.all()
        ]

    @staticmethod
    async def set_active(
        db: AsyncSession, company_id: str, is_active: bool, actor_id: str
    ) -> Company:
        """Suspend (is_active=False) or reactivate a company."""
        company = await CompanyService.require_company(db, company_id)
        company.is_active = is_active
        await db.flush()
        await db.refresh(company)

        log_admin_action(
            logger,
            actor_id,
            "ACTIVATE_COMPANY" if is_active else "SUSPEND_COMPANY",
            company_id=company.id,
            name=company.name,
        )
        return company

    @staticmethod
    async def delete_company(db: AsyncSession, company_id: str, actor_id: str) -> None:
        """
        Hard-delete an empty company.
        Raises Conflict while it still owns users or bikes.
        """
        company = await CompanyService.require_company(db, company_id)

        users = await db.scalar(
            select(func.count()).select_from(User).where(User.company_id == company_id)
        )
        bikes = await db.scalar(
            select(func.count()).select_from(Bike).where(Bike.company_id == company_id)
        )
        if users or bikes:
            raise Conflict(
                "Cannot delete company with existing users or bikes. Suspend it instead."
            )

        await db.execute(
            delete(Announcement).where(Announcement.target_company_id == company_id)
        )
        await db.execute(delete(Company).where(Company.id == company_id))

        log_admin_action(
            logger, actor_id, "DELETE_COMPANY", company_id=company_id, name=company.name
        )
