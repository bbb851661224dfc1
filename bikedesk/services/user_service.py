"""
services/user_service.py
------------------------
Business logic for user creation, authentication, and listing.

Tenant admins can only ever create or list users inside their own company;
the company_id always comes from the caller's resolved scope, never from
the request body.
"""

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bikedesk.core.errors import Conflict, ValidationFailed
from bikedesk.core.logging import get_logger, log_admin_action
from bikedesk.core.security import hash_password, verify_password
from bikedesk.models.bike import Bike
from bikedesk.models.user import User, UserRole
from bikedesk.schemas.user import PlatformUserCreate, StaffRead, UserCreate
from bikedesk.services.company_service import CompanyService

logger = get_logger(__name__)


class UserService:

    @staticmethod
    async def _insert(db: AsyncSession, user: User) -> User:
        existing = await UserService.get_by_email(db, user.email)
        if existing is not None:
            raise Conflict(f"Email '{user.email}' is already registered")

        db.add(user)
        try:
            await db.flush()
            await db.refresh(user)
        except IntegrityError:
            await db.rollback()
            raise Conflict(f"Email '{user.email}' is already registered")
        return user

    @staticmethod
    async def create_company_user(
        db: AsyncSession,
        data: UserCreate,
        company_id: str,
        actor_id: str,
    ) -> User:
        """
        Company-admin-initiated user creation within their own company.
        Only ADMIN / WORKER roles (enforced by the schema).
        """
        user = await UserService._insert(
            db,
            User(
                email=data.email.lower(),
                hashed_password=hash_password(data.password),
                role=data.role.value,
                company_id=company_id,
            ),
        )
        logger.info(
            "Admin created user",
            new_user_id=user.id,
            role=user.role,
            company_id=company_id,
            actor_id=actor_id,
        )
        return user

    @staticmethod
    async def create_platform_user(
        db: AsyncSession, data: PlatformUserCreate, actor_id: str
    ) -> User:
        """
        Superadmin-initiated user creation.
        ADMIN / WORKER must name an existing company; SUPERADMIN has none.
        """
        company_id = data.company_id
        if data.role == UserRole.superadmin:
            company_id = None
        else:
            if not company_id:
                raise ValidationFailed("Company ID is required for ADMIN and WORKER users")
            await CompanyService.require_company(db, company_id)

        user = await UserService._insert(
            db,
            User(
                email=data.email.lower(),
                hashed_password=hash_password(data.password),
                role=data.role.value,
                company_id=company_id,
            ),
        )
        log_admin_action(
            logger,
            actor_id,
            "CREATE_USER",
            user_id=user.id,
            role=user.role,
            company_id=company_id,
        )
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(
            select(User).options(selectinload(User.company)).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        result = await db.execute(
            select(User)
            .options(selectinload(User.company))
            .where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def authenticate(
        db: AsyncSession, email: str, password: str
    ) -> User | None:
        """
        Verify credentials and return the User if valid, else None.
        Email lookup is case-insensitive.
        """
        user = await UserService.get_by_email(db, email)
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    async def change_password(
        db: AsyncSession, user: User, current_password: str, new_password: str
    ) -> None:
        if not verify_password(current_password, user.hashed_password):
            raise ValidationFailed("Current password is incorrect")
        user.hashed_password = hash_password(new_password)
        await db.flush()
        logger.info("Password changed", user_id=user.id)

    @staticmethod
    async def list_company_users(
        db: AsyncSession, company_id: str
    ) -> list[StaffRead]:
        """
        Users of one company with how many bikes each added, newest first.
        Used by company-admin endpoints.
        """
        bike_counts = (
            select(Bike.added_by_id, func.count(Bike.id).label("bikes_added"))
            .group_by(Bike.added_by_id)
            .subquery()
        )
        result = await db.execute(
            select(User, func.coalesce(bike_counts.c.bikes_added, 0))
            .outerjoin(bike_counts, bike_counts.c.added_by_id == User.id)
            .where(User.company_id == company_id)
            .order_by(User.created_at.desc(), User.email)
        )
        return [
            StaffRead(
                id=user.id,
                email=user.email,
                role=user.role,
                company_id=user.company_id,
                created_at=user.created_at,
                bikes_added=int(count),
            )
            for user, count in result.all()
        ]

    @staticmethod
    async def list_all_users(db: AsyncSession) -> list[User]:
        """Every user on the platform with their company, newest first."""
        result = await db.execute(
            select(User)
            .options(selectinload(User.company))
            .order_by(User.created_at.desc(), User.email)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_by_role(db: AsyncSession, company_id: str | None = None) -> dict[str, int]:
        query = select(User.role, func.count(User.id)).group_by(User.role)
        if company_id is not None:
            query = query.where(User.company_id == company_id)
        result = await db.execute(query)
        return {role: int(count) for role, count in result.all()}
