"""
services/announcement_service.py
--------------------------------
Superadmin broadcasts. A broadcast without a target is shown to every
tenant; a targeted one only to that company.
"""

from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bikedesk.core.errors import NotFound
from bikedesk.core.logging import get_logger, log_admin_action
from bikedesk.models.announcement import Announcement
from bikedesk.models.company import Company
from bikedesk.schemas.announcement import AnnouncementCreate

logger = get_logger(__name__)

RECENT_BROADCASTS_LIMIT = 50


class AnnouncementService:

    @staticmethod
    async def create(
        db: AsyncSession, data: AnnouncementCreate, actor_id: str
    ) -> Announcement:
        if data.target_company_id is not None:
            exists = await db.scalar(
                select(Company.id).where(Company.id == data.target_company_id)
            )
            if exists is None:
                raise NotFound("Target company not found")

        announcement = Announcement(
            message=data.message,
            target_company_id=data.target_company_id,
        )
        db.add(announcement)
        await db.flush()
        await db.refresh(announcement)

        log_admin_action(
            logger,
            actor_id,
            "BROADCAST",
            announcement_id=announcement.id,
            target_company_id=announcement.target_company_id,
        )
        return announcement

    @staticmethod
    async def list_recent(
        db: AsyncSession, limit: int = RECENT_BROADCASTS_LIMIT
    ) -> list[Announcement]:
        result = await db.execute(
            select(Announcement)
            .order_by(Announcement.created_at.desc(), Announcement.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def visible_to(
        db: AsyncSession, company_id: str, limit: Optional[int] = None
    ) -> list[Announcement]:
        """Global broadcasts plus the ones addressed to this company, newest first."""
        query = (
            select(Announcement)
            .where(
                or_(
                    Announcement.target_company_id.is_(None),
                    Announcement.target_company_id == company_id,
                )
            )
            .order_by(Announcement.created_at.desc(), Announcement.id)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def delete(db: AsyncSession, announcement_id: str, actor_id: str) -> None:
        result = await db.execute(
            delete(Announcement).where(Announcement.id == announcement_id)
        )
        if result.rowcount == 0:
            raise NotFound("Announcement not found")
        log_admin_action(logger, actor_id, "DELETE_BROADCAST", announcement_id=announcement_id)
