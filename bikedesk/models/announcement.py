"""
models/announcement.py
----------------------
Superadmin broadcast. target_company_id = NULL means every tenant sees it.
"""

from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bikedesk.db.base import Base, TimestampMixin, generate_uuid

MAX_MESSAGE_LENGTH = 1000


class Announcement(Base, TimestampMixin):
    __tablename__ = "announcements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    target_company_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Announcement id={self.id} target={self.target_company_id}>"
