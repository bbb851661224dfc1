"""
models/company.py
-----------------
Company (tenant) ORM model.

Each company is an isolated dealership. All bikes belonging to a company are
scoped by company_id at the query level — never trust application-level
filtering alone; always include company_id in WHERE clauses.

A suspended company (is_active=False) stays fully visible to superadmins.
"""

from typing import Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bikedesk.db.base import Base, TimestampMixin, generate_uuid


class Company(Base, TimestampMixin):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    logo: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    users: Mapped[list["User"]] = relationship(  # noqa: F821
        "User", back_populates="company"
    )
    bikes: Mapped[list["Bike"]] = relationship(  # noqa: F821
        "Bike", back_populates="company"
    )

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name} active={self.is_active}>"
