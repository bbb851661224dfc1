"""
models/user.py
--------------
User ORM model with roles and company binding.

Role design:
  - 'SUPERADMIN': Platform operator. No company; may impersonate any company.
  - 'ADMIN':      Manages users and inventory within their own company.
  - 'WORKER':     Manages inventory and sales within their own company.

The hashed_password column stores bcrypt hashes only — plain text is
never stored and never logged. Users are never hard-deleted.
"""

from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bikedesk.db.base import Base, TimestampMixin, generate_uuid


class UserRole(str, PyEnum):
    superadmin = "SUPERADMIN"
    admin = "ADMIN"
    worker = "WORKER"


TENANT_ROLES = (UserRole.admin, UserRole.worker)


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.worker.value
    )
    # Null only for SUPERADMIN
    company_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("companies.id"),
        nullable=True,
        index=True,
    )

    # Relationships
    company: Mapped[Optional["Company"]] = relationship(  # noqa: F821
        "Company", back_populates="users"
    )
    bikes_added: Mapped[list["Bike"]] = relationship(  # noqa: F821
        "Bike", back_populates="added_by"
    )

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.superadmin.value

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
