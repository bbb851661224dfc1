"""
models/bike.py
--------------
Bike inventory model and its AVAILABLE → SOLD lifecycle.

Storage-level guarantees:
  - (company_id, reg_no) is unique: the service pre-check is only a fast
    path, this index settles concurrent inserts.
  - ck_bikes_sale_fields: is_sold, sold_price, sold_at and customer_id are
    either all set or all null.

aadhaar_number identifies the previous owner the bike was bought from.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bikedesk.db.base import Base, TimestampMixin, generate_uuid


class BikeStatus(str, PyEnum):
    available = "AVAILABLE"
    sold = "SOLD"


class Bike(Base, TimestampMixin):
    __tablename__ = "bikes"
    __table_args__ = (
        UniqueConstraint("company_id", "reg_no", name="uq_bikes_company_reg_no"),
        CheckConstraint(
            "(is_sold AND sold_price IS NOT NULL AND sold_at IS NOT NULL"
            " AND customer_id IS NOT NULL)"
            " OR (NOT is_sold AND sold_price IS NULL AND sold_at IS NULL"
            " AND customer_id IS NULL)",
            name="ck_bikes_sale_fields",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Stored upper-cased
    reg_no: Mapped[str] = mapped_column(String(20), nullable=False)
    aadhaar_number: Mapped[str] = mapped_column(String(12), nullable=False)
    bought_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    is_sold: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sold_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    sold_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    customer_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("customers.id"), nullable=True, index=True
    )

    company_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("companies.id"), nullable=False, index=True
    )
    added_by_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="bikes")  # noqa: F821
    added_by: Mapped["User"] = relationship("User", back_populates="bikes_added")  # noqa: F821
    customer: Mapped[Optional["Customer"]] = relationship(  # noqa: F821
        "Customer", back_populates="bikes"
    )

    @property
    def status(self) -> BikeStatus:
        return BikeStatus.sold if self.is_sold else BikeStatus.available

    @property
    def profit(self) -> Optional[Decimal]:
        if self.sold_price is None:
            return None
        return self.sold_price - self.bought_price

    def __repr__(self) -> str:
        return f"<Bike id={self.id} reg_no={self.reg_no} sold={self.is_sold}>"
