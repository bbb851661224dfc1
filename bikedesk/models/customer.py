"""
models/customer.py
------------------
Buyer identity, keyed platform-wide by a 12-digit identity number.

Customers are NOT tenant-scoped: the same number recurring at two companies
resolves to one shared record whose contact fields follow the latest sale.
The identity number is sensitive and is masked in list responses.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bikedesk.db.base import Base, TimestampMixin, generate_uuid


class Customer(Base, TimestampMixin):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    aadhaar_number: Mapped[str] = mapped_column(
        String(12), unique=True, nullable=False, index=True
    )
    address: Mapped[str] = mapped_column(String(1024), nullable=False)

    bikes: Mapped[list["Bike"]] = relationship("Bike", back_populates="customer")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name}>"
