"""
schemas/customer.py
-------------------
Platform-wide customer directory (superadmin only).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from bikedesk.schemas.common import Money, mask_identity_number


class CustomerPurchase(BaseModel):
    id: str
    name: str
    reg_no: str
    price: Money
    purchase_date: datetime
    company_name: str


class CustomerDirectoryEntry(BaseModel):
    id: str
    name: str
    phone: str
    aadhaar_number: str
    address: str
    created_at: datetime
    total_purchases: int
    total_spent: Money
    last_purchase_date: Optional[datetime] = None
    bikes: list[CustomerPurchase]

    @field_validator("aadhaar_number")
    @classmethod
    def mask(cls, v: str) -> str:
        return mask_identity_number(v)


class CustomerStats(BaseModel):
    total_customers: int
    new_this_month: int
    average_spent: Money
    repeat_customers: int
