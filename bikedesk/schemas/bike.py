"""
schemas/bike.py
---------------
Pydantic models for bike inventory and the mark-as-sold transition.

The sale request is deliberately loose (every field optional): the bike
service checks it in a fixed order so that an unknown or already-sold bike
is reported as NotFound before any field-level complaint.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from bikedesk.models.bike import BikeStatus
from bikedesk.schemas.common import (
    IDENTITY_NUMBER_PATTERN,
    Money,
    PositiveMoney,
    mask_identity_number,
)
from bikedesk.schemas.company import CompanyPublic


def _normalise_reg_no(v: str) -> str:
    v = v.strip().upper()
    if len(v) < 2:
        raise ValueError("Registration number must be at least 2 characters long")
    return v


class BikeCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, examples=["CBR600"])
    reg_no: str = Field(..., min_length=2, max_length=20, examples=["KA-01-AB-1234"])
    aadhaar_number: str = Field(
        ...,
        pattern=IDENTITY_NUMBER_PATTERN,
        description="12-digit identity number of the previous owner",
    )
    bought_price: PositiveMoney

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("reg_no")
    @classmethod
    def normalise_reg_no(cls, v: str) -> str:
        return _normalise_reg_no(v)


class BikeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    reg_no: Optional[str] = Field(default=None, min_length=2, max_length=20)
    aadhaar_number: Optional[str] = Field(default=None, pattern=IDENTITY_NUMBER_PATTERN)
    bought_price: Optional[PositiveMoney] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v

    @field_validator("reg_no")
    @classmethod
    def normalise_reg_no(cls, v: Optional[str]) -> Optional[str]:
        return _normalise_reg_no(v) if v is not None else v


class CustomerDetails(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    aadhaar_number: Optional[str] = None
    address: Optional[str] = None


class SaleRequest(BaseModel):
    sold_price: Optional[Decimal] = None
    customer: Optional[CustomerDetails] = None


class AddedBy(BaseModel):
    id: str
    email: str
    role: str

    model_config = {"from_attributes": True}


class BikeRead(BaseModel):
    id: str
    name: str
    reg_no: str
    aadhaar_number: str
    bought_price: Money
    status: BikeStatus
    is_sold: bool
    sold_price: Optional[Money] = None
    sold_at: Optional[datetime] = None
    customer_id: Optional[str] = None
    company_id: str
    added_by_id: str
    added_by: Optional[AddedBy] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("aadhaar_number")
    @classmethod
    def mask(cls, v: str) -> str:
        return mask_identity_number(v)


class SaleRow(BikeRead):
    profit: Money


# ── Detail view ───────────────────────────────────────────────────────────────

class CustomerInfo(BaseModel):
    id: str
    name: str
    phone: str
    aadhaar_number: str
    address: str
    created_at: datetime


class SupplierInfo(BaseModel):
    name: str = "Previous Owner"
    aadhaar_number: str
    note: str = "This bike was purchased from the individual with this identity number"


class PurchaseInfo(BaseModel):
    added_by: AddedBy
    company: CompanyPublic
    purchase_date: datetime
    purchase_price: Money


class SaleInfo(BaseModel):
    customer: Optional[CustomerInfo] = None
    sold_date: datetime
    sold_price: Money
    profit: Money


class BikeDetail(BaseModel):
    bike: BikeRead
    supplier_info: SupplierInfo
    purchase_info: PurchaseInfo
    sale_info: Optional[SaleInfo] = None
