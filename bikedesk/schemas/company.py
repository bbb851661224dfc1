"""
schemas/company.py
------------------
Pydantic request/response models for Company.

Naming convention:
  CompanyCreate  → inbound request body
  CompanyRead    → outbound response body (never exposes internal fields)
"""

from datetime import datetime
from typing import Optional

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator


class CompanyCreate(BaseModel):
    name: str = Field(
        ...,
        min_length=2,
        max_length=255,
        examples=["Acme Bikes Ltd"],
        description="Unique company / tenant name",
    )
    logo: Optional[AnyHttpUrl] = Field(default=None, description="Logo URL")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Company name must be at least 2 characters long")
        return v


class CompanyStatusUpdate(BaseModel):
    is_active: bool


class CompanyPublic(BaseModel):
    """Login-screen view: nothing beyond what the picker needs."""
    id: str
    name: str
    logo: Optional[str] = None

    model_config = {"from_attributes": True}


class CompanySummary(CompanyPublic):
    is_active: bool


class CompanyRead(CompanySummary):
    created_at: datetime


class CompanyOverview(CompanyRead):
    user_count: int
    bike_count: int
    sold_count: int
