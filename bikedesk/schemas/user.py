"""
schemas/user.py
---------------
Pydantic models for user management, login, and responses.

Security note:
  - hashed_password is NEVER included in any response schema.
  - Passwords require min 6 chars.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from bikedesk.models.user import TENANT_ROLES, UserRole
from bikedesk.schemas.company import CompanySummary


class UserCreate(BaseModel):
    """Used by a company admin to add staff to their own company."""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole = UserRole.worker

    @field_validator("role")
    @classmethod
    def tenant_role_only(cls, v: UserRole) -> UserRole:
        if v not in TENANT_ROLES:
            raise ValueError("Role must be ADMIN or WORKER")
        return v


class PlatformUserCreate(BaseModel):
    """Used by the superadmin; company_id is required for ADMIN / WORKER."""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole = UserRole.admin
    company_id: Optional[str] = None


class UserRead(BaseModel):
    id: str
    email: str
    role: str
    company_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class StaffRead(UserRead):
    bikes_added: int


class PlatformUserRead(UserRead):
    company: Optional[CompanySummary] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    company_id: Optional[str] = Field(
        default=None,
        description="Company to sign into. Superadmins may pick any company.",
    )


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserRead
    company: Optional[CompanySummary] = None


class ProfileResponse(BaseModel):
    user: UserRead
    company: Optional[CompanySummary] = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class ImpersonateRequest(BaseModel):
    company_id: str


class ImpersonationToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    company: CompanySummary
