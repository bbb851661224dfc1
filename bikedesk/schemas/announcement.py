"""
schemas/announcement.py
-----------------------
Broadcast messages from the platform operator to tenants.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from bikedesk.models.announcement import MAX_MESSAGE_LENGTH


class AnnouncementCreate(BaseModel):
    message: str = Field(..., max_length=MAX_MESSAGE_LENGTH)
    target_company_id: Optional[str] = Field(
        default=None, description="Company to address; omit for a global broadcast"
    )

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message is required")
        return v


class AnnouncementRead(BaseModel):
    id: str
    message: str
    target_company_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
