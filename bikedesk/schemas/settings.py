"""
schemas/settings.py
-------------------
Runtime system settings exposed to the superadmin portal.
"""

from typing import Union

from pydantic import BaseModel, Field


class SettingRead(BaseModel):
    key: str
    value: str
    description: str
    type: str


class SettingUpdate(BaseModel):
    key: str = Field(..., min_length=1)
    value: Union[bool, str]
