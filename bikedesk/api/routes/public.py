"""
api/routes/public.py
--------------------
Unauthenticated endpoints. Subject to maintenance mode.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bikedesk.db.session import get_db
from bikedesk.dependencies import maintenance_gate
from bikedesk.schemas.company import CompanyPublic
from bikedesk.services.company_service import CompanyService

router = APIRouter(
    prefix="/api/public",
    tags=["Public"],
    dependencies=[Depends(maintenance_gate)],
)


@router.get(
    "/companies",
    response_model=list[CompanyPublic],
    summary="List active companies",
)
async def public_companies(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[CompanyPublic]:
    companies = await CompanyService.list_active(db)
    return [CompanyPublic.model_validate(c) for c in companies]
