"""
db/base.py
----------
Declarative base, column mixins and clock helpers shared by every model.

Primary keys are UUID strings (generate_uuid) so ids from one company give
no hint about another company's records. Indexes, unique and foreign-key
constraints are named by NAMING_CONVENTION; constraints given an explicit
name (uq_bikes_company_reg_no, ck_bikes_sale_fields) keep it.

All timestamps are timezone-aware UTC. The database fills created_at /
updated_at; services stamp business times (sold_at) with utcnow().
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, MetaData, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
