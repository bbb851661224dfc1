"""
services/bike_service.py
------------------------
Tenant-scoped bike inventory and the AVAILABLE → SOLD transition.

Critical security invariant:
  Every query MUST include company_id in the WHERE clause. A bike outside
  the caller's company is reported exactly like a missing one (NotFound),
  so no endpoint confirms that another tenant's record exists.

Sale transition (mark_sold):
  1. bike not in scope or already sold  → NotFound "Bike not found or already sold"
  2. sold price missing, not positive or
     not storable as NUMERIC(12, 2)     → ValidationFailed
  3. customer fields missing            → ValidationFailed (lists the fields)
  4. customer number not 12 digits      → ValidationFailed
  5. sold price below purchase price    → ValidationFailed
  Then the customer is upserted by number (platform-wide) and the bike is
  flipped with a conditional UPDATE guarded by is_sold = false. Both writes
  share the request transaction, so a failure leaves neither behind.
"""

import re
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bikedesk.core.errors import Conflict, NotFound, ValidationFailed
from bikedesk.core.logging import get_logger
from bikedesk.db.base import utcnow
from bikedesk.models.bike import Bike
from bikedesk.models.customer import Customer
from bikedesk.schemas.bike import (
    AddedBy,
    BikeCreate,
    BikeDetail,
    BikeRead,
    BikeUpdate,
    CustomerDetails,
    CustomerInfo,
    PurchaseInfo,
    SaleInfo,
    SupplierInfo,
)
from bikedesk.schemas.common import fits_money_column, mask_identity_number
from bikedesk.schemas.company import CompanyPublic

logger = get_logger(__name__)

_IDENTITY_NUMBER = re.compile(r"^\d{12}$")
_CUSTOMER_FIELDS = ("name", "phone", "aadhaar_number", "address")


def _bike_query(company_id: str):
    return (
        select(Bike)
        .options(
            selectinload(Bike.added_by),
            selectinload(Bike.customer),
            selectinload(Bike.company),
        )
        .where(Bike.company_id == company_id)
    )


class BikeService:

    # ── Reads ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_bikes(db: AsyncSession, company_id: str) -> list[Bike]:
        """All bikes of one company, newest first."""
        result = await db.execute(
            _bike_query(company_id).order_by(Bike.created_at.desc(), Bike.reg_no)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_bike(db: AsyncSession, company_id: str, bike_id: str) -> Bike:
        """Raises NotFound for missing bikes and for other tenants' bikes alike."""
        result = await db.execute(
            _bike_query(company_id)
            .where(Bike.id == bike_id)
            .execution_options(populate_existing=True)
        )
        bike = result.scalar_one_or_none()
        if bike is None:
            raise NotFound("Bike not found")
        return bike

    @staticmethod
    async def list_sold(db: AsyncSession, company_id: str) -> list[Bike]:
        result = await db.execute(
            _bike_query(company_id)
            .where(Bike.is_sold.is_(True))
            .order_by(Bike.sold_at.desc(), Bike.reg_no)
        )
        return list(result.scalars().all())

    # ── Writes ────────────────────────────────────────────────────────────────

    @staticmethod
    async def _ensure_reg_no_free(
        db: AsyncSession,
        company_id: str,
        reg_no: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        query = select(Bike.id).where(Bike.company_id == company_id, Bike.reg_no == reg_no)
        if exclude_id is not None:
            query = query.where(Bike.id != exclude_id)
        if await db.scalar(query) is not None:
            raise Conflict(
                "Registration number already exists in your inventory",
                code="DUPLICATE_REG_NO",
            )

    @staticmethod
    async def _flush_or_conflict(db: AsyncSession) -> None:
        # The composite unique index settles races the pre-check can't see
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise Conflict(
                "Registration number already exists in your inventory",
                code="DUPLICATE_REG_NO",
            )

    @staticmethod
    async def create_bike(
        db: AsyncSession, company_id: str, added_by_id: str, data: BikeCreate
    ) -> Bike:
        await BikeService._ensure_reg_no_free(db, company_id, data.reg_no)

        bike = Bike(
            name=data.name,
            reg_no=data.reg_no,
            aadhaar_number=data.aadhaar_number,
            bought_price=data.bought_price,
            is_sold=False,
            company_id=company_id,
            added_by_id=added_by_id,
        )
        db.add(bike)
        await BikeService._flush_or_conflict(db)

        logger.info(
            "Bike added",
            bike_id=bike.id,
            reg_no=bike.reg_no,
            company_id=company_id,
            added_by_id=added_by_id,
        )
        return await BikeService.get_bike(db, company_id, bike.id)

    @staticmethod
    async def update_bike(
        db: AsyncSession, company_id: str, bike_id: str, data: BikeUpdate
    ) -> Bike:
        """Partial update; only unsold bikes may be edited."""
        bike = await BikeService.get_bike(db, company_id, bike_id)
        if bike.is_sold:
            raise Conflict("Sold bikes cannot be edited", code="BIKE_SOLD")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "reg_no" in changes and changes["reg_no"] != bike.reg_no:
            await BikeService._ensure_reg_no_free(
                db, company_id, changes["reg_no"], exclude_id=bike.id
            )

        for field, value in changes.items():
            setattr(bike, field, value)
        await BikeService._flush_or_conflict(db)

        logger.info("Bike updated", bike_id=bike.id, fields=sorted(changes))
        return await BikeService.get_bike(db, company_id, bike.id)

    @staticmethod
    async def delete_bike(db: AsyncSession, company_id: str, bike_id: str) -> None:
        """Sold bikes are part of the sales history and are kept."""
        bike = await BikeService.get_bike(db, company_id, bike_id)
        if bike.is_sold:
            raise Conflict("Sold bikes cannot be deleted", code="BIKE_SOLD")
        await db.execute(
            delete(Bike).where(Bike.id == bike.id, Bike.company_id == company_id)
        )
        logger.info("Bike deleted", bike_id=bike_id, company_id=company_id)

    # ── Sale transition ───────────────────────────────────────────────────────

    @staticmethod
    def _validate_sale(
        bike: Bike,
        sold_price: Optional[Decimal],
        customer: Optional[CustomerDetails],
    ) -> dict[str, str]:
        if sold_price is None or sold_price <= 0:
            raise ValidationFailed("Valid sold price is required")
        if not fits_money_column(sold_price):
            raise ValidationFailed(
                "Sold price must have at most 10 whole digits and 2 decimal places"
            )

        values = {
            field: (getattr(customer, field) or "").strip() if customer else ""
            for field in _CUSTOMER_FIELDS
        }
        missing = [field for field, value in values.items() if not value]
        if missing:
            raise ValidationFailed(
                f"Customer details are missing: {', '.join(missing)}",
                details=[f"customer.{field} is required" for field in missing],
            )

        if not _IDENTITY_NUMBER.match(values["aadhaar_number"]):
            raise ValidationFailed("Customer identity number must be exactly 12 digits")

        if sold_price < bike.bought_price:
            raise ValidationFailed(
                "Sold price cannot be lower than the purchase price",
                code="PRICE_BELOW_COST",
            )
        return values

    @staticmethod
    async def _find_customer(db: AsyncSession, aadhaar_number: str) -> Optional[Customer]:
        result = await db.execute(
            select(Customer).where(Customer.aadhaar_number == aadhaar_number)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _upsert_customer(db: AsyncSession, values: dict[str, str]) -> Customer:
        customer = await BikeService._find_customer(db, values["aadhaar_number"])
        if customer is None:
            try:
                async with db.begin_nested():
                    customer = Customer(**values)
                    db.add(customer)
            except IntegrityError:
                # A concurrent sale inserted the same number first; reuse that row
                customer = await BikeService._find_customer(db, values["aadhaar_number"])
                if customer is None:
                    raise Conflict("Customer record changed concurrently, retry the sale")
            else:
                await db.refresh(customer)
                logger.info("Customer created", customer_id=customer.id)
                return customer

        customer.name = values["name"]
        customer.phone = values["phone"]
        customer.address = values["address"]
        await db.flush()
        logger.info("Customer details refreshed", customer_id=customer.id)
        return customer

    @staticmethod
    async def mark_sold(
        db: AsyncSession,
        company_id: str,
        bike_id: str,
        sold_price: Optional[Decimal],
        customer: Optional[CustomerDetails],
    ) -> Bike:
        result = await db.execute(
            select(Bike).where(
                Bike.id == bike_id,
                Bike.company_id == company_id,
                Bike.is_sold.is_(False),
            )
        )
        bike = result.scalar_one_or_none()
        if bike is None:
            raise NotFound("Bike not found or already sold")

        values = BikeService._validate_sale(bike, sold_price, customer)
        buyer = await BikeService._upsert_customer(db, values)

        flipped = await db.execute(
            update(Bike)
            .where(
                Bike.id == bike.id,
                Bike.company_id == company_id,
                Bike.is_sold.is_(False),
            )
            .values(
                is_sold=True,
                sold_price=sold_price,
                sold_at=utcnow(),
                customer_id=buyer.id,
            )
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != 1:
            # Lost the race against another sale of the same bike
            raise NotFound("Bike not found or already sold")

        logger.info(
            "Bike sold",
            bike_id=bike.id,
            company_id=company_id,
            customer_id=buyer.id,
            sold_price=str(sold_price),
        )
        return await BikeService.get_bike(db, company_id, bike.id)

    # ── Presentation ──────────────────────────────────────────────────────────

    @staticmethod
    def build_detail(bike: Bike, reveal_identity: bool) -> BikeDetail:
        """
        Supplier / purchase / sale narrative for one bike.
        Identity numbers stay masked unless reveal_identity is set.
        """
        shown = (lambda v: v) if reveal_identity else mask_identity_number

        sale_info = None
        if bike.is_sold:
            customer = bike.customer
            sale_info = SaleInfo(
                customer=CustomerInfo(
                    id=customer.id,
                    name=customer.name,
                    phone=customer.phone,
                    aadhaar_number=shown(customer.aadhaar_number),
                    address=customer.address,
                    created_at=customer.created_at,
                ) if customer else None,
                sold_date=bike.sold_at,
                sold_price=bike.sold_price,
                profit=bike.profit,
            )

        return BikeDetail(
            bike=BikeRead.model_validate(bike),
            supplier_info=SupplierInfo(aadhaar_number=shown(bike.aadhaar_number)),
            purchase_info=PurchaseInfo(
                added_by=AddedBy.model_validate(bike.added_by),
                company=CompanyPublic.model_validate(bike.company),
                purchase_date=bike.created_at,
                purchase_price=bike.bought_price,
            ),
            sale_info=sale_info,
        )
