"""
seed.py
-------
Create all database tables and load demo data.
Use this for quick setup. For production migrations, use Alembic instead.

Usage:
    python seed.py            # create tables, seed if the database is empty
    python seed.py --reset    # drop everything first

Demo logins (password in brackets):
    admin@bikers.com        SUPERADMIN  (admin123)
    admin@acme.com          ADMIN       (admin123)   Acme Bikes Ltd
    worker@acme.com         WORKER      (worker123)  Acme Bikes Ltd
    admin@speedwheel.com    ADMIN       (admin123)   SpeedWheel Inc
    worker@speedwheel.com   WORKER      (worker123)  SpeedWheel Inc
    admin@thunder.com       ADMIN       (admin123)   Thunder Motors (suspended)
"""

import argparse
import asyncio
from decimal import Decimal

from sqlalchemy import select

from bikedesk.core.security import hash_password
from bikedesk.db.session import AsyncSessionLocal, engine
from bikedesk.models import Announcement, Base, Bike, Company, User, UserRole

COMPANIES = [
    ("Acme Bikes Ltd", True),
    ("SpeedWheel Inc", True),
    ("Thunder Motors", False),
]

STAFF = [
    ("admin@acme.com", "admin123", UserRole.admin, "Acme Bikes Ltd"),
    ("worker@acme.com", "worker123", UserRole.worker, "Acme Bikes Ltd"),
    ("admin@speedwheel.com", "admin123", UserRole.admin, "SpeedWheel Inc"),
    ("worker@speedwheel.com", "worker123", UserRole.worker, "SpeedWheel Inc"),
    ("admin@thunder.com", "admin123", UserRole.admin, "Thunder Motors"),
]

BIKES = [
    ("Honda CBR 250R", "KA01AB1234", "123456789012", "150000.00", "worker@acme.com"),
    ("Yamaha R15 V4", "KA02CD5678", "234567890123", "175000.00", "admin@acme.com"),
    ("Royal Enfield Classic 350", "KA03EF9012", "345678901234", "190000.00", "worker@acme.com"),
    ("Bajaj Pulsar NS200", "MH12GH3456", "456789012345", "130000.00", "worker@speedwheel.com"),
    ("KTM Duke 390", "MH14IJ7890", "567890123456", "290000.00", "admin@speedwheel.com"),
]


async def seed(reset: bool = False) -> None:
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    print("✅  All tables created successfully.")

    async with AsyncSessionLocal() as db:
        if await db.scalar(select(User.id).limit(1)) is not None:
            print("ℹ️   Database already has users, skipping demo data.")
            await engine.dispose()
            return

        companies = {}
        for name, is_active in COMPANIES:
            companies[name] = Company(name=name, is_active=is_active)
            db.add(companies[name])

        db.add(
            User(
                email="admin@bikers.com",
                hashed_password=hash_password("admin123"),
                role=UserRole.superadmin.value,
                company_id=None,
            )
        )
        await db.flush()

        users = {}
        for email, password, role, company_name in STAFF:
            users[email] = User(
                email=email,
                hashed_password=hash_password(password),
                role=role.value,
                company_id=companies[company_name].id,
            )
            db.add(users[email])
        await db.flush()

        for name, reg_no, owner_id, price, added_by in BIKES:
            owner = users[added_by]
            db.add(
                Bike(
                    name=name,
                    reg_no=reg_no,
                    aadhaar_number=owner_id,
                    bought_price=Decimal(price),
                    is_sold=False,
                    company_id=owner.company_id,
                    added_by_id=owner.id,
                )
            )

        db.add(Announcement(message="Welcome to BikeDesk! Reports are now live for every dealership."))
        db.add(
            Announcement(
                message="Acme Bikes: quarterly inventory audit is due next week.",
                target_company_id=companies["Acme Bikes Ltd"].id,
            )
        )
        await db.commit()

    await engine.dispose()
    print("✅  Demo data seeded.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create tables and seed demo data")
    parser.add_argument("--reset", action="store_true", help="drop all tables first")
    args = parser.parse_args()
    asyncio.run(seed(reset=args.reset))
