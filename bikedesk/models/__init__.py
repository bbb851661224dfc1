"""
models/__init__.py
------------------
Re-export all models so table creation can discover every table via a
single import:

    from bikedesk.models import Base
"""

from bikedesk.db.base import Base
from bikedesk.models.company import Company
from bikedesk.models.user import TENANT_ROLES, User, UserRole
from bikedesk.models.customer import Customer
from bikedesk.models.bike import Bike, BikeStatus
from bikedesk.models.announcement import Announcement

__all__ = [
    "Base",
    "Company",
    "User",
    "UserRole",
    "TENANT_ROLES",
    "Customer",
    "Bike",
    "BikeStatus",
    "Announcement",
]
