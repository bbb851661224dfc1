"""
core/rate_limit.py
------------------
Per-client-IP request limits for the abuse-prone endpoints, using slowapi.

Limits are counted in RATE_LIMIT_STORAGE_URI ("memory://" keeps them per
process). Exceeding one raises slowapi's RateLimitExceeded, rendered by
main.py as 429 with code RATE_LIMITED.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from bikedesk.core.config import settings

LOGIN_LIMIT = "10 per 15 minutes"
PASSWORD_CHANGE_LIMIT = "3 per hour"
RECEIPT_LIMIT = "50 per 10 minutes"
USER_CREATION_LIMIT = "20 per hour"

LOGIN_MESSAGE = "Too many login attempts, please try again after 15 minutes."
PASSWORD_CHANGE_MESSAGE = "Too many password change attempts, please try again later."
RECEIPT_MESSAGE = "Too many PDF generation requests, please try again later."
USER_CREATION_MESSAGE = "Too many user creation attempts, please try again later."

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED,
)
