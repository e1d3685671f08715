"""
Seed data loaded at startup.

Only the admin account is seeded; its credentials come from ADMIN_USERNAME
and ADMIN_PASSWORD. Nothing is created when ADMIN_PASSWORD is empty.
"""

from sptrack.core.config import settings
from sptrack.core.database import AsyncSessionLocal
from sptrack.core.logging_config import logger
from sptrack.services.account_service import AccountService


async def seed_admin() -> bool:
    """Create the configured admin if missing. Returns True when an admin exists afterwards."""
    if not settings.ADMIN_PASSWORD:
        logger.warning("[Seed] ADMIN_PASSWORD not set - no admin account seeded")
        return False

    async with AsyncSessionLocal() as session:
        admin = await AccountService(session).ensure_admin(settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD)
    return admin is not None
