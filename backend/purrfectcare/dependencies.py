"""
PurrfectCare Backend - FastAPI Dependencies

Purpose: Shared dependencies for dependency injection
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from purrfectcare.config import settings
from purrfectcare.models.pet import Pet
from purrfectcare.services.db import DatabaseService
from purrfectcare.services.ownership import verify_pet_ownership
from purrfectcare.services.reminders import ReminderService


# Service dependencies
@lru_cache()
def get_db_service() -> DatabaseService:
    """Get database service instance (one per process)"""
    return DatabaseService()


def get_reminder_service(db: DatabaseService = Depends(get_db_service)) -> ReminderService:
    """Get reminder lifecycle service instance"""
    return ReminderService(db)


def require_reminders_enabled():
    """Reject reminder calls when the feature flag is off"""
    if not settings.ENABLE_REMINDERS:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reminders feature is disabled"
        )


# Caller identity
async def get_current_owner_id(
    x_owner_id: Optional[str] = Header(None, description="Authenticated user ID")
) -> str:
    """
    Acting owner, as set by the upstream authentication layer
    """
    if not x_owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Owner-Id header"
        )
    return x_owner_id


async def get_owned_pet(
    pet_id: str,
    owner_id: str = Depends(get_current_owner_id),
    db: DatabaseService = Depends(get_db_service)
) -> Pet:
    """Resolve the path pet and check the caller owns it"""
    return await verify_pet_ownership(db, pet_id, owner_id)
