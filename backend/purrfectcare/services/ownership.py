"""
PurrfectCare Backend - Pet Ownership Check

Purpose: Precondition for every reminder lifecycle call. The pet record is
owned by the pets service; this only reads it.
"""

import logging

from purrfectcare.errors import ForbiddenError, NotFoundError
from purrfectcare.models.pet import Pet
from purrfectcare.services.db import DatabaseService

logger = logging.getLogger(__name__)


async def verify_pet_ownership(db: DatabaseService, pet_id: str, owner_id: str) -> Pet:
    """
    Resolve a pet and check that ``owner_id`` controls it

    Raises:
        NotFoundError: pet missing or soft-deleted
        ForbiddenError: pet belongs to someone else
    """
    pet = await db.get_pet(pet_id)

    if pet is None or pet.is_deleted:
        raise NotFoundError("Pet not found", {"pet_id": pet_id})

    if pet.owner_id != owner_id:
        logger.warning(f"Owner {owner_id} tried to access pet {pet_id}")
        raise ForbiddenError("Access denied. You don't own this pet.", {"pet_id": pet_id})

    return pet
