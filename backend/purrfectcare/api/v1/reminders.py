"""
PurrfectCare Backend - Reminders Endpoints

Purpose: Create and manage pet care reminders

API Endpoints:
    POST   /api/v1/pets/{pet_id}/reminders - Create reminder
    GET    /api/v1/pets/{pet_id}/reminders - List a pet's reminders
    GET    /api/v1/pets/{pet_id}/reminders/{reminder_id} - Get reminder
    PUT    /api/v1/pets/{pet_id}/reminders/{reminder_id} - Update reminder
    DELETE /api/v1/pets/{pet_id}/reminders/{reminder_id} - Soft delete reminder
    POST   /api/v1/pets/{pet_id}/reminders/{reminder_id}/complete - Complete
    POST   /api/v1/pets/{pet_id}/reminders/{reminder_id}/snooze - Snooze
    POST   /api/v1/pets/{pet_id}/reminders/{reminder_id}/dismiss - Dismiss
    GET    /api/v1/reminders - List all of the owner's reminders
    GET    /api/v1/reminders/stats - Dashboard counters

Testing:
    curl -X POST http://localhost:8080/api/v1/pets/pet_xxx/reminders \\
      -H "Content-Type: application/json" \\
      -H "X-Owner-Id: user_xxx" \\
      -d '{
        "title": "Heartworm pill",
        "reminder_type": "medication",
        "due_date": "2024-02-15",
        "due_time": "08:30"
      }'

AWS Deployment Notes:
    - X-Owner-Id is injected by the API Gateway authorizer; never trust it
      from the open internet
    - Emails are sent by the scheduler, never inline with these requests
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
import logging

from purrfectcare.config import settings
from purrfectcare.dependencies import (
    get_current_owner_id,
    get_owned_pet,
    get_reminder_service,
    require_reminders_enabled,
)
from purrfectcare.models.pet import Pet
from purrfectcare.models.reminder import (
    Pagination,
    Reminder,
    ReminderCreate,
    ReminderPriority,
    ReminderQuery,
    ReminderStats,
    ReminderStatus,
    ReminderType,
    ReminderUpdate,
)
from purrfectcare.services.reminder_state import derive_state
from purrfectcare.services.reminders import ReminderService

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_reminders_enabled)])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class SnoozeReminderRequest(BaseModel):
    """Snooze reminder request"""
    minutes: Optional[int] = Field(None, description="Snooze duration (default from settings)")


class ReminderResponse(Reminder):
    """Reminder plus the state derived at read time"""
    is_overdue: bool
    is_due_today: bool
    is_snoozed: bool

    @classmethod
    def from_reminder(cls, reminder: Reminder, now: datetime) -> "ReminderResponse":
        state = derive_state(reminder, now)
        return cls(**dict(reminder), **state.model_dump())


class ListRemindersResponse(BaseModel):
    """List reminders response"""
    reminders: List[ReminderResponse]
    pagination: Pagination


def reminder_query(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    reminder_type: Optional[ReminderType] = Query(None, alias="type"),
    status_filter: Optional[ReminderStatus] = Query(None, alias="status"),
    priority: Optional[ReminderPriority] = Query(None),
    sort_by: str = Query("due_date"),
    sort_order: str = Query("asc", pattern=r"^(asc|desc)$"),
    include_deleted: bool = Query(False),
    include_completed: bool = Query(False),
    due_today: bool = Query(False),
    upcoming: bool = Query(False),
    overdue: bool = Query(False),
) -> ReminderQuery:
    """Collect listing query parameters"""
    return ReminderQuery(
        page=page,
        limit=limit,
        reminder_type=reminder_type,
        status=status_filter,
        priority=priority,
        sort_by=sort_by,
        sort_order=sort_order,
        include_deleted=include_deleted,
        include_completed=include_completed,
        due_today=due_today,
        upcoming=upcoming,
        overdue=overdue,
    )


def _respond(service: ReminderService, reminder: Reminder) -> ReminderResponse:
    return ReminderResponse.from_reminder(reminder, service.clock())


# =============================================================================
# OWNER-WIDE ENDPOINTS
# =============================================================================

@router.get("/reminders", response_model=ListRemindersResponse)
async def list_owner_reminders(
    query: ReminderQuery = Depends(reminder_query),
    owner_id: str = Depends(get_current_owner_id),
    service: ReminderService = Depends(get_reminder_service)
) -> ListRemindersResponse:
    """
    List all reminders of the calling owner across pets

    ``due_today``, ``upcoming`` and ``overdue`` narrow by due date; when
    several are set, overdue beats upcoming beats due_today.
    """
    logger.info(f"Listing reminders for owner {owner_id}")

    result = await service.list_for_owner(owner_id, query)
    now = service.clock()

    return ListRemindersResponse(
        reminders=[ReminderResponse.from_reminder(r, now) for r in result.reminders],
        pagination=result.pagination,
    )


@router.get("/reminders/stats", response_model=ReminderStats)
async def get_reminder_stats(
    owner_id: str = Depends(get_current_owner_id),
    service: ReminderService = Depends(get_reminder_service)
) -> ReminderStats:
    """Dashboard counters for the calling owner"""
    logger.info(f"Getting reminder stats for owner {owner_id}")
    return await service.stats(owner_id)


# =============================================================================
# PET-SCOPED ENDPOINTS
# =============================================================================

@router.post(
    "/pets/{pet_id}/reminders",
    response_model=ReminderResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_reminder(
    request: ReminderCreate,
    pet: Pet = Depends(get_owned_pet),
    service: ReminderService = Depends(get_reminder_service)
) -> ReminderResponse:
    """
    Create a new reminder for a pet

    Omitted priority, frequency and send_email take the per-type defaults.
    """
    logger.info(f"Creating {request.reminder_type.value} reminder for pet {pet.pet_id}")

    reminder = await service.create(
        pet.pet_id,
        pet.owner_id,
        request.model_dump(exclude_unset=True),
    )
    return _respond(service, reminder)


@router.get("/pets/{pet_id}/reminders", response_model=ListRemindersResponse)
async def list_pet_reminders(
    query: ReminderQuery = Depends(reminder_query),
    pet: Pet = Depends(get_owned_pet),
    service: ReminderService = Depends(get_reminder_service)
) -> ListRemindersResponse:
    """List reminders of one pet"""
    logger.info(f"Listing reminders for pet {pet.pet_id}")

    result = await service.list_for_pet(pet.pet_id, query)
    now = service.clock()

    return ListRemindersResponse(
        reminders=[ReminderResponse.from_reminder(r, now) for r in result.reminders],
        pagination=result.pagination,
    )


@router.get("/pets/{pet_id}/reminders/{reminder_id}", response_model=ReminderResponse)
async def get_reminder(
    reminder_id: str,
    pet: Pet = Depends(get_owned_pet),
    service: ReminderService = Depends(get_reminder_service)
) -> ReminderResponse:
    """Get reminder by ID"""
    reminder = await service.get(reminder_id, pet.pet_id)
    return _respond(service, reminder)


@router.put("/pets/{pet_id}/reminders/{reminder_id}", response_model=ReminderResponse)
async def update_reminder(
    reminder_id: str,
    request: ReminderUpdate,
    pet: Pet = Depends(get_owned_pet),
    service: ReminderService = Depends(get_reminder_service)
) -> ReminderResponse:
    """Update editable reminder fields (lifecycle fields are ignored)"""
    logger.info(f"Updating reminder: {reminder_id}")

    reminder = await service.update(
        reminder_id,
        pet.pet_id,
        request.model_dump(exclude_unset=True),
    )
    return _respond(service, reminder)


@router.delete("/pets/{pet_id}/reminders/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reminder(
    reminder_id: str,
    pet: Pet = Depends(get_owned_pet),
    service: ReminderService = Depends(get_reminder_service)
):
    """Soft delete reminder"""
    logger.info(f"Deleting reminder: {reminder_id}")
    await service.delete(reminder_id, pet.pet_id)


@router.post("/pets/{pet_id}/reminders/{reminder_id}/complete", response_model=ReminderResponse)
async def complete_reminder(
    reminder_id: str,
    pet: Pet = Depends(get_owned_pet),
    service: ReminderService = Depends(get_reminder_service)
) -> ReminderResponse:
    """Mark complete; recurring reminders spawn their next occurrence"""
    reminder = await service.complete(reminder_id, pet.pet_id)
    return _respond(service, reminder)


@router.post("/pets/{pet_id}/reminders/{reminder_id}/snooze", response_model=ReminderResponse)
async def snooze_reminder(
    reminder_id: str,
    request: Optional[SnoozeReminderRequest] = None,
    pet: Pet = Depends(get_owned_pet),
    service: ReminderService = Depends(get_reminder_service)
) -> ReminderResponse:
    """Snooze for ``minutes`` (default DEFAULT_SNOOZE_MINUTES)"""
    minutes = settings.DEFAULT_SNOOZE_MINUTES
    if request is not None and request.minutes is not None:
        minutes = request.minutes

    reminder = await service.snooze(reminder_id, pet.pet_id, minutes)
    return _respond(service, reminder)


@router.post("/pets/{pet_id}/reminders/{reminder_id}/dismiss", response_model=ReminderResponse)
async def dismiss_reminder(
    reminder_id: str,
    pet: Pet = Depends(get_owned_pet),
    service: ReminderService = Depends(get_reminder_service)
) -> ReminderResponse:
    """Dismiss reminder"""
    reminder = await service.dismiss(reminder_id, pet.pet_id)
    return _respond(service, reminder)
