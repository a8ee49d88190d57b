"""
PurrfectCare Backend - Reminder Lifecycle Service

Purpose: Create, update and transition reminders (complete / snooze / dismiss
/ soft delete), synthesize the next occurrence of recurring reminders, and
auto-generate reminders from vaccination and medical records.

Callers are expected to have checked pet ownership already
(see services/ownership.py).

Testing:
    service = ReminderService(DatabaseService())
    reminder = await service.create("pet_1", "user_1", {
        "title": "Heartworm pill",
        "reminder_type": "medication",
        "due_date": "2024-01-01",
    })
    await service.complete(reminder.reminder_id, "pet_1")
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import shortuuid
from pydantic import ValidationError as PydanticValidationError

from purrfectcare.errors import NotFoundError, ValidationError
from purrfectcare.models.health_records import MedicalRecord, Vaccination
from purrfectcare.models.pet import Pet
from purrfectcare.models.reminder import (
    NULLABLE_UPDATE_FIELDS,
    REMINDER_DEFAULTS,
    RelatedRecordType,
    Reminder,
    ReminderCreate,
    ReminderDetails,
    ReminderFrequency,
    ReminderPage,
    ReminderPriority,
    ReminderQuery,
    ReminderStats,
    ReminderStatus,
    ReminderType,
    ReminderUpdate,
    Pagination,
)
from purrfectcare.services.db import DatabaseService
from purrfectcare.services.recurrence import next_occurrence
from purrfectcare.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


# Fields an update request may not touch directly
PROTECTED_UPDATE_FIELDS = frozenset({
    "reminder_id",
    "owner_id",
    "pet_id",
    "is_deleted",
    "deleted_at",
    "email_sent_at",
    "last_notification_sent",
    "status",
    "snoozed_until",
    "completed_at",
    "dismissed_at",
    "is_recurring",
    "related_record_id",
    "related_record_type",
    "created_at",
    "updated_at",
})


# Statuses a reminder can still be completed, snoozed or dismissed from
OPEN_STATUSES = frozenset({ReminderStatus.ACTIVE, ReminderStatus.SNOOZED})


def new_reminder_id() -> str:
    return f"reminder_{shortuuid.uuid()}"


def _validation_error(exc: PydanticValidationError) -> ValidationError:
    """Flatten a pydantic error into a single domain ValidationError"""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return ValidationError(", ".join(messages), {"fields": messages})


class ReminderService:
    """
    Reminder lifecycle engine
    """

    def __init__(self, db: DatabaseService, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    # =========================================================================
    # CREATE / READ
    # =========================================================================

    async def create(self, pet_id: str, owner_id: str, fields: Dict[str, Any]) -> Reminder:
        """
        Create a reminder for a pet

        Per-type defaults (priority, frequency, send_email) are applied
        first and caller-supplied values win.

        Raises:
            ValidationError: missing/invalid reminder_type, due_date or other field
        """
        data = {k: v for k, v in fields.items() if k not in ("owner_id", "pet_id")}

        if not data.get("reminder_type"):
            raise ValidationError("Reminder type is required")
        if not data.get("due_date"):
            raise ValidationError("Due date is required")

        try:
            payload = ReminderCreate.model_validate(data)
        except PydanticValidationError as e:
            raise _validation_error(e) from e

        defaults = REMINDER_DEFAULTS[payload.reminder_type]
        frequency = payload.frequency or defaults.frequency
        now = self.clock()

        reminder = Reminder(
            reminder_id=new_reminder_id(),
            owner_id=owner_id,
            pet_id=pet_id,
            title=payload.title,
            description=payload.description,
            reminder_type=payload.reminder_type,
            due_date=payload.due_date,
            due_time=payload.due_time,
            frequency=frequency,
            is_recurring=frequency != ReminderFrequency.ONCE,
            recurring_end_date=payload.recurring_end_date,
            priority=payload.priority or defaults.priority,
            send_email=defaults.send_email if payload.send_email is None else payload.send_email,
            related_record_id=payload.related_record_id,
            related_record_type=payload.related_record_type,
            details=payload.details,
            created_at=now,
            updated_at=now,
        )

        await self.db.save_reminder(reminder)
        logger.info(
            f"Reminder created: {reminder.reminder_id} "
            f"(pet={pet_id}, type={reminder.reminder_type.value}, frequency={frequency.value})"
        )

        return reminder

    async def get(self, reminder_id: str, pet_id: str) -> Reminder:
        """Get a non-deleted reminder belonging to a pet"""
        reminder = await self.db.get_reminder_for_pet(reminder_id, pet_id)

        if reminder is None:
            raise NotFoundError("Reminder not found", {"reminder_id": reminder_id})

        return reminder

    async def list_for_pet(self, pet_id: str, query: ReminderQuery) -> ReminderPage:
        """List a pet's reminders (date shortcuts are ignored for pet scope)"""
        query = query.model_copy(update={"due_today": False, "upcoming": False, "overdue": False})
        reminders, total = await self.db.list_reminders(query, self.clock().date(), pet_id=pet_id)
        return self._page(reminders, total, query)

    async def list_for_owner(self, owner_id: str, query: ReminderQuery) -> ReminderPage:
        """List an owner's reminders across all pets"""
        reminders, total = await self.db.list_reminders(query, self.clock().date(), owner_id=owner_id)
        return self._page(reminders, total, query)

    @staticmethod
    def _page(reminders, total: int, query: ReminderQuery) -> ReminderPage:
        return ReminderPage(
            reminders=reminders,
            pagination=Pagination(
                total=total,
                page=query.page,
                limit=query.limit,
                total_pages=-(-total // query.limit),
            ),
        )

    # =========================================================================
    # UPDATE / TRANSITIONS
    # =========================================================================

    async def update(self, reminder_id: str, pet_id: str, fields: Dict[str, Any]) -> Reminder:
        """
        Update editable fields of a reminder

        Protected fields (owner, pet, soft delete, notification timestamps,
        lifecycle status) are dropped. ``is_recurring`` is re-derived when
        ``frequency`` changes.
        """
        reminder = await self.get(reminder_id, pet_id)

        data = {k: v for k, v in fields.items() if k not in PROTECTED_UPDATE_FIELDS}
        try:
            payload = ReminderUpdate.model_validate(data)
        except PydanticValidationError as e:
            raise _validation_error(e) from e

        changes = {name: getattr(payload, name) for name in payload.model_fields_set}
        for name, value in changes.items():
            if value is None and name not in NULLABLE_UPDATE_FIELDS:
                raise ValidationError(f"{name}: cannot be null")

        if not changes:
            return reminder

        if "frequency" in changes:
            changes["is_recurring"] = changes["frequency"] != ReminderFrequency.ONCE

        changes["updated_at"] = self.clock()
        return await self._apply(reminder_id, changes)

    async def complete(self, reminder_id: str, pet_id: str) -> Reminder:
        """
        Mark a reminder completed

        Only active or snoozed reminders can be completed; completing an
        already completed one returns it unchanged. The status change is
        conditional on the status that was read, and only the call that wins
        it spawns the next occurrence of a recurring reminder. Failing to
        spawn it (past the end date, store error) does not undo completion.
        """
        reminder = await self.get(reminder_id, pet_id)

        if reminder.status == ReminderStatus.COMPLETED:
            return reminder
        if reminder.status not in OPEN_STATUSES:
            raise ValidationError(f"Cannot complete a {reminder.status.value} reminder")

        now = self.clock()
        updated = await self._transition(reminder, pet_id, ReminderStatus.COMPLETED, {
            "status": ReminderStatus.COMPLETED,
            "completed_at": now,
            "snoozed_until": None,
            "updated_at": now,
        })
        if updated is None:
            return await self.get(reminder_id, pet_id)

        if reminder.is_recurring and reminder.frequency != ReminderFrequency.ONCE:
            await self._create_next_occurrence(reminder, now)

        logger.info(f"Reminder completed: {reminder_id}")
        return updated

    async def snooze(self, reminder_id: str, pet_id: str, minutes: int) -> Reminder:
        """Snooze an active reminder for ``minutes`` (positive integer)"""
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
            raise ValidationError("Snooze minutes must be a positive integer")

        reminder = await self.get(reminder_id, pet_id)

        if reminder.status not in OPEN_STATUSES:
            raise ValidationError(f"Cannot snooze a {reminder.status.value} reminder")

        now = self.clock()
        updated = await self._transition(reminder, pet_id, ReminderStatus.SNOOZED, {
            "status": ReminderStatus.SNOOZED,
            "snoozed_until": now + timedelta(minutes=minutes),
            "updated_at": now,
        })
        if updated is None:
            return await self.get(reminder_id, pet_id)

        logger.info(f"Reminder snoozed: {reminder_id} for {minutes} minutes")
        return updated

    async def dismiss(self, reminder_id: str, pet_id: str) -> Reminder:
        """Dismiss an active or snoozed reminder (already dismissed: unchanged)"""
        reminder = await self.get(reminder_id, pet_id)

        if reminder.status == ReminderStatus.DISMISSED:
            return reminder
        if reminder.status not in OPEN_STATUSES:
            raise ValidationError(f"Cannot dismiss a {reminder.status.value} reminder")

        now = self.clock()
        updated = await self._transition(reminder, pet_id, ReminderStatus.DISMISSED, {
            "status": ReminderStatus.DISMISSED,
            "dismissed_at": now,
            "snoozed_until": None,
            "updated_at": now,
        })
        if updated is None:
            return await self.get(reminder_id, pet_id)

        logger.info(f"Reminder dismissed: {reminder_id}")
        return updated

    async def delete(self, reminder_id: str, pet_id: str) -> Reminder:
        """Soft delete; status is left untouched"""
        await self.get(reminder_id, pet_id)

        now = self.clock()
        updated = await self._apply(reminder_id, {
            "is_deleted": True,
            "deleted_at": now,
            "updated_at": now,
        })
        logger.info(f"Reminder deleted: {reminder_id}")
        return updated

    async def _transition(
        self,
        reminder: Reminder,
        pet_id: str,
        target: ReminderStatus,
        changes: Dict[str, Any]
    ) -> Optional[Reminder]:
        """
        Apply a status change only if the stored status is still the one read

        Returns None when a concurrent call already moved the reminder to
        ``target``. Any other lost race is a ValidationError.
        """
        updated = await self.db.update_reminder(
            reminder.reminder_id,
            changes,
            expected_status=reminder.status,
        )
        if updated is not None:
            return updated

        current = await self.get(reminder.reminder_id, pet_id)
        if current.status == target:
            return None
        raise ValidationError(
            f"Reminder is now {current.status.value}",
            {"reminder_id": reminder.reminder_id},
        )

    async def _apply(self, reminder_id: str, changes: Dict[str, Any]) -> Reminder:
        updated = await self.db.update_reminder(reminder_id, changes)
        if updated is None:
            raise NotFoundError("Reminder not found", {"reminder_id": reminder_id})
        return updated

    async def _create_next_occurrence(self, original: Reminder, now: datetime) -> Optional[Reminder]:
        """Insert the successor of a recurring reminder (best effort)"""
        try:
            next_due = next_occurrence(
                original.frequency,
                original.due_date,
                original.recurring_end_date,
            )
            if next_due is None:
                logger.info(f"Recurrence ended for reminder {original.reminder_id}")
                return None

            successor = Reminder(
                reminder_id=new_reminder_id(),
                owner_id=original.owner_id,
                pet_id=original.pet_id,
                title=original.title,
                description=original.description,
                reminder_type=original.reminder_type,
                due_date=next_due,
                due_time=original.due_time,
                frequency=original.frequency,
                is_recurring=original.is_recurring,
                recurring_end_date=original.recurring_end_date,
                priority=original.priority,
                send_email=original.send_email,
                details=original.details.model_copy(),
                created_at=now,
                updated_at=now,
            )
            await self.db.save_reminder(successor)
            logger.info(
                f"Next occurrence created: {successor.reminder_id} "
                f"(from {original.reminder_id}, due {next_due.isoformat()})"
            )
            return successor

        except Exception as e:
            logger.error(
                f"Failed to create next occurrence for {original.reminder_id}: {e}",
                exc_info=True
            )
            return None

    # =========================================================================
    # STATISTICS
    # =========================================================================

    async def stats(self, owner_id: str) -> ReminderStats:
        """Dashboard counters for an owner"""
        today = self.clock().date()
        active = ReminderStatus.ACTIVE

        return ReminderStats(
            total_active=await self.db.count_reminders(owner_id, status=active),
            due_today=await self.db.count_reminders(
                owner_id, status=active, due_on_or_after=today, due_on_or_before=today),
            overdue=await self.db.count_reminders(
                owner_id, status=active, due_on_or_before=today - timedelta(days=1)),
            upcoming_week=await self.db.count_reminders(
                owner_id, status=active, due_on_or_after=today,
                due_on_or_before=today + timedelta(days=6)),
            completed=await self.db.count_reminders(owner_id, status=ReminderStatus.COMPLETED),
            by_type=await self.db.count_by_type(owner_id),
        )

    # =========================================================================
    # AUTO-GENERATION FROM HEALTH RECORDS
    # =========================================================================

    async def create_from_vaccination_due(
        self,
        vaccination: Vaccination,
        pet: Pet,
        owner_id: str
    ) -> Optional[Reminder]:
        """
        Create a vaccination-due reminder for a new vaccination record

        Never raises: a reminder problem must not fail the vaccination write.
        """
        try:
            if not vaccination.next_due_date:
                return None

            return await self.create(pet.pet_id, owner_id, {
                "title": f"Vaccination Due: {vaccination.vaccine_name}",
                "description": f"{pet.name}'s {vaccination.vaccine_name} vaccination is due",
                "reminder_type": ReminderType.VACCINATION_DUE,
                "due_date": vaccination.next_due_date,
                "frequency": ReminderFrequency.ONCE,
                "priority": ReminderPriority.CRITICAL,
                "send_email": True,
                "related_record_id": vaccination.vaccination_id,
                "related_record_type": RelatedRecordType.VACCINATION,
                "details": ReminderDetails(
                    vaccine_name=vaccination.vaccine_name,
                    vet_name=vaccination.veterinarian,
                    clinic=vaccination.clinic,
                ),
            })

        except Exception as e:
            logger.error(f"Failed to create vaccination reminder: {e}", exc_info=True)
            return None

    async def create_from_medical_follow_up(
        self,
        record: MedicalRecord,
        pet: Pet,
        owner_id: str
    ) -> Optional[Reminder]:
        """
        Create a vet follow-up reminder for a new medical record

        Never raises: a reminder problem must not fail the medical record write.
        """
        try:
            if not record.follow_up_date:
                return None

            return await self.create(pet.pet_id, owner_id, {
                "title": f"Vet Follow-up: {record.reason_for_visit}",
                "description": f"{pet.name} has a follow-up appointment scheduled",
                "reminder_type": ReminderType.VET_CHECKUP,
                "due_date": record.follow_up_date,
                "frequency": ReminderFrequency.ONCE,
                "priority": ReminderPriority.MEDIUM,
                "send_email": False,
                "related_record_id": record.record_id,
                "related_record_type": RelatedRecordType.MEDICAL_RECORD,
                "details": ReminderDetails(
                    vet_name=record.vet_name,
                    clinic=record.clinic,
                ),
            })

        except Exception as e:
            logger.error(f"Failed to create medical follow-up reminder: {e}", exc_info=True)
            return None
