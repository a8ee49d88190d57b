"""
PurrfectCare Backend - Reminder Notifier

Purpose: One dispatch sweep. Finds reminders eligible for an email, renders
and sends each one, and stamps the notification timestamps on success.

Eligibility (see DatabaseService.get_reminders_for_email_notification):
    send_email, active, not deleted, due today or earlier, and not notified
    since the start of the current UTC day.

A failed item is logged and stays eligible for the next sweep; it never
aborts the rest of the batch.

Delivery is at least once. The "sent today" check and the stamp are not
atomic, and a send that hits the timeout is abandoned rather than cancelled:
the worker thread running the blocking transport call may still deliver the
email after wait_for gives up. The reminder is then left unstamped and is sent
again by the next sweep.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from purrfectcare.errors import TransientDispatchError
from purrfectcare.models.reminder import Reminder
from purrfectcare.services.composer import NotificationComposer
from purrfectcare.services.db import DatabaseService
from purrfectcare.services.email_service import EmailService
from purrfectcare.utils.datetime_utils import ensure_utc, start_of_day

logger = logging.getLogger(__name__)


class DispatchFailure(BaseModel):
    reminder_id: str
    error: str


class DispatchResult(BaseModel):
    """Outcome of one dispatch sweep"""
    sent: int = 0
    failures: List[DispatchFailure] = Field(default_factory=list)


class ReminderNotifier:
    """
    Sends due reminder emails
    """

    def __init__(
        self,
        db: DatabaseService,
        composer: NotificationComposer,
        email: EmailService,
        timeout: Optional[float] = None
    ):
        self.db = db
        self.composer = composer
        self.email = email
        self.timeout = timeout

    async def dispatch_due(self, now: datetime) -> DispatchResult:
        """
        Send every eligible reminder once

        Args:
            now: Sweep instant; defines "today" and the sent-at stamp

        Raises:
            ClientError: eligibility query failed (the whole sweep is aborted)
        """
        now = ensure_utc(now)
        reminders = await self.db.get_reminders_for_email_notification(
            today=now.date(),
            day_start=start_of_day(now),
        )
        logger.info(f"Found {len(reminders)} reminders to send notifications")

        result = DispatchResult()

        for reminder in reminders:
            try:
                await self._dispatch_one(reminder, now)
                result.sent += 1

            except Exception as e:
                logger.error(f"Error sending reminder {reminder.reminder_id}: {e}")
                result.failures.append(
                    DispatchFailure(reminder_id=reminder.reminder_id, error=str(e))
                )

        logger.info(
            f"Reminder notifications: {result.sent} sent, {len(result.failures)} failed"
        )
        return result

    async def _dispatch_one(self, reminder: Reminder, now: datetime):
        pet = await self.db.get_pet(reminder.pet_id)
        owner = await self.db.get_owner(reminder.owner_id)

        if owner is None or not owner.email:
            raise TransientDispatchError(
                "Owner email not found", {"owner_id": reminder.owner_id}
            )

        rendered = self.composer.render(reminder, pet, owner, now)

        try:
            sent = await asyncio.wait_for(
                asyncio.to_thread(self.email.send, owner.email, rendered.subject, rendered.body),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransientDispatchError(f"Email send timed out after {self.timeout}s") from e

        if not sent:
            raise TransientDispatchError("Mail transport rejected the message")

        await self.db.mark_email_sent(reminder.reminder_id, now)
        logger.info(f"Reminder email sent to {owner.email} for reminder: {reminder.title}")
