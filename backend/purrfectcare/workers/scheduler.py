"""
PurrfectCare Backend - Reminder Scheduler

Purpose: Time-triggered driver for the two reminder sweeps:
    - snooze reactivation (snoozed reminders whose snooze elapsed -> active)
    - email dispatch (ReminderNotifier.dispatch_due)

Cadence (UTC):
    - hourly at SCHEDULER_DISPATCH_MINUTE: dispatch + reactivation
    - SCHEDULER_DIGEST_HOURS (08:00 and 18:00): dispatch
    - every SCHEDULER_SNOOZE_SWEEP_MINUTES: reactivation

Ticks never overlap: ``run_tick`` holds a lock for the whole tick, so a tick
that fires while another runs waits its turn. Each job also runs with
max_instances=1 and coalesce=True so a stalled loop does not pile up runs.

Testing:
    scheduler = build_reminder_scheduler()
    await scheduler.run_tick(dispatch=True, reactivate=True, now=fixed_now)

AWS Deployment Notes:
    - Local/ECS: APScheduler inside the API process (SCHEDULER_PROVIDER=apscheduler)
    - Production: EventBridge rule -> lambda/reminder_scheduler/handler.py,
      which calls the same run_tick
    - Run exactly one active scheduler; the "already sent today" check is
      not atomic across instances
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from purrfectcare.config import settings
from purrfectcare.services.composer import NotificationComposer
from purrfectcare.services.db import DatabaseService
from purrfectcare.services.email_service import EmailService
from purrfectcare.services.notifier import DispatchResult, ReminderNotifier
from purrfectcare.utils.datetime_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class TickResult(BaseModel):
    """What one tick did"""
    started_at: datetime
    reactivated: int = 0
    sent: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)


class ReminderScheduler:
    """
    Runs reminder sweeps on a cron cadence
    """

    def __init__(
        self,
        db: DatabaseService,
        notifier: ReminderNotifier,
        clock: Callable[[], datetime] = utc_now,
        email_enabled: Optional[bool] = None
    ):
        self.db = db
        self.notifier = notifier
        self.clock = clock
        self.email_enabled = (
            settings.ENABLE_EMAIL_NOTIFICATIONS if email_enabled is None else email_enabled
        )

        self._lock = asyncio.Lock()
        self._stopping = False
        self._scheduler = None

    # =========================================================================
    # SWEEPS
    # =========================================================================

    async def reactivate_snoozed(self, now: datetime) -> int:
        """Return elapsed snoozes to active; returns how many were moved"""
        count = await self.db.reactivate_snoozed_reminders(ensure_utc(now))
        logger.info(f"Reactivated {count} snoozed reminders")
        return count

    async def dispatch_due(self, now: datetime) -> DispatchResult:
        return await self.notifier.dispatch_due(ensure_utc(now))

    async def run_tick(
        self,
        dispatch: bool = True,
        reactivate: bool = True,
        now: Optional[datetime] = None
    ) -> Optional[TickResult]:
        """
        Run the requested sweeps once, sequentially

        Failures are logged and recorded on the result, never raised, so the
        driver survives to the next tick.

        Returns:
            TickResult, or None if the scheduler is shutting down
        """
        async with self._lock:
            if self._stopping:
                logger.info("Scheduler stopping; tick skipped")
                return None

            now = ensure_utc(now or self.clock())
            result = TickResult(started_at=now)

            if reactivate:
                try:
                    result.reactivated = await self.reactivate_snoozed(now)
                except Exception as e:
                    logger.error(f"Snooze reactivation sweep failed: {e}", exc_info=True)
                    result.errors.append(f"reactivate: {e}")

            if dispatch and not self.email_enabled:
                logger.info("Email notifications disabled; dispatch skipped")
            elif dispatch:
                try:
                    dispatched = await self.dispatch_due(now)
                    result.sent = dispatched.sent
                    result.failed = len(dispatched.failures)
                except Exception as e:
                    logger.error(f"Reminder dispatch sweep failed: {e}", exc_info=True)
                    result.errors.append(f"dispatch: {e}")

            return result

    # =========================================================================
    # APSCHEDULER LIFECYCLE
    # =========================================================================

    def start(self):
        """
        Start APScheduler jobs (local development / single-container deploys)

        Must be called from inside a running event loop.
        """
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.cron import CronTrigger

        self._stopping = False
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        job_defaults = {'max_instances': 1, 'coalesce': True, 'replace_existing': True}

        self._scheduler.add_job(
            self.run_tick,
            CronTrigger(minute=settings.SCHEDULER_DISPATCH_MINUTE, timezone="UTC"),
            id='reminders_hourly',
            kwargs={'dispatch': True, 'reactivate': True},
            **job_defaults
        )

        digest_hours = settings.digest_hours_list
        if digest_hours:
            self._scheduler.add_job(
                self.run_tick,
                CronTrigger(
                    hour=",".join(str(h) for h in digest_hours),
                    minute=0,
                    timezone="UTC",
                ),
                id='reminders_digest',
                kwargs={'dispatch': True, 'reactivate': False},
                **job_defaults
            )

        self._scheduler.add_job(
            self.run_tick,
            CronTrigger(minute=f"*/{settings.SCHEDULER_SNOOZE_SWEEP_MINUTES}", timezone="UTC"),
            id='reminders_snooze_sweep',
            kwargs={'dispatch': False, 'reactivate': True},
            **job_defaults
        )

        self._scheduler.start()
        logger.info(
            f"APScheduler started for reminders (hourly at :{settings.SCHEDULER_DISPATCH_MINUTE:02d}, "
            f"digest hours {digest_hours}, snooze sweep every "
            f"{settings.SCHEDULER_SNOOZE_SWEEP_MINUTES} minutes)"
        )

    async def shutdown(self):
        """Stop scheduling new ticks and wait for the in-flight one"""
        self._stopping = True

        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        async with self._lock:
            pass

        logger.info("APScheduler stopped")


def build_reminder_scheduler(
    db: Optional[DatabaseService] = None,
    email: Optional[EmailService] = None,
    clock: Callable[[], datetime] = utc_now
) -> ReminderScheduler:
    """Wire a scheduler with its notifier from settings"""
    db = db or DatabaseService()
    notifier = ReminderNotifier(
        db=db,
        composer=NotificationComposer(app_url=settings.APP_URL, app_name=settings.APP_NAME),
        email=email or EmailService(),
        timeout=settings.EMAIL_SEND_TIMEOUT_SECONDS,
    )
    return ReminderScheduler(db=db, notifier=notifier, clock=clock)
