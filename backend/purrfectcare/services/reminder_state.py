"""
PurrfectCare Backend - Derived Reminder State

Purpose: Overdue / due-today / snoozed flags. These are functions of the
stored fields and the evaluation instant and are never persisted.
"""

from datetime import datetime

from purrfectcare.models.reminder import Reminder, ReminderState, ReminderStatus
from purrfectcare.utils.datetime_utils import combine_due, ensure_utc


def is_overdue(reminder: Reminder, now: datetime) -> bool:
    """Active and due date + due time strictly before ``now``"""
    if reminder.status != ReminderStatus.ACTIVE:
        return False
    return combine_due(reminder.due_date, reminder.due_time) < ensure_utc(now)


def is_due_today(reminder: Reminder, now: datetime) -> bool:
    """Due date falls on the calendar day of ``now`` (any status)"""
    return reminder.due_date == ensure_utc(now).date()


def is_snoozed(reminder: Reminder, now: datetime) -> bool:
    """Snooze is set and has not elapsed yet"""
    if reminder.snoozed_until is None:
        return False
    return ensure_utc(now) < ensure_utc(reminder.snoozed_until)


def derive_state(reminder: Reminder, now: datetime) -> ReminderState:
    return ReminderState(
        is_overdue=is_overdue(reminder, now),
        is_due_today=is_due_today(reminder, now),
        is_snoozed=is_snoozed(reminder, now),
    )
