"""
PurrfectCare Backend - Recurrence

Purpose: Compute the next due date of a recurring reminder.

Month and year steps are calendar-aware (dateutil's relativedelta clamps to
the last day of the target month), so Jan 31 + 1 month is Feb 28/29 and
Feb 29 + 1 year is Feb 28.
"""

from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta

from purrfectcare.models.reminder import ReminderFrequency


FREQUENCY_STEPS = {
    ReminderFrequency.DAILY: relativedelta(days=1),
    ReminderFrequency.WEEKLY: relativedelta(days=7),
    ReminderFrequency.MONTHLY: relativedelta(months=1),
    ReminderFrequency.YEARLY: relativedelta(years=1),
}


def next_occurrence(
    frequency: ReminderFrequency,
    anchor: date,
    end_date: Optional[date] = None
) -> Optional[date]:
    """
    Next due date after ``anchor``

    Args:
        frequency: daily, weekly, monthly or yearly
        anchor: Due date of the reminder being completed
        end_date: Last allowed due date (inclusive), if any

    Returns:
        The next due date, or None when it would fall after ``end_date``

    Raises:
        ValueError: for ``once``, which never recurs
    """
    frequency = ReminderFrequency(frequency)
    if frequency == ReminderFrequency.ONCE:
        raise ValueError("One-off reminders have no next occurrence")

    next_date = anchor + FREQUENCY_STEPS[frequency]

    if end_date is not None and next_date > end_date:
        return None

    return next_date
