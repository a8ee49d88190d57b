"""
Test recurrence date arithmetic
"""

import pytest
from datetime import date

from purrfectcare.models.reminder import ReminderFrequency
from purrfectcare.services.recurrence import next_occurrence


@pytest.mark.parametrize("frequency,expected", [
    (ReminderFrequency.DAILY, date(2024, 1, 2)),
    (ReminderFrequency.WEEKLY, date(2024, 1, 8)),
    (ReminderFrequency.MONTHLY, date(2024, 2, 1)),
    (ReminderFrequency.YEARLY, date(2025, 1, 1)),
])
def test_next_occurrence_steps(frequency, expected):
    """Each frequency advances by its calendar step"""
    assert next_occurrence(frequency, date(2024, 1, 1)) == expected


def test_monthly_clamps_to_end_of_month():
    """Jan 31 monthly lands on the last day of February"""
    assert next_occurrence(ReminderFrequency.MONTHLY, date(2024, 1, 31)) == date(2024, 2, 29)
    assert next_occurrence(ReminderFrequency.MONTHLY, date(2023, 1, 31)) == date(2023, 2, 28)


def test_yearly_from_leap_day():
    assert next_occurrence(ReminderFrequency.YEARLY, date(2024, 2, 29)) == date(2025, 2, 28)


def test_year_rollover():
    assert next_occurrence(ReminderFrequency.DAILY, date(2023, 12, 31)) == date(2024, 1, 1)
    assert next_occurrence(ReminderFrequency.MONTHLY, date(2023, 12, 15)) == date(2024, 1, 15)


def test_end_date_stops_recurrence():
    """No next occurrence once it would fall after the end date"""
    assert next_occurrence(ReminderFrequency.WEEKLY, date(2024, 1, 1), date(2024, 1, 7)) is None


def test_end_date_is_inclusive():
    assert next_occurrence(
        ReminderFrequency.WEEKLY, date(2024, 1, 1), date(2024, 1, 8)
    ) == date(2024, 1, 8)


def test_once_has_no_next_occurrence():
    with pytest.raises(ValueError):
        next_occurrence(ReminderFrequency.ONCE, date(2024, 1, 1))


def test_accepts_frequency_value():
    """Plain string values are accepted as well as enum members"""
    assert next_occurrence("weekly", date(2024, 1, 1)) == date(2024, 1, 8)
