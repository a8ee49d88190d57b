"""
Test the DynamoDB reminder store (moto)
"""

import asyncio
import pytest
from datetime import timedelta

from botocore.exceptions import ClientError

from conftest import NOW, OWNER_ID, PET_ID, TODAY, make_reminder
from purrfectcare.models.reminder import ReminderDetails, ReminderStatus
from purrfectcare.utils.datetime_utils import start_of_day, to_iso


def test_save_and_get_reminder(db):
    reminder = make_reminder(
        description="With food",
        details=ReminderDetails(medication_name="Apoquel", dosage="16mg"),
    )
    asyncio.run(db.save_reminder(reminder))

    loaded = asyncio.run(db.get_reminder(reminder.reminder_id))

    assert loaded == reminder
    assert loaded.details.dosage == "16mg"
    assert loaded.created_at == NOW


def test_optional_fields_are_not_stored(db):
    item = make_reminder().to_dynamodb_item()

    assert "snoozed_until" not in item
    assert "description" not in item
    assert item["due_date"] == TODAY.isoformat()


def test_save_rejects_duplicate_id(db):
    asyncio.run(db.save_reminder(make_reminder()))

    with pytest.raises(ClientError):
        asyncio.run(db.save_reminder(make_reminder()))


def test_get_reminder_for_pet_scoping(db):
    asyncio.run(db.save_reminder(make_reminder(is_deleted=True, deleted_at=NOW)))

    assert asyncio.run(db.get_reminder_for_pet("reminder_test", "pet_other")) is None
    assert asyncio.run(db.get_reminder_for_pet("reminder_test", PET_ID)) is None
    assert asyncio.run(
        db.get_reminder_for_pet("reminder_test", PET_ID, include_deleted=True)
    ) is not None


def test_update_sets_and_removes(db):
    asyncio.run(db.save_reminder(make_reminder(
        status=ReminderStatus.SNOOZED,
        snoozed_until=NOW + timedelta(hours=1),
    )))

    updated = asyncio.run(db.update_reminder("reminder_test", {
        "status": ReminderStatus.ACTIVE,
        "snoozed_until": None,
        "updated_at": NOW,
    }))

    assert updated.status == ReminderStatus.ACTIVE
    assert updated.snoozed_until is None
    raw = db.reminders_table.get_item(Key={"reminder_id": "reminder_test"})["Item"]
    assert "snoozed_until" not in raw


def test_update_with_stale_status_is_skipped(db):
    asyncio.run(db.save_reminder(make_reminder(status=ReminderStatus.DISMISSED, dismissed_at=NOW)))

    result = asyncio.run(db.update_reminder(
        "reminder_test",
        {"status": ReminderStatus.ACTIVE},
        expected_status=ReminderStatus.SNOOZED,
    ))

    assert result is None
    assert asyncio.run(db.get_reminder("reminder_test")).status == ReminderStatus.DISMISSED


def test_update_missing_reminder_returns_none(db):
    assert asyncio.run(db.update_reminder("reminder_missing", {"title": "x"})) is None


def test_email_eligibility_day_boundary(db):
    """Sent before today's midnight is eligible again; sent at midnight is not"""
    day_start = start_of_day(NOW)
    asyncio.run(db.save_reminder(make_reminder(
        reminder_id="reminder_yesterday",
        last_notification_sent=day_start - timedelta(microseconds=1),
    )))
    asyncio.run(db.save_reminder(make_reminder(
        reminder_id="reminder_today",
        last_notification_sent=day_start,
    )))

    eligible = asyncio.run(db.get_reminders_for_email_notification(TODAY, day_start))

    assert [r.reminder_id for r in eligible] == ["reminder_yesterday"]


def test_mark_email_sent_sets_both_timestamps(db):
    asyncio.run(db.save_reminder(make_reminder()))

    updated = asyncio.run(db.mark_email_sent("reminder_test", NOW))

    assert updated.last_notification_sent == NOW
    assert updated.email_sent_at == NOW


def test_reactivate_only_elapsed_snoozes(db):
    asyncio.run(db.save_reminder(make_reminder(
        reminder_id="reminder_elapsed",
        status=ReminderStatus.SNOOZED,
        snoozed_until=NOW - timedelta(minutes=1),
    )))
    asyncio.run(db.save_reminder(make_reminder(
        reminder_id="reminder_pending",
        status=ReminderStatus.SNOOZED,
        snoozed_until=NOW + timedelta(minutes=1),
    )))

    assert asyncio.run(db.reactivate_snoozed_reminders(NOW)) == 1

    elapsed = asyncio.run(db.get_reminder("reminder_elapsed"))
    assert elapsed.status == ReminderStatus.ACTIVE
    assert elapsed.snoozed_until is None
    assert asyncio.run(db.get_reminder("reminder_pending")).status == ReminderStatus.SNOOZED


def test_count_by_type(db):
    asyncio.run(db.save_reminder(make_reminder(reminder_id="r1")))
    asyncio.run(db.save_reminder(make_reminder(reminder_id="r2")))
    asyncio.run(db.save_reminder(make_reminder(reminder_id="r3", reminder_type="grooming")))
    asyncio.run(db.save_reminder(make_reminder(
        reminder_id="r4", status=ReminderStatus.COMPLETED, completed_at=NOW
    )))

    assert asyncio.run(db.count_by_type(OWNER_ID)) == {"medication": 2, "grooming": 1}


def test_timestamps_sort_lexicographically():
    """Stored timestamps keep microseconds so string order is time order"""
    whole_second = NOW
    later = NOW + timedelta(microseconds=5)

    assert to_iso(whole_second) < to_iso(later)
    assert to_iso(whole_second).endswith(".000000+00:00")
