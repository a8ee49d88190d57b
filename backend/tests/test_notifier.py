"""
Test the reminder email dispatch sweep
"""

import asyncio
import time
from datetime import timedelta

from conftest import NOW, OTHER_OWNER_ID, OTHER_PET_ID, OWNER_EMAIL, TODAY, make_reminder
from purrfectcare.models.reminder import ReminderStatus
from purrfectcare.services.notifier import ReminderNotifier


def save(db, **overrides):
    reminder = make_reminder(**overrides)
    asyncio.run(db.save_reminder(reminder))
    return reminder


def test_dispatch_sends_once_per_day(db, notifier, email):
    """Second sweep on the same day sends nothing more"""
    save(db)

    first = asyncio.run(notifier.dispatch_due(NOW))

    assert first.sent == 1
    assert first.failures == []
    assert len(email.sent) == 1
    assert email.sent[0]["to"] == OWNER_EMAIL
    assert email.sent[0]["subject"] == "Medication Reminder: Medication for Whiskers"

    stored = asyncio.run(db.get_reminder("reminder_test"))
    assert stored.last_notification_sent == NOW
    assert stored.email_sent_at == NOW
    assert stored.last_notification_sent.date() == TODAY

    second = asyncio.run(notifier.dispatch_due(NOW + timedelta(hours=6)))

    assert second.sent == 0
    assert len(email.sent) == 1


def test_overdue_reminder_is_sent_again_next_day(db, notifier, email):
    save(db, due_date=TODAY - timedelta(days=3))

    asyncio.run(notifier.dispatch_due(NOW))
    asyncio.run(notifier.dispatch_due(NOW + timedelta(days=1)))

    assert len(email.sent) == 2


def test_ineligible_reminders_are_not_sent(db, notifier, email):
    save(db, reminder_id="r_no_email", send_email=False)
    save(db, reminder_id="r_completed", status=ReminderStatus.COMPLETED, completed_at=NOW)
    save(db, reminder_id="r_dismissed", status=ReminderStatus.DISMISSED, dismissed_at=NOW)
    save(
        db,
        reminder_id="r_snoozed",
        status=ReminderStatus.SNOOZED,
        snoozed_until=NOW + timedelta(hours=1),
    )
    save(db, reminder_id="r_future", due_date=TODAY + timedelta(days=1))
    save(db, reminder_id="r_deleted", is_deleted=True, deleted_at=NOW)

    result = asyncio.run(notifier.dispatch_due(NOW))

    assert result.sent == 0
    assert email.sent == []


def test_failures_are_isolated(db, notifier, email):
    """A failed send neither aborts the batch nor marks the reminder sent"""
    save(db, reminder_id="r_ok")
    save(db, reminder_id="r_bounce", owner_id=OTHER_OWNER_ID, pet_id=OTHER_PET_ID)
    email.fail_for.add("sam@example.com")

    result = asyncio.run(notifier.dispatch_due(NOW))

    assert result.sent == 1
    assert [f.reminder_id for f in result.failures] == ["r_bounce"]
    assert asyncio.run(db.get_reminder("r_bounce")).last_notification_sent is None
    assert asyncio.run(db.get_reminder("r_ok")).last_notification_sent == NOW

    # Still eligible on the next sweep
    email.fail_for.clear()
    retry = asyncio.run(notifier.dispatch_due(NOW + timedelta(minutes=15)))
    assert retry.sent == 1


def test_missing_owner_email_is_a_failure(db, notifier, email):
    save(db, owner_id="user_ghost")

    result = asyncio.run(notifier.dispatch_due(NOW))

    assert result.sent == 0
    assert len(result.failures) == 1
    assert "email" in result.failures[0].error.lower()


def test_slow_transport_times_out(db, composer):
    class SlowEmail:
        def send(self, to_address, subject, html_body):
            time.sleep(0.3)
            return True

    save(db)
    notifier = ReminderNotifier(db=db, composer=composer, email=SlowEmail(), timeout=0.05)

    result = asyncio.run(notifier.dispatch_due(NOW))

    assert result.sent == 0
    assert "timed out" in result.failures[0].error
    assert asyncio.run(db.get_reminder("reminder_test")).last_notification_sent is None


def test_timed_out_send_is_retried_next_sweep(db, composer):
    class FirstSendSlow:
        def __init__(self):
            self.attempts = []

        def send(self, to_address, subject, html_body):
            self.attempts.append(to_address)
            if len(self.attempts) == 1:
                time.sleep(0.3)
            return True

    save(db)
    email = FirstSendSlow()
    notifier = ReminderNotifier(db=db, composer=composer, email=email, timeout=0.05)

    first = asyncio.run(notifier.dispatch_due(NOW))
    second = asyncio.run(notifier.dispatch_due(NOW + timedelta(minutes=15)))

    # The abandoned first send may still have gone out: delivery is at least once
    assert first.sent == 0
    assert second.sent == 1
    assert len(email.attempts) == 2
    stamped = asyncio.run(db.get_reminder("reminder_test"))
    assert stamped.last_notification_sent == NOW + timedelta(minutes=15)
