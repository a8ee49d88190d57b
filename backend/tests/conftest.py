"""
Pytest configuration and fixtures
"""

import pytest
import os
import sys
from datetime import date, datetime, timedelta, timezone

# Add backend to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import boto3
from fastapi.testclient import TestClient
from moto import mock_aws

from purrfectcare.dependencies import get_db_service, get_reminder_service
from purrfectcare.errors import TransientDispatchError
from purrfectcare.main import app
from purrfectcare.models.pet import Owner, Pet
from purrfectcare.models.reminder import Reminder
from purrfectcare.scripts.create_tables_local import create_tables
from purrfectcare.services.composer import NotificationComposer
from purrfectcare.services.db import DatabaseService
from purrfectcare.services.notifier import ReminderNotifier
from purrfectcare.services.reminders import ReminderService


# Monday, 2024-01-15 12:00 UTC
NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()

OWNER_ID = "user_owner"
OTHER_OWNER_ID = "user_other"
PET_ID = "pet_whiskers"
OTHER_PET_ID = "pet_rex"
OWNER_EMAIL = "owner@example.com"


class FixedClock:
    """Injectable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class RecordingEmailService:
    """Mail transport double; records sends, fails for listed addresses"""

    def __init__(self):
        self.sent = []
        self.fail_for = set()

    def send(self, to_address: str, subject: str, html_body: str) -> bool:
        if to_address in self.fail_for:
            raise TransientDispatchError(f"Mailbox unavailable: {to_address}")
        self.sent.append({"to": to_address, "subject": subject, "body": html_body})
        return True


def make_reminder(**overrides) -> Reminder:
    """Build a reminder with sensible defaults for direct store/state tests"""
    fields = {
        "reminder_id": "reminder_test",
        "owner_id": OWNER_ID,
        "pet_id": PET_ID,
        "title": "Morning pill",
        "reminder_type": "medication",
        "due_date": TODAY,
        "due_time": "09:00",
        "frequency": "daily",
        "is_recurring": True,
        "priority": "critical",
        "send_email": True,
        "created_at": NOW,
        "updated_at": NOW,
    }
    fields.update(overrides)
    return Reminder(**fields)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake AWS credentials so nothing can reach a real account"""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def dynamodb(aws_credentials):
    """Mocked DynamoDB resource with all tables created"""
    with mock_aws():
        create_tables(boto3.client("dynamodb", region_name="us-east-1"))
        yield boto3.resource("dynamodb", region_name="us-east-1")


@pytest.fixture
def db(dynamodb):
    """Database service with one owner, a second owner, and a pet each"""
    database = DatabaseService(dynamodb=dynamodb)

    database.users_table.put_item(
        Item=Owner(user_id=OWNER_ID, name="Alex", email=OWNER_EMAIL).to_dynamodb_item()
    )
    database.users_table.put_item(
        Item=Owner(user_id=OTHER_OWNER_ID, name="Sam", email="sam@example.com").to_dynamodb_item()
    )
    database.pets_table.put_item(
        Item=Pet(pet_id=PET_ID, owner_id=OWNER_ID, name="Whiskers", species="cat").to_dynamodb_item()
    )
    database.pets_table.put_item(
        Item=Pet(pet_id=OTHER_PET_ID, owner_id=OTHER_OWNER_ID, name="Rex", species="dog").to_dynamodb_item()
    )

    return database


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def service(db, clock):
    """Reminder lifecycle service on the mocked store and fixed clock"""
    return ReminderService(db, clock=clock)


@pytest.fixture
def email():
    return RecordingEmailService()


@pytest.fixture
def composer():
    return NotificationComposer(app_url="https://app.purrfectcare.test", app_name="PurrfectCare")


@pytest.fixture
def notifier(db, composer, email):
    return ReminderNotifier(db=db, composer=composer, email=email, timeout=5.0)


@pytest.fixture
def client(db, service):
    """FastAPI test client wired to the mocked store"""
    app.dependency_overrides[get_db_service] = lambda: db
    app.dependency_overrides[get_reminder_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def owner_headers():
    return {"X-Owner-Id": OWNER_ID}


@pytest.fixture
def sample_reminder_payload():
    """Minimal medication reminder request body"""
    return {
        "title": "Heartworm pill",
        "reminder_type": "medication",
        "due_date": date(2024, 1, 15).isoformat(),
        "due_time": "08:30",
        "details": {"medication_name": "Heartgard", "dosage": "1 chew"},
    }
