"""
Test the EventBridge-triggered Lambda handler
"""

import asyncio
import importlib.util
import json
import os

import pytest

from conftest import make_reminder
from purrfectcare.workers.scheduler import ReminderScheduler


HANDLER_PATH = os.path.abspath(os.path.join(
    os.path.dirname(__file__), '..', 'lambda', 'reminder_scheduler', 'handler.py'
))


@pytest.fixture
def handler_module():
    """Load handler.py by path (``lambda`` is a keyword, not importable)"""
    spec = importlib.util.spec_from_file_location("reminder_scheduler_handler", HANDLER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_handler_runs_dispatch_tick(handler_module, db, notifier, email, clock, monkeypatch):
    asyncio.run(db.save_reminder(make_reminder()))
    scheduler = ReminderScheduler(db, notifier, clock=clock, email_enabled=True)
    monkeypatch.setattr(handler_module, "_scheduler", scheduler)

    response = handler_module.lambda_handler({"dispatch": True, "reactivate": False}, None)

    assert response["statusCode"] == 200
    body = json.loads(response["body"])
    assert body["sent"] == 1
    assert body["reactivated"] == 0
    assert len(email.sent) == 1


def test_handler_reports_sweep_errors(handler_module, db, notifier, clock, monkeypatch):
    async def broken_sweep(now):
        raise RuntimeError("throttled")

    monkeypatch.setattr(db, "reactivate_snoozed_reminders", broken_sweep)
    scheduler = ReminderScheduler(db, notifier, clock=clock, email_enabled=True)
    monkeypatch.setattr(handler_module, "_scheduler", scheduler)

    response = handler_module.lambda_handler({"dispatch": False}, None)

    assert response["statusCode"] == 500
    assert json.loads(response["body"])["errors"] == ["reactivate: throttled"]
