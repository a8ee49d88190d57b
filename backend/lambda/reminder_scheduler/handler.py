"""
AWS Lambda Handler - Reminder Scheduler

Purpose: Run one reminder tick (snooze reactivation and/or email dispatch),
triggered by EventBridge.

EventBridge Rules (UTC):
    - cron(0 * * * ? *)          input {"dispatch": true, "reactivate": true}
    - cron(0 8,18 * * ? *)       input {"dispatch": true, "reactivate": false}
    - cron(0/15 * * * ? *)       input {"dispatch": false, "reactivate": true}

Set reserved concurrency to 1 so ticks never overlap across invocations.
"""

import asyncio
import json
import logging
import os
import sys

# Add parent directory to path (for local testing)
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from purrfectcare.workers.scheduler import build_reminder_scheduler  # noqa: E402

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Reused across warm invocations
_scheduler = None


def get_scheduler():
    global _scheduler
    if _scheduler is None:
        _scheduler = build_reminder_scheduler()
    return _scheduler


def lambda_handler(event, context):
    """
    Lambda handler for the reminder scheduler

    Triggered by: EventBridge rules (see module docstring)
    """
    event = event or {}
    dispatch = bool(event.get('dispatch', True))
    reactivate = bool(event.get('reactivate', True))

    logger.info(f"Reminder tick (dispatch={dispatch}, reactivate={reactivate})")

    try:
        result = asyncio.run(
            get_scheduler().run_tick(dispatch=dispatch, reactivate=reactivate)
        )

    except Exception as e:
        logger.error(f"Error in reminder scheduler: {e}", exc_info=True)
        return {
            'statusCode': 500,
            'body': json.dumps({'error': str(e)})
        }

    if result is None:
        return {
            'statusCode': 200,
            'body': json.dumps({'message': 'Tick skipped'})
        }

    return {
        'statusCode': 500 if result.errors else 200,
        'body': result.model_dump_json()
    }
