"""
PurrfectCare Backend - DynamoDB Database Service

Purpose: Reminder store backed by DynamoDB (AWS or Local), plus read-only
lookups on the pets and users tables.

Testing:
    # DynamoDB Local
    db = DatabaseService()
    await db.save_reminder(reminder)
    reminder = await db.get_reminder_for_pet("reminder_123", "pet_456")

AWS Deployment Notes:
    - Table schema: scripts/create_tables_local.py
    - Uses on-demand billing (PAY_PER_REQUEST)
    - IAM role needs dynamodb:PutItem, GetItem, Query, UpdateItem, DescribeTable
    - GSIs: pet_id-due_date-index, owner_id-due_date-index, status-due_date-index
    - Enable point-in-time recovery for production
"""

import logging
from collections import Counter
from typing import List, Optional, Dict, Any, Tuple
from datetime import date, datetime
import boto3
from boto3.dynamodb.conditions import Key, Attr
from botocore.exceptions import ClientError

from purrfectcare.config import settings
from purrfectcare.models.pet import Owner, Pet
from purrfectcare.models.reminder import (
    PRIORITY_RANK,
    Reminder,
    ReminderQuery,
    ReminderStatus,
    serialize_attribute,
)
from purrfectcare.utils.datetime_utils import to_iso, utc_now

logger = logging.getLogger(__name__)

PET_INDEX = "pet_id-due_date-index"
OWNER_INDEX = "owner_id-due_date-index"
STATUS_INDEX = "status-due_date-index"

SORTABLE_FIELDS = {
    "due_date",
    "created_at",
    "updated_at",
    "priority",
    "title",
    "reminder_type",
    "status",
}


def _combine(expressions):
    """AND together a list of boto3 conditions (None when empty)"""
    combined = None
    for expr in expressions:
        combined = expr if combined is None else combined & expr
    return combined


def _sort_key(field: str):
    def key(reminder: Reminder):
        value = getattr(reminder, field)
        if field == "priority":
            value = PRIORITY_RANK[value]
        elif hasattr(value, "value"):
            value = value.value
        return (value is None, value)
    return key


class DatabaseService:
    """
    Database service for DynamoDB operations
    """

    def __init__(self, dynamodb=None):
        # Initialize DynamoDB client
        if dynamodb is not None:
            self.dynamodb = dynamodb
        elif settings.USE_DYNAMODB_LOCAL:
            self.dynamodb = boto3.resource(
                'dynamodb',
                endpoint_url=settings.DYNAMODB_LOCAL_ENDPOINT,
                region_name=settings.AWS_REGION,
                aws_access_key_id='local',
                aws_secret_access_key='local'
            )
            logger.info(f"Database: Using DynamoDB Local at {settings.DYNAMODB_LOCAL_ENDPOINT}")
        else:
            self.dynamodb = boto3.resource(
                'dynamodb',
                region_name=settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            )
            logger.info("Database: Using DynamoDB AWS")

        # Get table references
        self.reminders_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_REMINDERS)
        self.pets_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_PETS)
        self.users_table = self.dynamodb.Table(settings.DYNAMODB_TABLE_USERS)

    # =========================================================================
    # TABLE VERIFICATION
    # =========================================================================

    async def verify_tables(self):
        """Verify that all required tables exist"""
        tables = [
            self.reminders_table,
            self.pets_table,
            self.users_table,
        ]

        for table in tables:
            try:
                table.load()
                logger.info(f"Table verified: {table.name}")
            except ClientError as e:
                if e.response['Error']['Code'] == 'ResourceNotFoundException':
                    logger.error(f"Table not found: {table.name}")
                raise

    # =========================================================================
    # QUERY HELPERS
    # =========================================================================

    def _query_all(self, **kwargs) -> List[Dict[str, Any]]:
        """Run a Query and follow LastEvaluatedKey until exhausted"""
        items: List[Dict[str, Any]] = []
        while True:
            response = self.reminders_table.query(**kwargs)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            kwargs['ExclusiveStartKey'] = last_key

    def _count_all(self, **kwargs) -> int:
        """Run a COUNT Query across all pages"""
        total = 0
        kwargs['Select'] = 'COUNT'
        while True:
            response = self.reminders_table.query(**kwargs)
            total += response.get('Count', 0)
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return total
            kwargs['ExclusiveStartKey'] = last_key

    @staticmethod
    def _query_kwargs(index: str, key_condition, filters: list) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            'IndexName': index,
            'KeyConditionExpression': key_condition,
        }
        filter_expr = _combine(filters)
        if filter_expr is not None:
            kwargs['FilterExpression'] = filter_expr
        return kwargs

    # =========================================================================
    # REMINDERS
    # =========================================================================

    async def save_reminder(self, reminder: Reminder) -> bool:
        """Insert a new reminder"""
        try:
            item = reminder.to_dynamodb_item()
            self.reminders_table.put_item(
                Item=item,
                ConditionExpression='attribute_not_exists(reminder_id)',
            )
            logger.info(f"Saved reminder: {reminder.reminder_id}")
            return True

        except ClientError as e:
            logger.error(f"Failed to save reminder: {e}")
            raise

    async def get_reminder(self, reminder_id: str) -> Optional[Reminder]:
        """Get reminder by ID (including deleted ones)"""
        try:
            response = self.reminders_table.get_item(
                Key={'reminder_id': reminder_id}
            )

            if 'Item' in response:
                return Reminder.from_dynamodb_item(response['Item'])

            return None

        except ClientError as e:
            logger.error(f"Failed to get reminder: {e}")
            raise

    async def get_reminder_for_pet(
        self,
        reminder_id: str,
        pet_id: str,
        include_deleted: bool = False
    ) -> Optional[Reminder]:
        """Get reminder by ID scoped to a pet"""
        reminder = await self.get_reminder(reminder_id)

        if reminder is None or reminder.pet_id != pet_id:
            return None
        if reminder.is_deleted and not include_deleted:
            return None

        return reminder

    async def list_reminders(
        self,
        query: ReminderQuery,
        today: date,
        owner_id: Optional[str] = None,
        pet_id: Optional[str] = None,
    ) -> Tuple[List[Reminder], int]:
        """
        List reminders for an owner or a pet

        Args:
            query: Filters, sort and pagination
            today: Calendar day used by due_today/upcoming/overdue
            owner_id: Owner scope (uses the owner GSI)
            pet_id: Pet scope (uses the pet GSI, takes precedence)

        Returns:
            (page of reminders, total matching count)
        """
        if pet_id:
            index, key_condition = PET_INDEX, Key('pet_id').eq(pet_id)
        elif owner_id:
            index, key_condition = OWNER_INDEX, Key('owner_id').eq(owner_id)
        else:
            raise ValueError("list_reminders needs an owner_id or a pet_id")

        today_str = today.isoformat()
        filters = []

        # overdue beats upcoming beats due_today
        if query.overdue:
            key_condition = key_condition & Key('due_date').lt(today_str)
        elif query.upcoming:
            key_condition = key_condition & Key('due_date').gte(today_str)
        elif query.due_today:
            key_condition = key_condition & Key('due_date').eq(today_str)

        if not query.include_deleted:
            filters.append(Attr('is_deleted').eq(False))

        if query.overdue:
            filters.append(Attr('status').eq(ReminderStatus.ACTIVE.value))
        elif query.status:
            filters.append(Attr('status').eq(query.status.value))
        elif not query.include_completed:
            filters.append(Attr('status').ne(ReminderStatus.COMPLETED.value))

        if query.reminder_type:
            filters.append(Attr('reminder_type').eq(query.reminder_type.value))

        if query.priority:
            filters.append(Attr('priority').eq(query.priority.value))

        try:
            items = self._query_all(**self._query_kwargs(index, key_condition, filters))
        except ClientError as e:
            logger.error(f"Failed to list reminders: {e}")
            raise

        reminders = [Reminder.from_dynamodb_item(item) for item in items]

        sort_by = query.sort_by if query.sort_by in SORTABLE_FIELDS else "due_date"
        reminders.sort(key=_sort_key(sort_by), reverse=query.sort_order == "desc")

        start = (query.page - 1) * query.limit
        return reminders[start:start + query.limit], len(reminders)

    async def update_reminder(
        self,
        reminder_id: str,
        changes: Dict[str, Any],
        expected_status: Optional[ReminderStatus] = None
    ) -> Optional[Reminder]:
        """
        Apply a partial update to one reminder

        Values of None remove the attribute. ``updated_at`` is always set.

        Args:
            reminder_id: Reminder to update
            changes: Field name -> new value (model types)
            expected_status: Only apply if the stored status still matches

        Returns:
            Updated reminder, or None if the reminder is missing or the
            status condition failed
        """
        changes = dict(changes)
        changes.setdefault('updated_at', utc_now())

        set_parts = []
        remove_parts = []
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}

        for i, (field, value) in enumerate(changes.items()):
            name_ref = f"#u{i}"
            names[name_ref] = field
            if value is None:
                remove_parts.append(name_ref)
            else:
                value_ref = f":u{i}"
                values[value_ref] = serialize_attribute(value)
                set_parts.append(f"{name_ref} = {value_ref}")

        update_expr = "SET " + ", ".join(set_parts)
        if remove_parts:
            update_expr += " REMOVE " + ", ".join(remove_parts)

        condition = "attribute_exists(reminder_id)"
        if expected_status is not None:
            names["#expected_status"] = "status"
            values[":expected_status"] = expected_status.value
            condition += " AND #expected_status = :expected_status"

        try:
            response = self.reminders_table.update_item(
                Key={'reminder_id': reminder_id},
                UpdateExpression=update_expr,
                ConditionExpression=condition,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues='ALL_NEW',
            )
            logger.info(f"Updated reminder: {reminder_id}")
            return Reminder.from_dynamodb_item(response['Attributes'])

        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.info(f"Reminder update skipped (condition failed): {reminder_id}")
                return None
            logger.error(f"Failed to update reminder: {e}")
            raise

    async def count_reminders(
        self,
        owner_id: str,
        status: Optional[ReminderStatus] = None,
        due_on_or_after: Optional[date] = None,
        due_on_or_before: Optional[date] = None,
        include_deleted: bool = False
    ) -> int:
        """Count an owner's reminders matching a filter"""
        key_condition = Key('owner_id').eq(owner_id)

        if due_on_or_after and due_on_or_before:
            key_condition = key_condition & Key('due_date').between(
                due_on_or_after.isoformat(), due_on_or_before.isoformat()
            )
        elif due_on_or_after:
            key_condition = key_condition & Key('due_date').gte(due_on_or_after.isoformat())
        elif due_on_or_before:
            key_condition = key_condition & Key('due_date').lte(due_on_or_before.isoformat())

        filters = []
        if not include_deleted:
            filters.append(Attr('is_deleted').eq(False))
        if status:
            filters.append(Attr('status').eq(status.value))

        try:
            return self._count_all(**self._query_kwargs(OWNER_INDEX, key_condition, filters))
        except ClientError as e:
            logger.error(f"Failed to count reminders: {e}")
            raise

    async def count_by_type(
        self,
        owner_id: str,
        status: ReminderStatus = ReminderStatus.ACTIVE
    ) -> Dict[str, int]:
        """Group an owner's non-deleted reminders with a status by type"""
        filters = [
            Attr('is_deleted').eq(False),
            Attr('status').eq(status.value),
        ]

        try:
            items = self._query_all(
                **self._query_kwargs(OWNER_INDEX, Key('owner_id').eq(owner_id), filters)
            )
        except ClientError as e:
            logger.error(f"Failed to group reminders by type: {e}")
            raise

        return dict(Counter(item['reminder_type'] for item in items))

    async def get_reminders_for_email_notification(
        self,
        today: date,
        day_start: datetime
    ) -> List[Reminder]:
        """
        Get reminders eligible for an email (for the notifier)

        Eligible means: email enabled, active, not deleted, due today or
        earlier, and not already notified since ``day_start``.
        """
        key_condition = (
            Key('status').eq(ReminderStatus.ACTIVE.value)
            & Key('due_date').lte(today.isoformat())
        )
        filters = [
            Attr('send_email').eq(True),
            Attr('is_deleted').eq(False),
            Attr('last_notification_sent').not_exists()
            | Attr('last_notification_sent').lt(to_iso(day_start)),
        ]

        try:
            items = self._query_all(**self._query_kwargs(STATUS_INDEX, key_condition, filters))
        except ClientError as e:
            logger.error(f"Failed to get reminders for email notification: {e}")
            raise

        return [Reminder.from_dynamodb_item(item) for item in items]

    async def mark_email_sent(self, reminder_id: str, sent_at: datetime) -> Optional[Reminder]:
        """Stamp both notification timestamps on a single reminder"""
        return await self.update_reminder(
            reminder_id,
            {
                'last_notification_sent': sent_at,
                'email_sent_at': sent_at,
                'updated_at': sent_at,
            },
        )

    async def reactivate_snoozed_reminders(self, now: datetime) -> int:
        """
        Move snoozed reminders whose snooze has elapsed back to active

        Each item is updated on its own, conditioned on still being snoozed,
        so a user transition made in the meantime is not overwritten.

        Returns:
            Number of reminders reactivated
        """
        key_condition = Key('status').eq(ReminderStatus.SNOOZED.value)
        filters = [
            Attr('is_deleted').eq(False),
            Attr('snoozed_until').lte(to_iso(now)),
        ]

        try:
            items = self._query_all(**self._query_kwargs(STATUS_INDEX, key_condition, filters))
        except ClientError as e:
            logger.error(f"Failed to query snoozed reminders: {e}")
            raise

        reactivated = 0
        for item in items:
            updated = await self.update_reminder(
                item['reminder_id'],
                {
                    'status': ReminderStatus.ACTIVE,
                    'snoozed_until': None,
                    'updated_at': now,
                },
                expected_status=ReminderStatus.SNOOZED,
            )
            if updated is not None:
                reactivated += 1

        return reactivated

    # =========================================================================
    # PETS & USERS (read-only)
    # =========================================================================

    async def get_pet(self, pet_id: str) -> Optional[Pet]:
        """Get pet by ID"""
        try:
            response = self.pets_table.get_item(
                Key={'pet_id': pet_id}
            )

            if 'Item' in response:
                return Pet.from_dynamodb_item(response['Item'])

            return None

        except ClientError as e:
            logger.error(f"Failed to get pet: {e}")
            raise

    async def get_owner(self, user_id: str) -> Optional[Owner]:
        """Get user by ID"""
        try:
            response = self.users_table.get_item(
                Key={'user_id': user_id}
            )

            if 'Item' in response:
                return Owner.from_dynamodb_item(response['Item'])

            return None

        except ClientError as e:
            logger.error(f"Failed to get owner: {e}")
            raise
