"""
PurrfectCare Backend - Reminder Model

Purpose: Reminder model for pet care obligations, the per-type default table,
and the input/query/result models used by the reminder services.
"""

from typing import Annotated, Optional, Dict, Any, List
from datetime import date, datetime
from types import MappingProxyType
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from enum import Enum

from purrfectcare.config import settings
from purrfectcare.utils.datetime_utils import from_iso, parse_date, to_iso, utc_now


DUE_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DEFAULT_DUE_TIME = "09:00"


class ReminderType(str, Enum):
    """Reminder type"""
    FEEDING_SCHEDULE = "feeding_schedule"
    VACCINATION_DUE = "vaccination_due"
    MEDICATION = "medication"
    VET_CHECKUP = "vet_checkup"
    PREVENTIVE_CARE = "preventive_care"
    GROOMING = "grooming"
    HYGIENE_DENTAL = "hygiene_dental"
    CUSTOM = "custom"


class ReminderStatus(str, Enum):
    """Reminder status"""
    ACTIVE = "active"
    COMPLETED = "completed"
    SNOOZED = "snoozed"
    DISMISSED = "dismissed"


class ReminderFrequency(str, Enum):
    """Reminder frequency"""
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ReminderPriority(str, Enum):
    """Reminder priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


PRIORITY_RANK = {
    ReminderPriority.LOW: 0,
    ReminderPriority.MEDIUM: 1,
    ReminderPriority.HIGH: 2,
    ReminderPriority.CRITICAL: 3,
}


class RelatedRecordType(str, Enum):
    """Upstream record a reminder was generated from"""
    VACCINATION = "Vaccination"
    MEDICAL_RECORD = "MedicalRecord"
    CARE_LOG = "CareLog"


class ReminderTypeDefaults(BaseModel):
    """Defaults applied on create before caller fields are overlaid"""

    model_config = ConfigDict(frozen=True)

    priority: ReminderPriority
    frequency: ReminderFrequency
    send_email: bool


REMINDER_DEFAULTS = MappingProxyType({
    ReminderType.FEEDING_SCHEDULE: ReminderTypeDefaults(
        priority=ReminderPriority.LOW, frequency=ReminderFrequency.DAILY, send_email=False),
    ReminderType.VACCINATION_DUE: ReminderTypeDefaults(
        priority=ReminderPriority.CRITICAL, frequency=ReminderFrequency.ONCE, send_email=True),
    ReminderType.MEDICATION: ReminderTypeDefaults(
        priority=ReminderPriority.CRITICAL, frequency=ReminderFrequency.DAILY, send_email=True),
    ReminderType.VET_CHECKUP: ReminderTypeDefaults(
        priority=ReminderPriority.MEDIUM, frequency=ReminderFrequency.YEARLY, send_email=False),
    ReminderType.PREVENTIVE_CARE: ReminderTypeDefaults(
        priority=ReminderPriority.MEDIUM, frequency=ReminderFrequency.MONTHLY, send_email=False),
    ReminderType.GROOMING: ReminderTypeDefaults(
        priority=ReminderPriority.LOW, frequency=ReminderFrequency.WEEKLY, send_email=False),
    ReminderType.HYGIENE_DENTAL: ReminderTypeDefaults(
        priority=ReminderPriority.LOW, frequency=ReminderFrequency.WEEKLY, send_email=False),
    ReminderType.CUSTOM: ReminderTypeDefaults(
        priority=ReminderPriority.MEDIUM, frequency=ReminderFrequency.ONCE, send_email=False),
})


def _coerce_date(value):
    if isinstance(value, (str, datetime, date)) or value is None:
        return parse_date(value)
    return value


# Accepts dates, ISO date strings and timestamps (date part kept)
FlexDate = Annotated[date, BeforeValidator(_coerce_date)]


class ReminderDetails(BaseModel):
    """Type-specific extras; rendered in emails, otherwise opaque"""

    model_config = ConfigDict(extra="ignore")

    # Feeding schedule
    food_type: Optional[str] = None
    quantity: Optional[str] = None
    # Medication
    medication_name: Optional[str] = None
    dosage: Optional[str] = None
    # Vet checkup
    vet_name: Optional[str] = None
    clinic: Optional[str] = None
    # Vaccination
    vaccine_name: Optional[str] = None

    def to_item(self) -> Dict[str, str]:
        return {k: v for k, v in self.model_dump().items() if v is not None}


class Reminder(BaseModel):
    """Reminder model"""

    # Primary key
    reminder_id: str = Field(..., description="Unique reminder identifier")

    # Foreign keys (immutable)
    owner_id: str = Field(..., description="Owner (user) ID")
    pet_id: str = Field(..., description="Pet ID")

    # Reminder data
    title: str = Field(..., min_length=1, description="Reminder title")
    description: Optional[str] = None
    reminder_type: ReminderType

    # Scheduling
    due_date: FlexDate
    due_time: str = Field(default=DEFAULT_DUE_TIME, pattern=DUE_TIME_PATTERN)
    frequency: ReminderFrequency = ReminderFrequency.ONCE
    is_recurring: bool = False
    recurring_end_date: Optional[FlexDate] = None

    # Status and priority
    status: ReminderStatus = ReminderStatus.ACTIVE
    priority: ReminderPriority = ReminderPriority.MEDIUM
    snoozed_until: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None

    # Notification
    send_email: bool = False
    last_notification_sent: Optional[datetime] = None
    email_sent_at: Optional[datetime] = None

    # Provenance
    related_record_id: Optional[str] = None
    related_record_type: Optional[RelatedRecordType] = None

    details: ReminderDetails = Field(default_factory=ReminderDetails)

    # Soft delete
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_dynamodb_item(self) -> Dict[str, Any]:
        """Convert to DynamoDB item"""
        item = {
            'reminder_id': self.reminder_id,
            'owner_id': self.owner_id,
            'pet_id': self.pet_id,
            'title': self.title,
            'reminder_type': self.reminder_type.value,
            'due_date': self.due_date.isoformat(),
            'due_time': self.due_time,
            'frequency': self.frequency.value,
            'is_recurring': self.is_recurring,
            'status': self.status.value,
            'priority': self.priority.value,
            'send_email': self.send_email,
            'details': self.details.to_item(),
            'is_deleted': self.is_deleted,
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at),
        }

        # Add optional fields
        if self.description:
            item['description'] = self.description
        if self.recurring_end_date:
            item['recurring_end_date'] = self.recurring_end_date.isoformat()
        if self.related_record_id:
            item['related_record_id'] = self.related_record_id
        if self.related_record_type:
            item['related_record_type'] = self.related_record_type.value
        for field in TIMESTAMP_FIELDS:
            value = getattr(self, field)
            if value:
                item[field] = to_iso(value)

        return item

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> 'Reminder':
        """Create from DynamoDB item"""
        return cls(
            reminder_id=item['reminder_id'],
            owner_id=item['owner_id'],
            pet_id=item['pet_id'],
            title=item['title'],
            description=item.get('description'),
            reminder_type=item['reminder_type'],
            due_date=item['due_date'],
            due_time=item.get('due_time', DEFAULT_DUE_TIME),
            frequency=item.get('frequency', ReminderFrequency.ONCE),
            is_recurring=bool(item.get('is_recurring', False)),
            recurring_end_date=item.get('recurring_end_date'),
            status=item.get('status', ReminderStatus.ACTIVE),
            priority=item.get('priority', ReminderPriority.MEDIUM),
            snoozed_until=from_iso(item.get('snoozed_until')),
            completed_at=from_iso(item.get('completed_at')),
            dismissed_at=from_iso(item.get('dismissed_at')),
            send_email=bool(item.get('send_email', False)),
            last_notification_sent=from_iso(item.get('last_notification_sent')),
            email_sent_at=from_iso(item.get('email_sent_at')),
            related_record_id=item.get('related_record_id'),
            related_record_type=item.get('related_record_type'),
            details=ReminderDetails(**(item.get('details') or {})),
            is_deleted=bool(item.get('is_deleted', False)),
            deleted_at=from_iso(item.get('deleted_at')),
            created_at=from_iso(item['created_at']),
            updated_at=from_iso(item.get('updated_at') or item['created_at']),
        )


TIMESTAMP_FIELDS = (
    'snoozed_until',
    'completed_at',
    'dismissed_at',
    'last_notification_sent',
    'email_sent_at',
    'deleted_at',
)


def serialize_attribute(value: Any) -> Any:
    """Convert a single model value to its DynamoDB representation"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, ReminderDetails):
        return value.to_item()
    return value


# =============================================================================
# INPUT MODELS
# =============================================================================

class ReminderCreate(BaseModel):
    """Caller-supplied fields for a new reminder.

    ``priority``, ``frequency`` and ``send_email`` stay ``None`` when not
    supplied so that the per-type defaults can fill them in.
    """

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    reminder_type: ReminderType
    due_date: FlexDate
    due_time: str = Field(default=DEFAULT_DUE_TIME, pattern=DUE_TIME_PATTERN)
    frequency: Optional[ReminderFrequency] = None
    recurring_end_date: Optional[FlexDate] = None
    priority: Optional[ReminderPriority] = None
    send_email: Optional[bool] = None
    related_record_id: Optional[str] = None
    related_record_type: Optional[RelatedRecordType] = None
    details: ReminderDetails = Field(default_factory=ReminderDetails)


class ReminderUpdate(BaseModel):
    """Partial update; only fields explicitly set are applied"""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    reminder_type: Optional[ReminderType] = None
    due_date: Optional[FlexDate] = None
    due_time: Optional[str] = Field(None, pattern=DUE_TIME_PATTERN)
    frequency: Optional[ReminderFrequency] = None
    recurring_end_date: Optional[FlexDate] = None
    priority: Optional[ReminderPriority] = None
    send_email: Optional[bool] = None
    details: Optional[ReminderDetails] = None


# Fields of ReminderUpdate that may be cleared by sending null
NULLABLE_UPDATE_FIELDS = frozenset({"description", "recurring_end_date"})


# =============================================================================
# QUERY / RESULT MODELS
# =============================================================================

class ReminderState(BaseModel):
    """Read-only facts computed at read time"""
    is_overdue: bool
    is_due_today: bool
    is_snoozed: bool


class ReminderQuery(BaseModel):
    """Filters, sort and pagination for reminder listings"""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    reminder_type: Optional[ReminderType] = None
    status: Optional[ReminderStatus] = None
    priority: Optional[ReminderPriority] = None
    sort_by: str = "due_date"
    sort_order: str = Field(default="asc", pattern=r"^(asc|desc)$")
    include_deleted: bool = False
    include_completed: bool = False
    # Owner-wide listing only
    due_today: bool = False
    upcoming: bool = False
    overdue: bool = False


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class ReminderPage(BaseModel):
    reminders: List[Reminder]
    pagination: Pagination


class ReminderStats(BaseModel):
    """Per-owner dashboard counters"""
    total_active: int = 0
    due_today: int = 0
    overdue: int = 0
    upcoming_week: int = 0
    completed: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
