"""
PurrfectCare Backend - Configuration Module

Purpose: Centralized configuration management using Pydantic Settings.
Loads from environment variables with validation and type checking.

Testing:
    from purrfectcare.config import settings
    print(settings.EMAIL_PROVIDER)  # ses, smtp or console

AWS Deployment Notes:
    - Set environment variables in ECS task definition or Lambda configuration
    - Never hardcode AWS credentials; use IAM roles
    - Use AWS Systems Manager Parameter Store or Secrets Manager for SMTP passwords
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # =============================================================================
    # CORE APPLICATION
    # =============================================================================
    ENVIRONMENT: Literal["local", "development", "staging", "production"] = "local"
    DEBUG: bool = True
    APP_NAME: str = "PurrfectCare"
    APP_URL: str = "http://localhost:3000"
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:8080"]
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return json.loads(v)
        return v

    # =============================================================================
    # AWS CONFIGURATION
    # =============================================================================
    AWS_REGION: str = "us-east-1"

    # AWS credentials (only for local testing; use IAM roles in production)
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None

    # =============================================================================
    # DATABASE CONFIGURATION
    # =============================================================================
    USE_DYNAMODB_LOCAL: bool = True
    DYNAMODB_LOCAL_ENDPOINT: str = "http://localhost:8000"

    DYNAMODB_TABLE_REMINDERS: str = "purrfectcare-reminders-local"
    DYNAMODB_TABLE_PETS: str = "purrfectcare-pets-local"
    DYNAMODB_TABLE_USERS: str = "purrfectcare-users-local"

    DYNAMODB_BILLING_MODE: Literal["PAY_PER_REQUEST", "PROVISIONED"] = "PAY_PER_REQUEST"

    # =============================================================================
    # REMINDERS & SCHEDULING
    # =============================================================================
    SCHEDULER_PROVIDER: Literal["apscheduler", "eventbridge"] = "apscheduler"
    ENABLE_SCHEDULER: bool = True

    # Cron fields (UTC). Hourly dispatch also runs the snooze sweep.
    SCHEDULER_DISPATCH_MINUTE: int = Field(default=0, ge=0, le=59)
    SCHEDULER_DIGEST_HOURS: str = "8,18"
    SCHEDULER_SNOOZE_SWEEP_MINUTES: int = Field(default=15, gt=0, le=60)

    DEFAULT_SNOOZE_MINUTES: int = Field(default=60, gt=0)
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Email/Notification
    EMAIL_PROVIDER: Literal["ses", "smtp", "console"] = "console"
    EMAIL_FROM_ADDRESS: str = "noreply@purrfectcare.example.com"
    EMAIL_SEND_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    SES_REGION: Optional[str] = None
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True

    # =============================================================================
    # LOGGING & MONITORING
    # =============================================================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    # =============================================================================
    # FEATURE FLAGS
    # =============================================================================
    ENABLE_REMINDERS: bool = True
    ENABLE_EMAIL_NOTIFICATIONS: bool = True

    # =============================================================================
    # COMPUTED PROPERTIES
    # =============================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT == "production"

    @property
    def dynamodb_endpoint(self) -> Optional[str]:
        """Get DynamoDB endpoint (None for AWS service, URL for local)"""
        if self.USE_DYNAMODB_LOCAL:
            return self.DYNAMODB_LOCAL_ENDPOINT
        return None

    @property
    def digest_hours_list(self) -> List[int]:
        """Get the extra daily dispatch hours as integers"""
        return [int(h.strip()) for h in self.SCHEDULER_DIGEST_HOURS.split(",") if h.strip()]


# Global settings instance
settings = Settings()


# Validation on startup
def validate_settings():
    """Validate required settings based on providers"""
    errors = []

    # Validate email provider
    if settings.EMAIL_PROVIDER == "smtp" and not settings.SMTP_HOST:
        errors.append("SMTP_HOST is required when EMAIL_PROVIDER=smtp")

    if settings.EMAIL_PROVIDER == "smtp" and bool(settings.SMTP_USERNAME) != bool(settings.SMTP_PASSWORD):
        errors.append("SMTP_USERNAME and SMTP_PASSWORD must be set together")

    if settings.EMAIL_PROVIDER == "ses" and not (settings.SES_REGION or settings.AWS_REGION):
        errors.append("SES_REGION or AWS_REGION is required when EMAIL_PROVIDER=ses")

    # Validate scheduler cadence
    try:
        hours = settings.digest_hours_list
    except ValueError:
        errors.append(f"SCHEDULER_DIGEST_HOURS is not a list of hours: {settings.SCHEDULER_DIGEST_HOURS}")
    else:
        bad_hours = [h for h in hours if h < 0 or h > 23]
        if bad_hours:
            errors.append(f"SCHEDULER_DIGEST_HOURS out of range: {bad_hours}")

    if settings.is_production and settings.EMAIL_PROVIDER == "console":
        errors.append("EMAIL_PROVIDER=console is not allowed in production")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)


def config_summary() -> Dict[str, Any]:
    """Non-secret settings that shape reminder delivery (logged at startup, shown by /health)"""
    return {
        "environment": settings.ENVIRONMENT,
        "database": "dynamodb-local" if settings.USE_DYNAMODB_LOCAL else "dynamodb",
        "scheduler": settings.SCHEDULER_PROVIDER,
        "scheduler_enabled": settings.ENABLE_SCHEDULER,
        "dispatch_minute": settings.SCHEDULER_DISPATCH_MINUTE,
        "digest_hours": settings.SCHEDULER_DIGEST_HOURS,
        "snooze_sweep_minutes": settings.SCHEDULER_SNOOZE_SWEEP_MINUTES,
        "email": settings.EMAIL_PROVIDER,
        "email_notifications": settings.ENABLE_EMAIL_NOTIFICATIONS,
    }
