"""
PurrfectCare Backend - FastAPI Application Entry Point

Purpose: Reminder API, middleware, error mapping, and the in-process
reminder scheduler lifecycle.

Testing:
    uvicorn purrfectcare.main:app --reload --port 8080 --app-dir backend
    curl http://localhost:8080/health
    Open http://localhost:8080/docs for interactive API documentation

AWS Deployment Notes:
    - Runs on ECS Fargate; health check endpoint used by ALB target group
    - With SCHEDULER_PROVIDER=eventbridge the scheduler runs in Lambda instead
    - Structured logging for CloudWatch
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from contextlib import asynccontextmanager
import logging
import time
import sys
from typing import Dict, Any

from purrfectcare.config import config_summary, settings, validate_settings
from purrfectcare.api.v1 import reminders
from purrfectcare.dependencies import get_db_service
from purrfectcare.errors import ReminderError


# Configure logging
def setup_logging():
    """Configure structured logging"""
    log_level = getattr(logging, settings.LOG_LEVEL)

    if settings.LOG_FORMAT == "json":
        # JSON logging for production (CloudWatch)
        import json
        import datetime

        class JSONFormatter(logging.Formatter):
            def format(self, record):
                log_data = {
                    "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                    "module": record.module,
                    "function": record.funcName,
                    "line": record.lineno,
                }
                if record.exc_info:
                    log_data["exception"] = self.formatException(record.exc_info)
                return json.dumps(log_data)

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
    else:
        # Text logging for local development
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        handlers=[handler],
        force=True
    )

    # Reduce noise from boto3/botocore and the scheduler
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)


setup_logging()
logger = logging.getLogger(__name__)


# Lifespan context manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager - runs on startup and shutdown
    """
    # Startup
    logger.info("Starting PurrfectCare Backend")
    app.state.reminder_scheduler = None

    try:
        # Validate configuration
        validate_settings()
        logger.info("Configuration validated successfully")

        logger.info(f"Configuration: {config_summary()}")

        # Verify tables exist
        db_service = get_db_service()
        await db_service.verify_tables()
        logger.info("Database tables verified")

        # Start the in-process scheduler if using apscheduler
        if settings.SCHEDULER_PROVIDER == "apscheduler" and settings.ENABLE_SCHEDULER:
            from purrfectcare.workers.scheduler import build_reminder_scheduler
            app.state.reminder_scheduler = build_reminder_scheduler(db=db_service)
            app.state.reminder_scheduler.start()
        elif settings.SCHEDULER_PROVIDER == "eventbridge":
            logger.info("Scheduler: Using EventBridge (production)")

        logger.info(f"PurrfectCare Backend ready - Environment: {settings.ENVIRONMENT}")

    except Exception as e:
        logger.error(f"Failed to start application: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Shutting down PurrfectCare Backend")

    if app.state.reminder_scheduler is not None:
        await app.state.reminder_scheduler.shutdown()


# Create FastAPI application
app = FastAPI(
    title="PurrfectCare API",
    description="Pet care reminders with recurrence, snoozing and email notifications",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE
# =============================================================================

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip compression
app.add_middleware(GZipMiddleware, minimum_size=1000)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()

    logger.info(f"Request: {request.method} {request.url.path}")

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Response: {request.method} {request.url.path} "
        f"Status: {response.status_code} Duration: {duration:.3f}s"
    )

    response.headers["X-Process-Time"] = str(duration)

    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(ReminderError)
async def reminder_exception_handler(request: Request, exc: ReminderError):
    """Map domain errors to their HTTP status"""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message}")
    else:
        logger.info(f"{exc.error_code}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": jsonable_encoder(exc.details),
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed messages"""
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "detail": jsonable_encoder(exc.errors()),
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    if settings.DEBUG:
        # Return detailed error in debug mode
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal Server Error",
                "detail": str(exc),
                "type": type(exc).__name__,
            }
        )
    else:
        # Return generic error in production
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred. Please try again later."
            }
        )


# =============================================================================
# ROUTES
# =============================================================================

# Health check endpoint (for ALB/ECS)
@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint for load balancers and monitoring
    """
    return {
        "status": "healthy",
        "version": "1.0.0",
        "config": config_summary(),
    }


# Root endpoint
@app.get("/", tags=["Root"])
async def root() -> Dict[str, str]:
    """
    Root endpoint with API information
    """
    return {
        "service": "PurrfectCare API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


# Include API v1 routers
app.include_router(
    reminders.router,
    prefix=settings.API_V1_PREFIX,
    tags=["Reminders"]
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "purrfectcare.main:app",
        host="0.0.0.0",
        port=8080,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
