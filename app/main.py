"""
OfficeSphere API - Main Application Entry Point.

One service for the three portals of the office:
- Admin: people, clients, projects, tasks, attendance review and reports
- Employee: attendance self-service, tasks with time tracking, daily reports
- Client: project requests, progress, feedback and milestone approval
- Meetings and notifications for everyone, pushed live over WebSocket
"""

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from app.api.routes import (
    admin,
    attendance,
    auth,
    client_portal,
    clients,
    employee_portal,
    employees,
    meetings,
    notifications,
    projects,
    realtime,
    reports,
    tasks,
)
from app.core.cache import RedisClient
from app.core.config import settings
from app.core.database import create_db_and_tables, engine
from app.core.exceptions import register_exception_handlers
from app.core.kafka import KafkaProducer
from app.core.logging import configure_logging, get_logger
from app.core.seed import ensure_default_admin

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    configure_logging()
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})...")

    logger.info("Creating database and tables...")
    create_db_and_tables()
    logger.info("Database and tables created successfully")

    if settings.SEED_DEFAULT_ADMIN:
        with Session(engine) as session:
            ensure_default_admin(session)

    logger.info("Initializing Redis client...")
    if RedisClient.ping():
        logger.info("Redis client connected successfully")
    else:
        logger.warning("Redis unavailable, dashboard caching will be disabled")

    logger.info("Initializing Kafka producer...")
    await KafkaProducer.start()

    logger.info(f"{settings.APP_NAME} startup complete")

    yield

    # Shutdown
    logger.info(f"{settings.APP_NAME} shutting down...")

    logger.info("Stopping Kafka producer...")
    await KafkaProducer.stop()
    logger.info("Kafka producer stopped")

    logger.info("Closing Redis client...")
    RedisClient.close()
    logger.info("Redis client closed")

    logger.info(f"{settings.APP_NAME} shutdown complete")


# Initialize FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Office management API: people, projects, tasks, attendance and meetings",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

register_exception_handlers(app)


# Portal routers
admin_api = APIRouter(prefix="/admin")
for router in (
    admin.router,
    employees.router,
    clients.router,
    projects.router,
    tasks.router,
    attendance.admin_router,
    notifications.admin_router,
    reports.router,
):
    admin_api.include_router(router)

employee_api = APIRouter(prefix="/employee")
for router in (
    employee_portal.router,
    attendance.employee_router,
    notifications.employee_router,
):
    employee_api.include_router(router)

client_api = APIRouter(prefix="/client")
for router in (client_portal.router, notifications.client_router):
    client_api.include_router(router)

api = APIRouter(prefix="/api")
for router in (auth.router, admin_api, employee_api, client_api, meetings.router):
    api.include_router(router)

app.include_router(api)
app.include_router(realtime.router)


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint for container orchestration and monitoring.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/ready", tags=["health"])
async def readiness_check():
    """
    Readiness check endpoint for Kubernetes.

    The database must answer; Redis and Kafka are reported but optional.
    """
    database_ready = True
    try:
        with engine.connect() as connection:
            connection.exec_driver_sql("SELECT 1")
    except Exception as e:
        logger.error(f"Readiness check failed to reach the database: {e}")
        database_ready = False

    redis_ready = RedisClient.ping()
    kafka_ready = KafkaProducer.is_started()

    return {
        "status": "ready" if database_ready else "not_ready",
        "checks": {
            "database": "ok" if database_ready else "error",
            "redis": "ok" if redis_ready else "disabled",
            "kafka_producer": "ok" if kafka_ready else "disabled",
        },
    }


@app.get("/", tags=["root"])
async def root():
    """
    Root endpoint with service information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
    }
