"""FastAPI application — main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI

from whatsapp_scheduler.config import get_settings
from whatsapp_scheduler.infrastructure.database import engine, Base
from whatsapp_scheduler.core.logging import configure_logging
from whatsapp_scheduler.core.middleware import REQUEST_ID_HEADER, ScopedCORSMiddleware, setup_middleware
from whatsapp_scheduler.core.exceptions import AppError, global_exception_handler

# Import all models so SQLAlchemy knows about them
from whatsapp_scheduler.domain.models.company import Company
from whatsapp_scheduler.domain.models.client import Client
from whatsapp_scheduler.domain.models.appointment import Appointment
from whatsapp_scheduler.domain.models.scheduling_rule import SchedulingRule
from whatsapp_scheduler.domain.models.message_template import MessageTemplate
from whatsapp_scheduler.domain.models.messaging_provider import MessagingProvider
from whatsapp_scheduler.domain.models.message_send_log import MessageSendLog
from whatsapp_scheduler.domain.models.execution_log import ExecutionLog

# Import routers
from whatsapp_scheduler.interfaces.api.scheduler import SCHEDULER_PATH, router as scheduler_router
from whatsapp_scheduler.interfaces.api.messages import router as messages_router
from whatsapp_scheduler.scheduler.jobs import start_scheduler, stop_scheduler

settings = get_settings()

# Configure logging immediately
configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    logger.info("Starting WhatsApp reminder scheduler...", env=settings.ENVIRONMENT)

    # Create DB tables outside production; there the main application owns the schema
    if settings.ENVIRONMENT != "production":
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified")

    start_scheduler()

    yield

    stop_scheduler()
    logger.info("WhatsApp reminder scheduler stopped")


app = FastAPI(
    title="Agendador de Mensagens WhatsApp",
    description="Lembretes de agendamento via WhatsApp para empresas multi-tenant",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup Middleware (Correlation ID, Logging)
setup_middleware(app)

# Global Exception Handling (AppError needs its own entry; the Exception one runs in ServerErrorMiddleware)
app.add_exception_handler(AppError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(
    ScopedCORSMiddleware,
    exclude_paths=[SCHEDULER_PATH],
    allow_origins=["*"],
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type", REQUEST_ID_HEADER.lower()],
    expose_headers=[REQUEST_ID_HEADER],
)

# Include routers
app.include_router(scheduler_router)
app.include_router(messages_router)


@app.get("/")
def root():
    return {
        "name": "WhatsApp Message Scheduler",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
