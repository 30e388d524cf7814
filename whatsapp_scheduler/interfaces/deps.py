"""
API Dependencies.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from whatsapp_scheduler.application.services.scheduler_auth import AuthOutcome, AuthResult, authenticate
from whatsapp_scheduler.config import Settings, get_settings
from whatsapp_scheduler.core.exceptions import ForbiddenException, UnauthorizedException
from whatsapp_scheduler.domain.civil_time import Clock, utc_now
from whatsapp_scheduler.domain.repositories.execution_log_repository import ExecutionLogRepository
from whatsapp_scheduler.domain.repositories.message_log_repository import MessageLogRepository
from whatsapp_scheduler.domain.repositories.scheduling_repository import SchedulingRepository
from whatsapp_scheduler.infrastructure.database import get_db
from whatsapp_scheduler.infrastructure.repositories.execution_log_repository import SQLAlchemyExecutionLogRepository
from whatsapp_scheduler.infrastructure.repositories.message_log_repository import SQLAlchemyMessageLogRepository
from whatsapp_scheduler.infrastructure.repositories.scheduling_repository import SQLAlchemySchedulingRepository
from whatsapp_scheduler.infrastructure.store_rest import PrivilegedReadProbe
from whatsapp_scheduler.infrastructure.whatsapp_provider import WhatsAppProviderClient


def get_scheduling_repository(db: Session = Depends(get_db)) -> SchedulingRepository:
    """Get scheduling repository instance."""
    return SQLAlchemySchedulingRepository(db)


def get_message_log_repository(db: Session = Depends(get_db)) -> MessageLogRepository:
    """Get send-log repository instance."""
    return SQLAlchemyMessageLogRepository(db)


def get_execution_log_repository(db: Session = Depends(get_db)) -> ExecutionLogRepository:
    """Get execution-log repository instance."""
    return SQLAlchemyExecutionLogRepository(db)


def get_provider_client(settings: Settings = Depends(get_settings)) -> WhatsAppProviderClient:
    return WhatsAppProviderClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS)


def get_privileged_probe(settings: Settings = Depends(get_settings)) -> PrivilegedReadProbe:
    return PrivilegedReadProbe(settings.STORE_REST_URL, config_key=settings.APP_CONFIG_KEY)


def get_clock() -> Clock:
    return utc_now


async def check_scheduler_token(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    probe: PrivilegedReadProbe = Depends(get_privileged_probe),
) -> AuthResult:
    """Run the bearer guard and return its outcome without raising."""
    return await authenticate(authorization, settings.SERVICE_ROLE_KEY, probe.fetch_config_value)


def require_scheduler_token(result: AuthResult = Depends(check_scheduler_token)) -> AuthResult:
    """Same guard for the JSON API routes: 401/403 as AppErrors."""
    if result.outcome is AuthOutcome.MISSING_CREDENTIALS:
        raise UnauthorizedException(result.message)
    if not result.accepted:
        raise ForbiddenException(result.message)
    return result
