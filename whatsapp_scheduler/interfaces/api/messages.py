"""WhatsApp API routes — send queue, run history, scheduler status and provider test."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from whatsapp_scheduler.application.services.message_queue_service import list_queue, send_provider_test
from whatsapp_scheduler.config import Settings, get_settings
from whatsapp_scheduler.core.exceptions import EntityNotFoundException
from whatsapp_scheduler.domain.civil_time import Clock, to_civil
from whatsapp_scheduler.domain.enums import SendStatus
from whatsapp_scheduler.domain.repositories.execution_log_repository import ExecutionLogRepository
from whatsapp_scheduler.domain.repositories.message_log_repository import MessageLogRepository
from whatsapp_scheduler.domain.repositories.scheduling_repository import SchedulingRepository
from whatsapp_scheduler.domain.schemas.message import (
    ExecutionLogRead,
    MessageQueueResponse,
    MessageSendLogRead,
    ProviderTestRequest,
    ProviderTestResponse,
)
from whatsapp_scheduler.infrastructure.whatsapp_provider import WhatsAppProviderClient
from whatsapp_scheduler.interfaces.deps import (
    get_clock,
    get_execution_log_repository,
    get_message_log_repository,
    get_provider_client,
    get_scheduling_repository,
    require_scheduler_token,
)

router = APIRouter(
    prefix="/api/whatsapp",
    tags=["WhatsApp"],
    dependencies=[Depends(require_scheduler_token)],
)


@router.get("/messages", response_model=MessageQueueResponse)
def list_messages(
    company_id: str,
    status: Optional[SendStatus] = None,
    date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="Data civil (YYYY-MM-DD)"),
    log_repo: MessageLogRepository = Depends(get_message_log_repository),
    scheduling_repo: SchedulingRepository = Depends(get_scheduling_repository),
    clock: Clock = Depends(get_clock),
):
    """Queue of one company, ordered by scheduled time."""
    return list_queue(
        log_repo,
        scheduling_repo,
        company_id,
        clock(),
        status_filter=status.value if status else None,
        civil_date=date,
    )


@router.get("/messages/{log_id}", response_model=MessageSendLogRead)
def get_message(
    log_id: str,
    log_repo: MessageLogRepository = Depends(get_message_log_repository),
    scheduling_repo: SchedulingRepository = Depends(get_scheduling_repository),
):
    log = log_repo.get_by_id(log_id)
    if log is None:
        raise EntityNotFoundException("Mensagem não encontrada", details={"id": log_id})

    item = MessageSendLogRead.model_validate(log)
    if log.client_id:
        client = scheduling_repo.get_clients_by_ids([log.client_id]).get(log.client_id)
        if client is not None:
            item.client_name = client.name
            item.client_phone = client.phone
    return item


@router.get("/executions", response_model=list[ExecutionLogRead])
def list_executions(
    limit: int = Query(20, ge=1, le=200),
    execution_repo: ExecutionLogRepository = Depends(get_execution_log_repository),
):
    """Most recent scheduler runs first."""
    return [ExecutionLogRead.model_validate(e) for e in execution_repo.latest(limit)]


@router.post("/test", response_model=ProviderTestResponse)
async def test_provider(
    body: ProviderTestRequest,
    scheduling_repo: SchedulingRepository = Depends(get_scheduling_repository),
    provider_client: WhatsAppProviderClient = Depends(get_provider_client),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
):
    """Send a test message through the active provider (no send log is written)."""
    return await send_provider_test(
        scheduling_repo,
        provider_client,
        body.phone,
        clock(),
        message=body.message,
        strict=settings.STRICT_PROVIDER_SELECTION,
    )


@router.get("/scheduler-status")
def scheduler_status(
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
):
    """In-process scheduler state and next run time."""
    from whatsapp_scheduler.scheduler.jobs import scheduler

    jobs = []
    for job in scheduler.get_jobs():
        next_run = job.next_run_time
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": next_run.strftime("%d/%m/%Y %H:%M") if next_run else "N/A",
            "next_run_iso": next_run.isoformat() if next_run else None,
        })

    return {
        "enabled": settings.SCHEDULER_ENABLED,
        "running": scheduler.running,
        "current_time": to_civil(clock()).strftime("%d/%m/%Y %H:%M"),
        "interval_minutes": settings.SCHEDULER_INTERVAL_MINUTES,
        "jobs": jobs,
    }
