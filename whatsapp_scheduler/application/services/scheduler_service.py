"""Scheduler run: one invocation of the reminder pipeline.

Steps, sequential and single-threaded:

1. enabled companies, the active WhatsApp provider, active rules and templates;
2. candidate resolution around ``now`` and dedup-then-insert of PENDING logs;
3. due-set resolution and dispatch through the provider;
4. one ``worker_execution_logs`` row summarizing the run.

``now`` is captured once and threaded through every step. Every outcome,
including the no-op ones, is returned as ``(status_code, body)`` so the HTTP
layer and the in-process job share the same result.
"""

import time
import traceback
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from whatsapp_scheduler.application.services.candidate_service import (
    index_templates,
    queue_candidates,
    resolve_candidates,
)
from whatsapp_scheduler.application.services.dispatch_service import dispatch_logs, resolve_due_logs
from whatsapp_scheduler.config import Settings, get_settings
from whatsapp_scheduler.core.exceptions import AppError, ConfigurationError, StoreQueryError
from whatsapp_scheduler.domain.civil_time import utc_now
from whatsapp_scheduler.domain.enums import Channel, ExecutionStatus
from whatsapp_scheduler.domain.models.messaging_provider import MessagingProvider
from whatsapp_scheduler.domain.repositories.execution_log_repository import ExecutionLogRepository
from whatsapp_scheduler.domain.repositories.scheduling_repository import SchedulingRepository
from whatsapp_scheduler.infrastructure.repositories.execution_log_repository import SQLAlchemyExecutionLogRepository
from whatsapp_scheduler.infrastructure.repositories.message_log_repository import SQLAlchemyMessageLogRepository
from whatsapp_scheduler.infrastructure.repositories.scheduling_repository import SQLAlchemySchedulingRepository
from whatsapp_scheduler.infrastructure.whatsapp_provider import WhatsAppProviderClient

logger = structlog.get_logger(__name__)

T = TypeVar("T")

NO_ENABLED_COMPANIES = "Nenhuma empresa habilitada."
NO_ACTIVE_PROVIDER = "Nenhum provedor WHATSAPP ativo configurado."
NO_ACTIVE_RULES = "Nenhuma regra de envio ativa."
NOTHING_DUE = "Execução concluída sem mensagens a enviar."
RUN_SUCCEEDED = "Worker executado com sucesso."
INTERNAL_ERROR_PREFIX = "Erro interno: "


@dataclass
class SchedulerRunResult:
    status_code: int
    body: Dict[str, Any]


def classify_run(sent: int, failed: int) -> ExecutionStatus:
    if failed > 0 and sent == 0:
        return ExecutionStatus.ERROR
    if failed > 0:
        return ExecutionStatus.PARTIAL
    return ExecutionStatus.SUCCESS


def select_provider(providers: List[MessagingProvider], strict: bool = False) -> MessagingProvider:
    """The single active provider of the run.

    None is a configuration error. More than one is ambiguous: the first by id
    is used and a warning logged, unless ``strict`` turns it into an error.
    """
    if not providers:
        raise ConfigurationError(NO_ACTIVE_PROVIDER)
    if len(providers) > 1:
        ids = [p.id for p in providers]
        if strict:
            raise ConfigurationError(
                "Mais de um provedor WHATSAPP ativo configurado.",
                details={"provider_ids": ids},
            )
        logger.warning("More than one active WhatsApp provider; using the first by id", provider_ids=ids)
    return providers[0]


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _required(message: str, lookup: Callable[..., T], *args: Any) -> T:
    try:
        return lookup(*args)
    except SQLAlchemyError as exc:
        logger.error("Required store lookup failed", lookup=message, error=str(exc))
        raise StoreQueryError(message, details={"cause": str(exc)}) from exc


def _write_execution_log(
    execution_repo: ExecutionLogRepository,
    status: ExecutionStatus,
    duration_ms: int,
    details: Dict[str, Any],
    processed: int = 0,
    sent: int = 0,
    failed: int = 0,
    error_message: Optional[str] = None,
) -> None:
    execution_repo.create(
        {
            "execution_time": utc_now(),
            "status": status.value,
            "messages_processed": processed,
            "messages_sent": sent,
            "messages_failed": failed,
            "execution_duration_ms": duration_ms,
            "details": details,
            "error_message": error_message,
        }
    )


async def _run_pipeline(
    db: Session,
    provider_client: WhatsAppProviderClient,
    settings: Settings,
    now: datetime,
    execution_id: str,
    started: float,
) -> SchedulerRunResult:
    scheduling_repo: SchedulingRepository = SQLAlchemySchedulingRepository(db)
    log_repo = SQLAlchemyMessageLogRepository(db)
    execution_repo = SQLAlchemyExecutionLogRepository(db)
    channel = Channel.WHATSAPP.value
    log = logger.bind(execution_id=execution_id)

    def finish_without_sending(message: str, reason: str, **extra: Any) -> SchedulerRunResult:
        duration = _elapsed_ms(started)
        _write_execution_log(
            execution_repo,
            ExecutionStatus.SUCCESS,
            duration,
            {"execution_id": execution_id, "reason": reason, **extra},
        )
        log.info("Run finished without sending", reason=reason, duration_ms=duration, **extra)
        return SchedulerRunResult(200, {"message": message, **_camel_counts(extra)})

    companies = _required("Erro ao buscar empresas.", scheduling_repo.get_enabled_companies)
    log.info("Enabled companies loaded", count=len(companies))
    if not companies:
        return finish_without_sending(NO_ENABLED_COMPANIES, "no_enabled_companies")

    providers = _required("Erro ao buscar provedor de mensagens.", scheduling_repo.get_active_providers, channel)
    provider = select_provider(providers, strict=settings.STRICT_PROVIDER_SELECTION)
    log.info("Provider selected", provider_id=provider.id, active_providers=len(providers))

    company_ids = [c.id for c in companies]
    rules = _required("Erro ao buscar regras de envio.", scheduling_repo.get_active_rules, company_ids, channel)
    log.info("Active rules loaded", count=len(rules))
    if not rules:
        return finish_without_sending(NO_ACTIVE_RULES, "no_active_rules")

    templates = index_templates(
        _required("Erro ao buscar templates de mensagem.", scheduling_repo.get_active_templates, company_ids, channel)
    )

    candidates = resolve_candidates(
        scheduling_repo,
        rules,
        now,
        window_minutes=settings.CANDIDATE_WINDOW_MINUTES,
        scan_days=settings.APPOINTMENT_SCAN_DAYS,
    )
    inserted = queue_candidates(
        log_repo,
        candidates,
        templates,
        provider,
        dedup_minutes=settings.DEDUP_WINDOW_MINUTES,
    )
    log.info("Reminders queued", candidates=len(candidates), inserted=len(inserted))

    due = resolve_due_logs(log_repo, now, tolerance_minutes=settings.DUE_TOLERANCE_MINUTES)
    log.info(
        "Due set resolved",
        due=len(due.logs),
        pending_count=due.pending_count,
        primary_count=due.primary_count,
        used_fallback=due.used_fallback,
    )
    if not due.logs:
        return finish_without_sending(
            NOTHING_DUE,
            "nothing_due",
            inserted_logs=len(inserted),
            pending_count=due.pending_count,
        )

    result = await dispatch_logs(due.logs, scheduling_repo, log_repo, provider, provider_client, now)

    status = classify_run(result.sent, result.failed)
    duration = _elapsed_ms(started)
    details: Dict[str, Any] = {
        "execution_id": execution_id,
        "inserted_logs": len(inserted),
        "pending_count": due.pending_count,
        "due_set_fallback": due.used_fallback,
        "provider_id": provider.id,
        "provider_ambiguous": len(providers) > 1,
        "timestamp": now.isoformat(),
    }
    if result.failures:
        details["failures"] = result.failures

    try:
        _write_execution_log(
            execution_repo,
            status,
            duration,
            details,
            processed=result.processed,
            sent=result.sent,
            failed=result.failed,
            error_message=f"{result.failed} mensagens falharam" if result.failed else None,
        )
    except SQLAlchemyError:
        # Messages were already sent; a missing summary row must not turn the run into a 500
        db.rollback()
        log.exception("Could not write execution log")

    log.info(
        "Run finished",
        status=status.value,
        inserted=len(inserted),
        processed=result.processed,
        sent=result.sent,
        failed=result.failed,
        duration_ms=duration,
    )
    return SchedulerRunResult(
        200,
        {
            "message": RUN_SUCCEEDED,
            "execution_id": execution_id,
            "execution_time": now.isoformat(),
            "execution_duration_ms": duration,
            "insertedLogsCount": len(inserted),
            "processedLogsCount": result.processed,
            "sentCount": result.sent,
            "failedCount": result.failed,
            "status": status.value,
        },
    )


def _camel_counts(extra: Dict[str, Any]) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    if "inserted_logs" in extra:
        body["insertedLogsCount"] = extra["inserted_logs"]
    if "pending_count" in extra:
        body["pendingCountInDB"] = extra["pending_count"]
    return body


def _record_failure(db: Session, execution_id: str, duration_ms: int, error_message: str, stack: str) -> None:
    """Best-effort ERROR row; a failure here is logged and never replaces the original error."""
    try:
        db.rollback()
        _write_execution_log(
            SQLAlchemyExecutionLogRepository(db),
            ExecutionStatus.ERROR,
            duration_ms,
            {"execution_id": execution_id, "error_stack": stack},
            error_message=error_message,
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record failed run", execution_id=execution_id)


async def run_scheduler(
    db: Session,
    provider_client: Optional[WhatsAppProviderClient] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> SchedulerRunResult:
    """Run the whole pipeline once and never raise."""
    settings = settings or get_settings()
    provider_client = provider_client or WhatsAppProviderClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS)
    now = now or utc_now()
    execution_id = str(uuid.uuid4())
    started = time.perf_counter()

    logger.info("Scheduler run started", execution_id=execution_id, now=now.isoformat())
    try:
        return await _run_pipeline(db, provider_client, settings, now, execution_id, started)
    except AppError as exc:
        duration = _elapsed_ms(started)
        logger.error("Scheduler run aborted", execution_id=execution_id, error=exc.message, details=exc.details)
        _record_failure(db, execution_id, duration, exc.message, traceback.format_exc())
        return SchedulerRunResult(
            exc.status_code,
            {"error": exc.message, "execution_id": execution_id, "execution_duration_ms": duration},
        )
    except Exception as exc:
        duration = _elapsed_ms(started)
        logger.exception("Scheduler run failed", execution_id=execution_id)
        message = str(exc) or exc.__class__.__name__
        _record_failure(db, execution_id, duration, message, traceback.format_exc())
        return SchedulerRunResult(
            500,
            {
                "error": INTERNAL_ERROR_PREFIX + message,
                "execution_id": execution_id,
                "execution_duration_ms": duration,
            },
        )
