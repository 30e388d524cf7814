"""Dispatch of due reminders.

Due-set resolution is two-tier: a primary query compares the stored
``scheduled_for`` text against ``now + tolerance`` rendered in the same
Brasília form. Rows written with another representation (UTC, ``Z``, no
offset) do not compare correctly as text, so whenever the PENDING count in
storage disagrees with the primary result every PENDING row is loaded and
filtered in process on parsed instants instead.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx

from whatsapp_scheduler.application.services.candidate_service import index_templates
from whatsapp_scheduler.application.services.message_template_service import render_reminder_text
from whatsapp_scheduler.domain.enums import Channel, SendStatus
from whatsapp_scheduler.domain.models.message_send_log import MessageSendLog
from whatsapp_scheduler.domain.models.messaging_provider import MessagingProvider
from whatsapp_scheduler.domain.phone import to_e164_brazil
from whatsapp_scheduler.domain.repositories.message_log_repository import MessageLogRepository
from whatsapp_scheduler.domain.repositories.scheduling_repository import SchedulingRepository
from whatsapp_scheduler.infrastructure.whatsapp_provider import WhatsAppProviderClient

logger = logging.getLogger(__name__)

INVALID_PHONE_ERROR = "Telefone inválido ou ausente"


@dataclass
class DueSet:
    logs: List[MessageSendLog]
    pending_count: int
    primary_count: int
    used_fallback: bool = False


@dataclass
class DispatchResult:
    processed: int = 0
    sent: int = 0
    failed: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)


def is_due(log: MessageSendLog, deadline: datetime) -> bool:
    scheduled = log.scheduled_at
    if scheduled is None:
        logger.warning(f"Log {log.id} has an unparseable scheduled_for: {log.scheduled_for!r}")
        return False
    return scheduled <= deadline


def resolve_due_logs(log_repo: MessageLogRepository, now: datetime, tolerance_minutes: int = 2) -> DueSet:
    deadline = now + timedelta(minutes=tolerance_minutes)
    primary = log_repo.get_pending_until(deadline)
    pending_count = log_repo.count_pending()

    if pending_count == len(primary):
        return DueSet(logs=primary, pending_count=pending_count, primary_count=len(primary))

    logger.info(
        f"PENDING count ({pending_count}) differs from primary due query ({len(primary)}); "
        "re-checking every PENDING row in process"
    )
    verified = [log for log in log_repo.get_all_pending() if is_due(log, deadline)]
    if len(verified) != len(primary):
        logger.warning(f"In-process due check found {len(verified)} rows, primary query {len(primary)}")
    return DueSet(logs=verified, pending_count=pending_count, primary_count=len(primary), used_fallback=True)


async def dispatch_logs(
    logs: List[MessageSendLog],
    scheduling_repo: SchedulingRepository,
    log_repo: MessageLogRepository,
    provider: MessagingProvider,
    provider_client: WhatsAppProviderClient,
    now: datetime,
) -> DispatchResult:
    """Send every due log through ``provider`` and record SENT/FAILED.

    Failures are terminal: the log leaves PENDING and is never selected again.
    """
    result = DispatchResult()
    if not logs:
        return result

    company_ids = {log.company_id for log in logs}
    companies = scheduling_repo.get_companies_by_ids(company_ids)
    clients = scheduling_repo.get_clients_by_ids(log.client_id for log in logs if log.client_id)
    appointments = scheduling_repo.get_appointments_by_ids(log.appointment_id for log in logs if log.appointment_id)
    templates = index_templates(scheduling_repo.get_active_templates(company_ids, Channel.WHATSAPP.value))

    for log in logs:
        client = clients.get(log.client_id) if log.client_id else None
        phone = to_e164_brazil(client.phone if client else None)
        result.processed += 1

        if phone is None:
            logger.warning(f"Log {log.id}: invalid or missing phone for client {log.client_id} (company {log.company_id})")
            _record(log_repo, log, SendStatus.FAILED, now, {"error": INVALID_PHONE_ERROR}, result)
            continue

        text = render_reminder_text(
            templates.get((log.company_id, log.message_kind_id)),
            client,
            companies.get(log.company_id),
            appointments.get(log.appointment_id) if log.appointment_id else None,
        )

        try:
            response = await provider_client.send(provider, phone, text)
        except httpx.HTTPError as exc:
            logger.error(f"Log {log.id}: provider request failed: {exc}")
            _record(log_repo, log, SendStatus.FAILED, now, {"error": str(exc) or exc.__class__.__name__}, result)
            continue
        except ValueError as exc:
            logger.error(f"Log {log.id}: could not build provider request: {exc}")
            _record(log_repo, log, SendStatus.FAILED, now, {"error": str(exc)}, result)
            continue

        status = SendStatus.SENT if response.ok else SendStatus.FAILED
        _record(log_repo, log, status, now, response.body, result)

    logger.info(f"Dispatch finished: processed={result.processed} sent={result.sent} failed={result.failed}")
    return result


def _record(
    log_repo: MessageLogRepository,
    log: MessageSendLog,
    status: SendStatus,
    now: datetime,
    provider_response: Optional[Any],
    result: DispatchResult,
) -> None:
    log_repo.record_outcome(log, status.value, now, provider_response)
    if status is SendStatus.SENT:
        result.sent += 1
    else:
        result.failed += 1
        result.failures.append({"log_id": log.id, "error": provider_response})
