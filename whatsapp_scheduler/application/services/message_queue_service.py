"""Read side of the send queue plus the provider connectivity test."""

import logging
from datetime import datetime
from typing import List, Optional

import httpx
from fastapi import status

from whatsapp_scheduler.core.exceptions import AppError
from whatsapp_scheduler.domain.civil_time import civil_today, to_civil
from whatsapp_scheduler.domain.enums import Channel, SendStatus
from whatsapp_scheduler.domain.models.message_send_log import MessageSendLog
from whatsapp_scheduler.domain.phone import to_e164_brazil
from whatsapp_scheduler.domain.repositories.message_log_repository import MessageLogRepository
from whatsapp_scheduler.domain.repositories.scheduling_repository import SchedulingRepository
from whatsapp_scheduler.domain.schemas.message import (
    MessageQueueResponse,
    MessageSendLogRead,
    ProviderTestResponse,
    QueueMetrics,
)
from whatsapp_scheduler.application.services.scheduler_service import select_provider
from whatsapp_scheduler.infrastructure.whatsapp_provider import WhatsAppProviderClient

logger = logging.getLogger(__name__)


def compute_metrics(logs: List[MessageSendLog], today: str) -> QueueMetrics:
    metrics = QueueMetrics()
    for log in logs:
        if log.status == SendStatus.PENDING.value and (log.scheduled_for or "").startswith(today):
            metrics.for_today += 1
        elif log.status == SendStatus.CANCELLED.value:
            metrics.cancelled += 1
        elif log.status == SendStatus.SENT.value:
            metrics.sent += 1
    return metrics


def list_queue(
    log_repo: MessageLogRepository,
    scheduling_repo: SchedulingRepository,
    company_id: str,
    now: datetime,
    status_filter: Optional[str] = None,
    civil_date: Optional[str] = None,
) -> MessageQueueResponse:
    """WhatsApp logs of one company, with client details and queue metrics.

    Metrics always cover the whole queue of the company, not the filtered page.
    """
    channel = Channel.WHATSAPP.value
    logs = log_repo.list_for_company(company_id, channel, status=status_filter, civil_date=civil_date)
    everything = logs if not (status_filter or civil_date) else log_repo.list_for_company(company_id, channel)

    clients = scheduling_repo.get_clients_by_ids(log.client_id for log in logs if log.client_id)
    items = []
    for log in logs:
        item = MessageSendLogRead.model_validate(log)
        client = clients.get(log.client_id) if log.client_id else None
        if client is not None:
            item.client_name = client.name
            item.client_phone = client.phone
        items.append(item)

    today = civil_today(now, company_id).isoformat()
    return MessageQueueResponse(items=items, total=len(items), metrics=compute_metrics(everything, today))


def default_test_message(now: datetime) -> str:
    local = to_civil(now)
    return (
        "✅ Teste de conexão do agendador de lembretes\n\n"
        f"📅 {local.strftime('%d/%m/%Y')} às {local.strftime('%H:%M')}\n\n"
        "Se você recebeu esta mensagem, o provedor WhatsApp está configurado corretamente."
    )


async def send_provider_test(
    scheduling_repo: SchedulingRepository,
    provider_client: WhatsAppProviderClient,
    phone: str,
    now: datetime,
    message: Optional[str] = None,
    strict: bool = False,
) -> ProviderTestResponse:
    """Send one message through the active provider without touching the send log."""
    e164 = to_e164_brazil(phone)
    if e164 is None:
        raise AppError("Telefone inválido ou ausente", status.HTTP_422_UNPROCESSABLE_ENTITY, {"phone": phone})

    provider = select_provider(scheduling_repo.get_active_providers(Channel.WHATSAPP.value), strict=strict)
    text = message or default_test_message(now)

    try:
        response = await provider_client.send(provider, e164, text)
    except httpx.HTTPError as e:
        logger.error(f"Provider test to {e164} failed: {e}")
        raise AppError(
            f"Erro ao contatar o provedor: {e}",
            status.HTTP_502_BAD_GATEWAY,
            {"provider_id": provider.id},
        ) from e

    return ProviderTestResponse(ok=response.ok, status=response.status, phone=e164, response=response.body)
