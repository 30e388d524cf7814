from datetime import time, timedelta

import httpx
import pytest

from whatsapp_scheduler.application.services.dispatch_service import (
    INVALID_PHONE_ERROR,
    dispatch_logs,
    resolve_due_logs,
)
from whatsapp_scheduler.domain.models.message_send_log import MessageSendLog
from whatsapp_scheduler.infrastructure.repositories.message_log_repository import SQLAlchemyMessageLogRepository
from whatsapp_scheduler.infrastructure.repositories.scheduling_repository import SQLAlchemySchedulingRepository
from whatsapp_scheduler.infrastructure.whatsapp_provider import WhatsAppProviderClient


async def dispatch(db, logs, provider, client, now):
    return await dispatch_logs(
        logs,
        SQLAlchemySchedulingRepository(db),
        SQLAlchemyMessageLogRepository(db),
        provider,
        client,
        now,
    )


def test_primary_query_is_used_when_counts_agree(db, seed, now):
    company, client = seed.company(), seed.client()
    due = seed.send_log(company, client, scheduled_for="2024-03-10T09:01:00-03:00")
    seed.send_log(company, client, scheduled_for="2024-03-10T09:01:00-03:00", status="SENT")

    result = resolve_due_logs(SQLAlchemyMessageLogRepository(db), now)

    assert result.used_fallback is False
    assert [log.id for log in result.logs] == [due.id]


def test_future_pending_rows_trigger_fallback_but_stay_out(db, seed, now):
    company, client = seed.company(), seed.client()
    due = seed.send_log(company, client, scheduled_for="2024-03-10T09:00:00-03:00")
    seed.send_log(company, client, scheduled_for="2024-03-10T09:30:00-03:00")

    result = resolve_due_logs(SQLAlchemyMessageLogRepository(db), now)

    assert result.pending_count == 2
    assert result.used_fallback is True
    assert [log.id for log in result.logs] == [due.id]


def test_fallback_catches_rows_stored_in_other_representations(db, seed, now):
    company, client = seed.company(), seed.client()
    native = seed.send_log(company, client, scheduled_for="2024-03-10T08:58:00-03:00")
    utc_z = seed.send_log(company, client, scheduled_for="2024-03-10T11:55:00Z")
    utc_short = seed.send_log(company, client, scheduled_for="2024-03-10T12:01:00+00")
    seed.send_log(company, client, scheduled_for="2024-03-10T12:30:00+00:00")  # 09:30 in Brasília
    seed.send_log(company, client, scheduled_for="not-a-timestamp")

    result = resolve_due_logs(SQLAlchemyMessageLogRepository(db), now)

    # text comparison alone only finds the row in the stored Brasília form
    assert result.primary_count == 1
    assert result.used_fallback is True
    assert {log.id for log in result.logs} == {native.id, utc_z.id, utc_short.id}


def test_tolerance_reaches_two_minutes_ahead(db, seed, now):
    company, client = seed.company(), seed.client()
    edge = seed.send_log(company, client, scheduled_for="2024-03-10T09:02:00-03:00")
    seed.send_log(company, client, scheduled_for="2024-03-10T09:02:01-03:00")

    result = resolve_due_logs(SQLAlchemyMessageLogRepository(db), now)
    assert [log.id for log in result.logs] == [edge.id]


@pytest.mark.asyncio
async def test_sent_log_records_response_and_time(db, seed, now, provider_stub):
    company = seed.company(name="Salão Bela")
    client = seed.client(name="Maria", phone="11987654321")
    appointment = seed.appointment(company, client, at=time(9, 30))
    log = seed.send_log(company, client, appointment)
    provider = seed.provider()

    result = await dispatch(db, [log], provider, provider_stub.client(), now)

    assert (result.processed, result.sent, result.failed) == (1, 1, 0)
    db.refresh(log)
    assert log.status == "SENT"
    assert log.provider_response == {"success": True}
    assert log.sent_at is not None
    assert provider_stub.json_bodies()[0]["phone"] == "5511987654321"


@pytest.mark.asyncio
async def test_fallback_template_renders_client_and_company(db, seed, now, provider_stub):
    company = seed.company(name="Salão Bela")
    client = seed.client(name="Maria")
    log = seed.send_log(company, client)

    await dispatch(db, [log], seed.provider(), provider_stub.client(), now)

    text = provider_stub.json_bodies()[0]["text"]
    assert text == "Olá, Maria! Salão Bela"
    assert "[" not in text


@pytest.mark.asyncio
async def test_company_template_with_appointment_datetime(db, seed, now, provider_stub):
    company = seed.company(name="Salão Bela")
    client = seed.client(name="Maria")
    appointment = seed.appointment(company, client, at=time(9, 30))
    seed.template(company, "[CLIENTE], lembrete: [DATA_HORA] na [EMPRESA].")
    log = seed.send_log(company, client, appointment)

    await dispatch(db, [log], seed.provider(), provider_stub.client(), now)

    assert provider_stub.json_bodies()[0]["text"] == "Maria, lembrete: 10/03/2024 às 09:30 na Salão Bela."


@pytest.mark.asyncio
async def test_invalid_phone_fails_without_calling_provider(db, seed, now, provider_stub):
    company = seed.company()
    log = seed.send_log(company, seed.client(phone="123"))

    result = await dispatch(db, [log], seed.provider(), provider_stub.client(), now)

    assert result.failed == 1
    assert provider_stub.requests == []
    db.refresh(log)
    assert log.status == "FAILED"
    assert log.provider_response == {"error": INVALID_PHONE_ERROR}
    assert log.sent_at is not None


@pytest.mark.asyncio
async def test_failed_send_is_terminal(db, seed, now):
    company = seed.company()
    log = seed.send_log(company, seed.client())
    provider = seed.provider()
    failing = WhatsAppProviderClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(400, json={"error": "ERR_NO_WHATSAPP_CONNECTION"}))
    )
    log_repo = SQLAlchemyMessageLogRepository(db)

    result = await dispatch(db, resolve_due_logs(log_repo, now).logs, provider, failing, now)

    assert result.failed == 1
    db.refresh(log)
    assert log.status == "FAILED"
    assert log.provider_response == {"error": "ERR_NO_WHATSAPP_CONNECTION"}

    later = resolve_due_logs(log_repo, now + timedelta(minutes=5))
    assert later.logs == []
    assert later.pending_count == 0


@pytest.mark.asyncio
async def test_network_error_marks_failed_and_continues(db, seed, now):
    company = seed.company()
    first = seed.send_log(company, seed.client(phone="11911111111"))
    second = seed.send_log(company, seed.client(phone="11922222222"))

    def handler(request):
        if b"5511911111111" in request.content:
            raise httpx.ReadTimeout("read timed out", request=request)
        return httpx.Response(200, json={"ok": True})

    result = await dispatch(
        db, [first, second], seed.provider(), WhatsAppProviderClient(transport=httpx.MockTransport(handler)), now
    )

    assert (result.sent, result.failed) == (1, 1)
    db.refresh(first)
    db.refresh(second)
    assert first.status == "FAILED"
    assert first.provider_response == {"error": "read timed out"}
    assert second.status == "SENT"


@pytest.mark.asyncio
async def test_text_response_is_stored_as_is(db, seed, now):
    company = seed.company()
    log = seed.send_log(company, seed.client())
    client = WhatsAppProviderClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="OK")))

    await dispatch(db, [log], seed.provider(), client, now)

    stored = db.query(MessageSendLog).filter(MessageSendLog.id == log.id).one()
    assert stored.status == "SENT"
    assert stored.provider_response == "OK"
