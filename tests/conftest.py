import os

# Settings and the module-level engine are built on first import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SERVICE_ROLE_KEY"] = "test-service-role-key"
os.environ["STORE_REST_URL"] = ""
os.environ["ENVIRONMENT"] = "test"
os.environ["SCHEDULER_ENABLED"] = "false"

import json
from datetime import date, datetime, time, timezone

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from whatsapp_scheduler.config import Settings
from whatsapp_scheduler.infrastructure.database import Base
from whatsapp_scheduler.domain.models.company import Company
from whatsapp_scheduler.domain.models.client import Client
from whatsapp_scheduler.domain.models.appointment import Appointment
from whatsapp_scheduler.domain.models.scheduling_rule import SchedulingRule
from whatsapp_scheduler.domain.models.message_template import MessageTemplate
from whatsapp_scheduler.domain.models.messaging_provider import MessagingProvider
from whatsapp_scheduler.domain.models.message_send_log import MessageSendLog
from whatsapp_scheduler.domain.models.execution_log import ExecutionLog
from whatsapp_scheduler.infrastructure.whatsapp_provider import WhatsAppProviderClient

# 09:00 in Brasília
NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

TEST_SECRET = "test-service-role-key"

DEFAULT_PAYLOAD = {"userId": "", "queueId": "", "phone": "{phone}", "text": "{text}"}


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite://",
        SERVICE_ROLE_KEY=TEST_SECRET,
        STORE_REST_URL="",
        ENVIRONMENT="test",
        SCHEDULER_ENABLED=False,
    )


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


class Seeder:
    """Inserts rows with sensible defaults; keyword arguments override columns."""

    def __init__(self, db):
        self.db = db

    def _add(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def company(self, **kw):
        kw.setdefault("name", "Salão Bela Vista")
        kw.setdefault("whatsapp_messaging_enabled", True)
        return self._add(Company(**kw))

    def client(self, **kw):
        kw.setdefault("name", "Maria")
        kw.setdefault("phone", "(11) 98765-4321")
        return self._add(Client(**kw))

    def appointment(self, company, client, on=date(2024, 3, 10), at=time(9, 30), **kw):
        return self._add(
            Appointment(
                company_id=company.id,
                client_id=client.id if client else None,
                appointment_date=on,
                appointment_time=at,
                **kw,
            )
        )

    def rule(self, company, offset_value=-30, offset_unit="MINUTES", message_kind_id="lembrete", **kw):
        kw.setdefault("reference", "APPOINTMENT_START")
        kw.setdefault("channel", "WHATSAPP")
        kw.setdefault("is_active", True)
        return self._add(
            SchedulingRule(
                company_id=company.id,
                message_kind_id=message_kind_id,
                offset_value=offset_value,
                offset_unit=offset_unit,
                **kw,
            )
        )

    def template(self, company, body, message_kind_id="lembrete", **kw):
        kw.setdefault("channel", "WHATSAPP")
        kw.setdefault("is_active", True)
        return self._add(
            MessageTemplate(company_id=company.id, message_kind_id=message_kind_id, body_template=body, **kw)
        )

    def provider(self, **kw):
        kw.setdefault("name", "Provedor de teste")
        kw.setdefault("channel", "WHATSAPP")
        kw.setdefault("base_url", "https://provider.test/api/messages/send")
        kw.setdefault("http_method", "POST")
        kw.setdefault("auth_key", "Authorization")
        kw.setdefault("auth_token", "provider-token")
        kw.setdefault("payload_template", dict(DEFAULT_PAYLOAD))
        kw.setdefault("content_type", "json")
        kw.setdefault("is_active", True)
        return self._add(MessagingProvider(**kw))

    def send_log(self, company, client, appointment=None, scheduled_for="2024-03-10T09:00:00-03:00", **kw):
        kw.setdefault("message_kind_id", "lembrete")
        kw.setdefault("channel", "WHATSAPP")
        kw.setdefault("status", "PENDING")
        return self._add(
            MessageSendLog(
                company_id=company.id,
                client_id=client.id if client else None,
                appointment_id=appointment.id if appointment else None,
                scheduled_for=scheduled_for,
                **kw,
            )
        )


@pytest.fixture
def seed(db):
    return Seeder(db)


class ProviderStub:
    """Records outbound provider requests and answers with a canned response."""

    def __init__(self, status_code=200, body=None, by_phone=None):
        self.status_code = status_code
        self.body = {"success": True} if body is None else body
        self.by_phone = by_phone or {}
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code = self.status_code
        if request.content and self.by_phone:
            phone = json.loads(request.content).get("phone")
            status_code = self.by_phone.get(phone, status_code)
        if isinstance(self.body, str):
            return httpx.Response(status_code, text=self.body)
        return httpx.Response(status_code, json=self.body)

    def client(self) -> WhatsAppProviderClient:
        return WhatsAppProviderClient(timeout=5, transport=httpx.MockTransport(self.handler))

    def json_bodies(self):
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def provider_stub():
    return ProviderStub()


@pytest.fixture
def make_provider_stub():
    return ProviderStub
