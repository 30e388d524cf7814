"""Pydantic schemas for the send queue, run history and provider test."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Optional


class MessageSendLogRead(BaseModel):
    id: str
    company_id: str
    client_id: Optional[str] = None
    appointment_id: Optional[str] = None
    message_kind_id: str
    channel: str
    template_id: Optional[str] = None
    provider_id: Optional[str] = None
    scheduled_for: str
    sent_at: Optional[datetime] = None
    status: str
    provider_response: Optional[Any] = None
    client_name: Optional[str] = None
    client_phone: Optional[str] = None

    model_config = {"from_attributes": True}


class QueueMetrics(BaseModel):
    for_today: int = 0
    cancelled: int = 0
    sent: int = 0


class MessageQueueResponse(BaseModel):
    items: list[MessageSendLogRead]
    total: int
    metrics: QueueMetrics


class ExecutionLogRead(BaseModel):
    id: str
    execution_time: Optional[datetime] = None
    status: str
    messages_processed: int
    messages_sent: int
    messages_failed: int
    execution_duration_ms: int
    details: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}


class ProviderTestRequest(BaseModel):
    phone: str
    message: Optional[str] = Field(default=None, max_length=4000)


class ProviderTestResponse(BaseModel):
    ok: bool
    status: int
    phone: str
    response: Optional[Any] = None
