"""Message send log: one row per queued reminder; the only table the scheduler mutates."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String

from whatsapp_scheduler.domain.civil_time import parse_timestamp
from whatsapp_scheduler.domain.enums import Channel, SendStatus
from whatsapp_scheduler.domain.models.base import new_id
from whatsapp_scheduler.infrastructure.database import Base


class MessageSendLog(Base):
    __tablename__ = "message_send_log"
    __table_args__ = (
        Index("ix_message_send_log_dedup", "company_id", "appointment_id", "message_kind_id", "channel"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=True)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=True)
    message_kind_id = Column(String(36), nullable=False)
    channel = Column(String(20), nullable=False, default=Channel.WHATSAPP.value)
    template_id = Column(String(36), nullable=True)
    provider_id = Column(String(36), nullable=True)
    # Brasília civil time with explicit offset, e.g. '2024-03-10T13:30:00-03:00'
    scheduled_for = Column(String(40), nullable=False, index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default=SendStatus.PENDING.value, index=True)
    provider_response = Column(JSON, nullable=True)

    @property
    def scheduled_at(self):
        return parse_timestamp(self.scheduled_for, self.company_id)

    def __repr__(self):
        return f"<MessageSendLog {self.id} {self.scheduled_for} - {self.status}>"
