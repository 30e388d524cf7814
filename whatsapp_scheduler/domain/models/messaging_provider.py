"""Messaging provider — outbound HTTP endpoint, fully described by configuration."""

from sqlalchemy import JSON, Boolean, Column, String

from whatsapp_scheduler.domain.enums import Channel, PayloadContentType
from whatsapp_scheduler.domain.models.base import new_id
from whatsapp_scheduler.infrastructure.database import Base


class MessagingProvider(Base):
    __tablename__ = "messaging_providers"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=True)
    channel = Column(String(20), nullable=False, default=Channel.WHATSAPP.value, index=True)
    base_url = Column(String(500), nullable=False)
    http_method = Column(String(10), nullable=False, default="POST")
    auth_key = Column(String(100), nullable=True)  # header name
    auth_token = Column(String(500), nullable=True)
    payload_template = Column(JSON, nullable=True)
    content_type = Column(String(20), nullable=True, default=PayloadContentType.JSON.value)
    user_id = Column(String(100), nullable=True)
    queue_id = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<MessagingProvider {self.id} - {self.name}>"
