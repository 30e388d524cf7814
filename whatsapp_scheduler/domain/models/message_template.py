"""Message template — body with [CLIENTE], [EMPRESA], [DATA_HORA] placeholders."""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text

from whatsapp_scheduler.domain.enums import Channel
from whatsapp_scheduler.domain.models.base import new_id
from whatsapp_scheduler.infrastructure.database import Base


class MessageTemplate(Base):
    __tablename__ = "company_message_templates"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    message_kind_id = Column(String(36), nullable=False)
    channel = Column(String(20), nullable=False, default=Channel.WHATSAPP.value)
    body_template = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
