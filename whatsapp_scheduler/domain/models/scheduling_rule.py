"""Scheduling rule — when, relative to a reference point, a reminder fires."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String

from whatsapp_scheduler.domain.enums import Channel, ReferencePoint
from whatsapp_scheduler.domain.models.base import new_id
from whatsapp_scheduler.infrastructure.database import Base


class SchedulingRule(Base):
    __tablename__ = "company_message_schedules"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    message_kind_id = Column(String(36), nullable=False)
    channel = Column(String(20), nullable=False, default=Channel.WHATSAPP.value)
    offset_value = Column(Integer, nullable=False)  # negative = before the reference
    offset_unit = Column(String(10), nullable=False)  # MINUTES, HOURS, DAYS
    reference = Column(String(30), nullable=False, default=ReferencePoint.APPOINTMENT_START.value)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<SchedulingRule {self.id} {self.offset_value} {self.offset_unit} {self.reference}>"
