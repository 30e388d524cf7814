"""Appointment — date/time are Brasília civil time, stored naive."""

from sqlalchemy import Column, Date, ForeignKey, String, Time

from whatsapp_scheduler.domain.models.base import new_id
from whatsapp_scheduler.infrastructure.database import Base


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=new_id)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=True)
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=False)
    status = Column(String(50), nullable=True)  # 'cancelado' = cancelled

    def __repr__(self):
        return f"<Appointment {self.id} {self.appointment_date} {self.appointment_time}>"
