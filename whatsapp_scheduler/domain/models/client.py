"""Client — the person receiving reminders."""

from sqlalchemy import Column, String

from whatsapp_scheduler.domain.models.base import new_id
from whatsapp_scheduler.infrastructure.database import Base


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(300), nullable=True)
    phone = Column(String(40), nullable=True)  # free text, normalized at send time

    def __repr__(self):
        return f"<Client {self.id} - {self.name}>"
