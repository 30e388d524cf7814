"""Company — tenant; the scheduler only reads it."""

from sqlalchemy import Boolean, Column, String

from whatsapp_scheduler.domain.models.base import new_id
from whatsapp_scheduler.infrastructure.database import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(300), nullable=True)
    whatsapp_messaging_enabled = Column(Boolean, nullable=False, default=False, index=True)

    def __repr__(self):
        return f"<Company {self.id} - {self.name}>"
