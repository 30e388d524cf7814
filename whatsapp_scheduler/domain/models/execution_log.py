"""Worker execution log: one append-only summary row per scheduler run."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from whatsapp_scheduler.domain.models.base import new_id
from whatsapp_scheduler.infrastructure.database import Base


class ExecutionLog(Base):
    __tablename__ = "worker_execution_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    execution_time = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    status = Column(String(20), nullable=False)  # SUCCESS, PARTIAL, ERROR
    messages_processed = Column(Integer, nullable=False, default=0)
    messages_sent = Column(Integer, nullable=False, default=0)
    messages_failed = Column(Integer, nullable=False, default=0)
    execution_duration_ms = Column(Integer, nullable=False, default=0)
    details = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)

    def __repr__(self):
        return f"<ExecutionLog {self.execution_time} - {self.status}>"
