"""
SQLAlchemy Implementation of the Message Send Log Repository.

scheduled_for is compared as stored text in its Brasília ISO form; rows written
with another offset do not compare correctly here, which is why the dispatcher
re-checks the due set in process.
"""

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from whatsapp_scheduler.domain.civil_time import to_civil_iso
from whatsapp_scheduler.domain.enums import SendStatus
from whatsapp_scheduler.domain.models.message_send_log import MessageSendLog
from whatsapp_scheduler.domain.repositories.message_log_repository import MessageLogRepository
from whatsapp_scheduler.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyMessageLogRepository(SQLAlchemyRepository[MessageSendLog], MessageLogRepository):
    """Send-log repository implementation using SQLAlchemy."""

    def __init__(self, db: Session):
        super().__init__(db, MessageSendLog)

    def find_existing(
        self,
        company_id: str,
        appointment_id: str,
        message_kind_id: str,
        channel: str,
        window_start: datetime,
        window_end: datetime,
    ) -> Optional[MessageSendLog]:
        return (
            self.db.query(MessageSendLog)
            .filter(
                MessageSendLog.company_id == company_id,
                MessageSendLog.appointment_id == appointment_id,
                MessageSendLog.message_kind_id == message_kind_id,
                MessageSendLog.channel == channel,
                MessageSendLog.scheduled_for >= to_civil_iso(window_start, company_id),
                MessageSendLog.scheduled_for <= to_civil_iso(window_end, company_id),
            )
            .first()
        )

    def count_pending(self) -> int:
        count = (
            self.db.query(func.count(MessageSendLog.id))
            .filter(MessageSendLog.status == SendStatus.PENDING.value)
            .scalar()
        )
        return count or 0

    def get_pending_until(self, until: datetime) -> List[MessageSendLog]:
        return (
            self.db.query(MessageSendLog)
            .filter(
                MessageSendLog.status == SendStatus.PENDING.value,
                MessageSendLog.scheduled_for <= to_civil_iso(until),
            )
            .order_by(MessageSendLog.scheduled_for.asc())
            .all()
        )

    def get_all_pending(self) -> List[MessageSendLog]:
        return (
            self.db.query(MessageSendLog)
            .filter(MessageSendLog.status == SendStatus.PENDING.value)
            .order_by(MessageSendLog.scheduled_for.asc())
            .all()
        )

    def record_outcome(self, log: MessageSendLog, status: str, sent_at: datetime, provider_response: Any) -> MessageSendLog:
        return self.update(
            log,
            {"status": status, "sent_at": sent_at, "provider_response": provider_response},
        )

    def list_for_company(
        self,
        company_id: str,
        channel: str,
        status: Optional[str] = None,
        civil_date: Optional[str] = None,
    ) -> List[MessageSendLog]:
        query = self.db.query(MessageSendLog).filter(
            MessageSendLog.company_id == company_id,
            MessageSendLog.channel == channel,
        )
        if status:
            query = query.filter(MessageSendLog.status == status)
        if civil_date:
            query = query.filter(MessageSendLog.scheduled_for.like(f"{civil_date}%"))
        return query.order_by(MessageSendLog.scheduled_for.asc()).all()
