"""
Message Send Log Repository Interface.
"""

from datetime import datetime
from typing import Any, List, Optional

from whatsapp_scheduler.domain.models.message_send_log import MessageSendLog
from whatsapp_scheduler.domain.repositories.base import BaseRepository


class MessageLogRepository(BaseRepository[MessageSendLog]):
    """Interface for send-log specific operations."""

    def find_existing(
        self,
        company_id: str,
        appointment_id: str,
        message_kind_id: str,
        channel: str,
        window_start: datetime,
        window_end: datetime,
    ) -> Optional[MessageSendLog]:
        """Any log for the same reminder with scheduled_for inside the window."""
        ...

    def count_pending(self) -> int:
        """Number of PENDING rows in storage."""
        ...

    def get_pending_until(self, until: datetime) -> List[MessageSendLog]:
        """PENDING rows whose stored scheduled_for compares <= until."""
        ...

    def get_all_pending(self) -> List[MessageSendLog]:
        """Every PENDING row regardless of scheduled_for."""
        ...

    def record_outcome(self, log: MessageSendLog, status: str, sent_at: datetime, provider_response: Any) -> MessageSendLog:
        """Move a log to SENT/FAILED."""
        ...

    def list_for_company(self, company_id: str, channel: str, status: Optional[str] = None, civil_date: Optional[str] = None) -> List[MessageSendLog]:
        """Queue listing for one company."""
        ...
