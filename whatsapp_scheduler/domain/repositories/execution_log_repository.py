"""
Execution Log Repository Interface.
"""

from typing import List

from whatsapp_scheduler.domain.models.execution_log import ExecutionLog
from whatsapp_scheduler.domain.repositories.base import BaseRepository


class ExecutionLogRepository(BaseRepository[ExecutionLog]):
    """Interface for the append-only run history."""

    def latest(self, limit: int = 20) -> List[ExecutionLog]:
        """Most recent runs first."""
        ...
