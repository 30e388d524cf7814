"""
SQLAlchemy Implementation of the Execution Log Repository.
"""

from typing import List

from sqlalchemy.orm import Session

from whatsapp_scheduler.domain.models.execution_log import ExecutionLog
from whatsapp_scheduler.domain.repositories.execution_log_repository import ExecutionLogRepository
from whatsapp_scheduler.infrastructure.repositories.base_repository import SQLAlchemyRepository


class SQLAlchemyExecutionLogRepository(SQLAlchemyRepository[ExecutionLog], ExecutionLogRepository):
    """Execution history using SQLAlchemy."""

    def __init__(self, db: Session):
        super().__init__(db, ExecutionLog)

    def latest(self, limit: int = 20) -> List[ExecutionLog]:
        return (
            self.db.query(ExecutionLog)
            .order_by(ExecutionLog.execution_time.desc())
            .limit(limit)
            .all()
        )
