"""
SQLAlchemy base for the send-log and execution-log repositories.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session
from whatsapp_scheduler.domain.repositories.base import BaseRepository
from whatsapp_scheduler.infrastructure.database import Base

ModelType = TypeVar("ModelType", bound=Base)


def _columns(obj_in: Any) -> dict:
    if hasattr(obj_in, "model_dump"):
        return obj_in.model_dump(exclude_unset=True)
    return dict(obj_in)


class SQLAlchemyRepository(BaseRepository[ModelType], Generic[ModelType]):
    """Commits after every write so later reads in the same run see the row."""

    def __init__(self, db: Session, model: Type[ModelType]):
        self.db = db
        self.model = model

    def get_by_id(self, id: str) -> Optional[ModelType]:
        return self.db.get(self.model, id)

    def _save(self, db_obj: ModelType) -> ModelType:
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

    def create(self, obj_in: Any) -> ModelType:
        return self._save(self.model(**_columns(obj_in)))

    def update(self, db_obj: ModelType, obj_in: Any) -> ModelType:
        for column, value in _columns(obj_in).items():
            if hasattr(db_obj, column):
                setattr(db_obj, column, value)
        return self._save(db_obj)
