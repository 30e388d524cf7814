"""
Contract shared by the repositories of tables the scheduler writes to.
"""

from typing import Any, Optional, Protocol, TypeVar

T = TypeVar("T")


class BaseRepository(Protocol[T]):
    """Lookup, insert and field update; each write commits."""

    def get_by_id(self, id: str) -> Optional[T]:
        ...

    def create(self, obj_in: Any) -> T:
        """Insert a row from a dict or pydantic model and return it refreshed."""
        ...

    def update(self, db_obj: T, obj_in: Any) -> T:
        """Set the given columns on an existing row."""
        ...
