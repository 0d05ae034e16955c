"""
Generic repository shared by the entity repositories.

``create`` and ``update`` commit immediately and suit single-row edits.
``add``, ``remove`` and ``flush`` only stage work, leaving the commit to the
enclosing ``UnitOfWork``.
"""

from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from repositories.database import Base

T = TypeVar("T", bound=Base)  # type: ignore[type-arg]


class BaseRepository(Generic[T]):
    """Primary-key lookup and staging helpers for one mapped class."""

    def __init__(self, model: type[T], db: Session):
        self.model = model
        self.db = db

    def get_by_id(self, id: int) -> T | None:
        """
        Load one row by primary key.

        Args:
            id: Primary key

        Returns:
            The row, or None when it does not exist
        """
        return self.db.get(self.model, id)

    def add(self, entity: T) -> None:
        """Stage a new row; nothing is written until flush or commit."""
        self.db.add(entity)

    def remove(self, entity: T) -> None:
        """Stage a row for deletion."""
        self.db.delete(entity)

    def flush(self) -> None:
        """Write staged rows so generated IDs become available."""
        self.db.flush()

    def create(self, entity: T) -> T:
        """
        Insert one row and commit.

        Args:
            entity: New row

        Returns:
            The row, refreshed with server-generated columns
        """
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def update(self, entity: T) -> T:
        """
        Commit edits made to a loaded row.

        Args:
            entity: Row carrying the edits

        Returns:
            The row, refreshed from the database
        """
        self.db.commit()
        self.db.refresh(entity)
        return entity
