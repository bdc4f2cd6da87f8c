"""Base repository with shared get-by-ID patterns.

Subclasses specify model_class and not_found_error; the base provides the
common lookups. Every storage row belongs to exactly one user, so the
owner-scoped ``get_owned`` is what services call: a row owned by someone
else is reported exactly like a missing one.
"""

from typing import TypeVar, Generic, Optional, Type
from sqlalchemy.orm import Session, Query

from ..database import Base
from ..exceptions import ShelfException

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., Directory)
        id_column:       Name of the primary-key column (default "id")
        not_found_error: Exception class to raise from get_by_id
    """

    model_class: Type[ModelT]
    id_column: str = "id"
    not_found_error: Type[ShelfException]

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        return self.db.query(self.model_class)

    def get_by_id(self, entity_id: int) -> ModelT:
        """Get entity by primary key. Raises not_found_error if missing."""
        entity = self.get_by_id_optional(entity_id)
        if not entity:
            raise self.not_found_error(entity_id)
        return entity

    def get_by_id_optional(self, entity_id: int) -> Optional[ModelT]:
        """Get entity by primary key, or None if not found."""
        col = getattr(self.model_class, self.id_column)
        return self._base_query().filter(col == entity_id).first()

    def get_owned(self, entity_id: int, user_id: int) -> ModelT:
        """Get entity by primary key if it belongs to *user_id*, else not_found_error."""
        col = getattr(self.model_class, self.id_column)
        entity = (
            self._base_query()
            .filter(col == entity_id, self.model_class.user_id == user_id)
            .first()
        )
        if not entity:
            raise self.not_found_error(entity_id)
        return entity
