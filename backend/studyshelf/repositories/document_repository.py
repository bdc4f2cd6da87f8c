"""Repository for uploaded documents."""

from typing import Iterable, List

from .base import BaseRepository
from ..exceptions import DocumentNotFoundError
from ..models.document import Document


class DocumentRepository(BaseRepository[Document]):
    """Data access for ``documents``. Callers commit."""

    model_class = Document
    not_found_error = DocumentNotFoundError

    def list_by_user(self, user_id: int) -> List[Document]:
        return (
            self.db.query(Document)
            .filter(Document.user_id == user_id)
            .order_by(Document.display_name, Document.id)
            .all()
        )

    def list_in_directories(self, user_id: int, directory_ids: Iterable[int]) -> List[Document]:
        ids = list(directory_ids)
        if not ids:
            return []
        return (
            self.db.query(Document)
            .filter(Document.user_id == user_id, Document.directory_id.in_(ids))
            .all()
        )
