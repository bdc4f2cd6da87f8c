"""Derives physical relative paths from the DB directory tree."""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..exceptions import DirectoryNotFoundError, HierarchyCycleError
from ..models.directory import Directory
from ..repositories.directory_repository import DirectoryRepository
from ..storage.paths import SEPARATOR, sanitize_name

logger = logging.getLogger(__name__)


class HierarchyPathTranslator:
    """Maps a directory id to the relative path of its physical mirror.

    Stateless: each call reads the current rows, so a caller wanting both
    the old and the new location of a moved directory asks once before and
    once after the DB mutation.
    """

    def __init__(self, db: Session):
        self.repo = DirectoryRepository(db)

    def path_from_id(self, user_id: int, directory_id: Optional[int]) -> str:
        """``sanitize_name`` of every ancestor name, root first, joined by ``/``.

        ``None`` is the user's root (``""``). Unknown ids and ids owned by
        another user raise DirectoryNotFoundError; a parent chain that loops
        raises HierarchyCycleError.
        """
        if directory_id is None:
            return ""
        rows = {d.id: d for d in self.repo.list_by_user(user_id)}
        return self.path_within(rows, directory_id)

    def path_within(self, rows: Dict[int, Directory], directory_id: int) -> str:
        segments: List[str] = []
        chain: List[int] = []
        current: Optional[int] = directory_id
        while current is not None:
            if current in chain:
                chain.append(current)
                logger.error("Directory hierarchy cycle detected", extra={"directory_id": directory_id, "chain": chain})
                raise HierarchyCycleError(directory_id, chain)
            chain.append(current)
            directory = rows.get(current)
            if directory is None:
                raise DirectoryNotFoundError(current)
            segments.append(sanitize_name(directory.name))
            current = directory.parent_id
        segments.reverse()
        return SEPARATOR.join(segments)
