"""Repository for the per-user directory tree."""

from collections import deque
from typing import Dict, List, Optional

from .base import BaseRepository
from ..exceptions import DirectoryNotFoundError
from ..models.directory import Directory


class DirectoryRepository(BaseRepository[Directory]):
    """Data access for ``directories``. Callers commit."""

    model_class = Directory
    not_found_error = DirectoryNotFoundError

    def list_by_user(self, user_id: int) -> List[Directory]:
        return (
            self.db.query(Directory)
            .filter(Directory.user_id == user_id)
            .order_by(Directory.position, Directory.name)
            .all()
        )

    def get_children(self, user_id: int, parent_id: Optional[int]) -> List[Directory]:
        query = self.db.query(Directory).filter(Directory.user_id == user_id)
        if parent_id is None:
            query = query.filter(Directory.parent_id.is_(None))
        else:
            query = query.filter(Directory.parent_id == parent_id)
        return query.order_by(Directory.position, Directory.name).all()

    def parent_map(self, user_id: int) -> Dict[int, Optional[int]]:
        """``{id: parent_id}`` for every directory of the user, in one query."""
        rows = (
            self.db.query(Directory.id, Directory.parent_id)
            .filter(Directory.user_id == user_id)
            .all()
        )
        return {row.id: row.parent_id for row in rows}

    def subtree_ids(self, user_id: int, root_id: int) -> List[int]:
        """*root_id* followed by every descendant id, breadth first."""
        children: Dict[Optional[int], List[int]] = {}
        for dir_id, parent_id in self.parent_map(user_id).items():
            children.setdefault(parent_id, []).append(dir_id)

        seen = {root_id}
        ordered = [root_id]
        queue = deque([root_id])
        while queue:
            current = queue.popleft()
            for child_id in children.get(current, []):
                if child_id in seen:
                    continue
                seen.add(child_id)
                ordered.append(child_id)
                queue.append(child_id)
        return ordered

    def next_position(self, user_id: int, parent_id: Optional[int]) -> int:
        siblings = self.get_children(user_id, parent_id)
        if not siblings:
            return 0
        return max(s.position or 0 for s in siblings) + 1
