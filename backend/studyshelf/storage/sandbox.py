"""Per-user sandbox roots and containment-checked path resolution."""

import logging
from pathlib import Path
from typing import Union

from ..exceptions import ContainmentViolationError
from .paths import normalize_relative_path

logger = logging.getLogger(__name__)


class UserRootResolver:
    """Maps a user to ``<base>/user_<id>`` and resolves relative paths below it.

    Containment is re-verified on the composed absolute path after symlink
    resolution, not only on the relative string, so a symlink planted inside
    a sandbox cannot be used to reach another user's files.
    """

    def __init__(self, base: Union[str, Path]):
        self.base = Path(base).expanduser().resolve()

    def root_for(self, user_id: int) -> Path:
        """Absolute sandbox root of *user_id*, created on first use."""
        root = self.base / f"user_{int(user_id)}"
        root.mkdir(parents=True, exist_ok=True)
        return root

    def resolve(self, user_id: int, relative_path: str) -> Path:
        """Absolute path of *relative_path* inside the user's sandbox.

        Raises InvalidPathError for ``..`` segments and
        ContainmentViolationError if the result escapes the root.
        """
        rel = normalize_relative_path(relative_path)
        root = self.root_for(user_id)
        candidate = root / rel if rel else root
        self.ensure_contained(user_id, candidate, relative_path=rel)
        return candidate

    def ensure_contained(self, user_id: int, path: Union[str, Path], relative_path: str = "") -> Path:
        """Raise ContainmentViolationError unless *path* lies inside the user's root."""
        root = self.root_for(user_id).resolve()
        resolved = Path(path).resolve()
        try:
            resolved.relative_to(root)
        except ValueError:
            logger.warning(
                "Path escapes user storage root",
                extra={
                    "security_event": True,
                    "user_id": user_id,
                    "relative_path": relative_path,
                    "resolved": str(resolved),
                },
            )
            raise ContainmentViolationError(user_id, relative_path or str(path))
        return resolved

    def relative_to_root(self, user_id: int, path: Union[str, Path]) -> str:
        """Inverse of ``resolve``: the normalized relative path of *path*."""
        root = self.root_for(user_id)
        try:
            rel = Path(path).relative_to(root)
        except ValueError:
            rel = self.ensure_contained(user_id, path).relative_to(root.resolve())
        return normalize_relative_path(rel.as_posix())
