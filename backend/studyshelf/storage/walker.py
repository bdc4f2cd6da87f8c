"""Read-only listing of a user's physical tree."""

import logging
import os
from pathlib import Path
from typing import List, Tuple

from ..schemas.storage import FsTreeNode
from .metadata import DirectoryMetadataStore, is_sidecar
from .paths import SEPARATOR
from .sandbox import UserRootResolver

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32


def _sort_key(name: str) -> Tuple[str, str]:
    # Case-insensitive first, exact name as tie breaker: a total order.
    return (name.casefold(), name)


def _child_path(relative_path: str, name: str) -> str:
    return f"{relative_path}{SEPARATOR}{name}" if relative_path else name


class FilesystemTreeWalker:
    """Depth-first walk of ``<root>/user_<id>`` producing ``FsTreeNode``s.

    Directories come before files, each group sorted by ``_sort_key``.
    Sidecars are hidden and symlinks are neither followed nor listed.
    Recursion stops at ``max_depth``; the cut-off node is marked
    ``truncated``.
    """

    def __init__(self, resolver: UserRootResolver, metadata: DirectoryMetadataStore,
                 max_depth: int = DEFAULT_MAX_DEPTH):
        self.resolver = resolver
        self.metadata = metadata
        self.max_depth = max_depth

    def list_tree(self, user_id: int) -> FsTreeNode:
        """Whole tree of *user_id*; the root node has ``relative_path == ""``."""
        root = self.resolver.root_for(user_id)
        return self.list_node(user_id, root, "")

    def list_node(self, user_id: int, absolute_path: Path, relative_path: str, depth: int = 0) -> FsTreeNode:
        absolute_path = Path(absolute_path)
        node = FsTreeNode(
            name=absolute_path.name if relative_path else "",
            relative_path=relative_path,
            type="directory",
            color=self.metadata.color_of(absolute_path),
        )
        if depth >= self.max_depth:
            logger.warning(
                "Tree listing truncated at max depth",
                extra={"user_id": user_id, "relative_path": relative_path, "max_depth": self.max_depth},
            )
            node.truncated = True
            return node

        try:
            dirs, files = self._scan(absolute_path)
        except PermissionError as exc:
            logger.warning(
                "Directory not readable during listing",
                extra={"user_id": user_id, "relative_path": relative_path, "error": str(exc)},
            )
            node.truncated = True
            return node

        children: List[FsTreeNode] = []
        for entry in dirs:
            child_rel = _child_path(relative_path, entry.name)
            child = self.list_node(user_id, Path(entry.path), child_rel, depth + 1)
            children.append(child)
        for entry in files:
            children.append(FsTreeNode(
                name=entry.name,
                relative_path=_child_path(relative_path, entry.name),
                type="file",
                size=entry.stat(follow_symlinks=False).st_size,
            ))
        node.children = children
        return node

    @staticmethod
    def _scan(directory: Path):
        dirs, files = [], []
        with os.scandir(directory) as entries:
            for entry in entries:
                if is_sidecar(entry.name) or entry.is_symlink():
                    continue
                if entry.is_dir(follow_symlinks=False):
                    dirs.append(entry)
                elif entry.is_file(follow_symlinks=False):
                    files.append(entry)
        dirs.sort(key=lambda e: _sort_key(e.name))
        files.sort(key=lambda e: _sort_key(e.name))
        return dirs, files
