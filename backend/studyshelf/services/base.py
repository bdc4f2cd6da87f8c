"""Shared plumbing for the storage services."""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from ..exceptions import PathNotFoundError, ValidationError
from ..storage import PhysicalStore, default_store
from ..storage.paths import normalize_relative_path
from .hierarchy import HierarchyPathTranslator
from .storage_mode import StorageMode

logger = logging.getLogger(__name__)


class StorageService:
    """Binds one request's user, storage mode, DB session and physical store."""

    def __init__(self, db: Session, user_id: int, mode: StorageMode,
                 store: Optional[PhysicalStore] = None):
        self.db = db
        self.user_id = user_id
        self.mode = mode
        self.store = store or default_store()
        self.translator = HierarchyPathTranslator(db)

    @property
    def mirrored(self) -> bool:
        return self.mode is StorageMode.MIRRORED

    def resolve(self, relative_path: str) -> Path:
        return self.store.resolver.resolve(self.user_id, relative_path)

    def relative(self, absolute_path: Path) -> str:
        return self.store.resolver.relative_to_root(self.user_id, absolute_path)

    def existing_directory(self, raw_path: str, allow_root: bool = True) -> Path:
        """Resolve *raw_path* to an existing real directory or raise PathNotFoundError."""
        rel = normalize_relative_path(raw_path)
        if not rel and not allow_root:
            raise ValidationError("The root folder cannot be used here", field="path")
        target = self.resolve(rel)
        if target.is_symlink() or not target.is_dir():
            raise PathNotFoundError(rel, kind="directory")
        return target

    def existing_file(self, raw_path: str) -> Path:
        rel = normalize_relative_path(raw_path)
        if not rel:
            raise ValidationError("A file path is required", field="path")
        target = self.resolve(rel)
        if target.is_symlink() or not target.is_file():
            raise PathNotFoundError(rel, kind="file")
        return target
