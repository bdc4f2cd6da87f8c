"""Folder operations in both storage modes."""

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..exceptions import ConflictError, DatabaseError, ValidationError
from ..models.directory import Directory, ROOT_UNIQUE_INDEX, SIBLING_UNIQUE_CONSTRAINT
from ..models.document import Document
from ..repositories.directory_repository import DirectoryRepository
from ..repositories.document_repository import DocumentRepository
from ..schemas.storage import DirectoryListing, DirectoryNode, DocumentEntry, StorageResult
from ..storage.metadata import normalize_color
from ..storage.paths import SEPARATOR, normalize_relative_path, sanitize_name
from .base import StorageService
from .mirror import run_mirror

logger = logging.getLogger(__name__)


def is_sibling_conflict(exc: IntegrityError) -> bool:
    """True when *exc* comes from the per-parent directory name uniqueness."""
    message = str(exc.orig)
    if SIBLING_UNIQUE_CONSTRAINT in message or ROOT_UNIQUE_INDEX in message:
        return True
    return "UNIQUE" in message.upper() and "directories" in message


class DirectoryService(StorageService):
    """Business logic for folders.

    Public methods:
        list_tree -- DB tree (mirrored) or physical tree (physical-only)
        create    -- create a folder, with its color sidecar
        move      -- move a folder under another parent
        rename    -- change a folder's name
        delete    -- delete a folder and everything below it
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.repo = DirectoryRepository(self.db)
        self.doc_repo = DocumentRepository(self.db)

    # --- Listing ---

    def list_tree(self) -> DirectoryListing:
        if not self.mirrored:
            return DirectoryListing(mode=self.mode.value, tree=self.store.walker.list_tree(self.user_id))

        folders = self.repo.list_by_user(self.user_id)
        documents = self.doc_repo.list_by_user(self.user_id)
        known = {f.id for f in folders}

        # Rows whose parent is gone surface at the top level.
        children_by_parent: Dict[Optional[int], List[Directory]] = {}
        for folder in folders:
            parent = folder.parent_id if folder.parent_id in known else None
            children_by_parent.setdefault(parent, []).append(folder)

        docs_by_folder: Dict[Optional[int], List[DocumentEntry]] = {}
        for doc in documents:
            key = doc.directory_id if doc.directory_id in known else None
            docs_by_folder.setdefault(key, []).append(DocumentEntry.model_validate(doc))

        visited = set()

        def build_children(parent_id: Optional[int], parent_path: str) -> List[DirectoryNode]:
            nodes: List[DirectoryNode] = []
            for folder in children_by_parent.get(parent_id, []):
                if folder.id in visited:
                    continue
                visited.add(folder.id)
                segment = sanitize_name(folder.name)
                rel = f"{parent_path}{SEPARATOR}{segment}" if parent_path else segment
                nodes.append(DirectoryNode(
                    id=folder.id,
                    name=folder.name,
                    color=normalize_color(folder.color_hex, self.store.metadata.default_color),
                    parent_id=folder.parent_id,
                    relative_path=rel,
                    children=build_children(folder.id, rel),
                    documents=docs_by_folder.get(folder.id, []),
                ))
            return nodes

        return DirectoryListing(
            mode=self.mode.value,
            directories=build_children(None, ""),
            documents=docs_by_folder.get(None, []),
        )

    # --- Mutations ---

    def create(self, name: str, parent_id: Optional[int] = None, parent_path: str = "",
               color: Optional[str] = None) -> StorageResult:
        color = normalize_color(color, self.store.metadata.default_color)
        if self.mirrored:
            return self._create_mirrored(name, parent_id, color)

        parent = self.existing_directory(parent_path)
        segment = sanitize_name(name)

        def materialize() -> Path:
            created = self.store.allocator.create_directory(parent, segment)
            self.store.metadata.write_meta(created, color)
            return created

        outcome = run_mirror(self.mode, "create_directory", self.relative(parent), materialize)
        rel = self.relative(outcome.value)
        logger.info("Directory created", extra={"user_id": self.user_id, "relative_path": rel})
        return StorageResult(mode=self.mode.value, relative_path=rel)

    def _create_mirrored(self, name: str, parent_id: Optional[int], color: str) -> StorageResult:
        if parent_id is not None:
            self.repo.get_owned(parent_id, self.user_id)
        self._require_free_segment(name, parent_id)

        folder = Directory(
            user_id=self.user_id,
            parent_id=parent_id,
            name=name,
            color_hex=color,
            position=self.repo.next_position(self.user_id, parent_id),
        )
        self.db.add(folder)
        self._commit(name, parent_id)
        self.db.refresh(folder)

        rel = self.translator.path_from_id(self.user_id, folder.id)
        outcome = run_mirror(self.mode, "create_directory", rel, lambda: self._ensure_mirror_dir(rel, color))
        logger.info(
            "Directory created",
            extra={"user_id": self.user_id, "directory_id": folder.id, "relative_path": rel},
        )
        return StorageResult(
            mode=self.mode.value, relative_path=rel, directory_id=folder.id, mirror_synced=outcome.synced,
        )

    def move(self, directory_id: Optional[int] = None, target_parent_id: Optional[int] = None,
             source_path: str = "", target_parent_path: str = "") -> StorageResult:
        if self.mirrored:
            if directory_id is None:
                raise ValidationError("directory_id is required", field="directory_id")
            folder = self.repo.get_owned(directory_id, self.user_id)
            if target_parent_id is not None:
                self.repo.get_owned(target_parent_id, self.user_id)
                if target_parent_id in self.repo.subtree_ids(self.user_id, folder.id):
                    raise ValidationError(
                        "Cannot move a folder into itself or one of its subfolders", field="target_parent_id"
                    )
            if folder.parent_id == target_parent_id:
                rel = self.translator.path_from_id(self.user_id, folder.id)
                return StorageResult(mode=self.mode.value, relative_path=rel, directory_id=folder.id)
            self._require_free_segment(folder.name, target_parent_id, exclude_id=folder.id)

            old_rel = self.translator.path_from_id(self.user_id, folder.id)
            folder.parent_id = target_parent_id
            folder.position = self.repo.next_position(self.user_id, target_parent_id)
            self._commit(folder.name, target_parent_id)
            return self._relocate_mirror(folder, old_rel, "move_directory")

        source = self.existing_directory(source_path, allow_root=False)
        source_rel = self.relative(source)
        parent = self.existing_directory(target_parent_path)
        parent_rel = self.relative(parent)
        if parent_rel == source_rel or parent_rel.startswith(source_rel + SEPARATOR):
            raise ValidationError("Cannot move a folder into itself or one of its subfolders", field="target_parent_path")

        outcome = run_mirror(
            self.mode, "move_directory", source_rel,
            lambda: self.store.allocator.move_directory(source, parent, source.name),
        )
        rel = self.relative(outcome.value)
        logger.info("Directory moved", extra={"user_id": self.user_id, "from": source_rel, "to": rel})
        return StorageResult(mode=self.mode.value, relative_path=rel)

    def rename(self, name: str, directory_id: Optional[int] = None, path: str = "") -> StorageResult:
        if self.mirrored:
            if directory_id is None:
                raise ValidationError("directory_id is required", field="directory_id")
            folder = self.repo.get_owned(directory_id, self.user_id)
            if folder.name == name:
                rel = self.translator.path_from_id(self.user_id, folder.id)
                return StorageResult(mode=self.mode.value, relative_path=rel, directory_id=folder.id)
            self._require_free_segment(name, folder.parent_id, exclude_id=folder.id)

            old_rel = self.translator.path_from_id(self.user_id, folder.id)
            folder.name = name
            self._commit(name, folder.parent_id)
            return self._relocate_mirror(folder, old_rel, "rename_directory")

        source = self.existing_directory(path, allow_root=False)
        source_rel = self.relative(source)
        segment = sanitize_name(name)
        if segment == source.name:
            return StorageResult(mode=self.mode.value, relative_path=source_rel)

        outcome = run_mirror(
            self.mode, "rename_directory", source_rel,
            lambda: self.store.allocator.move_directory(source, source.parent, segment),
        )
        rel = self.relative(outcome.value)
        logger.info("Directory renamed", extra={"user_id": self.user_id, "from": source_rel, "to": rel})
        return StorageResult(mode=self.mode.value, relative_path=rel)

    def delete(self, directory_id: Optional[int] = None, path: str = "") -> StorageResult:
        if self.mirrored:
            if directory_id is None:
                raise ValidationError("directory_id is required", field="directory_id")
            folder = self.repo.get_owned(directory_id, self.user_id)
            rel = self.translator.path_from_id(self.user_id, folder.id)
            subtree = self.repo.subtree_ids(self.user_id, folder.id)
            stored = [d.stored_filename for d in self.doc_repo.list_in_directories(self.user_id, subtree)]

            try:
                # Subtree rows are removed explicitly; the FK cascade would remove
                # the same rows.
                self.db.query(Document).filter(
                    Document.user_id == self.user_id, Document.directory_id.in_(subtree)
                ).delete(synchronize_session=False)
                self.db.query(Directory).filter(
                    Directory.user_id == self.user_id, Directory.id.in_(subtree)
                ).delete(synchronize_session=False)
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                raise DatabaseError("Failed to delete directory", exc) from exc
            self.db.expire_all()

            outcome = run_mirror(self.mode, "delete_directory", rel, lambda: self._remove_mirror_dir(rel))
            for stored_filename in stored:
                run_mirror(
                    self.mode, "delete_backing_copy", stored_filename,
                    lambda name=stored_filename: (self.store.uploads_dir / name).unlink(missing_ok=True),
                )
            logger.info(
                "Directory deleted",
                extra={"user_id": self.user_id, "directory_id": directory_id, "relative_path": rel,
                       "documents": len(stored)},
            )
            return StorageResult(
                mode=self.mode.value, relative_path=rel, directory_id=directory_id, mirror_synced=outcome.synced,
            )

        target = self.existing_directory(path, allow_root=False)
        rel = self.relative(target)
        run_mirror(self.mode, "delete_directory", rel, lambda: shutil.rmtree(target))
        logger.info("Directory deleted", extra={"user_id": self.user_id, "relative_path": rel})
        return StorageResult(mode=self.mode.value, relative_path=rel)

    # --- Helpers ---

    def _require_free_segment(self, name: str, parent_id: Optional[int],
                              exclude_id: Optional[int] = None) -> None:
        """ConflictError if a sibling already maps to the same mirror directory.

        The DB constraint only compares raw names, while ``Notes`` and
        ``Notes.`` both sanitize to the segment ``Notes``.
        """
        segment = sanitize_name(name)
        for sibling in self.repo.get_children(self.user_id, parent_id):
            if sibling.id != exclude_id and sanitize_name(sibling.name) == segment:
                raise ConflictError(name, parent_id)

    def _commit(self, name: str, parent_id: Optional[int]) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if is_sibling_conflict(exc):
                raise ConflictError(name, parent_id) from exc
            raise DatabaseError("Failed to save directory", exc) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DatabaseError("Failed to save directory", exc) from exc

    def _relocate_mirror(self, folder: Directory, old_rel: str, operation: str) -> StorageResult:
        new_rel = self.translator.path_from_id(self.user_id, folder.id)
        color = normalize_color(folder.color_hex, self.store.metadata.default_color)

        def relocate() -> Path:
            source = self.resolve(old_rel)
            target = self.resolve(new_rel)
            if source == target:
                return target
            if source.is_dir() and not source.is_symlink():
                target.parent.mkdir(parents=True, exist_ok=True)
                return self.store.allocator.place_directory(source, target)
            # Mirror never materialized or was removed out of band: recreate it.
            return self._ensure_mirror_dir(new_rel, color)

        outcome = run_mirror(self.mode, operation, f"{old_rel} -> {new_rel}", relocate)
        logger.info(
            "Directory relocated",
            extra={"user_id": self.user_id, "directory_id": folder.id, "from": old_rel, "to": new_rel,
                   "mirror_synced": outcome.synced},
        )
        return StorageResult(
            mode=self.mode.value, relative_path=new_rel, directory_id=folder.id, mirror_synced=outcome.synced,
        )

    def _ensure_mirror_dir(self, rel: str, color: str) -> Path:
        """Create the mirror of a folder row; an occupied path raises FileExistsError."""
        target = self.resolve(rel)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.mkdir()
        self.store.metadata.write_meta(target, color)
        return target

    def _remove_mirror_dir(self, rel: str) -> None:
        if not normalize_relative_path(rel):
            return
        target = self.resolve(rel)
        if target.is_symlink():
            target.unlink()
        elif target.exists():
            shutil.rmtree(target)
