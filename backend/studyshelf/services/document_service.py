"""Document and summary operations in both storage modes.

Mirrored mode keeps three physical artifacts per document: the backing copy
``<uploads_dir>/<stored_filename>`` (canonical bytes), the mirror
``<folder path>/<stem>.pdf`` and, once generated, the summary
``<folder path>/Resumen_<stem>.txt``. ``stem`` is always derived from the
row's ``display_name`` via ``mirror_stem``; the folder path comes from the
hierarchy translator. Physical-only mode has only the file in the user's
tree and its summary next to it.
"""

import logging
import os
import secrets
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..core.config import settings
from ..exceptions import (
    DatabaseError,
    PathNotFoundError,
    UnsupportedMediaError,
    ValidationError,
)
from ..models.document import Document
from ..repositories.directory_repository import DirectoryRepository
from ..repositories.document_repository import DocumentRepository
from ..schemas.storage import StorageResult, SummaryResponse
from ..storage.paths import (
    basename_of,
    join_relative,
    normalize_relative_path,
    parent_of,
    sanitize_name,
    split_extension,
)
from .base import StorageService
from .mirror import run_mirror, run_physical

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF-"
PDF_EXTENSION = ".pdf"
PDF_MIME_TYPE = "application/pdf"
SUMMARY_PREFIX = "Resumen_"
SUMMARY_EXTENSION = ".txt"
MAX_TEXT_CHARS = 40000

TextExtractor = Callable[[Path], str]


def mirror_stem(display_name: str) -> str:
    """Sanitized file stem of a document's mirror copy (no ``.pdf``)."""
    stem, ext = split_extension(display_name or "")
    if ext != PDF_EXTENSION:
        stem = display_name or ""
    return sanitize_name(stem)


def summary_name(stem: str) -> str:
    return f"{SUMMARY_PREFIX}{stem}{SUMMARY_EXTENSION}"


def is_summary_name(name: str) -> bool:
    return name.startswith(SUMMARY_PREFIX) and name.lower().endswith(SUMMARY_EXTENSION)


def new_stored_filename(now: Optional[datetime] = None) -> str:
    """``YYYYmmddHHMMSS_<12 hex>.pdf``, the name of a backing copy."""
    now = now or datetime.now()
    return f"{now:%Y%m%d%H%M%S}_{secrets.token_hex(6)}{PDF_EXTENSION}"


class DocumentService(StorageService):
    """Business logic for documents and their summaries.

    Public methods:
        upload        -- store a PDF and mirror it into a folder
        move          -- move a document (and its summary) to another folder
        delete        -- delete a document with all its artifacts, or only its summary
        save_summary  -- write the summary text next to a document
        read_summary  -- read the summary text of a document
    """

    def __init__(self, *args, extract_text: Optional[TextExtractor] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.repo = DocumentRepository(self.db)
        self.dir_repo = DirectoryRepository(self.db)
        self.extract_text = extract_text

    # --- Upload ---

    def upload(self, filename: Optional[str], data: bytes, content_type: Optional[str] = None,
               directory_id: Optional[int] = None, parent_path: str = "") -> StorageResult:
        if not data.startswith(PDF_SIGNATURE):
            raise UnsupportedMediaError(content_type)
        limit = settings.max_upload_mb * 1024 * 1024
        if len(data) > limit:
            raise ValidationError(f"File exceeds the {settings.max_upload_mb} MB upload limit", field="file")

        original = os.path.basename((filename or "").replace("\\", "/")) or f"document{PDF_EXTENSION}"
        stem = mirror_stem(original)

        if not self.mirrored:
            parent = self.existing_directory(parent_path)
            outcome = run_mirror(
                self.mode, "upload", self.relative(parent),
                lambda: self.store.allocator.write_file(parent, stem, PDF_EXTENSION, data),
            )
            rel = self.relative(outcome.value)
            logger.info("Document stored", extra={"user_id": self.user_id, "relative_path": rel, "size": len(data)})
            return StorageResult(mode=self.mode.value, relative_path=rel)

        if directory_id is not None:
            self.dir_repo.get_owned(directory_id, self.user_id)

        stored_filename = new_stored_filename()
        backing = self.store.uploads_dir / stored_filename
        run_physical("store_upload", stored_filename, lambda: backing.write_bytes(data))

        try:
            text = self._extract(backing)
            doc = Document(
                user_id=self.user_id,
                directory_id=directory_id,
                original_filename=original,
                display_name=original,
                stored_filename=stored_filename,
                mime_type=PDF_MIME_TYPE,
                size_bytes=len(data),
                text_content=text,
                model_used=settings.document_model_tag,
            )
            self.db.add(doc)
            self._commit("Failed to save document")
        except Exception:
            backing.unlink(missing_ok=True)
            raise
        self.db.refresh(doc)

        folder_rel = self.translator.path_from_id(self.user_id, directory_id)

        def mirror_copy() -> Path:
            parent = self.resolve(folder_rel)
            parent.mkdir(parents=True, exist_ok=True)
            return self.store.allocator.copy_file(backing, parent, stem, PDF_EXTENSION)

        outcome = run_mirror(self.mode, "upload", folder_rel, mirror_copy)
        rel = self._adopt_mirror_name(doc, outcome.value, folder_rel, stem)
        logger.info(
            "Document uploaded",
            extra={"user_id": self.user_id, "document_id": doc.id, "relative_path": rel,
                   "size": len(data), "mirror_synced": outcome.synced},
        )
        return StorageResult(
            mode=self.mode.value, relative_path=rel, directory_id=directory_id,
            document_id=doc.id, mirror_synced=outcome.synced,
        )

    # --- Move ---

    def move(self, document_id: Optional[int] = None, target_directory_id: Optional[int] = None,
             source_path: str = "", target_parent_path: str = "") -> StorageResult:
        if not self.mirrored:
            source = self.existing_file(source_path)
            source_rel = self.relative(source)
            parent = self.existing_directory(target_parent_path)
            stem, ext = os.path.splitext(source.name)
            outcome = run_mirror(
                self.mode, "move_document", source_rel,
                lambda: self._move_with_summary(source, parent, stem, ext),
            )
            rel = self.relative(outcome.value)
            logger.info("Document moved", extra={"user_id": self.user_id, "from": source_rel, "to": rel})
            return StorageResult(mode=self.mode.value, relative_path=rel)

        doc = self._require_document(document_id)
        if target_directory_id is not None:
            self.dir_repo.get_owned(target_directory_id, self.user_id)

        stem = mirror_stem(doc.display_name)
        old_folder = self.translator.path_from_id(self.user_id, doc.directory_id)
        if doc.directory_id == target_directory_id:
            return StorageResult(
                mode=self.mode.value, relative_path=join_relative(old_folder, stem + PDF_EXTENSION),
                directory_id=target_directory_id, document_id=doc.id,
            )

        doc.directory_id = target_directory_id
        self._commit("Failed to move document")
        new_folder = self.translator.path_from_id(self.user_id, target_directory_id)

        def relocate() -> Path:
            source_dir = self.resolve(old_folder)
            parent = self.resolve(new_folder)
            parent.mkdir(parents=True, exist_ok=True)
            source = source_dir / f"{stem}{PDF_EXTENSION}"
            if source.is_file() and not source.is_symlink():
                return self._move_with_summary(source, parent, stem, PDF_EXTENSION)
            # Mirror missing: rebuild it from the backing copy.
            backing = self.store.uploads_dir / doc.stored_filename
            return self.store.allocator.copy_file(backing, parent, stem, PDF_EXTENSION)

        outcome = run_mirror(self.mode, "move_document", f"{old_folder} -> {new_folder}", relocate)
        rel = self._adopt_mirror_name(doc, outcome.value, new_folder, stem)
        logger.info(
            "Document moved",
            extra={"user_id": self.user_id, "document_id": doc.id, "to": rel, "mirror_synced": outcome.synced},
        )
        return StorageResult(
            mode=self.mode.value, relative_path=rel, directory_id=target_directory_id,
            document_id=doc.id, mirror_synced=outcome.synced,
        )

    # --- Delete ---

    def delete(self, document_id: Optional[int] = None, path: str = "", summary_path: str = "") -> StorageResult:
        if summary_path:
            return self._delete_summary(summary_path)

        if not self.mirrored:
            target = self.existing_file(path)
            rel = self.relative(target)
            stem, _ = split_extension(target.name)
            summary = target.parent / summary_name(stem)

            def remove() -> None:
                target.unlink()
                if not is_summary_name(target.name):
                    summary.unlink(missing_ok=True)

            run_mirror(self.mode, "delete_document", rel, remove)
            logger.info("Document deleted", extra={"user_id": self.user_id, "relative_path": rel})
            return StorageResult(mode=self.mode.value, relative_path=rel)

        doc = self._require_document(document_id)
        doc_id = doc.id
        stem = mirror_stem(doc.display_name)
        folder = self.translator.path_from_id(self.user_id, doc.directory_id)
        backing = self.store.uploads_dir / doc.stored_filename

        self.db.delete(doc)
        self._commit("Failed to delete document")

        rel = join_relative(folder, stem + PDF_EXTENSION)
        synced = True
        for operation, target in (
            ("delete_mirror_copy", lambda: self.resolve(rel)),
            ("delete_summary", lambda: self.resolve(join_relative(folder, summary_name(stem)))),
            ("delete_backing_copy", lambda: backing),
        ):
            outcome = run_mirror(self.mode, operation, rel, lambda t=target: t().unlink(missing_ok=True))
            synced = synced and outcome.synced
        logger.info(
            "Document deleted",
            extra={"user_id": self.user_id, "document_id": doc_id, "relative_path": rel, "mirror_synced": synced},
        )
        return StorageResult(mode=self.mode.value, relative_path=rel, document_id=doc_id, mirror_synced=synced)

    def _delete_summary(self, summary_path: str) -> StorageResult:
        rel = normalize_relative_path(summary_path)
        if not is_summary_name(basename_of(rel)):
            raise ValidationError(
                f"Only {SUMMARY_PREFIX}*{SUMMARY_EXTENSION} files can be deleted this way", field="summary_path"
            )
        target = self.existing_file(rel)
        run_physical("delete_summary", rel, target.unlink)
        logger.info("Summary deleted", extra={"user_id": self.user_id, "relative_path": rel})
        return StorageResult(mode=self.mode.value, relative_path=rel)

    # --- Summaries ---

    def save_summary(self, text: str, document_id: Optional[int] = None, path: str = "") -> StorageResult:
        """Write ``Resumen_<stem>.txt`` next to the document, replacing an older one."""
        target, doc_id = self._summary_location(document_id, path)
        rel = self.relative(target)

        def write() -> None:
            if self.mirrored:
                # The folder row is authoritative; its mirror may not exist yet.
                target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_name(f".{target.name}.{secrets.token_hex(4)}.tmp")
            try:
                tmp.write_text(text, encoding="utf-8")
                os.replace(tmp, target)
            except OSError:
                tmp.unlink(missing_ok=True)
                raise

        run_physical("save_summary", rel, write)
        logger.info("Summary saved", extra={"user_id": self.user_id, "relative_path": rel, "chars": len(text)})
        return StorageResult(mode=self.mode.value, relative_path=rel, document_id=doc_id)

    def read_summary(self, document_id: Optional[int] = None, path: str = "") -> SummaryResponse:
        target, _ = self._summary_location(document_id, path)
        rel = self.relative(target)
        if target.is_symlink() or not target.is_file():
            raise PathNotFoundError(rel, kind="summary")
        text = run_physical("read_summary", rel, lambda: target.read_text(encoding="utf-8"))
        return SummaryResponse(mode=self.mode.value, file_name=target.name, relative_path=rel, text=text)

    def _summary_location(self, document_id: Optional[int], path: str):
        if self.mirrored:
            doc = self._require_document(document_id)
            stem = mirror_stem(doc.display_name)
            folder = self.translator.path_from_id(self.user_id, doc.directory_id)
            return self.resolve(join_relative(folder, summary_name(stem))), doc.id

        rel = normalize_relative_path(path)
        if not rel:
            raise ValidationError("A file path is required", field="path")
        name = basename_of(rel)
        if is_summary_name(name):
            return self.existing_directory(parent_of(rel)) / name, None
        source = self.existing_file(rel)
        stem, _ = split_extension(source.name)
        return source.parent / summary_name(stem), None

    # --- Helpers ---

    def _require_document(self, document_id: Optional[int]) -> Document:
        if document_id is None:
            raise ValidationError("document_id is required", field="document_id")
        return self.repo.get_owned(document_id, self.user_id)

    def _extract(self, backing: Path) -> str:
        if self.extract_text is None:
            return ""
        try:
            text = self.extract_text(backing) or ""
        except Exception as exc:
            logger.exception("PDF text extraction failed", extra={"stored_filename": backing.name})
            raise UnsupportedMediaError(PDF_MIME_TYPE) from exc
        return text[:MAX_TEXT_CHARS]

    def _commit(self, message: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DatabaseError(message, exc) from exc

    def _move_with_summary(self, source: Path, parent: Path, stem: str, ext: str) -> Path:
        """Move a document; a summary next to it moves along under the same new stem."""
        summary = source.parent / summary_name(stem)
        if ext.lower() != PDF_EXTENSION or summary.is_symlink() or not summary.is_file():
            return self.store.allocator.move_file(source, parent, stem, ext)
        moved, _ = self.store.allocator.move_file_pair(source, summary, parent, stem, ext, summary_name)
        return moved

    def _adopt_mirror_name(self, doc: Document, placed: Optional[Path], folder_rel: str, stem: str) -> str:
        """Relative path of the mirror; renames the row if the allocator picked another stem."""
        if placed is None:
            return join_relative(folder_rel, stem + PDF_EXTENSION)
        new_stem, _ = split_extension(placed.name)
        if new_stem != stem:
            doc.display_name = placed.name
            self._commit("Failed to record renamed document")
        return self.relative(placed)
