"""Document endpoints: upload, move, delete."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.concurrency import user_slot
from ..core.config import settings
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.storage import DocumentDelete, DocumentMove, StorageResult
from ..services.document_service import DocumentService
from ..storage import PhysicalStore, default_store

router = APIRouter(prefix="/api/documents", tags=["documents"])


def _service(db: Session, auth: AuthContext, store: PhysicalStore) -> DocumentService:
    return DocumentService(db, auth.user_id, auth.mode, store)


@router.post("", response_model=StorageResult, status_code=201)
def upload_document(
    pdf: UploadFile = File(...),
    directory_id: Optional[int] = Form(default=None),
    relative_path: str = Form(default=""),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    """Upload a PDF into a folder (``directory_id`` when mirrored, ``relative_path`` otherwise)."""
    limit = settings.max_upload_mb * 1024 * 1024
    data = pdf.file.read(limit + 1)
    if len(data) > limit:
        raise ValidationError(f"File exceeds the {settings.max_upload_mb} MB upload limit", field="pdf")
    if not data:
        raise ValidationError("Uploaded file is empty", field="pdf")
    return _service(db, auth, store).upload(
        pdf.filename, data, pdf.content_type, directory_id=directory_id, parent_path=relative_path,
    )


@router.post("/move", response_model=StorageResult)
def move_document(
    data: DocumentMove,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    return _service(db, auth, store).move(
        document_id=data.document_id,
        target_directory_id=data.target_directory_id,
        source_path=data.source_path,
        target_parent_path=data.target_parent_path,
    )


@router.post("/delete", response_model=StorageResult)
def delete_document(
    data: DocumentDelete,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    """Delete a document and its artifacts, or only a summary via ``summary_path``."""
    return _service(db, auth, store).delete(
        document_id=data.document_id, path=data.path, summary_path=data.summary_path,
    )
