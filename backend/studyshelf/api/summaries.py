"""Summary artifact endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.concurrency import user_slot
from ..database import get_db
from ..schemas.storage import StorageResult, SummaryResponse, SummarySave
from ..services.document_service import DocumentService
from ..storage import PhysicalStore, default_store

router = APIRouter(prefix="/api/summaries", tags=["summaries"])


@router.post("", response_model=StorageResult, status_code=201)
def save_summary(
    data: SummarySave,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    """Write ``Resumen_<name>.txt`` next to a document, replacing an older one."""
    service = DocumentService(db, auth.user_id, auth.mode, store)
    return service.save_summary(data.text, document_id=data.document_id, path=data.path)


@router.get("", response_model=SummaryResponse)
def read_summary(
    document_id: Optional[int] = Query(default=None),
    path: str = Query(default=""),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    service = DocumentService(db, auth.user_id, auth.mode, store)
    return service.read_summary(document_id=document_id, path=path)
