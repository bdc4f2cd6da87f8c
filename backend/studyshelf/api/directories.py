"""Folder endpoints.

Every endpoint is scoped to the authenticated user; the user id comes from
the auth context, never from the request body. Mirrored users address
folders by id, physical-only users by relative path.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..core.concurrency import user_slot
from ..database import get_db
from ..schemas.storage import (
    DirectoryCreate,
    DirectoryDelete,
    DirectoryListing,
    DirectoryMove,
    DirectoryRename,
    StorageResult,
)
from ..services.directory_service import DirectoryService
from ..storage import PhysicalStore, default_store

router = APIRouter(prefix="/api/directories", tags=["directories"])


def _service(db: Session, auth: AuthContext, store: PhysicalStore) -> DirectoryService:
    return DirectoryService(db, auth.user_id, auth.mode, store)


@router.get("", response_model=DirectoryListing)
def list_directories(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    """Folder tree of the caller: DB tree when mirrored, disk tree otherwise."""
    return _service(db, auth, store).list_tree()


@router.post("", response_model=StorageResult, status_code=201)
def create_directory(
    data: DirectoryCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    return _service(db, auth, store).create(
        data.name, parent_id=data.parent_id, parent_path=data.parent_path, color=data.color,
    )


@router.post("/move", response_model=StorageResult)
def move_directory(
    data: DirectoryMove,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    return _service(db, auth, store).move(
        directory_id=data.directory_id,
        target_parent_id=data.target_parent_id,
        source_path=data.source_path,
        target_parent_path=data.target_parent_path,
    )


@router.post("/rename", response_model=StorageResult)
def rename_directory(
    data: DirectoryRename,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    return _service(db, auth, store).rename(data.name, directory_id=data.directory_id, path=data.path)


@router.post("/delete", response_model=StorageResult)
def delete_directory(
    data: DirectoryDelete,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(user_slot),
    store: PhysicalStore = Depends(default_store),
):
    """Delete a folder with everything below it."""
    return _service(db, auth, store).delete(directory_id=data.directory_id, path=data.path)
