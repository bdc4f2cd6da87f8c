"""Schemas for the storage API: tree listings, mutation requests and results."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

StorageModeLiteral = Literal["mirrored", "physical-only"]


# --- Tree schemas ---

class FsTreeNode(BaseModel):
    """A node of the physical tree below a user's sandbox root."""
    name: str
    relative_path: str
    type: Literal["directory", "file"]
    color: Optional[str] = None  # Directories with a sidecar
    size: Optional[int] = None  # Files only
    children: List['FsTreeNode'] = []
    truncated: bool = False


class DocumentEntry(BaseModel):
    """A document row shown inside the DB tree."""
    id: int
    display_name: str
    original_filename: str
    size_bytes: int = 0
    model_used: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DirectoryNode(BaseModel):
    """A node of the DB tree, with its derived physical path."""
    id: int
    name: str
    color: str
    parent_id: Optional[int] = None
    relative_path: str
    children: List['DirectoryNode'] = []
    documents: List[DocumentEntry] = []


class DirectoryListing(BaseModel):
    """``GET /api/directories``. Exactly one of ``directories``/``tree`` is set."""
    mode: StorageModeLiteral
    directories: Optional[List[DirectoryNode]] = None
    documents: Optional[List[DocumentEntry]] = None  # DB mode: documents without a folder
    tree: Optional[FsTreeNode] = None


# --- Results ---

class StorageResult(BaseModel):
    """Outcome of a mutating storage operation."""
    mode: StorageModeLiteral
    relative_path: str
    directory_id: Optional[int] = None
    document_id: Optional[int] = None
    mirror_synced: bool = True


class SummaryResponse(BaseModel):
    mode: StorageModeLiteral
    file_name: str
    relative_path: str
    text: str


# --- Requests ---

class _NamedRequest(BaseModel):
    name: str = Field(..., max_length=255)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v


class DirectoryCreate(_NamedRequest):
    """Create a folder under ``parent_id`` (DB mode) or ``parent_path`` (physical-only)."""
    parent_id: Optional[int] = None
    parent_path: str = ""
    color: Optional[str] = None


class DirectoryMove(BaseModel):
    """Move a folder. ``None`` / ``""`` targets mean the user's root."""
    directory_id: Optional[int] = None
    target_parent_id: Optional[int] = None
    source_path: str = ""
    target_parent_path: str = ""


class DirectoryRename(_NamedRequest):
    directory_id: Optional[int] = None
    path: str = ""


class DirectoryDelete(BaseModel):
    directory_id: Optional[int] = None
    path: str = ""


class DocumentMove(BaseModel):
    document_id: Optional[int] = None
    target_directory_id: Optional[int] = None
    source_path: str = ""
    target_parent_path: str = ""


class DocumentDelete(BaseModel):
    """Delete a document, or only its summary when ``summary_path`` is given."""
    document_id: Optional[int] = None
    path: str = ""
    summary_path: str = ""


class SummarySave(BaseModel):
    document_id: Optional[int] = None
    path: str = ""
    text: str = Field(..., min_length=1)


FsTreeNode.model_rebuild()
DirectoryNode.model_rebuild()
